"""
Connection factories: build connections for one provider, either from a
fresh credential or from stored ConnectionData.
"""
from abc import ABC, abstractmethod
from typing import Any

from socialconnect.connect.adapter import ApiAdapter
from socialconnect.connect.connection import Connection, OAuth1Connection, OAuth2Connection
from socialconnect.connect.data import ConnectionData
from socialconnect.connect.provider import OAuth1ServiceProvider, OAuth2ServiceProvider
from socialconnect.oauth1 import OAuth1Template, OAuthToken
from socialconnect.oauth2 import AccessGrant, OAuth2Template


class ConnectionFactory(ABC):
    """
    Composes a service provider and an API adapter under a provider id.
    
    ``api_type`` is the class of the API client the provider builds; the
    registry uses it as a second lookup key.
    """

    def __init__(self, provider_id: str, service_provider: Any, api_adapter: ApiAdapter):
        if not provider_id:
            raise ValueError("provider_id is required")
        self.provider_id = provider_id
        self.service_provider = service_provider
        self.api_adapter = api_adapter

    @property
    def api_type(self) -> type:
        return self.service_provider.api_type

    @abstractmethod
    async def create_connection(self, credential: Any) -> Connection:
        """Build a new connection from a fresh credential and read its profile values."""

    @abstractmethod
    def create_connection_from_data(self, data: ConnectionData) -> Connection:
        """Rebuild a stored connection. No network calls."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider_id}>"


class OAuth1ConnectionFactory(ConnectionFactory):
    """Factory for providers that authorize with OAuth1."""

    service_provider: OAuth1ServiceProvider

    def __init__(self, provider_id: str, service_provider: OAuth1ServiceProvider, api_adapter: ApiAdapter):
        super().__init__(provider_id, service_provider, api_adapter)

    @property
    def oauth_operations(self) -> OAuth1Template:
        return self.service_provider.oauth_operations

    async def create_connection(self, access_token: OAuthToken) -> OAuth1Connection:
        connection = OAuth1Connection(
            self.provider_id,
            self.extract_provider_user_id(access_token),
            access_token.value,
            access_token.secret,
            self.service_provider,
            self.api_adapter,
        )
        await connection.sync()
        return connection

    def create_connection_from_data(self, data: ConnectionData) -> OAuth1Connection:
        return OAuth1Connection.from_data(data, self.service_provider, self.api_adapter)

    def extract_provider_user_id(self, access_token: OAuthToken) -> str | None:
        """Providers that return the user id with the token override this."""
        return None


class OAuth2ConnectionFactory(ConnectionFactory):
    """Factory for providers that authorize with OAuth2."""

    service_provider: OAuth2ServiceProvider

    def __init__(self, provider_id: str, service_provider: OAuth2ServiceProvider, api_adapter: ApiAdapter):
        super().__init__(provider_id, service_provider, api_adapter)

    @property
    def oauth_operations(self) -> OAuth2Template:
        return self.service_provider.oauth_operations

    async def create_connection(self, access_grant: AccessGrant) -> OAuth2Connection:
        connection = OAuth2Connection(
            self.provider_id,
            self.extract_provider_user_id(access_grant),
            access_grant.access_token,
            access_grant.refresh_token,
            access_grant.expire_time,
            self.service_provider,
            self.api_adapter,
        )
        await connection.sync()
        return connection

    def create_connection_from_data(self, data: ConnectionData) -> OAuth2Connection:
        return OAuth2Connection.from_data(data, self.service_provider, self.api_adapter)

    def extract_provider_user_id(self, access_grant: AccessGrant) -> str | None:
        """Providers that return the user id with the grant override this."""
        return None
