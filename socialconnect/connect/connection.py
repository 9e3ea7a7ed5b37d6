"""
Connections: one local user's live, credentialed link to a provider account.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

from socialconnect.connect.adapter import ApiAdapter
from socialconnect.connect.data import ConnectionData, ConnectionKey, ConnectionValues, UserProfile
from socialconnect.connect.provider import OAuth1ServiceProvider, OAuth2ServiceProvider
from socialconnect.errors import ExpiredAuthorizationError
from socialconnect.oauth2.types import now_millis

logger = logging.getLogger(__name__)


class Connection(ABC):
    """
    Wraps the API client for one provider account.
    
    Profile attributes are cached on the connection and only change on
    ``sync()``. Two connections are equal when their ``create_data()``
    snapshots are equal.
    """

    def __init__(
        self,
        provider_id: str,
        provider_user_id: str | None,
        api_adapter: ApiAdapter,
        display_name: str | None = None,
        profile_url: str | None = None,
        image_url: str | None = None,
    ):
        self._key = ConnectionKey(provider_id, provider_user_id)
        self.api_adapter = api_adapter
        self.display_name = display_name
        self.profile_url = profile_url
        self.image_url = image_url

    @property
    def key(self) -> ConnectionKey:
        return self._key

    @abstractmethod
    def get_api(self) -> Any:
        """The provider API client bound to this connection's credential."""

    @abstractmethod
    def create_data(self) -> ConnectionData:
        """Snapshot this connection for storage."""

    async def sync(self) -> ConnectionValues:
        """Re-read profile attributes from the provider. The credential is left alone."""
        values = ConnectionValues()
        await self.api_adapter.set_connection_values(self.get_api(), values)
        if self._key.provider_user_id is None:
            self._key = ConnectionKey(self._key.provider_id, values.provider_user_id)
        self.display_name = values.display_name
        self.profile_url = values.profile_url
        self.image_url = values.image_url
        return values

    async def test(self) -> bool:
        """Check the credential against the provider. Failures are reported as False."""
        try:
            return await self.api_adapter.test(self.get_api())
        except Exception as e:
            logger.info("Connection test failed for %s: %s", self._key, e)
            return False

    def has_expired(self) -> bool:
        return False

    async def refresh(self) -> None:
        """Renew the credential. Only OAuth2 connections have anything to renew."""

    async def fetch_user_profile(self) -> UserProfile:
        return await self.api_adapter.fetch_user_profile(self.get_api())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Connection):
            return NotImplemented
        return self.create_data() == other.create_data()

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._key}>"


class OAuth1Connection(Connection):
    """Connection authorized with an OAuth1 access token and secret."""

    def __init__(
        self,
        provider_id: str,
        provider_user_id: str | None,
        access_token: str,
        secret: str | None,
        service_provider: OAuth1ServiceProvider,
        api_adapter: ApiAdapter,
        display_name: str | None = None,
        profile_url: str | None = None,
        image_url: str | None = None,
    ):
        super().__init__(provider_id, provider_user_id, api_adapter, display_name, profile_url, image_url)
        self.service_provider = service_provider
        self.access_token = access_token
        self.secret = secret
        self._api = service_provider.get_api(access_token, secret)

    @classmethod
    def from_data(
        cls,
        data: ConnectionData,
        service_provider: OAuth1ServiceProvider,
        api_adapter: ApiAdapter,
    ) -> "OAuth1Connection":
        return cls(
            data.provider_id,
            data.provider_user_id,
            data.access_token,
            data.secret,
            service_provider,
            api_adapter,
            display_name=data.display_name,
            profile_url=data.profile_url,
            image_url=data.image_url,
        )

    def get_api(self) -> Any:
        return self._api

    def create_data(self) -> ConnectionData:
        return ConnectionData(
            provider_id=self.key.provider_id,
            provider_user_id=self.key.provider_user_id,
            display_name=self.display_name,
            profile_url=self.profile_url,
            image_url=self.image_url,
            access_token=self.access_token,
            secret=self.secret,
        )


class OAuth2Connection(Connection):
    """Connection authorized with an OAuth2 access grant."""

    def __init__(
        self,
        provider_id: str,
        provider_user_id: str | None,
        access_token: str,
        refresh_token: str | None,
        expire_time: int | None,
        service_provider: OAuth2ServiceProvider,
        api_adapter: ApiAdapter,
        display_name: str | None = None,
        profile_url: str | None = None,
        image_url: str | None = None,
    ):
        super().__init__(provider_id, provider_user_id, api_adapter, display_name, profile_url, image_url)
        self.service_provider = service_provider
        self._init_access_tokens(access_token, refresh_token, expire_time)

    @classmethod
    def from_data(
        cls,
        data: ConnectionData,
        service_provider: OAuth2ServiceProvider,
        api_adapter: ApiAdapter,
    ) -> "OAuth2Connection":
        return cls(
            data.provider_id,
            data.provider_user_id,
            data.access_token,
            data.refresh_token,
            data.expire_time,
            service_provider,
            api_adapter,
            display_name=data.display_name,
            profile_url=data.profile_url,
            image_url=data.image_url,
        )

    def has_expired(self) -> bool:
        return self.expire_time is not None and now_millis() >= self.expire_time

    async def refresh(self) -> None:
        """Exchange the refresh token and swap in a client for the new access token."""
        if not self.refresh_token:
            raise ValueError(f"Connection {self.key} has no refresh token")
        grant = await self.service_provider.oauth_operations.refresh_access(self.refresh_token)
        # Providers may omit the refresh token when it has not been rotated
        self._init_access_tokens(
            grant.access_token,
            grant.refresh_token or self.refresh_token,
            grant.expire_time,
        )
        logger.debug("Refreshed access grant for %s", self.key)

    def get_api(self) -> Any:
        if self.has_expired():
            raise ExpiredAuthorizationError(self.key.provider_id)
        return self._api

    def create_data(self) -> ConnectionData:
        return ConnectionData(
            provider_id=self.key.provider_id,
            provider_user_id=self.key.provider_user_id,
            display_name=self.display_name,
            profile_url=self.profile_url,
            image_url=self.image_url,
            access_token=self.access_token,
            secret=None,
            refresh_token=self.refresh_token,
            expire_time=self.expire_time,
        )

    def _init_access_tokens(self, access_token: str, refresh_token: str | None, expire_time: int | None) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.expire_time = expire_time
        self._api = self.service_provider.get_api(access_token)
