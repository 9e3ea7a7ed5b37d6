"""
Connection factories for providers configured by URL alone.

The API client exposes ``get_json``/``post_form`` and the profile is read
from a user-info endpoint through a field mapping.
"""
from typing import Any

import httpx

from socialconnect.connect import (
    ApiAdapter,
    ConnectionValues,
    OAuth1ConnectionFactory,
    OAuth1ServiceProvider,
    OAuth2ConnectionFactory,
    OAuth2ServiceProvider,
    UserProfile,
)
from socialconnect.errors import ApiError
from socialconnect.oauth1 import OAuth1ApiBinding, OAuth1Template, OAuth1Version
from socialconnect.oauth2 import OAuth2ApiBinding, OAuth2Template, OAuth2Version

DEFAULT_FIELD_MAP = {
    "provider_user_id": "id",
    "display_name": "name",
    "profile_url": "profile_url",
    "image_url": "picture",
    "first_name": "given_name",
    "last_name": "family_name",
    "email": "email",
    "username": "username",
}


class GenericOAuth2Api(OAuth2ApiBinding):
    """Plain authorized HTTP access to an OAuth2 provider."""


class GenericOAuth1Api(OAuth1ApiBinding):
    """Plain signed HTTP access to an OAuth1 provider."""


class UserInfoApiAdapter(ApiAdapter):
    """Reads the connected user from a JSON user-info endpoint."""

    def __init__(self, user_info_url: str, field_map: dict[str, str] | None = None):
        self.user_info_url = user_info_url
        self.field_map = {**DEFAULT_FIELD_MAP, **(field_map or {})}

    async def _user_info(self, api) -> dict[str, Any]:
        return await api.get_json(self.user_info_url)

    def _field(self, info: dict[str, Any], name: str) -> Any:
        value = info.get(self.field_map[name])
        return str(value) if value is not None else None

    async def test(self, api) -> bool:
        try:
            await self._user_info(api)
        except ApiError:
            return False
        return True

    async def set_connection_values(self, api, values: ConnectionValues) -> None:
        info = await self._user_info(api)
        values.provider_user_id = self._field(info, "provider_user_id")
        values.display_name = self._field(info, "display_name")
        values.profile_url = self._field(info, "profile_url")
        values.image_url = self._field(info, "image_url")

    async def fetch_user_profile(self, api) -> UserProfile:
        info = await self._user_info(api)
        return UserProfile(
            name=self._field(info, "display_name"),
            first_name=self._field(info, "first_name"),
            last_name=self._field(info, "last_name"),
            email=self._field(info, "email"),
            username=self._field(info, "username"),
            extra=info,
        )


class GenericOAuth2ServiceProvider(OAuth2ServiceProvider):
    def __init__(
        self,
        oauth_operations: OAuth2Template,
        api_type: type[OAuth2ApiBinding] = GenericOAuth2Api,
        oauth2_version: OAuth2Version = OAuth2Version.BEARER,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(oauth_operations)
        self.api_type = api_type
        self.oauth2_version = oauth2_version
        self.transport = transport
        self.timeout = timeout

    def get_api(self, access_token: str) -> OAuth2ApiBinding:
        return self.api_type(
            access_token,
            transport=self.transport,
            timeout=self.timeout,
            oauth2_version=self.oauth2_version,
        )


class GenericOAuth1ServiceProvider(OAuth1ServiceProvider):
    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        oauth_operations: OAuth1Template,
        api_type: type[OAuth1ApiBinding] = GenericOAuth1Api,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(consumer_key, consumer_secret, oauth_operations)
        self.api_type = api_type
        self.transport = transport
        self.timeout = timeout

    def get_api(self, access_token: str, secret: str | None) -> OAuth1ApiBinding:
        return self.api_type(
            self.consumer_key,
            self.consumer_secret,
            access_token,
            secret,
            transport=self.transport,
            timeout=self.timeout,
        )


class GenericOAuth2ConnectionFactory(OAuth2ConnectionFactory):
    """
    OAuth2 provider described by its endpoints.
    
    Each factory in a registry needs its own ``api_type``; pass a
    ``GenericOAuth2Api`` subclass when registering more than one.
    """

    def __init__(
        self,
        provider_id: str,
        client_id: str,
        client_secret: str,
        authorize_url: str,
        access_token_url: str,
        user_info_url: str,
        authenticate_url: str | None = None,
        api_type: type[OAuth2ApiBinding] = GenericOAuth2Api,
        oauth2_version: OAuth2Version = OAuth2Version.BEARER,
        field_map: dict[str, str] | None = None,
        use_parameters_for_client_authentication: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        oauth_operations = OAuth2Template(
            client_id,
            client_secret,
            authorize_url,
            access_token_url,
            authenticate_url=authenticate_url,
            use_parameters_for_client_authentication=use_parameters_for_client_authentication,
            transport=transport,
            timeout=timeout,
        )
        service_provider = GenericOAuth2ServiceProvider(
            oauth_operations,
            api_type=api_type,
            oauth2_version=oauth2_version,
            transport=transport,
            timeout=timeout,
        )
        super().__init__(provider_id, service_provider, UserInfoApiAdapter(user_info_url, field_map))


class GenericOAuth1ConnectionFactory(OAuth1ConnectionFactory):
    """OAuth1 provider described by its endpoints."""

    def __init__(
        self,
        provider_id: str,
        consumer_key: str,
        consumer_secret: str,
        request_token_url: str,
        authorize_url: str,
        access_token_url: str,
        user_info_url: str,
        authenticate_url: str | None = None,
        version: OAuth1Version = OAuth1Version.CORE_10_REVISION_A,
        api_type: type[OAuth1ApiBinding] = GenericOAuth1Api,
        field_map: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        oauth_operations = OAuth1Template(
            consumer_key,
            consumer_secret,
            request_token_url,
            authorize_url,
            access_token_url,
            authenticate_url=authenticate_url,
            version=version,
            transport=transport,
            timeout=timeout,
        )
        service_provider = GenericOAuth1ServiceProvider(
            consumer_key,
            consumer_secret,
            oauth_operations,
            api_type=api_type,
            transport=transport,
            timeout=timeout,
        )
        super().__init__(provider_id, service_provider, UserInfoApiAdapter(user_info_url, field_map))
