"""
Twitter (REST API v1.1, OAuth 1.0a).
"""
import logging

import httpx

from socialconnect.connect import (
    ApiAdapter,
    ConnectionValues,
    OAuth1ConnectionFactory,
    OAuth1ServiceProvider,
    UserProfile,
)
from socialconnect.errors import (
    ApiError,
    DuplicateContentError,
    InvalidAuthorizationError,
    RateLimitExceededError,
    ServerError,
    classify_http_error,
)
from socialconnect.oauth1 import OAuth1ApiBinding, OAuth1Template, OAuth1Version

logger = logging.getLogger(__name__)

API_URL = "https://api.twitter.com/1.1"
REQUEST_TOKEN_URL = "https://api.twitter.com/oauth/request_token"
AUTHORIZE_URL = "https://api.twitter.com/oauth/authorize"
AUTHENTICATE_URL = "https://api.twitter.com/oauth/authenticate"
ACCESS_TOKEN_URL = "https://api.twitter.com/oauth/access_token"


class TwitterApi(OAuth1ApiBinding):
    """The slice of the Twitter API the connection layer needs."""

    provider_id = "twitter"

    async def verify_credentials(self) -> dict:
        return await self.get_json(f"{API_URL}/account/verify_credentials.json")

    def translate_error(self, response: httpx.Response) -> Exception:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            errors = []
        if not errors or not isinstance(errors, list):
            return classify_http_error(self.provider_id, response.status_code, response.text)
        
        code = errors[0].get("code")
        message = errors[0].get("message", "")
        status_code = response.status_code
        if code in (32, 89, 215):
            return InvalidAuthorizationError(self.provider_id, message, status_code)
        if code == 88:
            return RateLimitExceededError(self.provider_id, message, status_code)
        if code == 187:
            return DuplicateContentError(self.provider_id, message, status_code)
        if code in (130, 131):
            return ServerError(self.provider_id, message, status_code)
        return classify_http_error(self.provider_id, status_code, message)


class TwitterAdapter(ApiAdapter):
    async def test(self, api: TwitterApi) -> bool:
        try:
            await api.verify_credentials()
        except ApiError as e:
            logger.debug("Twitter credential check failed: %s", e)
            return False
        return True

    async def set_connection_values(self, api: TwitterApi, values: ConnectionValues) -> None:
        profile = await api.verify_credentials()
        screen_name = profile.get("screen_name")
        values.provider_user_id = profile.get("id_str") or str(profile["id"])
        values.display_name = f"@{screen_name}"
        values.profile_url = f"https://twitter.com/{screen_name}"
        values.image_url = profile.get("profile_image_url_https")

    async def fetch_user_profile(self, api: TwitterApi) -> UserProfile:
        profile = await api.verify_credentials()
        name = profile.get("name") or ""
        first_name, _, last_name = name.partition(" ")
        return UserProfile(
            name=name or None,
            first_name=first_name or None,
            last_name=last_name or None,
            username=profile.get("screen_name"),
            extra=profile,
        )


class TwitterServiceProvider(OAuth1ServiceProvider):
    api_type = TwitterApi

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        oauth_operations = OAuth1Template(
            consumer_key,
            consumer_secret,
            REQUEST_TOKEN_URL,
            AUTHORIZE_URL,
            ACCESS_TOKEN_URL,
            authenticate_url=AUTHENTICATE_URL,
            version=OAuth1Version.CORE_10_REVISION_A,
            transport=transport,
            timeout=timeout,
        )
        super().__init__(consumer_key, consumer_secret, oauth_operations)
        self.transport = transport
        self.timeout = timeout

    def get_api(self, access_token: str, secret: str | None) -> TwitterApi:
        return TwitterApi(
            self.consumer_key,
            self.consumer_secret,
            access_token,
            secret,
            transport=self.transport,
            timeout=self.timeout,
        )


class TwitterConnectionFactory(OAuth1ConnectionFactory):
    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(
            "twitter",
            TwitterServiceProvider(consumer_key, consumer_secret, transport=transport, timeout=timeout),
            TwitterAdapter(),
        )
