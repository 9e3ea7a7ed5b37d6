"""
Facebook (Graph API, OAuth2).
"""
import logging

import httpx

from socialconnect.connect import (
    ApiAdapter,
    ConnectionValues,
    OAuth2ConnectionFactory,
    OAuth2ServiceProvider,
    UserProfile,
)
from socialconnect.errors import (
    ApiError,
    DuplicateContentError,
    ExpiredAuthorizationError,
    InvalidAuthorizationError,
    NotAuthorizedError,
    RateLimitExceededError,
    RevokedAuthorizationError,
    ServerError,
    classify_http_error,
)
from socialconnect.oauth2 import OAuth2ApiBinding, OAuth2Template

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v19.0"
AUTHORIZE_URL = "https://www.facebook.com/v19.0/dialog/oauth"
ACCESS_TOKEN_URL = f"{GRAPH_API_URL}/oauth/access_token"

PROFILE_FIELDS = "id,name,first_name,last_name,email,link"

# Graph API error codes
_RATE_LIMIT_CODES = {4, 17, 32, 613}
_SERVER_ERROR_CODES = {1, 2}
_DUPLICATE_STATUS_CODE = 506
_EXPIRED_SUBCODES = {463, 467}
_REVOKED_SUBCODES = {458, 459, 460}


class FacebookApi(OAuth2ApiBinding):
    """The slice of the Graph API the connection layer needs."""

    provider_id = "facebook"

    async def get_user_profile(self) -> dict:
        return await self.get_json(f"{GRAPH_API_URL}/me", params={"fields": PROFILE_FIELDS})

    def translate_error(self, response: httpx.Response) -> Exception:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        if not isinstance(error, dict) or not error:
            return classify_http_error(self.provider_id, response.status_code, response.text)
        
        message = error.get("message", "")
        code = error.get("code")
        subcode = error.get("error_subcode")
        status_code = response.status_code
        if code == 190:
            if subcode in _EXPIRED_SUBCODES:
                return ExpiredAuthorizationError(self.provider_id, message, status_code)
            if subcode in _REVOKED_SUBCODES:
                return RevokedAuthorizationError(self.provider_id, message, status_code)
            return InvalidAuthorizationError(self.provider_id, message, status_code)
        if code == 10 or (isinstance(code, int) and 200 <= code < 300):
            return NotAuthorizedError(self.provider_id, message, status_code)
        if code in _RATE_LIMIT_CODES:
            return RateLimitExceededError(self.provider_id, message, status_code)
        if code in _SERVER_ERROR_CODES:
            return ServerError(self.provider_id, message, status_code)
        if code == _DUPLICATE_STATUS_CODE:
            return DuplicateContentError(self.provider_id, message, status_code)
        return classify_http_error(self.provider_id, status_code, message)


class FacebookAdapter(ApiAdapter):
    async def test(self, api: FacebookApi) -> bool:
        try:
            await api.get_user_profile()
        except ApiError as e:
            logger.debug("Facebook credential check failed: %s", e)
            return False
        return True

    async def set_connection_values(self, api: FacebookApi, values: ConnectionValues) -> None:
        profile = await api.get_user_profile()
        user_id = profile["id"]
        values.provider_user_id = user_id
        values.display_name = profile.get("name")
        values.profile_url = profile.get("link") or f"https://www.facebook.com/{user_id}"
        values.image_url = f"{GRAPH_API_URL}/{user_id}/picture"

    async def fetch_user_profile(self, api: FacebookApi) -> UserProfile:
        profile = await api.get_user_profile()
        return UserProfile(
            name=profile.get("name"),
            first_name=profile.get("first_name"),
            last_name=profile.get("last_name"),
            email=profile.get("email"),
            extra=profile,
        )


class FacebookOAuth2Template(OAuth2Template):
    """Facebook wants the app credentials as form parameters."""

    def __init__(self, app_id: str, app_secret: str, **kwargs):
        super().__init__(
            app_id,
            app_secret,
            AUTHORIZE_URL,
            ACCESS_TOKEN_URL,
            use_parameters_for_client_authentication=True,
            **kwargs,
        )


class FacebookServiceProvider(OAuth2ServiceProvider):
    api_type = FacebookApi

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(FacebookOAuth2Template(app_id, app_secret, transport=transport, timeout=timeout))
        self.transport = transport
        self.timeout = timeout

    def get_api(self, access_token: str) -> FacebookApi:
        return FacebookApi(access_token, transport=self.transport, timeout=self.timeout)


class FacebookConnectionFactory(OAuth2ConnectionFactory):
    def __init__(
        self,
        app_id: str,
        app_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(
            "facebook",
            FacebookServiceProvider(app_id, app_secret, transport=transport, timeout=timeout),
            FacebookAdapter(),
        )
