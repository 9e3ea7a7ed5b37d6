"""
OAuth2 authorization and token endpoint operations.
"""
import logging
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, quote, urlencode

import httpx

from socialconnect.errors import OAuthExchangeError
from socialconnect.oauth2.types import AccessGrant, GrantType, OAuth2Parameters

logger = logging.getLogger(__name__)


def _parse_expires_in(value) -> int | None:
    """Accept a number or a numeric string; anything else means no expiry."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class OAuth2Template:
    """
    OAuth2 operations against one provider.
    
    Client credentials are sent with HTTP Basic unless
    ``use_parameters_for_client_authentication`` is set, in which case
    ``client_id``/``client_secret`` are added to every token request body.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authorize_url: str,
        access_token_url: str,
        authenticate_url: str | None = None,
        use_parameters_for_client_authentication: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        for name, value in (
            ("client_id", client_id),
            ("client_secret", client_secret),
            ("authorize_url", authorize_url),
            ("access_token_url", access_token_url),
        ):
            if not value:
                raise ValueError(f"{name} is required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.authorize_url = authorize_url
        self.authenticate_url = authenticate_url
        self.access_token_url = access_token_url
        self.use_parameters_for_client_authentication = use_parameters_for_client_authentication
        self.transport = transport
        self.timeout = timeout

    def build_authorize_url(
        self,
        grant_type: GrantType = GrantType.AUTHORIZATION_CODE,
        parameters: OAuth2Parameters | None = None,
    ) -> str:
        """URL the user is sent to in order to grant access."""
        return self._build_url(self.authorize_url, grant_type, parameters)

    def build_authenticate_url(
        self,
        grant_type: GrantType = GrantType.AUTHORIZATION_CODE,
        parameters: OAuth2Parameters | None = None,
    ) -> str:
        """Authenticate URL, falling back to the authorize URL when the provider has none."""
        if not self.authenticate_url:
            return self.build_authorize_url(grant_type, parameters)
        return self._build_url(self.authenticate_url, grant_type, parameters)

    async def exchange_for_access(
        self,
        authorization_code: str,
        redirect_uri: str,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> AccessGrant:
        """Exchange an authorization code for an access grant."""
        params = {
            "code": authorization_code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }
        return await self._post_for_access_grant(params, additional_parameters)

    async def exchange_credentials_for_access(
        self,
        username: str,
        password: str,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> AccessGrant:
        """Resource owner password credentials grant."""
        params = {
            "username": username,
            "password": password,
            "grant_type": "password",
        }
        return await self._post_for_access_grant(params, additional_parameters)

    async def refresh_access(
        self,
        refresh_token: str,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> AccessGrant:
        """Trade a refresh token for a new access grant."""
        params = {
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._post_for_access_grant(params, additional_parameters)

    async def authenticate_client(self, scope: str | None = None) -> AccessGrant:
        """Client credentials grant, optionally limited to ``scope``."""
        params = {"grant_type": "client_credentials"}
        if scope:
            params["scope"] = scope
        return await self._post_for_access_grant(params, None)

    # Subclass hooks

    def create_access_grant(
        self,
        access_token: str,
        scope: str | None,
        refresh_token: str | None,
        expires_in: int | None,
        response: dict,
    ) -> AccessGrant:
        return AccessGrant(access_token, scope, refresh_token, expires_in, extra=response)

    def parse_token_response(self, response: httpx.Response) -> dict:
        """Token responses are JSON; a few providers answer form encoded."""
        content_type = response.headers.get("content-type", "")
        if "json" in content_type or response.text.lstrip().startswith("{"):
            try:
                result = response.json()
            except ValueError as e:
                raise OAuthExchangeError(
                    "Token response is not valid JSON",
                    status_code=response.status_code,
                    detail=response.text,
                ) from e
            if not isinstance(result, dict):
                raise OAuthExchangeError(
                    "Token response is not a JSON object",
                    status_code=response.status_code,
                    detail=response.text,
                )
            return result
        return dict(parse_qsl(response.text, keep_blank_values=True))

    # Internal helpers

    async def _post_for_access_grant(
        self,
        params: dict[str, str],
        additional_parameters: Mapping[str, str] | None,
    ) -> AccessGrant:
        data = dict(params)
        auth = None
        if self.use_parameters_for_client_authentication:
            data["client_id"] = self.client_id
            data["client_secret"] = self.client_secret
        else:
            auth = httpx.BasicAuth(self.client_id, self.client_secret)
        if additional_parameters:
            data.update(additional_parameters)
        
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.post(
                self.access_token_url,
                data=data,
                auth=auth,
                headers={"Accept": "application/json"},
            )
        
        if response.is_error:
            logger.warning(
                "OAuth2 %s grant at %s failed with HTTP %s",
                params["grant_type"],
                self.access_token_url,
                response.status_code,
            )
            raise OAuthExchangeError(
                f"Access grant rejected by provider (HTTP {response.status_code})",
                status_code=response.status_code,
                detail=response.text,
            )
        
        result = self.parse_token_response(response)
        access_token = result.get("access_token")
        if not access_token:
            raise OAuthExchangeError(
                "Token response did not contain an access_token",
                status_code=response.status_code,
                detail=response.text,
            )
        return self.create_access_grant(
            access_token,
            result.get("scope"),
            result.get("refresh_token"),
            _parse_expires_in(result.get("expires_in")),
            result,
        )

    def _build_url(
        self,
        base_url: str,
        grant_type: GrantType,
        parameters: Iterable[tuple[str, str]] | None,
    ) -> str:
        query = [("client_id", self.client_id), ("response_type", grant_type.value)]
        query.extend(parameters or ())
        return f"{base_url}?{urlencode(query, quote_via=quote)}"
