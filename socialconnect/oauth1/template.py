"""
OAuth1 three-legged flow: request token, user authorization, access token.
"""
import logging
from collections.abc import Mapping
from urllib.parse import parse_qsl, urlencode

import httpx

from socialconnect.errors import OAuthExchangeError
from socialconnect.oauth1.signing import SigningSupport
from socialconnect.oauth1.types import (
    AuthorizedRequestToken,
    OAuth1Parameters,
    OAuth1Version,
    OAuthToken,
)

logger = logging.getLogger(__name__)


class OAuth1Template:
    """OAuth1 operations against one provider."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        request_token_url: str,
        authorize_url: str,
        access_token_url: str,
        authenticate_url: str | None = None,
        version: OAuth1Version = OAuth1Version.CORE_10_REVISION_A,
        signing_support: SigningSupport | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        for name, value in (
            ("consumer_key", consumer_key),
            ("consumer_secret", consumer_secret),
            ("request_token_url", request_token_url),
            ("authorize_url", authorize_url),
            ("access_token_url", access_token_url),
        ):
            if not value:
                raise ValueError(f"{name} is required")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.request_token_url = request_token_url
        self.authorize_url = authorize_url
        self.authenticate_url = authenticate_url
        self.access_token_url = access_token_url
        self.version = version
        self.signing_support = signing_support or SigningSupport()
        self.transport = transport
        self.timeout = timeout

    async def fetch_request_token(
        self,
        callback_url: str | None,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> OAuthToken:
        """Obtain an unauthorized request token."""
        oauth_parameters = {}
        if self.version == OAuth1Version.CORE_10_REVISION_A:
            oauth_parameters["oauth_callback"] = callback_url or "oob"
        return await self._exchange_for_token(
            self.request_token_url,
            oauth_parameters,
            additional_parameters,
            token_secret=None,
        )

    def build_authorize_url(self, request_token: str, parameters: OAuth1Parameters | None = None) -> str:
        """URL the user is sent to in order to authorize the request token."""
        return self._build_oauth_url(self.authorize_url, request_token, parameters or OAuth1Parameters())

    def build_authenticate_url(self, request_token: str, parameters: OAuth1Parameters | None = None) -> str:
        """Like ``build_authorize_url`` but skips the prompt for users who already authorized the app."""
        if not self.authenticate_url:
            return self.build_authorize_url(request_token, parameters)
        return self._build_oauth_url(self.authenticate_url, request_token, parameters or OAuth1Parameters())

    async def exchange_for_access_token(
        self,
        authorized_request_token: AuthorizedRequestToken,
        additional_parameters: Mapping[str, str] | None = None,
    ) -> OAuthToken:
        """Trade an authorized request token for an access token."""
        oauth_parameters = {"oauth_token": authorized_request_token.value}
        if self.version == OAuth1Version.CORE_10_REVISION_A:
            if not authorized_request_token.verifier:
                raise OAuthExchangeError("An oauth_verifier is required for OAuth 1.0a")
            oauth_parameters["oauth_verifier"] = authorized_request_token.verifier
        return await self._exchange_for_token(
            self.access_token_url,
            oauth_parameters,
            additional_parameters,
            token_secret=authorized_request_token.secret,
        )

    # Subclass hooks

    def add_custom_authorization_parameters(self, parameters: dict[str, str]) -> None:
        """Add provider-specific parameters to the authorize/authenticate URL."""

    def create_oauth_token(self, value: str, secret: str | None, body: dict[str, str]) -> OAuthToken:
        return OAuthToken(value, secret)

    # Internal helpers

    async def _exchange_for_token(
        self,
        token_url: str,
        token_parameters: dict[str, str],
        additional_parameters: Mapping[str, str] | None,
        token_secret: str | None,
    ) -> OAuthToken:
        additional = dict(additional_parameters or {})
        oauth_parameters = self.signing_support.common_oauth_parameters(self.consumer_key)
        oauth_parameters.update(token_parameters)
        authorization = self.signing_support.build_authorization_header_value(
            "POST",
            token_url,
            oauth_parameters,
            additional.items(),
            self.consumer_secret,
            token_secret,
        )
        
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.post(
                token_url,
                data=additional,
                headers={"Authorization": authorization},
            )
        
        if response.is_error:
            logger.warning(
                "OAuth1 token request to %s failed with HTTP %s",
                token_url,
                response.status_code,
            )
            raise OAuthExchangeError(
                f"Token request rejected by provider (HTTP {response.status_code})",
                status_code=response.status_code,
                detail=response.text,
            )
        
        # Token responses are form encoded whatever the declared content type
        body = dict(parse_qsl(response.text, keep_blank_values=True))
        if not body.get("oauth_token"):
            raise OAuthExchangeError(
                "Token response did not contain an oauth_token",
                status_code=response.status_code,
                detail=response.text,
            )
        return self.create_oauth_token(body["oauth_token"], body.get("oauth_token_secret"), body)

    def _build_oauth_url(self, base_url: str, request_token: str, parameters: OAuth1Parameters) -> str:
        query = {"oauth_token": request_token}
        if self.version == OAuth1Version.CORE_10 and parameters.callback_url:
            query["oauth_callback"] = parameters.callback_url
        query.update(parameters.extra)
        self.add_custom_authorization_parameters(query)
        return f"{base_url}?{urlencode(query)}"
