"""
Per-provider authentication services: drive the OAuth legs of a sign-in
and turn the result into a SocialAuthenticationToken.
"""
import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from socialconnect.connect import Connection, ConnectionFactory, OAuth1ConnectionFactory, OAuth2ConnectionFactory
from socialconnect.errors import (
    ApiError,
    InvalidStateError,
    OAuthExchangeError,
    ProviderAuthenticationError,
    SocialAuthenticationRedirect,
)
from socialconnect.oauth1 import AuthorizedRequestToken, OAuth1Parameters, OAuth1Version, OAuthToken
from socialconnect.oauth2 import GrantType, OAuth2Parameters
from socialconnect.security.session import SessionStore
from socialconnect.security.tokens import SocialAuthenticationToken

logger = logging.getLogger(__name__)

OAUTH_TOKEN_ATTRIBUTE = "oauth_token"
OAUTH2_STATE_ATTRIBUTE = "oauth2_state"


@dataclass
class SocialRequest:
    """
    The parts of an incoming request the sign-in flow looks at.
    
    ``url`` is the absolute request URL without its query string.
    """
    path: str
    url: str
    params: Mapping[str, str]
    session: SessionStore
    user_id: str | None = None


@dataclass(frozen=True)
class ConnectionCardinality:
    """How many local users may share a provider account, and how many accounts a user may hold."""
    multi_user_id: bool = False
    multi_provider_user_id: bool = False
    authenticate_possible: bool = True


ONE_TO_ONE = ConnectionCardinality(False, False, True)
ONE_TO_MANY = ConnectionCardinality(False, True, True)
# Several local users per provider account cannot identify a user
MANY_TO_ONE = ConnectionCardinality(True, False, False)
MANY_TO_MANY = ConnectionCardinality(True, True, False)


class SocialAuthenticationService(ABC):
    """Runs the provider side of a sign-in for one connection factory."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        connection_cardinality: ConnectionCardinality = ONE_TO_ONE,
        connection_added_redirect_url: str | None = None,
        return_to_url_parameters: tuple[str, ...] = (),
        application_url: str | None = None,
    ):
        self.connection_factory = connection_factory
        self.application_url = application_url.rstrip("/") if application_url else None
        self.connection_cardinality = connection_cardinality
        self.connection_added_redirect_url = connection_added_redirect_url
        self.return_to_url_parameters = return_to_url_parameters

    @property
    def provider_id(self) -> str:
        return self.connection_factory.provider_id

    @abstractmethod
    async def get_auth_token(self, request: SocialRequest) -> SocialAuthenticationToken | None:
        """
        Advance the flow for ``request``.
        
        Raises SocialAuthenticationRedirect to send the user to the
        provider. Returns None when the request carries nothing to act on.
        """

    def get_connection_added_redirect_url(self, request: SocialRequest, connection: Connection) -> str | None:
        return self.connection_added_redirect_url

    def build_return_to_url(self, request: SocialRequest) -> str:
        """
        Request URL plus any configured parameters present on the request.
        
        Behind a proxy ``application_url`` replaces the scheme and host the
        request arrived with.
        """
        base_url = self.application_url + request.path if self.application_url else request.url
        params = [
            (name, request.params[name])
            for name in self.return_to_url_parameters
            if request.params.get(name) is not None
        ]
        if not params:
            return base_url
        return f"{base_url}?{urlencode(params)}"

    def _provider_error(self, e: Exception) -> ProviderAuthenticationError:
        logger.warning("Sign-in with %s failed at the provider: %s", self.provider_id, e)
        return ProviderAuthenticationError(f"Sign-in with {self.provider_id} failed: {e}", self.provider_id)


class OAuth1AuthenticationService(SocialAuthenticationService):
    """Sign-in through an OAuth1 provider."""

    connection_factory: OAuth1ConnectionFactory

    async def get_auth_token(self, request: SocialRequest) -> SocialAuthenticationToken | None:
        operations = self.connection_factory.oauth_operations
        if request.params.get("denied"):
            raise ProviderAuthenticationError("The user denied the authorization request", self.provider_id)
        
        verifier = request.params.get("oauth_verifier")
        if not verifier:
            return_to_url = self.build_return_to_url(request)
            try:
                request_token = await operations.fetch_request_token(return_to_url)
            except (OAuthExchangeError, httpx.HTTPError) as e:
                raise self._provider_error(e) from e
            request.session.set(
                OAUTH_TOKEN_ATTRIBUTE,
                {"value": request_token.value, "secret": request_token.secret},
            )
            parameters = OAuth1Parameters()
            if operations.version == OAuth1Version.CORE_10:
                parameters.callback_url = return_to_url
            raise SocialAuthenticationRedirect(
                operations.build_authenticate_url(request_token.value, parameters)
            )
        
        stored = request.session.get(OAUTH_TOKEN_ATTRIBUTE)
        if not stored:
            logger.warning("No request token in session for %s callback", self.provider_id)
            return None
        request.session.remove(OAUTH_TOKEN_ATTRIBUTE)
        request_token = OAuthToken(stored["value"], stored.get("secret"))
        
        try:
            access_token = await operations.exchange_for_access_token(
                AuthorizedRequestToken(request_token, verifier)
            )
            connection = await self.connection_factory.create_connection(access_token)
        except (OAuthExchangeError, ApiError, httpx.HTTPError) as e:
            raise self._provider_error(e) from e
        return SocialAuthenticationToken(connection)


class OAuth2AuthenticationService(SocialAuthenticationService):
    """Sign-in through an OAuth2 provider with the authorization code grant."""

    connection_factory: OAuth2ConnectionFactory

    def __init__(
        self,
        connection_factory: OAuth2ConnectionFactory,
        scope: str | None = None,
        **kwargs,
    ):
        super().__init__(connection_factory, **kwargs)
        self.scope = scope

    async def get_auth_token(self, request: SocialRequest) -> SocialAuthenticationToken | None:
        operations = self.connection_factory.oauth_operations
        error = request.params.get("error")
        if error:
            description = request.params.get("error_description") or error
            raise ProviderAuthenticationError(f"Authorization failed: {description}", self.provider_id)
        
        code = request.params.get("code")
        if not code:
            parameters = OAuth2Parameters()
            parameters.redirect_uri = self.build_return_to_url(request)
            scope = request.params.get("scope") or self.scope
            if scope:
                parameters.scope = scope
            state = secrets.token_urlsafe(32)
            request.session.set(OAUTH2_STATE_ATTRIBUTE, state)
            parameters.state = state
            raise SocialAuthenticationRedirect(
                operations.build_authenticate_url(GrantType.AUTHORIZATION_CODE, parameters)
            )
        
        expected_state = request.session.get(OAUTH2_STATE_ATTRIBUTE)
        request.session.remove(OAUTH2_STATE_ATTRIBUTE)
        if not expected_state or request.params.get("state") != expected_state:
            logger.warning("OAuth2 state mismatch on %s callback", self.provider_id)
            raise InvalidStateError("The authorization state does not match", self.provider_id)
        
        try:
            access_grant = await operations.exchange_for_access(code, self.build_return_to_url(request))
            connection = await self.connection_factory.create_connection(access_grant)
        except (OAuthExchangeError, ApiError, httpx.HTTPError) as e:
            raise self._provider_error(e) from e
        return SocialAuthenticationToken(connection)
