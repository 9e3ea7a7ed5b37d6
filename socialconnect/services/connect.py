"""
Provider redirects and callbacks for the connect flow.
"""
import logging
import secrets

from socialconnect.connect import (
    Connection,
    ConnectionFactory,
    OAuth1ConnectionFactory,
    OAuth2ConnectionFactory,
)
from socialconnect.errors import InvalidStateError, OAuthExchangeError
from socialconnect.oauth1 import AuthorizedRequestToken, OAuth1Parameters, OAuth1Version, OAuthToken
from socialconnect.oauth2 import GrantType, OAuth2Parameters
from socialconnect.security.services import OAUTH2_STATE_ATTRIBUTE, OAUTH_TOKEN_ATTRIBUTE, SocialRequest

logger = logging.getLogger(__name__)


class ConnectInterceptor:
    """
    Hooks run around the connect flow.
    
    ``pre_connect`` runs before the user is sent to the provider and may add
    parameters to the authorization URL. ``post_connect`` runs once the new
    connection is stored. A ``provider_id`` of None applies to every provider.
    """

    provider_id: str | None = None

    def applies_to(self, provider_id: str) -> bool:
        return self.provider_id is None or self.provider_id == provider_id

    async def pre_connect(
        self,
        connection_factory: ConnectionFactory,
        parameters: dict[str, str],
        request: SocialRequest,
    ) -> None:
        pass

    async def post_connect(self, connection: Connection, request: SocialRequest) -> None:
        pass


class DisconnectInterceptor:
    """Hooks run before and after connections to a provider are removed."""

    provider_id: str | None = None

    def applies_to(self, provider_id: str) -> bool:
        return self.provider_id is None or self.provider_id == provider_id

    async def pre_disconnect(self, connection_factory: ConnectionFactory, request: SocialRequest) -> None:
        pass

    async def post_disconnect(self, connection_factory: ConnectionFactory, request: SocialRequest) -> None:
        pass


class ConnectSupport:
    """
    Builds the provider authorization URL and completes the connection
    when the provider redirects back.
    
    The callback is the request URL itself, or ``application_url`` plus the
    request path when the app runs behind a proxy.
    """

    def __init__(
        self,
        application_url: str | None = None,
        use_authenticate_url: bool = False,
        connect_interceptors: list[ConnectInterceptor] | None = None,
        disconnect_interceptors: list[DisconnectInterceptor] | None = None,
    ):
        self.application_url = application_url.rstrip("/") if application_url else None
        self.use_authenticate_url = use_authenticate_url
        self.connect_interceptors = list(connect_interceptors or [])
        self.disconnect_interceptors = list(disconnect_interceptors or [])

    async def pre_connect(
        self,
        connection_factory: ConnectionFactory,
        request: SocialRequest,
    ) -> dict[str, str]:
        """Run the pre-connect hooks; returns the extra authorization URL parameters they set."""
        parameters: dict[str, str] = {}
        for interceptor in self._connect_interceptors(connection_factory.provider_id):
            await interceptor.pre_connect(connection_factory, parameters, request)
        return parameters

    async def post_connect(self, connection: Connection, request: SocialRequest) -> None:
        for interceptor in self._connect_interceptors(connection.key.provider_id):
            await interceptor.post_connect(connection, request)

    async def pre_disconnect(self, connection_factory: ConnectionFactory, request: SocialRequest) -> None:
        for interceptor in self._disconnect_interceptors(connection_factory.provider_id):
            await interceptor.pre_disconnect(connection_factory, request)

    async def post_disconnect(self, connection_factory: ConnectionFactory, request: SocialRequest) -> None:
        for interceptor in self._disconnect_interceptors(connection_factory.provider_id):
            await interceptor.post_disconnect(connection_factory, request)

    def _connect_interceptors(self, provider_id: str) -> list[ConnectInterceptor]:
        return [i for i in self.connect_interceptors if i.applies_to(provider_id)]

    def _disconnect_interceptors(self, provider_id: str) -> list[DisconnectInterceptor]:
        return [i for i in self.disconnect_interceptors if i.applies_to(provider_id)]

    async def build_oauth_url(
        self,
        connection_factory: ConnectionFactory,
        request: SocialRequest,
        scope: str | None = None,
        additional_parameters: dict[str, str] | None = None,
    ) -> str:
        if isinstance(connection_factory, OAuth1ConnectionFactory):
            return await self._build_oauth1_url(connection_factory, request, additional_parameters)
        if isinstance(connection_factory, OAuth2ConnectionFactory):
            return self._build_oauth2_url(connection_factory, request, scope, additional_parameters)
        raise ValueError(f"Connections to provider '{connection_factory.provider_id}' are not supported")

    async def complete_connection(self, connection_factory: ConnectionFactory, request: SocialRequest) -> Connection:
        if isinstance(connection_factory, OAuth1ConnectionFactory):
            return await self._complete_oauth1(connection_factory, request)
        if isinstance(connection_factory, OAuth2ConnectionFactory):
            return await self._complete_oauth2(connection_factory, request)
        raise ValueError(f"Connections to provider '{connection_factory.provider_id}' are not supported")

    def callback_url(self, request: SocialRequest) -> str:
        if self.application_url:
            return self.application_url + request.path
        return request.url

    # OAuth1

    async def _build_oauth1_url(
        self,
        connection_factory: OAuth1ConnectionFactory,
        request: SocialRequest,
        additional_parameters: dict[str, str] | None,
    ) -> str:
        operations = connection_factory.oauth_operations
        parameters = OAuth1Parameters(extra=dict(additional_parameters or {}))
        if operations.version == OAuth1Version.CORE_10_REVISION_A:
            request_token = await operations.fetch_request_token(self.callback_url(request))
        else:
            request_token = await operations.fetch_request_token(None)
            parameters.callback_url = self.callback_url(request)
        request.session.set(
            OAUTH_TOKEN_ATTRIBUTE,
            {"value": request_token.value, "secret": request_token.secret},
        )
        if self.use_authenticate_url:
            return operations.build_authenticate_url(request_token.value, parameters)
        return operations.build_authorize_url(request_token.value, parameters)

    async def _complete_oauth1(self, connection_factory: OAuth1ConnectionFactory, request: SocialRequest) -> Connection:
        stored = request.session.get(OAUTH_TOKEN_ATTRIBUTE)
        if not stored:
            raise OAuthExchangeError("No request token in session", connection_factory.provider_id)
        request.session.remove(OAUTH_TOKEN_ATTRIBUTE)
        if stored["value"] != request.params.get("oauth_token"):
            raise OAuthExchangeError("Request token does not match the callback", connection_factory.provider_id)
        authorized = AuthorizedRequestToken(
            OAuthToken(stored["value"], stored.get("secret")),
            request.params.get("oauth_verifier"),
        )
        access_token = await connection_factory.oauth_operations.exchange_for_access_token(authorized)
        return await connection_factory.create_connection(access_token)

    # OAuth2

    def _build_oauth2_url(
        self,
        connection_factory: OAuth2ConnectionFactory,
        request: SocialRequest,
        scope: str | None,
        additional_parameters: dict[str, str] | None,
    ) -> str:
        parameters = OAuth2Parameters(dict(additional_parameters or {}))
        parameters.redirect_uri = self.callback_url(request)
        if scope:
            parameters.scope = scope
        state = secrets.token_urlsafe(32)
        request.session.set(OAUTH2_STATE_ATTRIBUTE, state)
        parameters.state = state
        operations = connection_factory.oauth_operations
        if self.use_authenticate_url:
            return operations.build_authenticate_url(GrantType.AUTHORIZATION_CODE, parameters)
        return operations.build_authorize_url(GrantType.AUTHORIZATION_CODE, parameters)

    async def _complete_oauth2(self, connection_factory: OAuth2ConnectionFactory, request: SocialRequest) -> Connection:
        expected_state = request.session.get(OAUTH2_STATE_ATTRIBUTE)
        request.session.remove(OAUTH2_STATE_ATTRIBUTE)
        if not expected_state or request.params.get("state") != expected_state:
            logger.warning("OAuth2 state mismatch on %s connect callback", connection_factory.provider_id)
            raise InvalidStateError("The authorization state does not match", connection_factory.provider_id)
        code = request.params.get("code")
        if not code:
            raise OAuthExchangeError("The callback carries no authorization code", connection_factory.provider_id)
        access_grant = await connection_factory.oauth_operations.exchange_for_access(
            code,
            self.callback_url(request),
        )
        return await connection_factory.create_connection(access_grant)
