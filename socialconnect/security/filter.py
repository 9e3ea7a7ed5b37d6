"""
Sign-in filter: decides whether a provider callback signs a user in or
adds a connection to the user who is already signed in.
"""
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from socialconnect.connect import Connection, UsersConnectionRepository
from socialconnect.errors import (
    ApiError,
    AuthenticationError,
    BadCredentialsError,
    DuplicateConnectionError,
    ProviderAuthenticationError,
    SocialAuthenticationRedirect,
)
from socialconnect.security.attempts import ProviderSignInAttempts
from socialconnect.security.provider import SocialAuthenticationProvider
from socialconnect.security.registry import SocialAuthenticationServiceRegistry
from socialconnect.security.services import SocialAuthenticationService, SocialRequest
from socialconnect.security.session import AUTHENTICATED_USER_KEY
from socialconnect.security.tokens import SocialAuthenticationToken

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """
    Outcome of a processed request.

    ``redirect_url`` is None only when a connection was not added because
    the cardinality rules forbid it.
    """
    redirect_url: str | None = None
    authentication: SocialAuthenticationToken | None = None
    connection_added: Connection | None = None
    error: AuthenticationError | None = None


class SocialAuthenticationFilter:
    """Processes ``{filter_processes_url}/{provider_id}`` requests."""

    def __init__(
        self,
        authentication_service_locator: SocialAuthenticationServiceRegistry,
        users_connection_repository: UsersConnectionRepository,
        authentication_provider: SocialAuthenticationProvider,
        filter_processes_url: str = "/auth",
        signup_url: str | None = None,
        connection_added_redirect_url: str | None = None,
        post_login_url: str = "/",
        post_failure_url: str = "/signin",
        update_connections: bool = True,
    ):
        self.authentication_service_locator = authentication_service_locator
        self.users_connection_repository = users_connection_repository
        self.authentication_provider = authentication_provider
        self.filter_processes_url = filter_processes_url.rstrip("/")
        self.signup_url = signup_url
        self.connection_added_redirect_url = connection_added_redirect_url
        self.post_login_url = post_login_url
        self.post_failure_url = post_failure_url
        self.update_connections = update_connections

    def get_requested_provider_id(self, request: SocialRequest) -> str | None:
        prefix = self.filter_processes_url + "/"
        if not request.path.startswith(prefix):
            return None
        provider_id = request.path[len(prefix):].split("/", 1)[0]
        return provider_id or None

    def requires_authentication(self, request: SocialRequest) -> bool:
        provider_id = self.get_requested_provider_id(request)
        return provider_id is not None and provider_id in self.authentication_service_locator

    async def do_filter(self, request: SocialRequest) -> FilterResult | None:
        """
        Process ``request``.

        Returns None when the request is not for a registered provider or
        carries nothing to act on.
        """
        if not self.requires_authentication(request):
            return None
        try:
            return await self.attempt_authentication(request)
        except SocialAuthenticationRedirect as redirect:
            return FilterResult(redirect_url=redirect.url)
        except AuthenticationError as e:
            return self.unsuccessful_authentication(request, e)
        except (ApiError, httpx.HTTPError) as e:
            provider_id = self.get_requested_provider_id(request)
            error = ProviderAuthenticationError(f"Sign-in with {provider_id} failed: {e}", provider_id)
            return self.unsuccessful_authentication(request, error)

    async def attempt_authentication(self, request: SocialRequest) -> FilterResult | None:
        provider_id = self.get_requested_provider_id(request)
        service = self.authentication_service_locator.get_authentication_service(provider_id)
        token = await service.get_auth_token(request)
        if token is None:
            return None

        if request.user_id is None:
            authentication = await self.do_authentication(service, request, token)
            if authentication is None:
                return None
            return self.successful_authentication(request, authentication)

        connection = await self.add_connection(service, request.user_id, token)
        if connection is None:
            return FilterResult()
        redirect_url = (
            service.get_connection_added_redirect_url(request, connection)
            or self.connection_added_redirect_url
            or self.post_login_url
        )
        return FilterResult(redirect_url=redirect_url, connection_added=connection)

    async def do_authentication(
        self,
        service: SocialAuthenticationService,
        request: SocialRequest,
        token: SocialAuthenticationToken,
    ) -> SocialAuthenticationToken | None:
        if not service.connection_cardinality.authenticate_possible:
            logger.debug("%s is connect-only; sign-in ignored", service.provider_id)
            return None
        try:
            success = await self.authentication_provider.authenticate(token)
        except BadCredentialsError:
            if self.signup_url:
                ProviderSignInAttempts(request.session).add(token.connection_data)
                logger.debug("Unknown %s account; redirecting to sign up", service.provider_id)
                raise SocialAuthenticationRedirect(self.signup_url)
            raise
        if self.update_connections:
            await self._update_connections(service, success)
        return success

    async def add_connection(
        self,
        service: SocialAuthenticationService,
        user_id: str,
        token: SocialAuthenticationToken,
    ) -> Connection | None:
        """
        Attach the token's connection to ``user_id``.

        Returns None, without error, when the account is already linked
        to this user or the cardinality rules forbid the link.
        """
        data = token.connection_data
        key = data.key
        connected_user_ids = await self.users_connection_repository.find_user_ids_connected_to(
            key.provider_id,
            {key.provider_user_id},
        )
        if user_id in connected_user_ids:
            return None

        cardinality = service.connection_cardinality
        if not cardinality.multi_user_id and connected_user_ids:
            logger.debug("%s is already connected to another user", key)
            return None

        repository = self.users_connection_repository.create_connection_repository(user_id)
        if not cardinality.multi_provider_user_id:
            if await repository.find_connections_to_provider(key.provider_id):
                logger.debug("User %s already has a %s connection", user_id, key.provider_id)
                return None

        connection = token.connection
        try:
            await repository.add_connection(connection)
        except DuplicateConnectionError:
            return None
        return connection

    def successful_authentication(
        self,
        request: SocialRequest,
        authentication: SocialAuthenticationToken,
    ) -> FilterResult:
        request.session.set(AUTHENTICATED_USER_KEY, authentication.principal)
        return FilterResult(redirect_url=self.post_login_url, authentication=authentication)

    def unsuccessful_authentication(self, request: SocialRequest, error: AuthenticationError) -> FilterResult:
        logger.info("Social sign-in failed: %s", error)
        request.session.remove(AUTHENTICATED_USER_KEY)
        separator = "&" if "?" in self.post_failure_url else "?"
        redirect_url = f"{self.post_failure_url}{separator}{urlencode({'error': error.error_code})}"
        return FilterResult(redirect_url=redirect_url, error=error)

    async def _update_connections(
        self,
        service: SocialAuthenticationService,
        authentication: SocialAuthenticationToken,
    ) -> None:
        connection = service.connection_factory.create_connection_from_data(authentication.connection_data)
        repository = self.users_connection_repository.create_connection_repository(authentication.principal)
        await repository.update_connection(connection)
