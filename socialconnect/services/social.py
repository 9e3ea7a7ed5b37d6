"""
Wiring for the connection factories, the sign-in services and the
repositories, exposed as FastAPI dependencies.
"""
import logging
from functools import lru_cache

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.config import Settings, get_settings
from socialconnect.connect import (
    ConnectionFactoryRegistry,
    OAuth1ConnectionFactory,
    OAuth2ConnectionFactory,
)
from socialconnect.database import get_db
from socialconnect.models.user import User
from socialconnect.providers import FacebookConnectionFactory, TwitterConnectionFactory
from socialconnect.repositories.sql import SQLConnectionRepository, SQLUsersConnectionRepository
from socialconnect.security import (
    OAuth1AuthenticationService,
    OAuth2AuthenticationService,
    SocialAuthenticationFilter,
    SocialAuthenticationProvider,
    SocialAuthenticationServiceRegistry,
    SocialRequest,
    SQLUserDetailsService,
    session_store_for,
)
from socialconnect.services.auth import get_current_user
from socialconnect.services.connect import ConnectSupport
from socialconnect.services.signup import LocalAccountConnectionSignUp
from socialconnect.utils.crypto import TextEncryptor, build_text_encryptor

logger = logging.getLogger(__name__)


def build_connection_factory_registry(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ConnectionFactoryRegistry:
    """Register a factory for every provider whose credentials are configured."""
    registry = ConnectionFactoryRegistry()
    timeout = settings.http_timeout_seconds
    
    if settings.facebook_app_id and settings.facebook_app_secret:
        registry.add_connection_factory(
            FacebookConnectionFactory(
                settings.facebook_app_id,
                settings.facebook_app_secret,
                transport=transport,
                timeout=timeout,
            )
        )
    
    if settings.twitter_consumer_key and settings.twitter_consumer_secret:
        registry.add_connection_factory(
            TwitterConnectionFactory(
                settings.twitter_consumer_key,
                settings.twitter_consumer_secret,
                transport=transport,
                timeout=timeout,
            )
        )
    
    logger.info("Registered providers: %s", ", ".join(registry.registered_provider_ids()) or "none")
    return registry


def build_authentication_service_registry(
    connection_factory_registry: ConnectionFactoryRegistry,
    settings: Settings,
) -> SocialAuthenticationServiceRegistry:
    """One sign-in service per registered OAuth1 or OAuth2 factory."""
    scopes = {"facebook": settings.facebook_scope}
    registry = SocialAuthenticationServiceRegistry(connection_factory_registry)
    for provider_id in connection_factory_registry.registered_provider_ids():
        factory = connection_factory_registry.get_connection_factory(provider_id)
        if isinstance(factory, OAuth2ConnectionFactory):
            registry.add_authentication_service(
                OAuth2AuthenticationService(
                    factory,
                    scope=scopes.get(provider_id),
                    connection_added_redirect_url=settings.connection_added_redirect_url,
                    application_url=settings.application_url,
                )
            )
        elif isinstance(factory, OAuth1ConnectionFactory):
            registry.add_authentication_service(
                OAuth1AuthenticationService(
                    factory,
                    connection_added_redirect_url=settings.connection_added_redirect_url,
                    application_url=settings.application_url,
                )
            )
    return registry


@lru_cache
def get_text_encryptor() -> TextEncryptor:
    """Encryptor for stored provider credentials."""
    return build_text_encryptor(get_settings().encryption_key)


def get_connection_factory_registry(request: Request) -> ConnectionFactoryRegistry:
    return request.app.state.connection_factory_registry


def get_authentication_service_registry(request: Request) -> SocialAuthenticationServiceRegistry:
    return request.app.state.authentication_service_registry


def get_connect_support(request: Request) -> ConnectSupport:
    return ConnectSupport(
        application_url=get_settings().application_url,
        connect_interceptors=request.app.state.connect_interceptors,
        disconnect_interceptors=request.app.state.disconnect_interceptors,
    )


async def get_users_connection_repository(
    connection_factory_registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
    text_encryptor: TextEncryptor = Depends(get_text_encryptor),
    db: AsyncSession = Depends(get_db),
) -> SQLUsersConnectionRepository:
    settings = get_settings()
    connection_sign_up = LocalAccountConnectionSignUp(db) if settings.implicit_signup else None
    return SQLUsersConnectionRepository(
        db,
        connection_factory_registry,
        text_encryptor,
        connection_sign_up=connection_sign_up,
    )


async def get_connection_repository(
    current_user: User = Depends(get_current_user),
    users_connection_repository: SQLUsersConnectionRepository = Depends(get_users_connection_repository),
) -> SQLConnectionRepository:
    """Connections of the signed-in user."""
    return users_connection_repository.create_connection_repository(current_user.id)


async def get_social_authentication_filter(
    authentication_service_registry: SocialAuthenticationServiceRegistry = Depends(get_authentication_service_registry),
    users_connection_repository: SQLUsersConnectionRepository = Depends(get_users_connection_repository),
    db: AsyncSession = Depends(get_db),
) -> SocialAuthenticationFilter:
    settings = get_settings()
    return SocialAuthenticationFilter(
        authentication_service_registry,
        users_connection_repository,
        SocialAuthenticationProvider(users_connection_repository, SQLUserDetailsService(db)),
        filter_processes_url=settings.signin_url,
        signup_url=settings.signup_url,
        connection_added_redirect_url=settings.connection_added_redirect_url,
        post_login_url=settings.post_login_url,
        post_failure_url=settings.post_failure_url,
        update_connections=settings.update_connections,
    )


def social_request_for(request: Request, user_id: str | None = None) -> SocialRequest:
    """Snapshot of ``request`` for the connect and sign-in flows."""
    return SocialRequest(
        path=request.url.path,
        url=str(request.url.replace(query="")),
        params=dict(request.query_params),
        session=session_store_for(request),
        user_id=user_id,
    )
