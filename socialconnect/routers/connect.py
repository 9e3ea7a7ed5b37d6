"""
Connect router: link provider accounts to the signed-in user.
"""
import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from socialconnect.config import get_settings
from socialconnect.connect import Connection, ConnectionFactory, ConnectionFactoryRegistry, ConnectionKey
from socialconnect.errors import (
    ApiError,
    AuthenticationError,
    DuplicateConnectionError,
    NotConnectedError,
    OAuthExchangeError,
)
from socialconnect.models.user import User
from socialconnect.repositories.sql import SQLConnectionRepository
from socialconnect.schemas.connection import ConnectionRead, ConnectionTestResult, ProviderConnections
from socialconnect.services.auth import get_current_user
from socialconnect.services.connect import ConnectSupport
from socialconnect.services.social import (
    get_connect_support,
    get_connection_factory_registry,
    get_connection_repository,
    social_request_for,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connect", tags=["Connect"])

settings = get_settings()


def get_connection_factory(provider_id: str, registry: ConnectionFactoryRegistry) -> ConnectionFactory:
    """Get the factory for a registered provider."""
    if provider_id not in registry:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown provider: {provider_id}",
        )
    return registry.get_connection_factory(provider_id)


def _status_redirect(provider_id: str, **params: str) -> RedirectResponse:
    url = f"{settings.connect_status_url}/{provider_id}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _provider_status(provider_id: str, connections: list[Connection], error: str | None = None) -> ProviderConnections:
    return ProviderConnections(
        provider_id=provider_id,
        connected=bool(connections),
        connections=[ConnectionRead.from_connection(c) for c in connections],
        error=error,
    )


async def _primary_connection(factory: ConnectionFactory, repository: SQLConnectionRepository) -> Connection:
    try:
        return await repository.get_primary_connection(factory.api_type)
    except NotConnectedError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


async def _start_connect(
    factory: ConnectionFactory,
    request: Request,
    user: User,
    connect_support: ConnectSupport,
    scope: str | None = None,
) -> RedirectResponse:
    social_request = social_request_for(request, user.id)
    parameters = await connect_support.pre_connect(factory, social_request)
    try:
        url = await connect_support.build_oauth_url(
            factory,
            social_request,
            scope=scope,
            additional_parameters=parameters,
        )
    except (OAuthExchangeError, httpx.HTTPError) as e:
        logger.warning("Could not start %s connect flow: %s", factory.provider_id, e)
        return _status_redirect(factory.provider_id, error="provider_error")
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("", response_model=list[ProviderConnections])
async def connection_status(
    repository: SQLConnectionRepository = Depends(get_connection_repository),
) -> list[ProviderConnections]:
    """Connection status for every registered provider."""
    all_connections = await repository.find_all_connections()
    return [
        _provider_status(provider_id, connections)
        for provider_id, connections in all_connections.items()
    ]


@router.get("/{provider_id}", response_model=ProviderConnections)
async def provider_connection_status(
    provider_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
    connect_support: ConnectSupport = Depends(get_connect_support),
):
    """
    Connection status for one provider.
    
    Also the provider's redirect target: a ``code`` or ``oauth_token``
    parameter completes the connection, ``reconnect`` drops the stored
    connections and starts over.
    """
    factory = get_connection_factory(provider_id, registry)
    params = request.query_params
    
    if "code" in params or "oauth_token" in params:
        return await _complete_connect(factory, request, current_user, repository, connect_support)
    
    if params.get("reconnect"):
        await repository.remove_connections(provider_id)
        logger.info("Removed %s connections of user %s for reconnect", provider_id, current_user.id)
        return await _start_connect(factory, request, current_user, connect_support)
    
    error = params.get("error")
    if params.get("denied"):
        error = "access_denied"
    connections = await repository.find_connections_to_provider(provider_id)
    return _provider_status(provider_id, connections, error=error)


async def _complete_connect(
    factory: ConnectionFactory,
    request: Request,
    user: User,
    repository: SQLConnectionRepository,
    connect_support: ConnectSupport,
) -> RedirectResponse:
    social_request = social_request_for(request, user.id)
    try:
        connection = await connect_support.complete_connection(factory, social_request)
        await repository.add_connection(connection)
    except DuplicateConnectionError:
        return _status_redirect(factory.provider_id, error="duplicate_connection")
    except AuthenticationError as e:
        return _status_redirect(factory.provider_id, error=e.error_code)
    except (OAuthExchangeError, ApiError, httpx.HTTPError) as e:
        logger.warning("Could not complete %s connection: %s", factory.provider_id, e)
        return _status_redirect(factory.provider_id, error="provider_error")
    
    logger.info("Connected %s to user %s", connection.key, user.id)
    await connect_support.post_connect(connection, social_request)
    if settings.connection_added_redirect_url:
        return RedirectResponse(settings.connection_added_redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    return _status_redirect(factory.provider_id)


@router.post("/{provider_id}")
async def connect(
    provider_id: str,
    request: Request,
    scope: str | None = Query(None),
    current_user: User = Depends(get_current_user),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
    connect_support: ConnectSupport = Depends(get_connect_support),
) -> RedirectResponse:
    """Start the connect flow by redirecting to the provider."""
    factory = get_connection_factory(provider_id, registry)
    return await _start_connect(factory, request, current_user, connect_support, scope=scope)


@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_connections(
    provider_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
    connect_support: ConnectSupport = Depends(get_connect_support),
) -> None:
    """Remove every connection to a provider."""
    factory = get_connection_factory(provider_id, registry)
    social_request = social_request_for(request, current_user.id)
    await connect_support.pre_disconnect(factory, social_request)
    await repository.remove_connections(provider_id)
    await connect_support.post_disconnect(factory, social_request)


@router.delete("/{provider_id}/{provider_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_connection(
    provider_id: str,
    provider_user_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
    connect_support: ConnectSupport = Depends(get_connect_support),
) -> None:
    """Remove a single connection; removing a missing one is not an error."""
    factory = get_connection_factory(provider_id, registry)
    social_request = social_request_for(request, current_user.id)
    await connect_support.pre_disconnect(factory, social_request)
    await repository.remove_connection(ConnectionKey(provider_id, provider_user_id))
    await connect_support.post_disconnect(factory, social_request)


@router.post("/{provider_id}/refresh", response_model=ConnectionRead)
async def refresh_connection(
    provider_id: str,
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
) -> ConnectionRead:
    """Refresh the primary connection's access token and store it."""
    factory = get_connection_factory(provider_id, registry)
    connection = await _primary_connection(factory, repository)
    try:
        await connection.refresh()
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except (OAuthExchangeError, httpx.HTTPError) as e:
        logger.warning("Refreshing %s failed: %s", connection.key, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Provider refused to refresh the connection to {provider_id}",
        )
    await repository.update_connection(connection)
    return ConnectionRead.from_connection(connection)


@router.post("/{provider_id}/sync", response_model=ConnectionRead)
async def sync_connection(
    provider_id: str,
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
) -> ConnectionRead:
    """
    Re-read display name, profile URL and image from the provider.
    
    A revoked or expired credential surfaces as NotAuthorizedError, which
    the application turns into a reconnect.
    """
    factory = get_connection_factory(provider_id, registry)
    connection = await _primary_connection(factory, repository)
    await connection.sync()
    await repository.update_connection(connection)
    return ConnectionRead.from_connection(connection)


@router.get("/{provider_id}/test", response_model=ConnectionTestResult)
async def check_connection(
    provider_id: str,
    repository: SQLConnectionRepository = Depends(get_connection_repository),
    registry: ConnectionFactoryRegistry = Depends(get_connection_factory_registry),
) -> ConnectionTestResult:
    """Whether the provider still accepts the primary connection."""
    factory = get_connection_factory(provider_id, registry)
    connection = await _primary_connection(factory, repository)
    return ConnectionTestResult(
        provider_id=provider_id,
        provider_user_id=connection.key.provider_user_id,
        valid=await connection.test(),
    )
