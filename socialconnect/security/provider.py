"""
Resolves a provider connection to the local user it signs in.
"""
import logging
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.connect import Connection, UsersConnectionRepository
from socialconnect.errors import BadCredentialsError, MultipleUserIdsError, UserNotFoundError
from socialconnect.models.user import User
from socialconnect.security.tokens import SocialAuthenticationToken

logger = logging.getLogger(__name__)


class SocialUserDetailsService(Protocol):
    async def load_user_by_user_id(self, user_id: str) -> Any:
        """Load the local user. Raises UserNotFoundError when it does not exist or is disabled."""
        ...


class SQLUserDetailsService:
    """Loads active users from the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_user_by_user_id(self, user_id: str) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise UserNotFoundError(f"No active user with id {user_id}")
        return user


class SocialAuthenticationProvider:
    """Authenticates a SocialAuthenticationToken against the stored connections."""

    def __init__(
        self,
        users_connection_repository: UsersConnectionRepository,
        user_details_service: SocialUserDetailsService,
    ):
        self.users_connection_repository = users_connection_repository
        self.user_details_service = user_details_service

    async def authenticate(self, token: SocialAuthenticationToken) -> SocialAuthenticationToken:
        connection = token.connection
        user_id = await self.to_user_id(connection)
        user = await self.user_details_service.load_user_by_user_id(user_id)
        logger.debug("Authenticated user %s with %s", user_id, connection.key.provider_id)
        return SocialAuthenticationToken(connection, principal=user_id, user=user)

    async def to_user_id(self, connection: Connection) -> str:
        user_ids = await self.users_connection_repository.find_user_ids_with_connection(connection)
        if not user_ids:
            raise BadCredentialsError("Unknown access token", connection.key.provider_id)
        if len(user_ids) > 1:
            raise MultipleUserIdsError(connection.key, user_ids)
        return user_ids[0]
