"""
Implicit sign-up: create a local account for an unknown provider account.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.connect import Connection, UserProfile
from socialconnect.errors import ApiError
from socialconnect.models.user import User

logger = logging.getLogger(__name__)


class LocalAccountConnectionSignUp:
    """Creates a password-less User from the connection's provider profile."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def execute(self, connection: Connection) -> str | None:
        key = connection.key
        try:
            profile = await connection.fetch_user_profile()
        except ApiError as e:
            logger.warning("Could not fetch %s profile for sign-up: %s", key.provider_id, e)
            profile = UserProfile(name=connection.display_name)
        
        username = await self._unique_username(
            profile.username or f"{key.provider_id}_{key.provider_user_id}",
            f"{key.provider_id}_{key.provider_user_id}",
        )
        email = profile.email
        if email and await self._exists(User.email == email):
            email = None
        
        user = User(
            username=username,
            email=email,
            full_name=profile.name or connection.display_name or username,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user.id

    async def _unique_username(self, preferred: str, fallback: str) -> str:
        if not await self._exists(User.username == preferred):
            return preferred
        if not await self._exists(User.username == fallback):
            return fallback
        suffix = 2
        while await self._exists(User.username == f"{fallback}_{suffix}"):
            suffix += 1
        return f"{fallback}_{suffix}"

    async def _exists(self, criterion) -> bool:
        result = await self.session.execute(select(User.id).where(criterion))
        return result.first() is not None
