"""
Connection repositories backed by the ``user_connections`` table.
"""
import logging

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from socialconnect.connect import (
    Connection,
    ConnectionData,
    ConnectionFactoryRegistry,
    ConnectionKey,
    ConnectionRepository,
    ConnectionSignUp,
    UsersConnectionRepository,
)
from socialconnect.errors import DuplicateConnectionError, NoSuchConnectionError, NotConnectedError
from socialconnect.models.connection import UserConnection
from socialconnect.utils.crypto import NoOpTextEncryptor, TextEncryptor

logger = logging.getLogger(__name__)


class SQLConnectionRepository(ConnectionRepository):
    """Connections of one local user, stored with encrypted credentials."""

    def __init__(
        self,
        user_id: str,
        session: AsyncSession,
        connection_factory_locator: ConnectionFactoryRegistry,
        text_encryptor: TextEncryptor | None = None,
    ):
        self.user_id = user_id
        self.session = session
        self.connection_factory_locator = connection_factory_locator
        self.text_encryptor = text_encryptor or NoOpTextEncryptor()

    async def find_all_connections(self) -> dict[str, list[Connection]]:
        provider_ids = self.connection_factory_locator.registered_provider_ids()
        connections: dict[str, list[Connection]] = {provider_id: [] for provider_id in provider_ids}
        rows = await self._fetch(
            self._select()
            .where(UserConnection.provider_id.in_(provider_ids))
            .order_by(UserConnection.provider_id, UserConnection.rank)
        )
        for row in rows:
            connections[row.provider_id].append(self._map_row(row))
        return connections

    async def find_connections_to_provider(self, provider_id: str) -> list[Connection]:
        rows = await self._fetch(
            self._select()
            .where(UserConnection.provider_id == provider_id)
            .order_by(UserConnection.rank)
        )
        return [self._map_row(row) for row in rows]

    async def find_connections_to_api(self, api_type: type) -> list[Connection]:
        return await self.find_connections_to_provider(self._provider_id_for(api_type))

    async def find_connections_for_users(
        self,
        provider_user_ids_by_provider: dict[str, list[str]],
    ) -> dict[str, list[Connection | None]]:
        if not provider_user_ids_by_provider:
            raise ValueError("Unable to execute find: no providerUsers provided")
        result: dict[str, list[Connection | None]] = {}
        for provider_id, provider_user_ids in provider_user_ids_by_provider.items():
            rows = await self._fetch(
                self._select().where(
                    UserConnection.provider_id == provider_id,
                    UserConnection.provider_user_id.in_(provider_user_ids),
                )
            )
            found = {row.provider_user_id: self._map_row(row) for row in rows}
            result[provider_id] = [found.get(provider_user_id) for provider_user_id in provider_user_ids]
        return result

    async def get_connection(self, key: ConnectionKey) -> Connection:
        row = await self._fetch_one(key)
        if row is None:
            raise NoSuchConnectionError(key)
        return self._map_row(row)

    async def get_primary_connection(self, api_type: type) -> Connection:
        provider_id = self._provider_id_for(api_type)
        connection = await self._find_primary_connection(provider_id)
        if connection is None:
            raise NotConnectedError(provider_id)
        return connection

    async def find_primary_connection(self, api_type: type) -> Connection | None:
        return await self._find_primary_connection(self._provider_id_for(api_type))

    async def add_connection(self, connection: Connection) -> None:
        data = connection.create_data()
        next_rank = (
            select(func.coalesce(func.max(UserConnection.rank), 0) + 1)
            .where(
                UserConnection.user_id == self.user_id,
                UserConnection.provider_id == data.provider_id,
            )
            .scalar_subquery()
        )
        stmt = insert(UserConnection).values(
            user_id=self.user_id,
            provider_id=data.provider_id,
            provider_user_id=data.provider_user_id,
            rank=next_rank,
            **self._profile_values(data),
            **self._credential_values(data),
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            if await self._fetch_one(data.key) is not None:
                raise DuplicateConnectionError(data.key)
            raise
        logger.info("Added %s connection for user %s", data.provider_id, self.user_id)

    async def update_connection(self, connection: Connection) -> None:
        data = connection.create_data()
        await self.session.execute(
            update(UserConnection)
            .where(
                UserConnection.user_id == self.user_id,
                UserConnection.provider_id == data.provider_id,
                UserConnection.provider_user_id == data.provider_user_id,
            )
            .values(**self._profile_values(data), **self._credential_values(data))
        )
        await self.session.commit()

    async def remove_connections(self, provider_id: str) -> None:
        await self.session.execute(
            delete(UserConnection).where(
                UserConnection.user_id == self.user_id,
                UserConnection.provider_id == provider_id,
            )
        )
        await self.session.commit()
        logger.info("Removed %s connections for user %s", provider_id, self.user_id)

    async def remove_connection(self, key: ConnectionKey) -> None:
        row = await self._fetch_one(key)
        if row is None:
            return
        removed_rank = row.rank
        await self.session.execute(
            delete(UserConnection).where(
                UserConnection.user_id == self.user_id,
                UserConnection.provider_id == key.provider_id,
                UserConnection.provider_user_id == key.provider_user_id,
            )
        )
        # Close the gap one row at a time, lowest first, so the rank
        # constraint holds after every statement
        followers = await self._fetch(
            self._select()
            .where(
                UserConnection.provider_id == key.provider_id,
                UserConnection.rank > removed_rank,
            )
            .order_by(UserConnection.rank)
        )
        for provider_user_id, rank in [(f.provider_user_id, f.rank) for f in followers]:
            await self.session.execute(
                update(UserConnection)
                .where(
                    UserConnection.user_id == self.user_id,
                    UserConnection.provider_id == key.provider_id,
                    UserConnection.provider_user_id == provider_user_id,
                )
                .values(rank=rank - 1)
            )
        await self.session.commit()
        logger.info("Removed connection %s for user %s", key, self.user_id)

    # Internal helpers

    def _select(self):
        return (
            select(UserConnection)
            .where(UserConnection.user_id == self.user_id)
            .execution_options(populate_existing=True)
        )

    async def _fetch(self, stmt) -> list[UserConnection]:
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _fetch_one(self, key: ConnectionKey) -> UserConnection | None:
        result = await self.session.execute(
            self._select().where(
                UserConnection.provider_id == key.provider_id,
                UserConnection.provider_user_id == key.provider_user_id,
            )
        )
        return result.scalar_one_or_none()

    async def _find_primary_connection(self, provider_id: str) -> Connection | None:
        rows = await self._fetch(
            self._select()
            .where(UserConnection.provider_id == provider_id)
            .order_by(UserConnection.rank)
            .limit(1)
        )
        return self._map_row(rows[0]) if rows else None

    def _provider_id_for(self, api_type: type) -> str:
        return self.connection_factory_locator.get_connection_factory_for_api(api_type).provider_id

    def _map_row(self, row: UserConnection) -> Connection:
        data = ConnectionData(
            provider_id=row.provider_id,
            provider_user_id=row.provider_user_id,
            display_name=row.display_name,
            profile_url=row.profile_url,
            image_url=row.image_url,
            access_token=self.text_encryptor.decrypt(row.access_token),
            secret=self._decrypt(row.secret),
            refresh_token=self._decrypt(row.refresh_token),
            expire_time=row.expire_time,
        )
        connection_factory = self.connection_factory_locator.get_connection_factory(row.provider_id)
        return connection_factory.create_connection_from_data(data)

    @staticmethod
    def _profile_values(data: ConnectionData) -> dict:
        return {
            "display_name": data.display_name,
            "profile_url": data.profile_url,
            "image_url": data.image_url,
        }

    def _credential_values(self, data: ConnectionData) -> dict:
        return {
            "access_token": self.text_encryptor.encrypt(data.access_token),
            "secret": self._encrypt(data.secret),
            "refresh_token": self._encrypt(data.refresh_token),
            "expire_time": data.expire_time,
        }

    def _encrypt(self, text: str | None) -> str | None:
        return self.text_encryptor.encrypt(text) if text is not None else None

    def _decrypt(self, encrypted_text: str | None) -> str | None:
        return self.text_encryptor.decrypt(encrypted_text) if encrypted_text is not None else None


class SQLUsersConnectionRepository(UsersConnectionRepository):
    """Reverse lookups over every user's connections."""

    def __init__(
        self,
        session: AsyncSession,
        connection_factory_locator: ConnectionFactoryRegistry,
        text_encryptor: TextEncryptor | None = None,
        connection_sign_up: ConnectionSignUp | None = None,
    ):
        self.session = session
        self.connection_factory_locator = connection_factory_locator
        self.text_encryptor = text_encryptor or NoOpTextEncryptor()
        self.connection_sign_up = connection_sign_up

    async def find_user_ids_with_connection(self, connection: Connection) -> list[str]:
        key = connection.key
        result = await self.session.execute(
            select(UserConnection.user_id).where(
                UserConnection.provider_id == key.provider_id,
                UserConnection.provider_user_id == key.provider_user_id,
            )
        )
        user_ids = list(result.scalars().all())
        if not user_ids and self.connection_sign_up is not None:
            new_user_id = await self.connection_sign_up.execute(connection)
            if new_user_id:
                await self.create_connection_repository(new_user_id).add_connection(connection)
                logger.info("Signed up user %s from %s", new_user_id, key.provider_id)
                return [new_user_id]
        return user_ids

    async def find_user_ids_connected_to(self, provider_id: str, provider_user_ids: set[str]) -> set[str]:
        if not provider_user_ids:
            return set()
        result = await self.session.execute(
            select(UserConnection.user_id)
            .where(
                UserConnection.provider_id == provider_id,
                UserConnection.provider_user_id.in_(list(provider_user_ids)),
            )
            .distinct()
        )
        return set(result.scalars().all())

    def create_connection_repository(self, user_id: str) -> SQLConnectionRepository:
        if not user_id:
            raise ValueError("user_id cannot be empty")
        return SQLConnectionRepository(
            user_id,
            self.session,
            self.connection_factory_locator,
            self.text_encryptor,
        )
