"""
Connection repositories held in process memory.

Useful for tests and single-process deployments that do not need the
connections to survive a restart. Connections are stored as
``ConnectionData`` snapshots and rebuilt through their factory on every
read, the same way the SQL repository maps its rows.
"""
import logging

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

logger = logging.getLogger(__name__)


class InMemoryConnectionRepository(ConnectionRepository):
    """Connections of one local user; list position is the rank."""

    def __init__(
        self,
        user_id: str,
        connections: dict[str, list[ConnectionData]],
        connection_factory_locator: ConnectionFactoryRegistry,
    ):
        self.user_id = user_id
        self._connections = connections
        self.connection_factory_locator = connection_factory_locator

    async def find_all_connections(self) -> dict[str, list[Connection]]:
        return {
            provider_id: self._map(self._connections.get(provider_id, []))
            for provider_id in self.connection_factory_locator.registered_provider_ids()
        }

    async def find_connections_to_provider(self, provider_id: str) -> list[Connection]:
        return self._map(self._connections.get(provider_id, []))

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
            found = {
                data.provider_user_id: data
                for data in self._connections.get(provider_id, [])
            }
            result[provider_id] = [
                self._create(found[provider_user_id]) if provider_user_id in found else None
                for provider_user_id in provider_user_ids
            ]
        return result

    async def get_connection(self, key: ConnectionKey) -> Connection:
        data = self._find(key)
        if data is None:
            raise NoSuchConnectionError(key)
        return self._create(data)

    async def get_primary_connection(self, api_type: type) -> Connection:
        provider_id = self._provider_id_for(api_type)
        connection = await self.find_primary_connection(api_type)
        if connection is None:
            raise NotConnectedError(provider_id)
        return connection

    async def find_primary_connection(self, api_type: type) -> Connection | None:
        connections = self._connections.get(self._provider_id_for(api_type))
        return self._create(connections[0]) if connections else None

    async def add_connection(self, connection: Connection) -> None:
        data = connection.create_data()
        if self._find(data.key) is not None:
            raise DuplicateConnectionError(data.key)
        self._connections.setdefault(data.provider_id, []).append(data)
        logger.info("Added %s connection for user %s", data.provider_id, self.user_id)

    async def update_connection(self, connection: Connection) -> None:
        data = connection.create_data()
        connections = self._connections.get(data.provider_id, [])
        for index, stored in enumerate(connections):
            if stored.key == data.key:
                connections[index] = data
                return

    async def remove_connections(self, provider_id: str) -> None:
        self._connections.pop(provider_id, None)
        logger.info("Removed %s connections for user %s", provider_id, self.user_id)

    async def remove_connection(self, key: ConnectionKey) -> None:
        connections = self._connections.get(key.provider_id)
        if not connections:
            return
        remaining = [data for data in connections if data.key != key]
        if len(remaining) == len(connections):
            return
        if remaining:
            self._connections[key.provider_id] = remaining
        else:
            del self._connections[key.provider_id]
        logger.info("Removed connection %s for user %s", key, self.user_id)

    def _find(self, key: ConnectionKey) -> ConnectionData | None:
        for data in self._connections.get(key.provider_id, []):
            if data.key == key:
                return data
        return None

    def _provider_id_for(self, api_type: type) -> str:
        return self.connection_factory_locator.get_connection_factory_for_api(api_type).provider_id

    def _create(self, data: ConnectionData) -> Connection:
        connection_factory = self.connection_factory_locator.get_connection_factory(data.provider_id)
        return connection_factory.create_connection_from_data(data)

    def _map(self, connections: list[ConnectionData]) -> list[Connection]:
        return [self._create(data) for data in connections]


class InMemoryUsersConnectionRepository(UsersConnectionRepository):
    """Every user's connections in one dict, keyed by local user id."""

    def __init__(
        self,
        connection_factory_locator: ConnectionFactoryRegistry,
        connection_sign_up: ConnectionSignUp | None = None,
    ):
        self.connection_factory_locator = connection_factory_locator
        self.connection_sign_up = connection_sign_up
        self._connections: dict[str, dict[str, list[ConnectionData]]] = {}

    async def find_user_ids_with_connection(self, connection: Connection) -> list[str]:
        key = connection.key
        user_ids = [
            user_id
            for user_id, connections in self._connections.items()
            if any(data.key == key for data in connections.get(key.provider_id, []))
        ]
        if not user_ids and self.connection_sign_up is not None:
            new_user_id = await self.connection_sign_up.execute(connection)
            if new_user_id:
                await self.create_connection_repository(new_user_id).add_connection(connection)
                logger.info("Signed up user %s from %s", new_user_id, key.provider_id)
                return [new_user_id]
        return user_ids

    async def find_user_ids_connected_to(self, provider_id: str, provider_user_ids: set[str]) -> set[str]:
        return {
            user_id
            for user_id, connections in self._connections.items()
            if any(data.provider_user_id in provider_user_ids for data in connections.get(provider_id, []))
        }

    def create_connection_repository(self, user_id: str) -> InMemoryConnectionRepository:
        if not user_id:
            raise ValueError("user_id cannot be empty")
        return InMemoryConnectionRepository(
            user_id,
            self._connections.setdefault(user_id, {}),
            self.connection_factory_locator,
        )
