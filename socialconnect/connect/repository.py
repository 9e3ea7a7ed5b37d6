"""
Persistence contracts for connections.
"""
from abc import ABC, abstractmethod
from typing import Protocol

from socialconnect.connect.connection import Connection
from socialconnect.connect.data import ConnectionKey


class ConnectionRepository(ABC):
    """
    The connections of one local user.
    
    Lists are ordered by rank; the lowest rank is the primary connection
    to a provider.
    """

    @abstractmethod
    async def find_all_connections(self) -> dict[str, list[Connection]]:
        """Connections by provider id. Every registered provider has an entry, possibly empty."""

    @abstractmethod
    async def find_connections_to_provider(self, provider_id: str) -> list[Connection]:
        ...

    @abstractmethod
    async def find_connections_to_api(self, api_type: type) -> list[Connection]:
        ...

    @abstractmethod
    async def find_connections_for_users(
        self,
        provider_user_ids_by_provider: dict[str, list[str]],
    ) -> dict[str, list[Connection | None]]:
        """
        Batch lookup by provider user id.
        
        Result lists line up with the requested ids; missing connections
        are None. An empty request raises ValueError.
        """

    @abstractmethod
    async def get_connection(self, key: ConnectionKey) -> Connection:
        """Raises NoSuchConnectionError when absent."""

    @abstractmethod
    async def get_primary_connection(self, api_type: type) -> Connection:
        """Raises NotConnectedError when the user has no connection to the API's provider."""

    @abstractmethod
    async def find_primary_connection(self, api_type: type) -> Connection | None:
        ...

    @abstractmethod
    async def add_connection(self, connection: Connection) -> None:
        """Raises DuplicateConnectionError when the key is already stored for this user."""

    @abstractmethod
    async def update_connection(self, connection: Connection) -> None:
        ...

    @abstractmethod
    async def remove_connections(self, provider_id: str) -> None:
        ...

    @abstractmethod
    async def remove_connection(self, key: ConnectionKey) -> None:
        ...


class ConnectionSignUp(Protocol):
    """Creates a local user for a provider account no local user is connected to yet."""

    async def execute(self, connection: Connection) -> str | None:
        """Return the new local user id, or None to decline."""
        ...


class UsersConnectionRepository(ABC):
    """Connections across all local users."""

    connection_sign_up: ConnectionSignUp | None = None

    @abstractmethod
    async def find_user_ids_with_connection(self, connection: Connection) -> list[str]:
        """
        Local users connected to the connection's provider account.
        
        When nobody is and a ConnectionSignUp is configured, the new user
        it creates gets the connection and is returned alone.
        """

    @abstractmethod
    async def find_user_ids_connected_to(self, provider_id: str, provider_user_ids: set[str]) -> set[str]:
        ...

    @abstractmethod
    def create_connection_repository(self, user_id: str) -> ConnectionRepository:
        ...
