"""
Sign-in attempts waiting for the user to register a local account.
"""
import logging

from socialconnect.connect import (
    Connection,
    ConnectionData,
    ConnectionFactoryRegistry,
    ConnectionKey,
    UsersConnectionRepository,
)
from socialconnect.errors import DuplicateConnectionError
from socialconnect.security.session import SessionStore

logger = logging.getLogger(__name__)

SIGN_IN_ATTEMPTS_KEY = "social_signin_attempts"


class ProviderSignInAttempts:
    """
    Pending provider accounts stored in the session, one per connection key.
    
    Once the user has signed up, ``add_connections`` attaches them to the
    new account.
    """

    def __init__(self, session: SessionStore):
        self.session = session

    def _load(self) -> list[dict]:
        return list(self.session.get(SIGN_IN_ATTEMPTS_KEY) or [])

    def add(self, data: ConnectionData) -> bool:
        """Store ``data``. Returns True when an attempt for the same key was already present."""
        attempts = self._load()
        key = data.key
        existed = False
        kept = []
        for attempt in attempts:
            if ConnectionData.from_dict(attempt).key == key:
                existed = True
            else:
                kept.append(attempt)
        kept.append(data.to_dict())
        self.session.set(SIGN_IN_ATTEMPTS_KEY, kept)
        return existed

    def get_all(self) -> list[ConnectionData]:
        return [ConnectionData.from_dict(attempt) for attempt in self._load()]

    def get(self, key: ConnectionKey) -> ConnectionData | None:
        for data in self.get_all():
            if data.key == key:
                return data
        return None

    def remove(self, key: ConnectionKey) -> None:
        remaining = [attempt for attempt in self._load() if ConnectionData.from_dict(attempt).key != key]
        self.session.set(SIGN_IN_ATTEMPTS_KEY, remaining)

    def clear(self) -> None:
        self.session.remove(SIGN_IN_ATTEMPTS_KEY)

    async def add_connections(
        self,
        user_id: str,
        users_connection_repository: UsersConnectionRepository,
        connection_factory_locator: ConnectionFactoryRegistry,
    ) -> list[Connection]:
        """Attach every pending attempt to ``user_id`` and clear them."""
        repository = users_connection_repository.create_connection_repository(user_id)
        added = []
        for data in self.get_all():
            if data.provider_id not in connection_factory_locator:
                logger.warning("Dropping sign-in attempt for unregistered provider %s", data.provider_id)
                continue
            connection = connection_factory_locator.get_connection_factory(data.provider_id).create_connection_from_data(data)
            try:
                await repository.add_connection(connection)
            except DuplicateConnectionError:
                logger.info("User %s is already connected to %s", user_id, data.key)
                continue
            added.append(connection)
        self.clear()
        return added
