"""
Tests for pending provider sign-in attempts.
"""
import pytest

from socialconnect.connect import ConnectionData, ConnectionKey
from socialconnect.security import DictSessionStore, ProviderSignInAttempts


def _data(provider_user_id: str = "9", access_token: str = "access-9", provider_id: str = "stub2") -> ConnectionData:
    return ConnectionData(
        provider_id=provider_id,
        provider_user_id=provider_user_id,
        display_name="Keith Donald",
        access_token=access_token,
        refresh_token=f"refresh-{provider_user_id}",
    )


def test_add_replaces_attempt_for_same_key():
    attempts = ProviderSignInAttempts(DictSessionStore())
    
    assert attempts.add(_data()) is False
    assert attempts.add(_data("10", "access-10")) is False
    assert attempts.add(_data(access_token="access-9-new")) is True
    
    assert [data.provider_user_id for data in attempts.get_all()] == ["10", "9"]
    assert attempts.get(ConnectionKey("stub2", "9")).access_token == "access-9-new"


def test_remove_and_clear():
    session = DictSessionStore()
    attempts = ProviderSignInAttempts(session)
    attempts.add(_data())
    attempts.add(_data("10", "access-10"))
    
    attempts.remove(ConnectionKey("stub2", "9"))
    assert attempts.get(ConnectionKey("stub2", "9")) is None
    
    attempts.clear()
    assert attempts.get_all() == []
    assert session.data == {}


@pytest.mark.asyncio
async def test_add_connections(users_connection_repository, connection_factory_registry, test_user):
    """Test pending attempts become connections of the new user."""
    user_id = test_user.id
    attempts = ProviderSignInAttempts(DictSessionStore())
    attempts.add(_data())
    attempts.add(_data(provider_id="unregistered"))
    
    added = await attempts.add_connections(user_id, users_connection_repository, connection_factory_registry)
    
    assert [connection.key for connection in added] == [ConnectionKey("stub2", "9")]
    assert attempts.get_all() == []
    repository = users_connection_repository.create_connection_repository(user_id)
    stored = await repository.get_connection(ConnectionKey("stub2", "9"))
    assert stored.display_name == "Keith Donald"


@pytest.mark.asyncio
async def test_add_connections_skips_existing(users_connection_repository, connection_factory_registry, test_user):
    user_id = test_user.id
    existing = connection_factory_registry.get_connection_factory("stub2").create_connection_from_data(_data())
    await users_connection_repository.create_connection_repository(user_id).add_connection(existing)
    attempts = ProviderSignInAttempts(DictSessionStore())
    attempts.add(_data())
    
    added = await attempts.add_connections(user_id, users_connection_repository, connection_factory_registry)
    
    assert added == []
