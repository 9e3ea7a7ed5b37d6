"""
Tests for reverse connection lookups and implicit sign-up.
"""
import pytest
import pytest_asyncio
from sqlalchemy import select

from socialconnect.models.user import User
from socialconnect.oauth2 import AccessGrant
from socialconnect.repositories.sql import SQLUsersConnectionRepository
from socialconnect.services.signup import LocalAccountConnectionSignUp


@pytest_asyncio.fixture
async def keith(connection_factory_registry):
    factory = connection_factory_registry.get_connection_factory("stub2")
    return await factory.create_connection(AccessGrant("access-9"))


@pytest_asyncio.fixture
async def roy(connection_factory_registry):
    factory = connection_factory_registry.get_connection_factory("stub2")
    return await factory.create_connection(AccessGrant("access-10"))


class FixedSignUp:
    def __init__(self, user_id):
        self.user_id = user_id
        self.calls = []

    async def execute(self, connection):
        self.calls.append(connection)
        return self.user_id


@pytest.mark.asyncio
async def test_find_user_ids_with_connection(users_connection_repository, keith, test_user, other_user):
    """Test every local user linked to the provider account is returned."""
    test_user_id, other_user_id = test_user.id, other_user.id
    assert await users_connection_repository.find_user_ids_with_connection(keith) == []
    
    await users_connection_repository.create_connection_repository(test_user_id).add_connection(keith)
    assert await users_connection_repository.find_user_ids_with_connection(keith) == [test_user_id]
    
    await users_connection_repository.create_connection_repository(other_user_id).add_connection(keith)
    assert sorted(await users_connection_repository.find_user_ids_with_connection(keith)) == sorted(
        [test_user_id, other_user_id]
    )


@pytest.mark.asyncio
async def test_find_user_ids_connected_to(users_connection_repository, keith, roy, test_user, other_user):
    """Test the set of users holding any of the given provider accounts."""
    await users_connection_repository.create_connection_repository(test_user.id).add_connection(keith)
    await users_connection_repository.create_connection_repository(other_user.id).add_connection(roy)
    
    assert await users_connection_repository.find_user_ids_connected_to("stub2", {"9"}) == {test_user.id}
    assert await users_connection_repository.find_user_ids_connected_to("stub2", {"9", "10", "11"}) == {
        test_user.id,
        other_user.id,
    }
    assert await users_connection_repository.find_user_ids_connected_to("stub1", {"9"}) == set()
    assert await users_connection_repository.find_user_ids_connected_to("stub2", set()) == set()


def test_create_connection_repository_requires_user_id(users_connection_repository):
    with pytest.raises(ValueError):
        users_connection_repository.create_connection_repository("")


@pytest.mark.asyncio
async def test_sign_up_hook_adds_connection(db, connection_factory_registry, keith, test_user):
    """Test an unknown account is handed to the sign-up hook and linked to the new user."""
    sign_up = FixedSignUp(test_user.id)
    repository = SQLUsersConnectionRepository(db, connection_factory_registry, connection_sign_up=sign_up)
    
    assert await repository.find_user_ids_with_connection(keith) == [test_user.id]
    assert sign_up.calls == [keith]
    assert await repository.find_user_ids_with_connection(keith) == [test_user.id]
    assert len(sign_up.calls) == 1


@pytest.mark.asyncio
async def test_sign_up_hook_declining(db, connection_factory_registry, keith):
    """Test a sign-up hook returning None leaves the account unknown."""
    repository = SQLUsersConnectionRepository(db, connection_factory_registry, connection_sign_up=FixedSignUp(None))
    
    assert await repository.find_user_ids_with_connection(keith) == []


@pytest.mark.asyncio
async def test_local_account_sign_up(db, connection_factory_registry, keith, roy):
    """Test implicit sign-up creates password-less users from provider profiles."""
    repository = SQLUsersConnectionRepository(
        db,
        connection_factory_registry,
        connection_sign_up=LocalAccountConnectionSignUp(db),
    )
    
    [keith_user_id] = await repository.find_user_ids_with_connection(keith)
    [roy_user_id] = await repository.find_user_ids_with_connection(roy)
    
    result = await db.execute(select(User).order_by(User.username))
    users = {user.id: user for user in result.scalars().all()}
    assert users[keith_user_id].username == "kdonald"
    assert users[keith_user_id].email == "keith@example.com"
    assert users[keith_user_id].full_name == "Keith Donald"
    assert users[keith_user_id].hashed_password is None
    # No username on the profile
    assert users[roy_user_id].username == "stub2_10"
    assert users[roy_user_id].email is None


@pytest.mark.asyncio
async def test_local_account_sign_up_avoids_taken_username(db, keith, test_user):
    """Test a taken username falls back to the provider account id."""
    test_user.username = "kdonald"
    await db.commit()
    
    user_id = await LocalAccountConnectionSignUp(db).execute(keith)
    
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one()
    assert user.username == "stub2_9"
