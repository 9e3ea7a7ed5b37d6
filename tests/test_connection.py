"""
Tests for connections and connection factories.
"""
import pytest

from socialconnect.connect import ConnectionData, ConnectionKey
from socialconnect.errors import ExpiredAuthorizationError
from socialconnect.oauth1 import OAuthToken
from socialconnect.oauth2 import AccessGrant
from socialconnect.oauth2.types import now_millis

from conftest import make_oauth1_factory, make_oauth2_factory


@pytest.mark.asyncio
async def test_create_oauth2_connection(provider_transport, fake_provider):
    """Test a new OAuth2 connection reads its key and profile from the provider."""
    factory = make_oauth2_factory(provider_transport)
    
    connection = await factory.create_connection(
        AccessGrant("access-9", refresh_token="refresh-9", expires_in=3600)
    )
    
    assert connection.key == ConnectionKey("stub2", "9")
    assert connection.display_name == "Keith Donald"
    assert connection.profile_url == "https://provider.test/keith"
    assert connection.image_url == "https://provider.test/keith.jpg"
    assert not connection.has_expired()
    
    data = connection.create_data()
    assert data.access_token == "access-9"
    assert data.refresh_token == "refresh-9"
    assert data.secret is None
    assert data.expire_time > now_millis()
    assert fake_provider.requests[0].headers["Authorization"] == "Bearer access-9"


@pytest.mark.asyncio
async def test_create_oauth1_connection(provider_transport, fake_provider):
    """Test a new OAuth1 connection signs its API calls and keeps the secret."""
    factory = make_oauth1_factory(provider_transport)
    
    connection = await factory.create_connection(OAuthToken("access-10", "secret-10"))
    
    assert connection.key == ConnectionKey("stub1", "10")
    assert connection.display_name == "Roy Clarkson"
    data = connection.create_data()
    assert data.secret == "secret-10"
    assert data.refresh_token is None
    assert fake_provider.requests[0].headers["Authorization"].startswith("OAuth ")


def test_create_connection_from_data_makes_no_calls(provider_transport, fake_provider):
    """Test rebuilding a stored connection does not touch the provider."""
    factory = make_oauth2_factory(provider_transport)
    data = ConnectionData(
        provider_id="stub2",
        provider_user_id="9",
        display_name="Keith Donald",
        access_token="access-9",
        refresh_token="refresh-9",
    )
    
    connection = factory.create_connection_from_data(data)
    
    assert connection.create_data() == data
    assert connection == factory.create_connection_from_data(data)
    assert fake_provider.requests == []


def test_connection_data_requires_access_token():
    with pytest.raises(ValueError):
        ConnectionData(provider_id="stub2", provider_user_id="9", access_token="")


def test_connection_data_from_dict():
    """Test the session form of ConnectionData rebuilds the same value."""
    data = ConnectionData(
        provider_id="stub1",
        provider_user_id="10",
        access_token="access-10",
        secret="secret-10",
    )
    
    assert ConnectionData.from_dict(data.to_dict()) == data
    assert str(data.key) == "stub1:10"


@pytest.mark.asyncio
async def test_sync_updates_profile_values(provider_transport, fake_provider):
    """Test sync re-reads display name, profile and image URL."""
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(provider_id="stub2", provider_user_id="9", display_name="old", access_token="access-9")
    )
    
    await connection.sync()
    
    assert connection.display_name == "Keith Donald"
    assert connection.key.provider_user_id == "9"


@pytest.mark.asyncio
async def test_test_reports_revoked_credentials(provider_transport, fake_provider):
    """Test a rejected credential makes test() return False."""
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(provider_id="stub2", provider_user_id="9", access_token="access-9")
    )
    
    assert await connection.test() is True
    
    fake_provider.revoked.add("access-9")
    assert await connection.test() is False


@pytest.mark.asyncio
async def test_expired_connection(provider_transport):
    """Test an expired OAuth2 connection refuses API access."""
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(
            provider_id="stub2",
            provider_user_id="9",
            access_token="access-9",
            expire_time=now_millis() - 1000,
        )
    )
    
    assert connection.has_expired()
    with pytest.raises(ExpiredAuthorizationError):
        connection.get_api()
    assert await connection.test() is False


@pytest.mark.asyncio
async def test_refresh_replaces_access_token(provider_transport):
    """Test refresh swaps in the new grant and keeps the refresh token."""
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(
            provider_id="stub2",
            provider_user_id="9",
            access_token="access-9",
            refresh_token="refresh-9",
            expire_time=now_millis() - 1000,
        )
    )
    
    await connection.refresh()
    
    assert not connection.has_expired()
    data = connection.create_data()
    assert data.access_token == "access-9-refreshed"
    assert data.refresh_token == "refresh-9"
    assert await connection.test() is True


@pytest.mark.asyncio
async def test_refresh_without_refresh_token(provider_transport):
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(provider_id="stub2", provider_user_id="9", access_token="access-9")
    )
    
    with pytest.raises(ValueError):
        await connection.refresh()


@pytest.mark.asyncio
async def test_fetch_user_profile(provider_transport):
    """Test the normalized profile used to pre-fill sign-up."""
    factory = make_oauth2_factory(provider_transport)
    connection = factory.create_connection_from_data(
        ConnectionData(provider_id="stub2", provider_user_id="9", access_token="access-9")
    )
    
    profile = await connection.fetch_user_profile()
    
    assert profile.name == "Keith Donald"
    assert profile.email == "keith@example.com"
    assert profile.username == "kdonald"
    assert profile.first_name is None
