"""
Tests for the connection factory and authentication service registries.
"""
import httpx
import pytest

from socialconnect.config import Settings
from socialconnect.connect import ConnectionFactoryRegistry
from socialconnect.providers import FacebookApi, TwitterApi
from socialconnect.security import (
    OAuth1AuthenticationService,
    OAuth2AuthenticationService,
    SocialAuthenticationServiceRegistry,
)
from socialconnect.services.social import (
    build_authentication_service_registry,
    build_connection_factory_registry,
)

from conftest import StubOAuth1Api, StubOAuth2Api, make_oauth1_factory, make_oauth2_factory

transport = httpx.MockTransport(lambda request: httpx.Response(404))


def test_lookup_by_provider_id_and_api_type():
    """Test factories are found by provider id and by API client type."""
    oauth2_factory = make_oauth2_factory(transport)
    oauth1_factory = make_oauth1_factory(transport)
    registry = ConnectionFactoryRegistry([oauth2_factory, oauth1_factory])
    
    assert registry.get_connection_factory("stub2") is oauth2_factory
    assert registry.get_connection_factory_for_api(StubOAuth1Api) is oauth1_factory
    assert registry.registered_provider_ids() == ["stub2", "stub1"]
    assert "stub1" in registry
    assert "facebook" not in registry


def test_unknown_provider():
    registry = ConnectionFactoryRegistry()
    
    with pytest.raises(ValueError):
        registry.get_connection_factory("stub2")
    with pytest.raises(ValueError):
        registry.get_connection_factory_for_api(StubOAuth2Api)


def test_duplicate_provider_id_rejected():
    """Test a second factory for the same provider id is refused."""
    registry = ConnectionFactoryRegistry([make_oauth2_factory(transport)])
    
    class OtherApi(StubOAuth2Api):
        pass
    
    with pytest.raises(ValueError, match="already been registered"):
        registry.add_connection_factory(make_oauth2_factory(transport, api_type=OtherApi))


def test_duplicate_api_type_rejected():
    """Test a second factory for the same API type is refused."""
    registry = ConnectionFactoryRegistry([make_oauth2_factory(transport)])
    
    with pytest.raises(ValueError, match="StubOAuth2Api"):
        registry.add_connection_factory(make_oauth2_factory(transport, provider_id="other"))


def test_authentication_service_registers_its_factory():
    """Test adding a service makes its factory known to the connection registry."""
    factory = make_oauth2_factory(transport)
    registry = SocialAuthenticationServiceRegistry()
    
    registry.add_authentication_service(OAuth2AuthenticationService(factory))
    
    assert "stub2" in registry
    assert registry.connection_factory_registry.get_connection_factory("stub2") is factory
    assert registry.registered_authentication_provider_ids() == ["stub2"]


def test_duplicate_authentication_service_rejected():
    registry = SocialAuthenticationServiceRegistry()
    registry.add_authentication_service(OAuth1AuthenticationService(make_oauth1_factory(transport)))
    
    with pytest.raises(ValueError):
        registry.add_authentication_service(OAuth1AuthenticationService(make_oauth1_factory(transport)))
    with pytest.raises(ValueError):
        registry.get_authentication_service("stub2")


def test_build_registries_from_settings():
    """Test only providers with configured credentials are registered."""
    settings = Settings(
        facebook_app_id="app-id",
        facebook_app_secret="app-secret",
        facebook_scope="email,public_profile",
        twitter_consumer_key="",
        twitter_consumer_secret="",
    )
    
    factories = build_connection_factory_registry(settings, transport=transport)
    services = build_authentication_service_registry(factories, settings)
    
    assert factories.registered_provider_ids() == ["facebook"]
    assert factories.get_connection_factory_for_api(FacebookApi).provider_id == "facebook"
    service = services.get_authentication_service("facebook")
    assert isinstance(service, OAuth2AuthenticationService)
    assert service.scope == "email,public_profile"


def test_build_registries_with_twitter():
    settings = Settings(
        facebook_app_id="",
        facebook_app_secret="",
        twitter_consumer_key="key",
        twitter_consumer_secret="secret",
    )
    
    factories = build_connection_factory_registry(settings, transport=transport)
    services = build_authentication_service_registry(factories, settings)
    
    assert factories.registered_provider_ids() == ["twitter"]
    assert factories.get_connection_factory_for_api(TwitterApi).provider_id == "twitter"
    assert isinstance(services.get_authentication_service("twitter"), OAuth1AuthenticationService)
