"""
Lookup of authentication services by provider id.
"""
from socialconnect.connect import ConnectionFactoryRegistry
from socialconnect.security.services import SocialAuthenticationService


class SocialAuthenticationServiceRegistry:
    """
    Authentication services for sign-in.
    
    Adding a service also registers its connection factory with the
    connection factory registry, so the connect flow and the repositories
    know the provider.
    """

    def __init__(self, connection_factory_registry: ConnectionFactoryRegistry | None = None):
        self.connection_factory_registry = connection_factory_registry or ConnectionFactoryRegistry()
        self._services: dict[str, SocialAuthenticationService] = {}

    def add_authentication_service(self, authentication_service: SocialAuthenticationService) -> None:
        provider_id = authentication_service.provider_id
        if provider_id in self._services:
            raise ValueError(
                f"An authentication service for provider '{provider_id}' has already been registered"
            )
        if provider_id not in self.connection_factory_registry:
            self.connection_factory_registry.add_connection_factory(authentication_service.connection_factory)
        self._services[provider_id] = authentication_service

    def get_authentication_service(self, provider_id: str) -> SocialAuthenticationService:
        authentication_service = self._services.get(provider_id)
        if authentication_service is None:
            raise ValueError(f"No authentication service for service provider '{provider_id}' is registered")
        return authentication_service

    def registered_authentication_provider_ids(self) -> list[str]:
        return list(self._services)

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._services
