"""
Lookup of connection factories by provider id or API type.
"""
from socialconnect.connect.factory import ConnectionFactory


class ConnectionFactoryRegistry:
    """Connection factories registered for the application, keyed by provider id and API type."""

    def __init__(self, connection_factories: list[ConnectionFactory] | None = None):
        self._factories: dict[str, ConnectionFactory] = {}
        self._api_type_index: dict[type, str] = {}
        for connection_factory in connection_factories or []:
            self.add_connection_factory(connection_factory)

    def add_connection_factory(self, connection_factory: ConnectionFactory) -> None:
        provider_id = connection_factory.provider_id
        if provider_id in self._factories:
            raise ValueError(
                f"A ConnectionFactory for provider '{provider_id}' has already been registered"
            )
        api_type = connection_factory.api_type
        if api_type in self._api_type_index:
            raise ValueError(
                f"A ConnectionFactory for API [{api_type.__name__}] has already been registered"
            )
        self._factories[provider_id] = connection_factory
        self._api_type_index[api_type] = provider_id

    def get_connection_factory(self, provider_id: str) -> ConnectionFactory:
        connection_factory = self._factories.get(provider_id)
        if connection_factory is None:
            raise ValueError(f"No connection factory for service provider '{provider_id}' is registered")
        return connection_factory

    def get_connection_factory_for_api(self, api_type: type) -> ConnectionFactory:
        provider_id = self._api_type_index.get(api_type)
        if provider_id is None:
            raise ValueError(f"No connection factory for API [{api_type.__name__}] is registered")
        return self.get_connection_factory(provider_id)

    def registered_provider_ids(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._factories
