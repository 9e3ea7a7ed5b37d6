"""
Provider connections: data model, factories and persistence contracts.
"""
from socialconnect.connect.data import ConnectionData, ConnectionKey, ConnectionValues, UserProfile
from socialconnect.connect.adapter import ApiAdapter
from socialconnect.connect.provider import OAuth1ServiceProvider, OAuth2ServiceProvider
from socialconnect.connect.connection import Connection, OAuth1Connection, OAuth2Connection
from socialconnect.connect.factory import (
    ConnectionFactory,
    OAuth1ConnectionFactory,
    OAuth2ConnectionFactory,
)
from socialconnect.connect.registry import ConnectionFactoryRegistry
from socialconnect.connect.repository import (
    ConnectionRepository,
    ConnectionSignUp,
    UsersConnectionRepository,
)

__all__ = [
    "ConnectionData",
    "ConnectionKey",
    "ConnectionValues",
    "UserProfile",
    "ApiAdapter",
    "OAuth1ServiceProvider",
    "OAuth2ServiceProvider",
    "Connection",
    "OAuth1Connection",
    "OAuth2Connection",
    "ConnectionFactory",
    "OAuth1ConnectionFactory",
    "OAuth2ConnectionFactory",
    "ConnectionFactoryRegistry",
    "ConnectionRepository",
    "ConnectionSignUp",
    "UsersConnectionRepository",
]
