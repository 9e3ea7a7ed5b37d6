"""
Service providers: the OAuth operations of a provider plus a way to build
its API client from a credential.
"""
from abc import ABC, abstractmethod
from typing import Any

from socialconnect.oauth1 import OAuth1Template
from socialconnect.oauth2 import OAuth2Template


class OAuth1ServiceProvider(ABC):
    """Provider authorized with OAuth1."""

    api_type: type

    def __init__(self, consumer_key: str, consumer_secret: str, oauth_operations: OAuth1Template):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.oauth_operations = oauth_operations

    @abstractmethod
    def get_api(self, access_token: str, secret: str | None) -> Any:
        """Build an API client authorized with the access token and secret."""


class OAuth2ServiceProvider(ABC):
    """Provider authorized with OAuth2."""

    api_type: type

    def __init__(self, oauth_operations: OAuth2Template):
        self.oauth_operations = oauth_operations

    @abstractmethod
    def get_api(self, access_token: str) -> Any:
        """Build an API client authorized with the access token."""
