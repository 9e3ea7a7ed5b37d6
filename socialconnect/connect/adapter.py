"""
Adapter between a provider API client and the generic connection model.
"""
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from socialconnect.connect.data import ConnectionValues, UserProfile

A = TypeVar("A")


class ApiAdapter(ABC, Generic[A]):
    """Knows how to read identity and profile data from one kind of API client."""

    @abstractmethod
    async def test(self, api: A) -> bool:
        """Make a cheap call to check the credential is still accepted."""

    @abstractmethod
    async def set_connection_values(self, api: A, values: ConnectionValues) -> None:
        """Copy provider user id, display name, profile and image URL onto ``values``."""

    @abstractmethod
    async def fetch_user_profile(self, api: A) -> UserProfile:
        """Fetch a normalized profile for the connected user."""
