"""
Connection-related Pydantic schemas.
"""
from pydantic import BaseModel

from socialconnect.connect import Connection, ConnectionData


class ConnectionRead(BaseModel):
    """A stored provider connection, without its credentials."""
    provider_id: str
    provider_user_id: str | None
    display_name: str | None = None
    profile_url: str | None = None
    image_url: str | None = None
    expire_time: int | None = None
    has_expired: bool = False

    @classmethod
    def from_connection(cls, connection: Connection) -> "ConnectionRead":
        data = connection.create_data()
        return cls(
            provider_id=data.provider_id,
            provider_user_id=data.provider_user_id,
            display_name=data.display_name,
            profile_url=data.profile_url,
            image_url=data.image_url,
            expire_time=data.expire_time,
            has_expired=connection.has_expired(),
        )


class ProviderConnections(BaseModel):
    """Connection status for one registered provider."""
    provider_id: str
    connected: bool
    connections: list[ConnectionRead]
    error: str | None = None


class ConnectionTestResult(BaseModel):
    """Whether the provider still accepts the primary connection's credentials."""
    provider_id: str
    provider_user_id: str | None
    valid: bool


class SignInAttemptRead(BaseModel):
    """A provider account waiting for the user to sign up."""
    provider_id: str
    provider_user_id: str | None
    display_name: str | None = None
    profile_url: str | None = None
    image_url: str | None = None

    @classmethod
    def from_data(cls, data: ConnectionData) -> "SignInAttemptRead":
        return cls(
            provider_id=data.provider_id,
            provider_user_id=data.provider_user_id,
            display_name=data.display_name,
            profile_url=data.profile_url,
            image_url=data.image_url,
        )
