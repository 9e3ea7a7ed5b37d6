"""
Connection identity, snapshot and profile value types.
"""
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class ConnectionKey:
    """Identifies one provider-side account."""
    provider_id: str
    provider_user_id: str | None

    def __str__(self) -> str:
        return f"{self.provider_id}:{self.provider_user_id}"


@dataclass(frozen=True)
class ConnectionData:
    """Everything needed to rebuild a connection after it has been stored."""
    provider_id: str
    provider_user_id: str | None
    display_name: str | None = None
    profile_url: str | None = None
    image_url: str | None = None
    access_token: str = ""
    secret: str | None = None
    refresh_token: str | None = None
    expire_time: int | None = None

    def __post_init__(self):
        if not self.provider_id:
            raise ValueError("provider_id is required")
        if not self.access_token:
            raise ValueError("access_token is required")

    @property
    def key(self) -> ConnectionKey:
        return ConnectionKey(self.provider_id, self.provider_user_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionData":
        return cls(**{name: data.get(name) for name in cls.__dataclass_fields__})


@dataclass
class ConnectionValues:
    """Profile attributes an ApiAdapter copies from a provider API onto a connection."""
    provider_user_id: str | None = None
    display_name: str | None = None
    profile_url: str | None = None
    image_url: str | None = None


@dataclass
class UserProfile:
    """Normalized user details, used to pre-fill a local account."""
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    username: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
