"""
OAuth2 grants, parameters and authorization header styles.
"""
import time
from collections.abc import Iterator
from enum import Enum


def now_millis() -> int:
    return int(time.time() * 1000)


class GrantType(str, Enum):
    """Flow requested on the authorize URL."""
    AUTHORIZATION_CODE = "code"
    IMPLICIT_GRANT = "token"


class OAuth2Version(str, Enum):
    """
    Style of the ``Authorization`` header sent with API requests.
    
    Providers that implemented early drafts of OAuth2 expect one of the
    legacy styles.
    """
    BEARER = "Bearer"
    DRAFT_12 = "OAuth2"
    DRAFT_10 = "OAuth"
    DRAFT_8 = "Token"

    def authorization_header_value(self, access_token: str) -> str:
        if self is OAuth2Version.DRAFT_8:
            return f'Token token="{access_token}"'
        return f"{self.value} {access_token}"


class AccessGrant:
    """
    The result of a successful token exchange.
    
    ``expire_time`` is in epoch milliseconds; None means the token does
    not expire.
    """

    def __init__(
        self,
        access_token: str,
        scope: str | None = None,
        refresh_token: str | None = None,
        expires_in: int | None = None,
        extra: dict | None = None,
    ):
        self.access_token = access_token
        self.scope = scope
        self.refresh_token = refresh_token
        self.expire_time = now_millis() + expires_in * 1000 if expires_in is not None else None
        self.extra = extra or {}

    def __repr__(self) -> str:
        return f"<AccessGrant scope={self.scope!r} expire_time={self.expire_time}>"


class OAuth2Parameters:
    """
    Ordered, multi-valued parameters for the authorize URL.
    
    Iteration yields ``(name, value)`` pairs in insertion order.
    """

    def __init__(self, initial: dict[str, str | list[str]] | None = None):
        self._params: dict[str, list[str]] = {}
        for name, value in (initial or {}).items():
            if isinstance(value, list):
                self._params[name] = list(value)
            else:
                self._params[name] = [value]

    def add(self, name: str, value: str) -> None:
        self._params.setdefault(name, []).append(value)

    def set(self, name: str, value: str) -> None:
        self._params[name] = [value]

    def get_first(self, name: str) -> str | None:
        values = self._params.get(name)
        return values[0] if values else None

    def __contains__(self, name: str) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for name, values in self._params.items():
            for value in values:
                yield name, value

    def __len__(self) -> int:
        return len(self._params)

    @property
    def redirect_uri(self) -> str | None:
        return self.get_first("redirect_uri")

    @redirect_uri.setter
    def redirect_uri(self, value: str) -> None:
        self.set("redirect_uri", value)

    @property
    def scope(self) -> str | None:
        return self.get_first("scope")

    @scope.setter
    def scope(self, value: str) -> None:
        self.set("scope", value)

    @property
    def state(self) -> str | None:
        return self.get_first("state")

    @state.setter
    def state(self, value: str) -> None:
        self.set("state", value)
