"""
Session storage for state carried between the legs of a provider flow.
"""
from typing import Any, Protocol

# Session key holding the id of the signed-in local user
AUTHENTICATED_USER_KEY = "user_id"


class SessionStore(Protocol):
    """String-keyed storage scoped to one browser session. Values must be JSON serializable."""

    def get(self, name: str, default: Any = None) -> Any:
        ...

    def set(self, name: str, value: Any) -> None:
        ...

    def remove(self, name: str) -> None:
        ...


class DictSessionStore:
    """Session store over a plain dict; also adapts Starlette's ``request.session``."""

    def __init__(self, data: dict | None = None):
        self.data = data if data is not None else {}

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.data[name] = value

    def remove(self, name: str) -> None:
        self.data.pop(name, None)


def session_store_for(request) -> DictSessionStore:
    """Session store backed by the request's signed session cookie."""
    return DictSessionStore(request.session)
