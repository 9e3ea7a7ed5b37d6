"""
Authentication token produced by a provider sign-in.
"""
from typing import Any

from socialconnect.connect import Connection, ConnectionData


class SocialAuthenticationToken:
    """
    A provider connection offered as proof of identity.
    
    Unauthenticated tokens come out of an authentication service; the
    authentication provider returns an authenticated copy carrying the
    local user id and user.
    """

    def __init__(
        self,
        connection: Connection,
        principal: str | None = None,
        user: Any = None,
    ):
        self.connection = connection
        self.principal = principal
        self.user = user

    @property
    def authenticated(self) -> bool:
        return self.principal is not None

    @property
    def provider_id(self) -> str:
        return self.connection.key.provider_id

    @property
    def connection_data(self) -> ConnectionData:
        return self.connection.create_data()

    def __repr__(self) -> str:
        return f"<SocialAuthenticationToken {self.connection.key} principal={self.principal!r}>"
