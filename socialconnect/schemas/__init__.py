"""
Pydantic schemas package.
"""
from socialconnect.schemas.user import (
    UserCreate,
    UserRead,
    Token,
    LoginRequest,
    RefreshRequest,
)
from socialconnect.schemas.connection import (
    ConnectionRead,
    ConnectionTestResult,
    ProviderConnections,
    SignInAttemptRead,
)

__all__ = [
    "UserCreate",
    "UserRead",
    "Token",
    "LoginRequest",
    "RefreshRequest",
    "ConnectionRead",
    "ConnectionTestResult",
    "ProviderConnections",
    "SignInAttemptRead",
]
