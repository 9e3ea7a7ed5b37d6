"""
API routers package.
"""
from socialconnect.routers.auth import router as auth_router
from socialconnect.routers.connect import router as connect_router
from socialconnect.routers.signin import router as signin_router

__all__ = [
    "auth_router",
    "connect_router",
    "signin_router",
]
