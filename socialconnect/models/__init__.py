"""
SQLAlchemy models package.
"""
from socialconnect.models.user import User
from socialconnect.models.connection import UserConnection

__all__ = ["User", "UserConnection"]
