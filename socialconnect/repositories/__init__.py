"""
Implementations of the connection repositories: SQLAlchemy-backed and in-memory.
"""
from socialconnect.repositories.memory import InMemoryConnectionRepository, InMemoryUsersConnectionRepository
from socialconnect.repositories.sql import SQLConnectionRepository, SQLUsersConnectionRepository

__all__ = [
    "InMemoryConnectionRepository",
    "InMemoryUsersConnectionRepository",
    "SQLConnectionRepository",
    "SQLUsersConnectionRepository",
]
