"""
Stored provider connections.
"""
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialconnect.database import Base

if TYPE_CHECKING:
    from socialconnect.models.user import User


class UserConnection(Base):
    """
    One local user's connection to one provider account.
    
    Credential columns hold ciphertext; the repository encrypts on write
    and decrypts on read.
    """
    
    __tablename__ = "user_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "provider_id", "rank", name="uq_user_connections_rank"),
        Index("ix_user_connections_user_provider_rank", "user_id", "provider_id", "rank"),
    )
    
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    provider_id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    provider_user_id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    rank: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    display_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    profile_url: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    image_url: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
    )
    access_token: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    secret: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    refresh_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    expire_time: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )  # epoch milliseconds
    
    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="connections",
    )
    
    def __repr__(self) -> str:
        return f"<UserConnection {self.provider_id}:{self.provider_user_id} for user {self.user_id}>"
