# src/seedkey_backend/models/user.py
"""SQLAlchemy models for users and their single public key."""

from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seedkey_backend.db.session import Base


class User(Base):
    """Identity anchor; owns exactly one public key."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_login: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    public_key: Mapped[PublicKey | None] = relationship(
        "PublicKey",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )


class PublicKey(Base):
    """The active key of a user. Rotation deletes this row and inserts a new one."""

    __tablename__ = "public_keys"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # One key per user, and one user per key.
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    public_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    device_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_used: Mapped[int] = mapped_column(BigInteger, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="public_key")
