# src/seedkey_backend/models/session.py
"""Server-side login sessions."""

from sqlalchemy import BigInteger, Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from seedkey_backend.db.session import Base


class AuthSession(Base):
    """A login session, invalidatable independently of the tokens bound to it."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Not a foreign key: the key row may be replaced while the session lives on.
    public_key_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    invalidated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
