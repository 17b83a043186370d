"""
User Stats Model
================

Match statistics for a user. Exactly one row per user is expected; the
stats service treats any other count as a corrupted profile.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, UuidMixin

if TYPE_CHECKING:
    from .user import User


class UserStats(Base, UuidMixin):

    __tablename__ = "user_stats"

    # No unique constraint on user_id: duplicates must stay detectable
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    wins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    top5: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    kills: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    games: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    user: Mapped["User"] = relationship("User", back_populates="stats")
