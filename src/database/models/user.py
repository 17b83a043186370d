"""
User Model
==========

Account identity and currency balances.

Schema-only representation of:
- Identity (uuid id, unique name, unique email)
- Credentials (SHA-256 hex password digest)
- Balances (coins, gems; never negative)
- Admin flag

All behavior and business rules live in the service layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, TimestampMixin, UuidMixin

if TYPE_CHECKING:
    from .possession import Possession
    from .user_stats import UserStats


class User(Base, UuidMixin, TimestampMixin):
    """Registered player account."""

    # ========================================================================
    # TABLE CONFIGURATION
    # ========================================================================

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="coins_non_negative"),
        CheckConstraint("gems >= 0", name="gems_non_negative"),
    )

    # ========================================================================
    # IDENTITY
    # ========================================================================

    name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        doc="Display and login name",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        doc="Contact and login email",
    )

    password: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="SHA-256 hex digest of the password",
    )

    is_admin: Mapped[bool] = mapped_column(
        nullable=False,
        default=False,
    )

    # ========================================================================
    # BALANCES
    # ========================================================================

    coins: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Soft currency",
    )

    gems: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Premium currency",
    )

    # ========================================================================
    # RELATIONSHIPS
    # ========================================================================

    possessions: Mapped[List["Possession"]] = relationship(
        "Possession",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    stats: Mapped[List["UserStats"]] = relationship(
        "UserStats",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} coins={self.coins} gems={self.gems}>"
