"""
Possession Model
================

Ownership of a store item by a user, plus its equip flag.

Schema-only representation of the ``users_store_items`` association.
Invariant (enforced by the equip service under row locks): per user and
item type, at most one possession has ``equipped = True``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base

if TYPE_CHECKING:
    from .store_item import StoreItem
    from .user import User


class Possession(Base):

    __tablename__ = "users_store_items"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    store_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("store_items.id", ondelete="CASCADE"),
        primary_key=True,
    )

    equipped: Mapped[bool] = mapped_column(nullable=False, default=False)

    user: Mapped["User"] = relationship("User", back_populates="possessions")
    store_item: Mapped["StoreItem"] = relationship(
        "StoreItem", back_populates="possessions"
    )

    def __repr__(self) -> str:
        return (
            f"<Possession user_id={self.user_id} "
            f"store_item_id={self.store_item_id} equipped={self.equipped}>"
        )
