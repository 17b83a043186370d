"""
Store Item Model
================

Catalog entries users can buy and equip.

Schema-only representation of:
- Identity (uuid id, name, type; (name, type) unique)
- Base prices and optional sale prices
- Image reference (unique)

The active price (sale pair when ``on_sale``) is decided by the purchase
service, not here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import BigInteger, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, TimestampMixin, UuidMixin

if TYPE_CHECKING:
    from .possession import Possession


class StoreItem(Base, UuidMixin, TimestampMixin):

    # ========================================================================
    # TABLE CONFIGURATION
    # ========================================================================

    __tablename__ = "store_items"
    __table_args__ = (
        UniqueConstraint("name", "type", name="uq_store_items_name_type"),
    )

    # ========================================================================
    # IDENTITY
    # ========================================================================

    name: Mapped[str] = mapped_column(String(128), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        doc="Equip slot; at most one equipped item per user and type",
    )

    image_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    # ========================================================================
    # PRICING
    # ========================================================================

    coins_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    gems_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    on_sale: Mapped[bool] = mapped_column(nullable=False, default=False)
    sale_coins_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    sale_gems_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # ========================================================================
    # RELATIONSHIPS
    # ========================================================================

    possessions: Mapped[List["Possession"]] = relationship(
        "Possession",
        back_populates="store_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<StoreItem id={self.id} name={self.name!r} type={self.type}>"
