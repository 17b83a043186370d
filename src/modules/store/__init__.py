"""
Store: catalog management, purchases, refunds and equip slots.
"""

from src.modules.store.equip_service import EquipService
from src.modules.store.purchase_service import PurchaseService, active_price
from src.modules.store.repositories import PossessionRepository, StoreItemRepository
from src.modules.store.service import StoreItemsService, serialize_item

__all__ = [
    "StoreItemsService",
    "PurchaseService",
    "EquipService",
    "StoreItemRepository",
    "PossessionRepository",
    "active_price",
    "serialize_item",
]
