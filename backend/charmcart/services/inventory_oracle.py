"""
Inventory source consulted before cart mutations.

Implementations may be slow, fail, or return stale data; timeouts are their
own responsibility.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from charmcart.models.inventory import InventoryRecord, InventoryStatus

logger = logging.getLogger(__name__)


class InventoryOracle(ABC):
    """Answers price, status and stock questions for a catalog item."""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[InventoryRecord]:
        """
        Look up a catalog item.

        Returns:
            The current record, or None when the item does not exist
        """


class MongoInventoryOracle(InventoryOracle):
    """Inventory oracle backed by the MongoDB inventory collection."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "inventory"):
        self.db = db
        self.collection_name = collection_name

    async def get_item(self, item_id: str) -> Optional[InventoryRecord]:
        if ObjectId.is_valid(item_id):
            query = {"_id": ObjectId(item_id)}
        else:
            query = {"_id": item_id}

        document = await self.db[self.collection_name].find_one(query)
        if not document:
            return None

        return self.to_record(document)

    @staticmethod
    def to_record(document: dict) -> InventoryRecord:
        """Map an inventory document to a record."""
        status = document.get("status", InventoryStatus.ACTIVE.value)
        try:
            status = InventoryStatus(status)
        except ValueError:
            logger.warning(f"Unknown inventory status '{status}' for item {document.get('_id')}")
            status = InventoryStatus.INACTIVE

        return InventoryRecord(
            id=str(document["_id"]),
            title=document.get("title"),
            price=document.get("price", 0.0),
            status=status,
            quantity_available=document.get("quantity_available", document.get("stock", 0))
        )
