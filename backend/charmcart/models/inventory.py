from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class InventoryStatus(str, Enum):
    """Catalog item status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class InventoryRecord(BaseModel):
    """Current catalog view of one item, as reported by the inventory source."""
    id: str
    title: Optional[str] = None
    price: float = Field(ge=0)
    status: InventoryStatus = InventoryStatus.ACTIVE
    quantity_available: int = Field(default=0, ge=0)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "inv_heart_charm",
                "title": "Heart Charm",
                "price": 12.5,
                "status": "active",
                "quantity_available": 40
            }
        }

    @property
    def is_active(self) -> bool:
        return self.status == InventoryStatus.ACTIVE
