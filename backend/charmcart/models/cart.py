from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from charmcart.models.design import DesignPayload
from charmcart.utils.helpers import generate_id, get_current_timestamp


def generate_line_item_id() -> str:
    """Generate a unique cart line item ID."""
    return generate_id("cart_item")


def generate_session_id() -> str:
    """Generate a unique guest session ID."""
    return generate_id("session")


class CartItemInput(BaseModel):
    """Item offered to the cart, either a catalog product or an exported design."""
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    price: float
    description: str = ""
    image_url: Optional[str] = None
    category: Optional[str] = None
    is_custom_design: bool = False
    design_data: Optional[DesignPayload] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "inv_heart_charm",
                "title": "Heart Charm",
                "price": 12.5,
                "category": "charms"
            }
        }


class CartLineItem(BaseModel):
    """One entry in the cart."""
    line_item_id: str = Field(default_factory=generate_line_item_id)
    id: str  # catalog identity, or a synthetic id for custom designs
    title: str
    description: str = ""
    price: float = Field(ge=0)
    quantity: int = Field(gt=0)
    line_total: float = 0.0
    image_url: Optional[str] = None
    category: Optional[str] = None
    is_custom_design: bool = False
    design_data: Optional[DesignPayload] = None
    added_at: datetime = Field(default_factory=get_current_timestamp)
    last_updated: datetime = Field(default_factory=get_current_timestamp)

    def matches(self, catalog_id: str, is_custom_design: bool = False) -> bool:
        """True when an addition of `catalog_id` should merge into this line."""
        if self.is_custom_design or is_custom_design:
            return False
        return self.id == catalog_id


class CartState(BaseModel):
    """Canonical cart representation. Persisted as-is in both stores."""
    items: List[CartLineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    currency: str = "USD"
    item_count: int = 0
    session_id: str = Field(default_factory=generate_session_id)
    user_id: Optional[str] = None  # None for guest carts
    merged_guest_carts: List[str] = Field(default_factory=list)  # merge keys of guest carts already folded in
    version: str = "1.0"
    last_updated: datetime = Field(default_factory=get_current_timestamp)

    class Config:
        json_schema_extra = {
            "example": {
                "items": [
                    {
                        "line_item_id": "cart_item_9b2c41d07e3f5a18",
                        "id": "A",
                        "title": "Heart Charm",
                        "price": 10.0,
                        "quantity": 2,
                        "line_total": 20.0
                    }
                ],
                "subtotal": 20.0,
                "tax": 1.6,
                "shipping": 12.99,
                "discount": 0.0,
                "total": 34.59,
                "currency": "USD",
                "item_count": 2,
                "session_id": "session_51c2e8a04b9d7f36",
                "user_id": None
            }
        }

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def find_line(self, line_item_id: str) -> Optional[CartLineItem]:
        for item in self.items:
            if item.line_item_id == line_item_id:
                return item
        return None

    def find_match(self, catalog_id: str, is_custom_design: bool = False) -> Optional[CartLineItem]:
        for item in self.items:
            if item.matches(catalog_id, is_custom_design):
                return item
        return None


class InvalidItem(BaseModel):
    """Line item that can no longer be purchased."""
    line_item: CartLineItem
    reason: str
    unavailable_components: List[str] = Field(default_factory=list)


class QuantityIssue(BaseModel):
    """Line item whose quantity exceeds current stock."""
    line_item: CartLineItem
    available: int
    requested: int


class PriceChange(BaseModel):
    """Line item whose catalog price drifted since it was added."""
    line_item: CartLineItem
    old_price: float
    new_price: float


class ValidationResult(BaseModel):
    """Outcome of a full inventory check of the cart."""
    invalid_items: List[InvalidItem] = Field(default_factory=list)
    quantity_issues: List[QuantityIssue] = Field(default_factory=list)
    price_changes: List[PriceChange] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.invalid_items

    @property
    def has_issues(self) -> bool:
        return bool(self.invalid_items or self.quantity_issues or self.price_changes)
