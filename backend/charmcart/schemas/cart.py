from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from charmcart.models.cart import CartItemInput, CartLineItem, ValidationResult


class AddToCartRequest(BaseModel):
    """Schema for adding an item to the cart."""
    item: CartItemInput
    quantity: int = Field(default=1, gt=0)
    skip_validation: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "item": {
                    "id": "inv_heart_charm",
                    "title": "Heart Charm",
                    "price": 12.5
                },
                "quantity": 2
            }
        }


class UpdateCartItemRequest(BaseModel):
    """Schema for updating cart item quantity."""
    quantity: int = Field(gt=0)

    class Config:
        json_schema_extra = {
            "example": {
                "quantity": 3
            }
        }


class SignInRequest(BaseModel):
    """Schema for attaching an authenticated identity to the cart session."""
    user_id: str = Field(min_length=1)


class CartSummary(BaseModel):
    """Totals-only view of the cart."""
    item_count: int
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    currency: str
    has_items: bool
    last_updated: datetime


class CartResponse(BaseModel):
    """Schema for cart response."""
    items: List[CartLineItem]
    summary: CartSummary
    session_id: str
    user_id: Optional[str] = None

    class Config:
        from_attributes = True


class ValidationResultResponse(BaseModel):
    """Schema for the pre-checkout inventory check."""
    is_valid: bool
    invalid_items: List[dict]
    quantity_issues: List[dict]
    price_changes: List[dict]

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResultResponse":
        return cls(
            is_valid=result.is_valid,
            invalid_items=[entry.model_dump(mode="json") for entry in result.invalid_items],
            quantity_issues=[entry.model_dump(mode="json") for entry in result.quantity_issues],
            price_changes=[entry.model_dump(mode="json") for entry in result.price_changes]
        )


class HistoryActionResponse(BaseModel):
    """Schema for undo/redo responses."""
    success: bool
    message: str
