"""
Cart engine configuration.

Every tunable is resolved once, when a session is built, into one of the
frozen structs below. Components receive the struct they need and never
read the environment themselves.
"""

from typing import Optional
from pydantic import BaseModel, Field

from charmcart.core.config import Settings, settings as default_settings


class PricingConfig(BaseModel):
    """Inputs to the totals derivation."""
    tax_rate: float = Field(default=0.08, ge=0)
    free_shipping_threshold: float = Field(default=75.0, ge=0)
    standard_shipping: float = Field(default=12.99, ge=0)
    currency: str = "USD"

    class Config:
        frozen = True


class CartLimits(BaseModel):
    """Hard limits enforced on every mutation."""
    max_items: int = Field(default=50, gt=0)  # distinct line items
    max_quantity_per_item: int = Field(default=10, gt=0)
    max_price: float = Field(default=10000.0, gt=0)

    class Config:
        frozen = True


class DesignOptions(BaseModel):
    """Design history and custom design pricing."""
    max_history_size: int = Field(default=50, gt=0)
    position_tolerance: float = Field(default=1.0, ge=0)
    base_design_fee: float = Field(default=25.0, ge=0)
    complexity_divisor: int = Field(default=5, gt=0)

    class Config:
        frozen = True


class CartEngineOptions(BaseModel):
    """Behaviour switches for the cart operation engine."""
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    limits: CartLimits = Field(default_factory=CartLimits)
    enable_persistence: bool = True
    persistence_interval_seconds: float = Field(default=30.0, gt=0)
    max_cart_history: int = Field(default=20, ge=0)
    strict_merge: bool = False

    class Config:
        frozen = True


class AddItemOptions(BaseModel):
    """Per-call options for adding an item to the cart."""
    skip_validation: bool = False

    class Config:
        frozen = True


def get_pricing_config(config: Optional[Settings] = None) -> PricingConfig:
    """Build the pricing configuration from application settings."""
    config = config or default_settings
    return PricingConfig(
        tax_rate=config.TAX_RATE,
        free_shipping_threshold=config.FREE_SHIPPING_THRESHOLD,
        standard_shipping=config.STANDARD_SHIPPING,
        currency=config.CURRENCY
    )


def get_cart_limits(config: Optional[Settings] = None) -> CartLimits:
    """Build the cart limits from application settings."""
    config = config or default_settings
    return CartLimits(
        max_items=config.MAX_CART_ITEMS,
        max_quantity_per_item=config.MAX_QUANTITY_PER_ITEM,
        max_price=config.MAX_ITEM_PRICE
    )


def get_design_options(config: Optional[Settings] = None) -> DesignOptions:
    """Build the design editor options from application settings."""
    config = config or default_settings
    return DesignOptions(
        max_history_size=config.MAX_DESIGN_HISTORY,
        position_tolerance=config.POSITION_TOLERANCE,
        base_design_fee=config.BASE_DESIGN_FEE,
        complexity_divisor=config.DESIGN_COMPLEXITY_DIVISOR
    )


def get_engine_options(config: Optional[Settings] = None) -> CartEngineOptions:
    """Build the full engine options from application settings."""
    config = config or default_settings
    return CartEngineOptions(
        pricing=get_pricing_config(config),
        limits=get_cart_limits(config),
        enable_persistence=config.ENABLE_PERSISTENCE,
        persistence_interval_seconds=config.PERSISTENCE_INTERVAL_SECONDS,
        max_cart_history=config.MAX_CART_HISTORY,
        strict_merge=config.STRICT_GUEST_MERGE
    )
