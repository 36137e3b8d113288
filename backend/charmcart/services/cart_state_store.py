"""
Canonical in-memory cart state and the derivation of its totals.
"""
from decimal import Decimal
from typing import Callable, Optional

from charmcart.config.cart_config import PricingConfig
from charmcart.models.cart import CartState
from charmcart.schemas.cart import CartSummary
from charmcart.utils.helpers import next_timestamp
from charmcart.utils.money import quantize, to_decimal

# (state, full-precision subtotal) -> discount amount
DiscountHook = Callable[[CartState, Decimal], float]


def no_discount(state: CartState, subtotal: Decimal) -> float:
    return 0.0


class CartStateStore:
    """
    Holds the current CartState and derives its monetary fields.

    Only the cart operation engine commits to the store; everything else
    reads copies through `get_snapshot`.
    """

    def __init__(
        self,
        pricing: PricingConfig,
        initial: Optional[CartState] = None,
        discount_hook: Optional[DiscountHook] = None
    ):
        self.pricing = pricing
        self.discount_hook = discount_hook or no_discount
        self._state = self.recompute(initial or CartState(currency=pricing.currency))

    def get_snapshot(self) -> CartState:
        """Defensive copy of the current state."""
        return self._state.model_copy(deep=True)

    def recompute(self, state: CartState) -> CartState:
        """
        Derive subtotal, tax, shipping, discount, total and item count.

        Every monetary field is computed at full precision and then rounded
        to the minor unit on its own. Unit prices are already whole cents.
        Returns a new state; the input is not modified.
        """
        result = state.model_copy(deep=True)

        subtotal = Decimal("0")
        item_count = 0
        for item in result.items:
            line_total = to_decimal(item.price) * item.quantity
            item.line_total = float(quantize(line_total))
            subtotal += line_total
            item_count += item.quantity

        tax = subtotal * to_decimal(self.pricing.tax_rate)

        if not result.items or subtotal >= to_decimal(self.pricing.free_shipping_threshold):
            shipping = Decimal("0")
        else:
            shipping = to_decimal(self.pricing.standard_shipping)

        # A coupon is a currency amount; it never exceeds what is being paid.
        discount = quantize(max(self.discount_hook(result, subtotal), 0))
        discount = min(discount, quantize(subtotal) + quantize(shipping))

        total = subtotal + tax + shipping - discount

        result.subtotal = float(quantize(subtotal))
        result.tax = float(quantize(tax))
        result.shipping = float(quantize(shipping))
        result.discount = float(discount)
        result.total = float(quantize(total))
        result.item_count = item_count
        result.currency = result.currency or self.pricing.currency
        return result

    def commit(self, state: CartState) -> CartState:
        """
        Replace the current state with a recomputed copy of `state`.

        The last-updated timestamp only moves forward.
        """
        committed = self.recompute(state)
        committed.last_updated = next_timestamp(self._state.last_updated)
        self._state = committed
        return self.get_snapshot()

    def get_summary(self) -> CartSummary:
        return self.summarize(self._state)

    @staticmethod
    def summarize(state: CartState) -> CartSummary:
        """Totals-only view of a state."""
        return CartSummary(
            item_count=state.item_count,
            subtotal=state.subtotal,
            tax=state.tax,
            shipping=state.shipping,
            discount=state.discount,
            total=state.total,
            currency=state.currency,
            has_items=bool(state.items),
            last_updated=state.last_updated
        )
