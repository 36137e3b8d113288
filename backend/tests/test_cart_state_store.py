"""
Tests for cart totals derivation.
"""
import pytest

from charmcart.config.cart_config import PricingConfig
from charmcart.models.cart import CartLineItem, CartState
from charmcart.services.cart_state_store import CartStateStore
from charmcart.utils.money import round2


def line(item_id: str, price: float, quantity: int) -> CartLineItem:
    return CartLineItem(id=item_id, title=f"Item {item_id}", price=price, quantity=quantity)


def state_with(*items: CartLineItem) -> CartState:
    return CartState(items=list(items))


class TestRecompute:
    """Test totals derivation."""

    def test_single_item_below_free_shipping(self):
        """Test subtotal, tax, shipping and total for a small cart."""
        store = CartStateStore(PricingConfig())

        result = store.recompute(state_with(line("A", 10.00, 2)))

        assert result.subtotal == 20.00
        assert result.tax == 1.60
        assert result.shipping == 12.99
        assert result.discount == 0.0
        assert result.total == 34.59
        assert result.item_count == 2
        assert result.items[0].line_total == 20.00

    def test_free_shipping_at_threshold(self):
        """Test shipping is free once the subtotal reaches the threshold."""
        store = CartStateStore(PricingConfig())

        result = store.recompute(state_with(line("A", 75.00, 1)))

        assert result.shipping == 0.0
        assert result.total == 81.00

    def test_empty_cart_has_no_shipping(self):
        """Test an empty cart costs nothing."""
        store = CartStateStore(PricingConfig())

        result = store.recompute(CartState())

        assert result.subtotal == 0.0
        assert result.shipping == 0.0
        assert result.total == 0.0
        assert result.item_count == 0

    def test_rounding_after_full_precision(self):
        """Test each field is rounded once from the exact amount."""
        store = CartStateStore(PricingConfig())

        result = store.recompute(state_with(line("A", 19.99, 3)))

        assert result.subtotal == 59.97
        assert result.tax == 4.80
        assert result.total == 77.76

    def test_total_invariant_over_mixed_items(self):
        """Test total and item count agree with the line items."""
        store = CartStateStore(PricingConfig())

        result = store.recompute(state_with(
            line("A", 12.50, 3),
            line("B", 7.25, 1),
            line("C", 3.10, 4)
        ))

        assert result.item_count == 8
        assert result.subtotal == 57.15
        assert result.total == round2(result.subtotal + result.tax + result.shipping - result.discount)

    def test_custom_pricing(self):
        """Test tax rate and shipping come from the pricing config."""
        store = CartStateStore(PricingConfig(tax_rate=0.1, free_shipping_threshold=10, standard_shipping=5))

        result = store.recompute(state_with(line("A", 4.00, 2)))

        assert result.tax == 0.80
        assert result.shipping == 5.0
        assert result.total == 13.80

    def test_input_state_not_modified(self):
        """Test recompute returns a new state."""
        store = CartStateStore(PricingConfig())
        original = state_with(line("A", 10.00, 2))

        store.recompute(original)

        assert original.subtotal == 0.0
        assert original.items[0].line_total == 0.0


class TestDiscountHook:
    """Test the discount hook."""

    def test_discount_applied(self):
        """Test a discount reduces the total."""
        store = CartStateStore(PricingConfig(), discount_hook=lambda state, subtotal: 5)

        result = store.recompute(state_with(line("A", 10.00, 2)))

        assert result.discount == 5.0
        assert result.total == 29.59

    def test_discount_capped_at_amount_due(self):
        """Test a discount never exceeds subtotal plus shipping."""
        store = CartStateStore(PricingConfig(), discount_hook=lambda state, subtotal: 1000)

        result = store.recompute(state_with(line("A", 10.00, 2)))

        assert result.discount == 32.99
        assert result.total == 1.60

    def test_negative_discount_ignored(self):
        """Test a negative discount is treated as none."""
        store = CartStateStore(PricingConfig(), discount_hook=lambda state, subtotal: -3)

        result = store.recompute(state_with(line("A", 10.00, 2)))

        assert result.discount == 0.0
        assert result.total == 34.59


class TestSnapshots:
    """Test snapshot isolation and commits."""

    def test_snapshot_is_a_copy(self):
        """Test mutating a snapshot leaves the store untouched."""
        store = CartStateStore(PricingConfig(), initial=state_with(line("A", 10.00, 2)))

        snapshot = store.get_snapshot()
        snapshot.items[0].quantity = 9
        snapshot.items.append(line("B", 1.00, 1))

        current = store.get_snapshot()
        assert len(current.items) == 1
        assert current.items[0].quantity == 2

    def test_commit_recomputes(self):
        """Test committed state carries derived totals."""
        store = CartStateStore(PricingConfig())

        committed = store.commit(state_with(line("A", 10.00, 2)))

        assert committed.total == 34.59
        assert store.get_summary().total == 34.59

    def test_last_updated_strictly_increases(self):
        """Test every commit moves the timestamp forward."""
        store = CartStateStore(PricingConfig())

        first = store.commit(state_with(line("A", 10.00, 1)))
        second = store.commit(state_with(line("A", 10.00, 2)))

        assert second.last_updated > first.last_updated

    def test_summary(self):
        """Test the summary mirrors the state totals."""
        store = CartStateStore(PricingConfig(), initial=state_with(line("A", 10.00, 2)))

        summary = store.get_summary()

        assert summary.has_items is True
        assert summary.item_count == 2
        assert summary.subtotal == 20.00
        assert summary.currency == "USD"

    @pytest.mark.parametrize("quantity", [1, 3, 10])
    def test_item_count_matches_quantities(self, quantity):
        """Test item count is the sum of quantities."""
        store = CartStateStore(PricingConfig())

        committed = store.commit(state_with(line("A", 2.00, quantity), line("B", 1.00, 1)))

        assert committed.item_count == quantity + 1
