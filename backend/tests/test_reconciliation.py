"""
Tests for design export and cart/history reconciliation.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from charmcart.config.cart_config import CartEngineOptions, DesignOptions
from charmcart.core.events import CartEvent, EventBus
from charmcart.core.exceptions import ValidationError
from charmcart.models.design import DesignMetadata, DesignSnapshot
from charmcart.models.inventory import InventoryRecord
from charmcart.services.cart_engine import CartOperationEngine
from charmcart.services.cart_state_store import CartStateStore
from charmcart.services.design_history import DesignHistoryStack
from charmcart.services.inventory_oracle import InventoryOracle
from charmcart.services.reconciliation import ReconciliationCoordinator


class PriceList(InventoryOracle):
    """Inventory that only knows prices."""

    def __init__(self, **prices):
        self.prices = prices

    async def get_item(self, item_id):
        if item_id not in self.prices:
            return None
        return InventoryRecord(id=item_id, price=self.prices[item_id], quantity_available=10)


def design(*component_ids):
    return DesignSnapshot.capture([
        {"id": f"charm_{index}", "inventory_id": component_id, "x": index * 20, "y": 5}
        for index, component_id in enumerate(component_ids)
    ])


def make_coordinator(inventory=None):
    options = CartEngineOptions()
    events = EventBus()
    engine = CartOperationEngine(CartStateStore(options.pricing), events, inventory=inventory, options=options)
    history = DesignHistoryStack()
    coordinator = ReconciliationCoordinator(
        engine,
        history,
        events,
        inventory=inventory,
        design_options=DesignOptions()
    )
    coordinator.attach()
    return coordinator


class TestPriceDesign:
    """Test custom design pricing."""

    @pytest.mark.asyncio
    async def test_components_plus_base_fee(self):
        """Test a small design costs its components plus the base fee."""
        coordinator = make_coordinator(PriceList(heart=12.5, star=7.5))

        price = await coordinator.price_design(design("heart", "star"))

        assert price == 45.0

    @pytest.mark.asyncio
    async def test_fee_scales_with_complexity(self):
        """Test the base fee grows with the number of charms."""
        coordinator = make_coordinator(PriceList(bead=1.0))

        price = await coordinator.price_design(design(*["bead"] * 10))

        assert price == 60.0

    @pytest.mark.asyncio
    async def test_unknown_component_contributes_nothing(self):
        """Test components missing from inventory are priced at zero."""
        coordinator = make_coordinator(PriceList(heart=12.5))

        price = await coordinator.price_design(design("heart", "ghost"))

        assert price == 37.5

    @pytest.mark.asyncio
    async def test_oracle_failure_contributes_nothing(self):
        """Test an inventory failure does not fail pricing."""
        inventory = MagicMock()
        inventory.get_item = AsyncMock(side_effect=RuntimeError("timeout"))
        coordinator = make_coordinator(inventory)

        price = await coordinator.price_design(design("heart"))

        assert price == 25.0


class TestExportToCart:
    """Test exporting designs to the cart."""

    @pytest.mark.asyncio
    async def test_export_current_design(self):
        """Test export adds a custom design line and marks the history entry."""
        coordinator = make_coordinator(PriceList(heart=12.5, star=7.5))
        snapshot = design("heart", "star")
        coordinator.history.push(snapshot)

        line = await coordinator.export_to_cart(metadata=DesignMetadata(name="My Necklace"))

        assert line.is_custom_design is True
        assert line.price == 45.0
        assert line.title == "My Necklace"
        assert line.design_data.snapshot.id == snapshot.id
        current = coordinator.history.current()
        assert current.exported_line_item_id == line.line_item_id
        assert current.milestone == "Exported to Cart: My Necklace"
        assert len(coordinator.history) == 1

    @pytest.mark.asyncio
    async def test_export_skips_stock_checks(self):
        """Test export succeeds even when no component is in inventory."""
        coordinator = make_coordinator(PriceList())
        coordinator.history.push(design("heart"))

        line = await coordinator.export_to_cart()

        assert coordinator.engine.get_item(line.line_item_id) is not None

    @pytest.mark.asyncio
    async def test_export_same_design_twice(self):
        """Test each export creates its own line item."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        coordinator.history.push(design("heart"))

        await coordinator.export_to_cart()
        await coordinator.export_to_cart()

        assert len(coordinator.engine.get_cart_state().items) == 2

    @pytest.mark.asyncio
    async def test_export_earlier_entry_keeps_redo(self):
        """Test exporting a design already in history marks it in place."""
        coordinator = make_coordinator(PriceList(heart=10.0, star=5.0))
        first = design("heart")
        coordinator.history.push(first)
        coordinator.history.push(design("heart", "star"))
        coordinator.history.push(design("star"))
        coordinator.history.undo()

        line = await coordinator.export_to_cart(snapshot=first)

        assert len(coordinator.history) == 3
        assert coordinator.history.cursor == 1
        assert coordinator.history.can_redo() is True
        assert coordinator.history.entries[0].exported_line_item_id == line.line_item_id
        assert coordinator.history.current().is_exported is False

    @pytest.mark.asyncio
    async def test_export_new_snapshot_becomes_current(self):
        """Test exporting a design not yet in history records it as the newest state."""
        coordinator = make_coordinator(PriceList(heart=10.0, star=5.0))
        coordinator.history.push(design("heart"))
        coordinator.history.push(design("heart", "star"))
        coordinator.history.undo()
        fresh = design("star")

        line = await coordinator.export_to_cart(snapshot=fresh)

        assert len(coordinator.history) == 2
        assert coordinator.history.current().id == fresh.id
        assert coordinator.history.current().exported_line_item_id == line.line_item_id
        assert coordinator.history.can_redo() is False

    @pytest.mark.asyncio
    async def test_export_without_design(self):
        """Test exporting with no design raises ValidationError."""
        coordinator = make_coordinator(PriceList())

        with pytest.raises(ValidationError):
            await coordinator.export_to_cart()

    @pytest.mark.asyncio
    async def test_export_empty_design(self):
        """Test exporting a design without charms raises ValidationError."""
        coordinator = make_coordinator(PriceList())
        coordinator.history.push(DesignSnapshot.capture([]))

        with pytest.raises(ValidationError):
            await coordinator.export_to_cart()

        assert coordinator.engine.is_empty()


class TestReconciliation:
    """Test keeping export markers in sync with the cart."""

    async def exported(self, coordinator):
        coordinator.history.push(design("heart"))
        return await coordinator.export_to_cart()

    @pytest.mark.asyncio
    async def test_removal_clears_marker(self):
        """Test removing the exported line item un-marks the design."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        line = await self.exported(coordinator)

        await coordinator.engine.remove_item(line.line_item_id)

        assert coordinator.history.current().is_exported is False
        assert coordinator.history.current().milestone is not None

    @pytest.mark.asyncio
    async def test_clear_cart_clears_markers(self):
        """Test clearing the cart un-marks every exported design."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        await self.exported(coordinator)

        await coordinator.engine.clear_cart()

        assert coordinator.history.exported_snapshots() == []

    @pytest.mark.asyncio
    async def test_cart_undo_clears_marker(self):
        """Test undoing the export in the cart un-marks the design."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        await self.exported(coordinator)

        await coordinator.engine.undo_cart_change()

        assert coordinator.engine.is_empty()
        assert coordinator.history.exported_snapshots() == []

    @pytest.mark.asyncio
    async def test_other_removals_keep_marker(self):
        """Test removing an unrelated item leaves the marker alone."""
        coordinator = make_coordinator(PriceList(heart=10.0, chain=20.0))
        other = await coordinator.engine.add_item({"id": "chain", "title": "Chain", "price": 20.0})
        line = await self.exported(coordinator)

        await coordinator.engine.remove_item(other.line_item_id)

        assert coordinator.history.current().exported_line_item_id == line.line_item_id

    @pytest.mark.asyncio
    async def test_detach(self):
        """Test a detached coordinator no longer reacts to removals."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        line = await self.exported(coordinator)
        coordinator.detach()

        await coordinator.engine.remove_item(line.line_item_id)

        assert coordinator.history.current().is_exported is True
        assert coordinator.events.listener_count(CartEvent.CART_ITEM_REMOVED) == 0

    @pytest.mark.asyncio
    async def test_reconcile_against_state(self):
        """Test reconcile un-marks entries whose line item is gone."""
        coordinator = make_coordinator(PriceList(heart=10.0))
        await self.exported(coordinator)
        coordinator.detach()
        await coordinator.engine.clear_cart()

        assert coordinator.reconcile() == 1
        assert coordinator.reconcile() == 0
