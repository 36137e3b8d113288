"""
Links design snapshots to the cart line items they produced.

Export binds the current design to a new custom design line item and marks
the history entry as exported. When that line item leaves the cart, by
removal, clearing, undo or sync, the marker is cleared again.
"""
import logging
from decimal import Decimal
from typing import Any, Callable, List, Optional

from charmcart.config.cart_config import AddItemOptions, DesignOptions
from charmcart.core.events import CartEvent, EventBus
from charmcart.core.exceptions import ValidationError
from charmcart.models.cart import CartItemInput, CartLineItem, CartState
from charmcart.models.design import DesignMetadata, DesignPayload, DesignSnapshot
from charmcart.services.cart_engine import CartOperationEngine
from charmcart.services.design_history import DesignHistoryStack
from charmcart.services.inventory_oracle import InventoryOracle
from charmcart.utils.helpers import generate_id, get_current_timestamp
from charmcart.utils.money import round2, to_decimal

logger = logging.getLogger(__name__)

CUSTOM_DESIGN_CATEGORY = "custom_design"

# Events after which markers are checked against the whole cart
RECONCILE_EVENTS = (
    CartEvent.CART_CLEARED,
    CartEvent.CART_UNDONE,
    CartEvent.CART_REDONE,
    CartEvent.CART_SYNCED,
    CartEvent.CART_USER_LOGGED_OUT,
)


class ReconciliationCoordinator:
    """Keeps design history export markers and cart contents in agreement."""

    def __init__(
        self,
        engine: CartOperationEngine,
        history: DesignHistoryStack,
        events: EventBus,
        inventory: Optional[InventoryOracle] = None,
        design_options: Optional[DesignOptions] = None
    ):
        self.engine = engine
        self.history = history
        self.events = events
        self.inventory = inventory
        self.design_options = design_options or DesignOptions()
        self._unsubscribers: List[Callable[[], None]] = []

    def attach(self) -> None:
        """Subscribe to the cart events that can remove exported line items."""
        if self._unsubscribers:
            return

        self._unsubscribers.append(
            self.events.subscribe(CartEvent.CART_ITEM_REMOVED, self._handle_item_removed)
        )
        for event in RECONCILE_EVENTS:
            self._unsubscribers.append(
                self.events.subscribe(event, lambda payload: self.reconcile())
            )

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def price_design(self, snapshot: DesignSnapshot) -> float:
        """
        Price a design: component catalog prices plus a complexity-scaled base fee.

        Components the inventory cannot resolve contribute nothing.
        """
        total = Decimal("0")

        for component_id in snapshot.component_ids:
            price = await self._component_price(component_id)
            if price is not None:
                total += to_decimal(price)

        complexity = max(1.0, len(snapshot.charms) / self.design_options.complexity_divisor)
        total += to_decimal(self.design_options.base_design_fee) * to_decimal(complexity)
        return round2(total)

    async def export_to_cart(
        self,
        snapshot: Optional[DesignSnapshot] = None,
        metadata: Optional[DesignMetadata] = None
    ) -> CartLineItem:
        """
        Add a design to the cart as a custom design line item.

        Defaults to the current history entry. A snapshot already in history
        is marked where it sits, leaving the cursor alone. A snapshot not yet
        in history is pushed first, which drops any redo entries the way a new
        edit does. The exported entry is marked with the new line item id and
        labelled as a milestone.

        Raises:
            ValidationError: there is no design, or it has no charms
        """
        snapshot = snapshot or self.history.current()
        if snapshot is None or not snapshot.charms:
            raise ValidationError("Cannot export an empty design")

        metadata = metadata or DesignMetadata()
        name = metadata.name or f"Custom Necklace Design {get_current_timestamp():%Y-%m-%d %H:%M}"
        price = await self.price_design(snapshot)

        item = CartItemInput(
            id=generate_id("custom_design"),
            title=name,
            description=metadata.description or f"Custom design with {len(snapshot.charms)} charms",
            price=price,
            image_url=metadata.thumbnail_url,
            category=CUSTOM_DESIGN_CATEGORY,
            is_custom_design=True,
            design_data=DesignPayload(snapshot=snapshot, metadata=metadata)
        )
        line = await self.engine.add_item(item, 1, AddItemOptions(skip_validation=True))

        index = self.history.index_of(snapshot.id)
        if index is None:
            self.history.push(snapshot)
            index = self.history.cursor
        self.history.mark_exported(line.line_item_id, index=index)
        self.history.mark_milestone(f"Exported to Cart: {name}", index=index)

        logger.info(f"Design exported to cart: {name} ({line.line_item_id}, {price})")
        return line

    def on_line_item_removed(self, line_item_id: str) -> int:
        """Clear export markers that reference a removed line item."""
        cleared = self.history.clear_exported(line_item_id)
        if cleared:
            logger.info(f"Cleared export marker on {cleared} design states for {line_item_id}")
        return cleared

    def reconcile(self, state: Optional[CartState] = None) -> int:
        """
        Clear every export marker whose line item is no longer in the cart.

        Returns:
            Number of entries un-marked
        """
        state = state or self.engine.get_cart_state()
        present = {item.line_item_id for item in state.items if item.is_custom_design}

        cleared = 0
        stale = {
            snapshot.exported_line_item_id
            for snapshot in self.history.exported_snapshots()
            if snapshot.exported_line_item_id not in present
        }
        for line_item_id in stale:
            cleared += self.on_line_item_removed(line_item_id)
        return cleared

    def _handle_item_removed(self, payload: Any) -> None:
        item = (payload or {}).get("item") or {}
        line_item_id = item.get("line_item_id")
        if line_item_id:
            self.on_line_item_removed(line_item_id)

    async def _component_price(self, component_id: str) -> Optional[float]:
        if self.inventory is None:
            logger.warning(f"No inventory oracle to price design component {component_id}")
            return None

        try:
            record = await self.inventory.get_item(component_id)
        except Exception as e:
            logger.warning(f"Could not price design component {component_id}: {str(e)}")
            return None

        if record is None:
            logger.warning(f"Design component {component_id} not found in inventory")
            return None
        return record.price
