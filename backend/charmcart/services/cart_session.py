"""
One editing session: a cart engine, a design history and the coordinator
between them, behind the public operation surface used by the API.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from charmcart.config.cart_config import (
    AddItemOptions,
    get_design_options,
    get_engine_options,
)
from charmcart.core.config import Settings, settings as default_settings
from charmcart.core.events import CartEvent, EventBus
from charmcart.core.exceptions import ValidationError
from charmcart.models.cart import CartLineItem, CartState, ValidationResult
from charmcart.models.design import CharmPlacement, DesignMetadata, DesignSnapshot
from charmcart.schemas.cart import CartSummary
from charmcart.schemas.design import DesignBundle, HistoryInfo
from charmcart.services.cart_engine import CartOperationEngine, ItemLike
from charmcart.services.cart_state_store import CartStateStore, DiscountHook
from charmcart.services.design_history import DesignHistoryStack
from charmcart.services.inventory_oracle import InventoryOracle
from charmcart.services.persistence import CartScope, PersistenceGateway
from charmcart.services.reconciliation import ReconciliationCoordinator
from charmcart.utils.helpers import get_current_timestamp

logger = logging.getLogger(__name__)


class CartSession:
    """
    Facade over one session's cart and design history.

    `undo`/`redo` act on the design history. Cart changes have their own
    history, exposed as `undo_cart_change`/`redo_cart_change`.
    """

    def __init__(
        self,
        session_id: str,
        inventory: Optional[InventoryOracle] = None,
        gateway: Optional[PersistenceGateway] = None,
        config: Optional[Settings] = None,
        discount_hook: Optional[DiscountHook] = None
    ):
        config = config or default_settings
        options = get_engine_options(config)
        design_options = get_design_options(config)

        self.session_id = session_id
        self.events = EventBus()
        self.store = CartStateStore(
            options.pricing,
            initial=CartState(currency=options.pricing.currency, session_id=session_id),
            discount_hook=discount_hook
        )
        self.engine = CartOperationEngine(
            self.store,
            self.events,
            inventory=inventory,
            gateway=gateway,
            options=options
        )
        self.history = DesignHistoryStack(
            max_size=design_options.max_history_size,
            position_tolerance=design_options.position_tolerance
        )
        self.coordinator = ReconciliationCoordinator(
            self.engine,
            self.history,
            self.events,
            inventory=inventory,
            design_options=design_options
        )
        self.coordinator.attach()

        self._autosave_task: Optional[asyncio.Task] = None
        self.created_at = get_current_timestamp()
        self.last_accessed = self.created_at

    async def start(self) -> CartState:
        """Load the guest cart for this session and start auto-saving."""
        state = await self.engine.load(CartScope.guest(self.session_id))

        if self.engine.options.enable_persistence and self.engine.gateway is not None:
            self._autosave_task = asyncio.ensure_future(self._autosave_loop())
        return state

    async def close(self) -> None:
        """Stop auto-saving and flush whatever is still dirty."""
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            try:
                await self._autosave_task
            except asyncio.CancelledError:
                pass
            self._autosave_task = None

        await self.engine.flush()
        self.coordinator.detach()
        logger.info(f"Cart session {self.session_id} closed")

    async def _autosave_loop(self) -> None:
        interval = self.engine.options.persistence_interval_seconds
        while True:
            await asyncio.sleep(interval)
            if self.engine.is_dirty:
                await self.engine.flush()

    def touch(self) -> None:
        self.last_accessed = get_current_timestamp()

    def subscribe(self, event: CartEvent, listener):
        return self.events.subscribe(event, listener)

    # ===========================================
    # Cart
    # ===========================================

    async def add_item(
        self,
        item: ItemLike,
        quantity: int = 1,
        opts: Optional[AddItemOptions] = None
    ) -> CartLineItem:
        return await self.engine.add_item(item, quantity, opts)

    async def remove_item(self, line_item_id: str) -> CartLineItem:
        return await self.engine.remove_item(line_item_id)

    async def update_item_quantity(self, line_item_id: str, new_quantity: int) -> CartLineItem:
        return await self.engine.update_item_quantity(line_item_id, new_quantity)

    async def clear_cart(self) -> bool:
        return await self.engine.clear_cart()

    async def validate_inventory(self) -> ValidationResult:
        return await self.engine.validate_inventory()

    def get_cart_state(self) -> CartState:
        return self.engine.get_cart_state()

    def get_cart_summary(self) -> CartSummary:
        return self.engine.get_cart_summary()

    async def sign_in(self, user_id: str) -> CartState:
        return await self.engine.sign_in(user_id)

    async def sign_out(self) -> CartState:
        return await self.engine.sign_out()

    async def sync(self) -> bool:
        return await self.engine.sync()

    async def undo_cart_change(self) -> bool:
        return await self.engine.undo_cart_change()

    async def redo_cart_change(self) -> bool:
        return await self.engine.redo_cart_change()

    def can_undo_cart_change(self) -> bool:
        return self.engine.can_undo_cart_change()

    def can_redo_cart_change(self) -> bool:
        return self.engine.can_redo_cart_change()

    # ===========================================
    # Design
    # ===========================================

    def save_design(
        self,
        charms: Iterable[Union[CharmPlacement, Dict[str, Any]]],
        necklace_id: Optional[str] = None
    ) -> bool:
        """Record the editor state. Returns False when nothing changed."""
        return self.history.push(DesignSnapshot.capture(charms, necklace_id))

    def current_design(self) -> Optional[DesignSnapshot]:
        return self.history.current()

    def undo(self) -> Optional[DesignSnapshot]:
        return self.history.undo()

    def redo(self) -> Optional[DesignSnapshot]:
        return self.history.redo()

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def mark_milestone(self, label: str) -> DesignSnapshot:
        return self.history.mark_milestone(label)

    def history_info(self) -> HistoryInfo:
        return self.history.history_info()

    async def export_design_to_cart(
        self,
        metadata: Optional[DesignMetadata] = None,
        snapshot: Optional[DesignSnapshot] = None
    ) -> CartLineItem:
        """
        Export the current design, or `snapshot`, to the cart.

        Exporting a snapshot that is not in the design history records it as a
        new design state, so any redo entries are discarded.
        """
        return await self.coordinator.export_to_cart(snapshot, metadata)

    def create_design_bundle(self, name: str) -> DesignBundle:
        """Capture the current design and cart together under a name."""
        return DesignBundle(
            bundle_name=name,
            design_state=self.history.current(),
            cart_state=self.engine.get_cart_state(),
            created_at=get_current_timestamp()
        )

    async def load_design_bundle(self, bundle: Union[DesignBundle, Dict[str, Any]]) -> DesignBundle:
        """
        Restore a bundle's cart contents and design.

        The cart is replaced in one step; the design is recorded only after
        the cart was accepted, so a rejected bundle changes nothing.
        """
        if not isinstance(bundle, DesignBundle):
            try:
                bundle = DesignBundle.model_validate(bundle)
            except ValueError as e:
                raise ValidationError(f"Invalid design bundle: {str(e)}") from e

        items: List[CartLineItem] = bundle.cart_state.items if bundle.cart_state else []
        await self.engine.replace_items(items)

        if bundle.design_state is not None:
            self.history.push(bundle.design_state)

        self.coordinator.reconcile()
        logger.info(f"Design bundle loaded: {bundle.bundle_name}")
        return bundle


class SessionRegistry:
    """Creates, tracks and closes cart sessions by session id."""

    def __init__(
        self,
        inventory: Optional[InventoryOracle] = None,
        gateway: Optional[PersistenceGateway] = None,
        config: Optional[Settings] = None
    ):
        self.inventory = inventory
        self.gateway = gateway
        self.config = config or default_settings
        self._sessions: Dict[str, CartSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[CartSession]:
        return self._sessions.get(session_id)

    async def get_or_create(self, session_id: str) -> CartSession:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = CartSession(
                    session_id,
                    inventory=self.inventory,
                    gateway=self.gateway,
                    config=self.config
                )
                await session.start()
                self._sessions[session_id] = session
                logger.info(f"Cart session {session_id} created")

        session.touch()
        return session

    async def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def close_all(self) -> None:
        for session_id in list(self._sessions.keys()):
            await self.close(session_id)

    async def close_idle_sessions(self, max_idle: Optional[timedelta] = None) -> int:
        """
        Close sessions that have not been used within `max_idle`.

        Closing stops auto-save and flushes the cart, so the guest cart is
        still there when the same session id comes back.

        Returns:
            Number of sessions closed
        """
        max_idle = max_idle or timedelta(minutes=self.config.SESSION_IDLE_MINUTES)
        cutoff = get_current_timestamp() - max_idle

        async with self._lock:
            idle = [
                session_id
                for session_id, session in self._sessions.items()
                if session.last_accessed < cutoff
            ]
            sessions = [self._sessions.pop(session_id) for session_id in idle]

        for session in sessions:
            await session.close()

        if sessions:
            logger.info(f"Closed {len(sessions)} idle cart sessions")
        return len(sessions)

    async def cleanup_expired_guest_carts(self) -> int:
        """Purge stored guest carts older than the configured expiry."""
        if self.gateway is None:
            return 0
        max_age = timedelta(hours=self.config.GUEST_CART_EXPIRY_HOURS)
        return await self.gateway.local.cleanup_expired(max_age)
