"""
Cart operation engine - the only writer of cart state.

Every mutation follows the same path:
1. validate the input shape
2. consult the inventory oracle when stock matters (never for custom designs)
3. mutate a working copy of the current state
4. commit the copy to the store, which recomputes the totals
5. schedule persistence (best-effort, never blocks or fails the operation)
6. publish one event describing the outcome

Mutations are serialized by a per-cart lock, so two operations never
interleave across the oracle or gateway suspension points. A failed
operation leaves the committed state untouched.
"""
import asyncio
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from charmcart.config.cart_config import AddItemOptions, CartEngineOptions, CartLimits
from charmcart.core.events import CartEvent, EventBus
from charmcart.core.exceptions import (
    CartError,
    InventoryError,
    MergeConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from charmcart.models.cart import (
    CartItemInput,
    CartLineItem,
    CartState,
    InvalidItem,
    PriceChange,
    QuantityIssue,
    ValidationResult,
    generate_line_item_id,
)
from charmcart.schemas.cart import CartSummary, ValidationResultResponse
from charmcart.services.cart_state_store import CartStateStore
from charmcart.services.inventory_oracle import InventoryOracle
from charmcart.services.persistence import CartScope, PersistenceGateway
from charmcart.utils.helpers import get_current_timestamp
from charmcart.utils.money import round2

logger = logging.getLogger(__name__)

ItemLike = Union[CartItemInput, CartLineItem, Dict[str, Any]]

# Catalog price drift below this is ignored
PRICE_CHANGE_TOLERANCE = 0.01


class CartOperationEngine:
    """Validated, ordered mutation operations over a CartStateStore."""

    def __init__(
        self,
        store: CartStateStore,
        events: EventBus,
        inventory: Optional[InventoryOracle] = None,
        gateway: Optional[PersistenceGateway] = None,
        options: Optional[CartEngineOptions] = None
    ):
        self.store = store
        self.events = events
        self.inventory = inventory
        self.gateway = gateway
        self.options = options or CartEngineOptions()

        self._lock = asyncio.Lock()
        self._persist_lock = asyncio.Lock()
        self._pending: Set[asyncio.Future] = set()
        self._version = 0
        self._persisted_version = 0

        self._undo_stack: List[CartState] = []
        self._redo_stack: List[CartState] = []

        self.last_error: Optional[Dict[str, Any]] = None

    @property
    def limits(self) -> CartLimits:
        return self.options.limits

    @property
    def is_dirty(self) -> bool:
        """True when the committed state has not reached storage yet."""
        return self._version > self._persisted_version

    # ===========================================
    # Reads
    # ===========================================

    def get_cart_state(self) -> CartState:
        return self.store.get_snapshot()

    def get_cart_summary(self) -> CartSummary:
        return self.store.get_summary()

    def get_item(self, line_item_id: str) -> Optional[CartLineItem]:
        return self.store.get_snapshot().find_line(line_item_id)

    def has_item(self, catalog_id: str) -> bool:
        return any(item.id == catalog_id for item in self.store.get_snapshot().items)

    def is_empty(self) -> bool:
        return not self.store.get_summary().has_items

    # ===========================================
    # Core cart operations
    # ===========================================

    async def add_item(
        self,
        item: ItemLike,
        quantity: int = 1,
        opts: Optional[AddItemOptions] = None
    ) -> CartLineItem:
        """
        Add an item to the cart.

        A non-custom item already in the cart has its quantity increased
        instead of gaining a second line.

        Raises:
            ValidationError: malformed item, bad quantity, or cart full
            InventoryError: inactive item or insufficient stock
        """
        opts = opts or AddItemOptions()
        try:
            async with self._lock:
                line, event, payload = await self._add_item(item, quantity, opts)
        except Exception as e:
            self._handle_error("Failed to add item to cart", e)
            raise

        self.events.publish(event, payload)
        logger.info(f"Added item to cart: {line.title} (qty: {quantity})")
        return line

    async def remove_item(self, line_item_id: str) -> CartLineItem:
        """
        Remove a line item.

        Raises:
            NotFoundError: no line item with this id
        """
        try:
            async with self._lock:
                previous = self.store.get_snapshot()
                removed = previous.find_line(line_item_id)
                if removed is None:
                    raise NotFoundError("Item not found in cart")

                state = previous.model_copy(deep=True)
                state.items = [item for item in state.items if item.line_item_id != line_item_id]
                self._commit(state, previous)
        except Exception as e:
            self._handle_error("Failed to remove item from cart", e)
            raise

        self.events.publish(CartEvent.CART_ITEM_REMOVED, {
            "item": removed.model_dump(mode="json"),
            "summary": self._summary_payload()
        })
        logger.info(f"Removed item from cart: {removed.title}")
        return removed

    async def update_item_quantity(self, line_item_id: str, new_quantity: int) -> CartLineItem:
        """
        Set the quantity of a line item, re-checking availability.

        Raises:
            ValidationError: quantity not a positive integer or above the maximum
            NotFoundError: no line item with this id
            InventoryError: insufficient stock for the new quantity
        """
        try:
            async with self._lock:
                line, payload = await self._update_quantity(line_item_id, new_quantity)
        except Exception as e:
            self._handle_error("Failed to update item quantity", e)
            raise

        self.events.publish(CartEvent.CART_ITEM_UPDATED, payload)
        return line

    async def clear_cart(self) -> bool:
        """Remove every line item. Succeeds without change when already empty."""
        try:
            async with self._lock:
                previous = self.store.get_snapshot()
                if not previous.items:
                    return True

                removed_ids = [item.line_item_id for item in previous.items]
                state = previous.model_copy(deep=True)
                state.items = []
                self._commit(state, previous)
        except Exception as e:
            self._handle_error("Failed to clear cart", e)
            raise

        self.events.publish(CartEvent.CART_CLEARED, {
            "item_count": len(removed_ids),
            "removed_line_item_ids": removed_ids,
            "summary": self._summary_payload()
        })
        logger.info(f"Cleared cart ({len(removed_ids)} items removed)")
        return True

    async def replace_items(self, items: Iterable[ItemLike]) -> CartState:
        """
        Atomically replace the cart contents, e.g. when restoring a bundle.

        Items are validated like `add_item` but not checked against inventory.
        Line item ids carried by the input are kept.
        """
        try:
            async with self._lock:
                previous = self.store.get_snapshot()
                state = previous.model_copy(deep=True)
                state.items = []

                for item in items:
                    quantity = item.get("quantity", 1) if isinstance(item, dict) else getattr(item, "quantity", 1)
                    candidate = self._validate_item(item)
                    self._validate_quantity(quantity)

                    existing = state.find_match(candidate.id, candidate.is_custom_design)
                    if existing is not None:
                        self._validate_quantity(existing.quantity + quantity)
                        existing.quantity += quantity
                        continue

                    if len(state.items) >= self.limits.max_items:
                        raise ValidationError(
                            f"Cart limit reached. Maximum {self.limits.max_items} items allowed."
                        )

                    line = self._build_line(candidate, quantity)
                    line_item_id = item.get("line_item_id") if isinstance(item, dict) else getattr(item, "line_item_id", None)
                    if line_item_id and state.find_line(line_item_id) is None:
                        line.line_item_id = line_item_id
                    state.items.append(line)

                committed = self._commit(state, previous)
        except Exception as e:
            self._handle_error("Failed to restore cart items", e)
            raise

        self.events.publish(CartEvent.CART_UPDATED, self._summary_payload())
        return committed

    # ===========================================
    # Inventory validation
    # ===========================================

    async def validate_inventory(self) -> ValidationResult:
        """
        Classify every line item against current inventory.

        Never mutates the cart. Custom designs are checked through the
        catalog components they embed.
        """
        result = ValidationResult()

        if self.inventory is None:
            logger.warning("Cannot validate inventory without an inventory oracle")
            return result

        state = self.store.get_snapshot()

        for line in state.items:
            if line.is_custom_design:
                components = line.design_data.component_ids if line.design_data else ()
                unavailable = await self._unavailable_components(components)
                if unavailable:
                    result.invalid_items.append(InvalidItem(
                        line_item=line,
                        reason="Custom design components unavailable",
                        unavailable_components=unavailable
                    ))
                continue

            try:
                record = await self.inventory.get_item(line.id)
            except Exception as e:
                logger.warning(f"Unable to validate item {line.id}: {str(e)}")
                result.invalid_items.append(InvalidItem(line_item=line, reason="Unable to validate item"))
                continue

            if record is None or not record.is_active:
                result.invalid_items.append(InvalidItem(line_item=line, reason="Item no longer available"))
                continue

            if record.quantity_available < line.quantity:
                result.quantity_issues.append(QuantityIssue(
                    line_item=line,
                    available=record.quantity_available,
                    requested=line.quantity
                ))

            if abs(record.price - line.price) > PRICE_CHANGE_TOLERANCE:
                result.price_changes.append(PriceChange(
                    line_item=line,
                    old_price=line.price,
                    new_price=record.price
                ))

        if result.has_issues:
            self.events.publish(
                CartEvent.CART_VALIDATION_FAILED,
                ValidationResultResponse.from_result(result).model_dump(mode="json")
            )

        return result

    # ===========================================
    # Guest / identity lifecycle
    # ===========================================

    async def load(self, scope: CartScope) -> CartState:
        """Load the cart stored under `scope`, or start an empty one."""
        async with self._lock:
            loaded = await self._load_scope(scope)
            state = loaded or CartState(currency=self.options.pricing.currency)
            if scope.is_guest:
                state.session_id = scope.key
                state.user_id = None
            else:
                state.user_id = scope.key

            committed = self.store.commit(state)
            self._reset_history()
            self._mark_clean()

        self.events.publish(CartEvent.CART_UPDATED, self._summary_payload())
        logger.info(f"Cart loaded for {scope} ({len(committed.items)} items)")
        return committed

    async def merge_guest_cart(self, guest_state: CartState) -> CartState:
        """
        Merge a guest cart into the current cart.

        Matching catalog items have their quantities summed and capped at the
        per-item maximum; everything else is appended. The guest session id is
        recorded so a retried merge of the same guest cart changes nothing,
        and the guest store is cleared only after the merged cart is saved.

        Raises:
            MergeConflictError: a cap was needed and strict merging is enabled
        """
        try:
            async with self._lock:
                committed, merged = await self._merge_guest_cart(guest_state)
        except Exception as e:
            self._handle_error("Failed to merge guest cart", e)
            raise

        if merged:
            self.events.publish(CartEvent.CART_SYNCED, self._summary_payload())
            logger.info("Guest cart merged with user cart")
        return committed

    async def sign_in(self, identity_id: str) -> CartState:
        """Switch to the identity's cart and merge the current guest cart into it."""
        try:
            async with self._lock:
                guest = self.store.get_snapshot()
                if guest.user_id == identity_id:
                    return guest

                loaded = await self._load_scope(CartScope.identity(identity_id))
                state = loaded or CartState(currency=self.options.pricing.currency)
                state.user_id = identity_id
                state.session_id = guest.session_id
                committed = self.store.commit(state)
                self._reset_history()
                self._mark_clean()

                if guest.is_guest and guest.items:
                    committed, _ = await self._merge_guest_cart(guest)
        except Exception as e:
            self._handle_error("Failed to handle user login", e)
            raise

        self.events.publish(CartEvent.CART_USER_LOGGED_IN, {
            "user_id": identity_id,
            "summary": self._summary_payload()
        })
        logger.info(f"User cart synchronization completed for user {identity_id}")
        return committed

    async def sign_out(self) -> CartState:
        """Convert the identity cart into a guest cart with the same items."""
        try:
            async with self._lock:
                previous = self.store.get_snapshot()
                if previous.is_guest:
                    return previous

                if self.is_dirty:
                    await self._persist_now(CartScope.for_state(previous), previous)

                state = previous.model_copy(deep=True)
                state.user_id = None
                state.merged_guest_carts = []
                committed = self.store.commit(state)
                self._reset_history()
                self._version += 1
                await self._persist_now(CartScope.for_state(committed), committed)
        except Exception as e:
            self._handle_error("Failed to handle user logout", e)
            raise

        self.events.publish(CartEvent.CART_USER_LOGGED_OUT, self._summary_payload())
        logger.info("User logged out, cart converted to guest cart")
        return committed

    async def sync(self) -> bool:
        """
        Pull the identity cart from durable storage when it is newer.

        Returns:
            True when local state was replaced
        """
        async with self._lock:
            current = self.store.get_snapshot()
            if current.is_guest or self.gateway is None:
                return False

            scope = CartScope.for_state(current)
            try:
                remote_updated = await self.gateway.last_updated(scope)
                if remote_updated is None or remote_updated <= current.last_updated:
                    return False
                remote = await self.gateway.load(scope)
            except PersistenceError as e:
                logger.warning(f"Cart sync failed: {e.message}")
                return False

            if remote is None:
                return False

            remote.user_id = current.user_id
            remote.session_id = current.session_id
            self.store.commit(remote)
            self._reset_history()
            self._mark_clean()

        self.events.publish(CartEvent.CART_SYNCED, self._summary_payload())
        return True

    # ===========================================
    # Cart change history
    # ===========================================

    def can_undo_cart_change(self) -> bool:
        return bool(self._undo_stack)

    def can_redo_cart_change(self) -> bool:
        return bool(self._redo_stack)

    async def undo_cart_change(self) -> bool:
        """Restore the cart as it was before the last mutation."""
        async with self._lock:
            if not self._undo_stack:
                return False
            self._restore(self._undo_stack, self._redo_stack)

        self.events.publish(CartEvent.CART_UNDONE, self._summary_payload())
        logger.info("Cart undo performed")
        return True

    async def redo_cart_change(self) -> bool:
        """Re-apply the last undone mutation."""
        async with self._lock:
            if not self._redo_stack:
                return False
            self._restore(self._redo_stack, self._undo_stack)

        self.events.publish(CartEvent.CART_REDONE, self._summary_payload())
        logger.info("Cart redo performed")
        return True

    # ===========================================
    # Persistence
    # ===========================================

    async def flush(self) -> bool:
        """Persist the current state if it is dirty. Returns False on failure."""
        await self.wait_for_persistence()
        if not self.is_dirty or not self._persistence_enabled:
            return True

        state = self.store.get_snapshot()
        return await self._persist(CartScope.for_state(state), state, self._version)

    async def wait_for_persistence(self) -> None:
        """Wait for in-flight background saves to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ===========================================
    # Errors
    # ===========================================

    def get_last_error(self) -> Optional[Dict[str, Any]]:
        return self.last_error

    def clear_error(self) -> None:
        self.last_error = None

    def _handle_error(self, message: str, error: Exception) -> None:
        timestamp = get_current_timestamp()
        self.last_error = {"message": message, "error": str(error), "timestamp": timestamp}

        if isinstance(error, CartError):
            logger.error(f"{message}: {error.message}")
        else:
            logger.exception(message)

        self.events.publish(CartEvent.CART_ERROR, {
            "message": message,
            "error": str(error),
            "timestamp": timestamp.isoformat()
        })

    # ===========================================
    # Internals
    # ===========================================

    async def _add_item(
        self,
        item: ItemLike,
        quantity: int,
        opts: AddItemOptions
    ) -> Tuple[CartLineItem, CartEvent, Dict[str, Any]]:
        candidate = self._validate_item(item)
        self._validate_quantity(quantity)

        existing = self.store.get_snapshot().find_match(candidate.id, candidate.is_custom_design)
        if existing is not None:
            line, payload = await self._update_quantity(
                existing.line_item_id,
                existing.quantity + quantity,
                skip_validation=opts.skip_validation
            )
            return line, CartEvent.CART_ITEM_UPDATED, payload

        if len(self.store.get_snapshot().items) >= self.limits.max_items:
            raise ValidationError(f"Cart limit reached. Maximum {self.limits.max_items} items allowed.")

        if not opts.skip_validation and not candidate.is_custom_design:
            await self._check_availability(candidate.id, quantity)

        previous = self.store.get_snapshot()
        state = previous.model_copy(deep=True)
        line = self._build_line(candidate, quantity)
        state.items.append(line)
        committed = self._commit(state, previous)

        added = committed.find_line(line.line_item_id)
        return added, CartEvent.CART_ITEM_ADDED, {
            "item": added.model_dump(mode="json"),
            "summary": self._summary_payload()
        }

    async def _update_quantity(
        self,
        line_item_id: str,
        new_quantity: int,
        skip_validation: bool = False
    ) -> Tuple[CartLineItem, Dict[str, Any]]:
        self._validate_quantity(new_quantity)

        line = self.store.get_snapshot().find_line(line_item_id)
        if line is None:
            raise NotFoundError("Item not found in cart")

        if not skip_validation and not line.is_custom_design:
            await self._check_availability(line.id, new_quantity)

        previous = self.store.get_snapshot()
        state = previous.model_copy(deep=True)
        target = state.find_line(line_item_id)
        old_quantity = target.quantity
        target.quantity = new_quantity
        target.last_updated = get_current_timestamp()
        committed = self._commit(state, previous)

        updated = committed.find_line(line_item_id)
        logger.info(f"Updated item quantity: {updated.title} ({old_quantity} -> {new_quantity})")
        return updated, {
            "item": updated.model_dump(mode="json"),
            "old_quantity": old_quantity,
            "new_quantity": new_quantity,
            "summary": self._summary_payload()
        }

    async def _merge_guest_cart(self, guest_state: CartState) -> Tuple[CartState, bool]:
        previous = self.store.get_snapshot()
        merge_key = self._merge_key(guest_state)
        if merge_key in previous.merged_guest_carts:
            logger.info(f"Guest cart {merge_key} already merged, skipping")
            return previous, False

        state = previous.model_copy(deep=True)
        max_quantity = self.limits.max_quantity_per_item

        for guest_item in guest_state.items:
            existing = state.find_match(guest_item.id, guest_item.is_custom_design)
            if existing is None:
                if len(state.items) >= self.limits.max_items:
                    if self.options.strict_merge:
                        raise MergeConflictError(
                            f"Merged cart exceeds maximum of {self.limits.max_items} items",
                            catalog_id=guest_item.id,
                            requested=len(state.items) + 1,
                            allowed=self.limits.max_items
                        )
                    logger.warning(
                        f"Dropping guest item {guest_item.id}: cart limit of "
                        f"{self.limits.max_items} items reached"
                    )
                    continue

                appended = guest_item.model_copy(deep=True)
                if state.find_line(appended.line_item_id) is not None:
                    appended.line_item_id = generate_line_item_id()
                state.items.append(appended)
                continue

            combined = existing.quantity + guest_item.quantity
            if combined > max_quantity:
                if self.options.strict_merge:
                    raise MergeConflictError(
                        f"Merged quantity {combined} for {guest_item.id} exceeds maximum {max_quantity}",
                        catalog_id=guest_item.id,
                        requested=combined,
                        allowed=max_quantity
                    )
                logger.warning(
                    f"Capping merged quantity for {guest_item.id}: "
                    f"{combined} requested, {max_quantity} allowed"
                )
                combined = max_quantity

            existing.quantity = combined
            existing.last_updated = get_current_timestamp()

        state.merged_guest_carts.append(merge_key)
        committed = self._commit(state, previous, persist=False)

        saved = await self._persist_now(CartScope.for_state(committed), committed)
        if saved and self.gateway is not None:
            try:
                await self.gateway.delete(CartScope.guest(guest_state.session_id))
            except PersistenceError as e:
                logger.warning(f"Failed to clear merged guest cart {guest_state.session_id}: {e.message}")

        return committed, True

    def _validate_item(self, item: ItemLike) -> CartItemInput:
        if isinstance(item, CartItemInput):
            candidate = item
        elif isinstance(item, CartLineItem):
            candidate = CartItemInput.model_validate(item.model_dump(exclude={"quantity"}))
        elif isinstance(item, dict):
            try:
                candidate = CartItemInput.model_validate(item)
            except ValueError as e:
                raise ValidationError(f"Invalid item data: {str(e)}") from e
        else:
            raise ValidationError("Invalid item data")

        if not candidate.id.strip():
            raise ValidationError("Item ID is required")
        if not candidate.title.strip():
            raise ValidationError("Item title is required")
        if not math.isfinite(candidate.price) or candidate.price < 0:
            raise ValidationError("Valid item price is required")
        if candidate.price > self.limits.max_price:
            raise ValidationError(f"Item price exceeds maximum allowed ({self.limits.max_price})")

        return candidate

    def _validate_quantity(self, quantity: Any) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")
        if quantity > self.limits.max_quantity_per_item:
            raise ValidationError(f"Maximum {self.limits.max_quantity_per_item} units allowed per item")

    async def _check_availability(self, catalog_id: str, quantity: int) -> None:
        if self.inventory is None:
            logger.warning("Inventory oracle not available for validation")
            return

        try:
            record = await self.inventory.get_item(catalog_id)
        except Exception as e:
            raise InventoryError(f"Unable to verify availability for {catalog_id}") from e

        if record is None:
            raise InventoryError("Item not found in inventory")
        if not record.is_active:
            raise InventoryError("Item is no longer available")
        if record.quantity_available < quantity:
            raise InventoryError(f"Only {record.quantity_available} units available")

    async def _unavailable_components(self, component_ids: Iterable[str]) -> List[str]:
        unavailable = []
        for component_id in component_ids:
            try:
                record = await self.inventory.get_item(component_id)
            except Exception as e:
                logger.warning(f"Unable to validate design component {component_id}: {str(e)}")
                record = None

            if record is None or not record.is_active or record.quantity_available < 1:
                unavailable.append(component_id)
        return unavailable

    @staticmethod
    def _merge_key(guest_state: CartState) -> str:
        """Identifies one guest snapshot, so a later guest cart in the same session merges again."""
        return f"{guest_state.session_id}@{guest_state.last_updated.isoformat()}"

    @staticmethod
    def _build_line(candidate: CartItemInput, quantity: int) -> CartLineItem:
        return CartLineItem(
            id=candidate.id,
            title=candidate.title,
            description=candidate.description,
            price=round2(candidate.price),
            quantity=quantity,
            image_url=candidate.image_url,
            category=candidate.category,
            is_custom_design=candidate.is_custom_design,
            design_data=candidate.design_data
        )

    def _commit(self, state: CartState, previous: CartState, persist: bool = True) -> CartState:
        committed = self.store.commit(state)

        if self.options.max_cart_history > 0:
            self._undo_stack.append(previous)
            if len(self._undo_stack) > self.options.max_cart_history:
                self._undo_stack.pop(0)
            self._redo_stack.clear()

        self._version += 1
        if persist:
            self._schedule_persist(committed)
        return committed

    def _restore(self, source: List[CartState], target: List[CartState]) -> None:
        current = self.store.get_snapshot()
        restored = source.pop()
        target.append(current)

        restored.user_id = current.user_id
        restored.session_id = current.session_id
        restored.merged_guest_carts = current.merged_guest_carts
        committed = self.store.commit(restored)

        self._version += 1
        self._schedule_persist(committed)

    def _reset_history(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()

    def _mark_clean(self) -> None:
        self._version += 1
        self._persisted_version = self._version

    def _summary_payload(self) -> Dict[str, Any]:
        return self.store.get_summary().model_dump(mode="json")

    @property
    def _persistence_enabled(self) -> bool:
        return self.options.enable_persistence and self.gateway is not None

    async def _load_scope(self, scope: CartScope) -> Optional[CartState]:
        if self.gateway is None:
            return None
        try:
            return await self.gateway.load(scope)
        except PersistenceError as e:
            logger.warning(f"Failed to load cart for {scope}: {e.message}")
            return None

    def _schedule_persist(self, state: CartState) -> None:
        if not self._persistence_enabled:
            return

        task = asyncio.ensure_future(self._persist(CartScope.for_state(state), state, self._version))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist_now(self, scope: CartScope, state: CartState) -> bool:
        if not self._persistence_enabled:
            return False
        await self.wait_for_persistence()
        return await self._persist(scope, state, self._version)

    async def _persist(self, scope: CartScope, state: CartState, version: int) -> bool:
        async with self._persist_lock:
            if version <= self._persisted_version:
                return True

            try:
                await self.gateway.save(scope, state)
            except PersistenceError as e:
                logger.warning(f"Failed to persist cart for {scope}: {e.message}")
                return False
            except Exception as e:
                logger.warning(f"Failed to persist cart for {scope}: {str(e)}")
                return False

            self._persisted_version = max(self._persisted_version, version)
            return True
