"""
Tests for the cart and design API endpoints.
"""
import pytest
from fastapi import HTTPException, status

from charmcart.api.deps import get_cart_session, get_registry
from charmcart.api.routes.cart import (
    add_to_cart,
    clear_cart,
    get_cart,
    remove_from_cart,
    undo_cart_change,
    update_cart_item,
    validate_cart
)
from charmcart.api.routes.design import (
    create_bundle,
    export_design,
    get_history,
    load_bundle,
    redo_design,
    save_design_state,
    undo_design
)
from charmcart.core.sessions import build_session_registry
from charmcart.models.cart import CartItemInput
from charmcart.models.design import CharmPlacement, DesignMetadata
from charmcart.models.inventory import InventoryRecord, InventoryStatus
from charmcart.schemas.cart import AddToCartRequest, UpdateCartItemRequest
from charmcart.schemas.design import CreateBundleRequest, ExportDesignRequest, SaveDesignRequest
from charmcart.services.cart_session import CartSession, SessionRegistry
from charmcart.services.inventory_oracle import InventoryOracle


class Catalog(InventoryOracle):
    """Active items priced at 10.00, except the ones marked inactive."""

    def __init__(self, *inactive):
        self.inactive = set(inactive)

    async def get_item(self, item_id):
        item_status = InventoryStatus.INACTIVE if item_id in self.inactive else InventoryStatus.ACTIVE
        return InventoryRecord(id=item_id, price=10.0, status=item_status, quantity_available=20)


async def make_session(*inactive):
    session = CartSession("session_api", inventory=Catalog(*inactive))
    await session.start()
    return session


def add_request(item_id="A", quantity=1):
    return AddToCartRequest(item=CartItemInput(id=item_id, title=f"Item {item_id}", price=10.0), quantity=quantity)


def charms(*positions):
    return [
        CharmPlacement(id=f"charm_{index}", inventory_id=f"inv_{index}", x=x, y=y)
        for index, (x, y) in enumerate(positions)
    ]


class TestCartEndpoints:
    """Test cart endpoints."""

    @pytest.mark.asyncio
    async def test_add_to_cart(self):
        """Test adding an item returns the cart with totals."""
        session = await make_session()

        response = await add_to_cart(add_request(quantity=2), session)

        assert response.session_id == "session_api"
        assert len(response.items) == 1
        assert response.summary.total == 34.59

    @pytest.mark.asyncio
    async def test_add_inactive_item_conflict(self):
        """Test an inactive item maps to 409."""
        session = await make_session("A")

        with pytest.raises(HTTPException) as exc_info:
            await add_to_cart(add_request(), session)

        assert exc_info.value.status_code == status.HTTP_409_CONFLICT
        assert exc_info.value.detail == "Item is no longer available"

    @pytest.mark.asyncio
    async def test_update_above_maximum(self):
        """Test a quantity above the maximum maps to 400 and leaves the cart unchanged."""
        session = await make_session()
        response = await add_to_cart(add_request(), session)
        line_item_id = response.items[0].line_item_id

        with pytest.raises(HTTPException) as exc_info:
            await update_cart_item(line_item_id, UpdateCartItemRequest(quantity=11), session)

        assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST
        assert (await get_cart(session)).items[0].quantity == 1

    @pytest.mark.asyncio
    async def test_remove_missing_item(self):
        """Test removing an unknown item maps to 404."""
        session = await make_session()

        with pytest.raises(HTTPException) as exc_info:
            await remove_from_cart("cart_item_missing", session)

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_clear_and_undo(self):
        """Test clearing the cart and undoing it."""
        session = await make_session()
        await add_to_cart(add_request(), session)

        cleared = await clear_cart(session)
        undone = await undo_cart_change(session)

        assert cleared.summary.has_items is False
        assert undone.success is True
        assert (await get_cart(session)).summary.item_count == 1

    @pytest.mark.asyncio
    async def test_undo_with_nothing_to_undo(self):
        """Test undo on a fresh cart reports failure."""
        session = await make_session()

        response = await undo_cart_change(session)

        assert response.success is False

    @pytest.mark.asyncio
    async def test_validate_cart(self):
        """Test the validation endpoint reports the result."""
        session = await make_session()
        await add_to_cart(add_request("A"), session)
        session.engine.inventory = Catalog("A")

        response = await validate_cart(session)

        assert response.is_valid is False
        assert len(response.invalid_items) == 1


class TestDesignEndpoints:
    """Test design endpoints."""

    @pytest.mark.asyncio
    async def test_save_undo_redo(self):
        """Test recording and moving through design states."""
        session = await make_session()

        saved = await save_design_state(SaveDesignRequest(charms=charms((0, 0))), session)
        await save_design_state(SaveDesignRequest(charms=charms((0, 0), (30, 0))), session)
        undone = await undo_design(session)
        redone = await redo_design(session)

        assert saved.changed is True
        assert undone.changed is True
        assert len(undone.snapshot.charms) == 1
        assert len(redone.snapshot.charms) == 2
        assert redone.history.can_redo is False

    @pytest.mark.asyncio
    async def test_undo_at_start(self):
        """Test undo with one state reports no change."""
        session = await make_session()
        await save_design_state(SaveDesignRequest(charms=charms((0, 0))), session)

        response = await undo_design(session)

        assert response.changed is False
        assert response.history.current == 1

    @pytest.mark.asyncio
    async def test_export_design(self):
        """Test exporting the current design."""
        session = await make_session()
        await save_design_state(SaveDesignRequest(charms=charms((0, 0))), session)

        line = await export_design(ExportDesignRequest(metadata=DesignMetadata(name="Gift")), session)
        history = await get_history(session)

        assert line.is_custom_design is True
        assert history.entries[0].exported_line_item_id == line.line_item_id

    @pytest.mark.asyncio
    async def test_export_without_design(self):
        """Test exporting with no design maps to 400."""
        session = await make_session()

        with pytest.raises(HTTPException) as exc_info:
            await export_design(ExportDesignRequest(), session)

        assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_bundle_create_and_load(self):
        """Test a bundle created in one session loads into another."""
        source = await make_session()
        await add_to_cart(add_request("A", 3), source)
        await save_design_state(SaveDesignRequest(charms=charms((5, 5))), source)
        bundle = await create_bundle(CreateBundleRequest(name="Weekend"), source)

        target = CartSession("session_other", inventory=Catalog())
        await target.start()
        loaded = await load_bundle(bundle, target)

        assert loaded.bundle_name == "Weekend"
        assert (await get_cart(target)).summary.item_count == 3
        assert (await get_history(target)).total == 1


class TestDependencies:
    """Test API dependencies."""

    @pytest.mark.asyncio
    async def test_session_from_header(self):
        """Test the X-Session-ID header selects the session."""
        registry = SessionRegistry()

        first = await get_cart_session(x_session_id="session_header", registry=registry)
        second = await get_cart_session(x_session_id="session_header", registry=registry)

        assert first is second
        assert first.session_id == "session_header"

    @pytest.mark.asyncio
    async def test_session_without_header(self):
        """Test a missing header starts a new guest session."""
        registry = SessionRegistry()

        session = await get_cart_session(x_session_id=None, registry=registry)

        assert session.session_id.startswith("session_")

    @pytest.mark.asyncio
    async def test_registry_not_ready(self):
        """Test requests before startup get 503."""
        with pytest.raises(HTTPException) as exc_info:
            await get_registry()

        assert exc_info.value.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_build_registry_without_database(self):
        """Test a registry built without MongoDB keeps guest carts only."""
        registry = build_session_registry(None)

        assert registry.inventory is None
        assert registry.gateway.durable is None
