from fastapi import APIRouter, Depends, status

from charmcart.api.deps import get_cart_session
from charmcart.config.cart_config import AddItemOptions
from charmcart.core.exceptions import CartError, to_http_exception
from charmcart.schemas.cart import (
    AddToCartRequest,
    CartResponse,
    CartSummary,
    HistoryActionResponse,
    SignInRequest,
    UpdateCartItemRequest,
    ValidationResultResponse
)
from charmcart.services.cart_session import CartSession

router = APIRouter()


def build_cart_response(session: CartSession) -> CartResponse:
    """Current cart contents and totals for a session."""
    state = session.get_cart_state()
    return CartResponse(
        items=state.items,
        summary=session.get_cart_summary(),
        session_id=session.session_id,
        user_id=state.user_id
    )


@router.get("", response_model=CartResponse)
async def get_cart(session: CartSession = Depends(get_cart_session)):
    """
    Get the cart for the current session.
    """
    return build_cart_response(session)


@router.get("/summary", response_model=CartSummary)
async def get_cart_summary(session: CartSession = Depends(get_cart_session)):
    """
    Get the cart totals without line items.
    """
    return session.get_cart_summary()


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    request: AddToCartRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Add an item to the cart.

    Validates:
    - Item data and quantity limits
    - Item is active and has enough stock (unless skipped)

    If the item is already in the cart, increases its quantity.
    """
    try:
        await session.add_item(
            request.item,
            request.quantity,
            AddItemOptions(skip_validation=request.skip_validation)
        )
    except CartError as e:
        raise to_http_exception(e)

    return build_cart_response(session)


@router.put("/items/{line_item_id}", response_model=CartResponse)
async def update_cart_item(
    line_item_id: str,
    request: UpdateCartItemRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Update the quantity of an item in the cart.

    Validates stock availability before updating.
    """
    try:
        await session.update_item_quantity(line_item_id, request.quantity)
    except CartError as e:
        raise to_http_exception(e)

    return build_cart_response(session)


@router.delete("/items/{line_item_id}", response_model=CartResponse)
async def remove_from_cart(
    line_item_id: str,
    session: CartSession = Depends(get_cart_session)
):
    """
    Remove an item from the cart.
    """
    try:
        await session.remove_item(line_item_id)
    except CartError as e:
        raise to_http_exception(e)

    return build_cart_response(session)


@router.delete("", response_model=CartResponse)
async def clear_cart(session: CartSession = Depends(get_cart_session)):
    """
    Clear all items from the cart.
    """
    await session.clear_cart()
    return build_cart_response(session)


@router.post("/validate", response_model=ValidationResultResponse)
async def validate_cart(session: CartSession = Depends(get_cart_session)):
    """
    Check every line item against current inventory before checkout.

    Returns unavailable items, stock shortfalls and price changes.
    The cart itself is not modified.
    """
    result = await session.validate_inventory()
    return ValidationResultResponse.from_result(result)


@router.post("/login", response_model=CartResponse)
async def sign_in(
    request: SignInRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Attach an authenticated user to the session.

    The user's saved cart is loaded and the guest cart is merged into it.
    """
    try:
        await session.sign_in(request.user_id)
    except CartError as e:
        raise to_http_exception(e)

    return build_cart_response(session)


@router.post("/logout", response_model=CartResponse)
async def sign_out(session: CartSession = Depends(get_cart_session)):
    """
    Detach the user; the cart continues as a guest cart.
    """
    try:
        await session.sign_out()
    except CartError as e:
        raise to_http_exception(e)

    return build_cart_response(session)


@router.post("/sync", response_model=CartResponse)
async def sync_cart(session: CartSession = Depends(get_cart_session)):
    """
    Reload the user's cart if another device saved a newer version.
    """
    await session.sync()
    return build_cart_response(session)


@router.post("/undo", response_model=HistoryActionResponse)
async def undo_cart_change(session: CartSession = Depends(get_cart_session)):
    """
    Undo the last cart change.
    """
    if await session.undo_cart_change():
        return HistoryActionResponse(success=True, message="Cart change undone")
    return HistoryActionResponse(success=False, message="Nothing to undo")


@router.post("/redo", response_model=HistoryActionResponse)
async def redo_cart_change(session: CartSession = Depends(get_cart_session)):
    """
    Redo the last undone cart change.
    """
    if await session.redo_cart_change():
        return HistoryActionResponse(success=True, message="Cart change redone")
    return HistoryActionResponse(success=False, message="Nothing to redo")
