from fastapi import APIRouter, Depends, status

from charmcart.api.deps import get_cart_session
from charmcart.core.exceptions import CartError, to_http_exception
from charmcart.models.cart import CartLineItem
from charmcart.models.design import DesignSnapshot
from charmcart.schemas.design import (
    CreateBundleRequest,
    DesignBundle,
    DesignStateResponse,
    ExportDesignRequest,
    HistoryInfo,
    MilestoneRequest,
    SaveDesignRequest
)
from charmcart.services.cart_session import CartSession

router = APIRouter()


@router.get("/history", response_model=HistoryInfo)
async def get_history(session: CartSession = Depends(get_cart_session)):
    """
    Get the design history with the current position.
    """
    return session.history_info()


@router.post("/states", response_model=DesignStateResponse)
async def save_design_state(
    request: SaveDesignRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Record the editor state after a confirmed edit.

    Edits that leave the design unchanged are not recorded.
    """
    changed = session.save_design(request.charms, request.necklace_id)
    return DesignStateResponse(
        changed=changed,
        snapshot=session.current_design(),
        history=session.history_info()
    )


@router.post("/undo", response_model=DesignStateResponse)
async def undo_design(session: CartSession = Depends(get_cart_session)):
    """
    Step back to the previous design state.
    """
    snapshot = session.undo()
    return DesignStateResponse(
        changed=snapshot is not None,
        snapshot=session.current_design(),
        history=session.history_info()
    )


@router.post("/redo", response_model=DesignStateResponse)
async def redo_design(session: CartSession = Depends(get_cart_session)):
    """
    Step forward to the next design state.
    """
    snapshot = session.redo()
    return DesignStateResponse(
        changed=snapshot is not None,
        snapshot=session.current_design(),
        history=session.history_info()
    )


@router.post("/milestones", response_model=DesignSnapshot)
async def mark_milestone(
    request: MilestoneRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Label the current design state.
    """
    try:
        return session.mark_milestone(request.label)
    except CartError as e:
        raise to_http_exception(e)


@router.post("/export", response_model=CartLineItem, status_code=status.HTTP_201_CREATED)
async def export_design(
    request: ExportDesignRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Add the current design to the cart as a custom design item.

    Price is the base design fee scaled by complexity plus the price of
    each charm used.
    """
    try:
        return await session.export_design_to_cart(request.metadata)
    except CartError as e:
        raise to_http_exception(e)


@router.post("/bundles", response_model=DesignBundle, status_code=status.HTTP_201_CREATED)
async def create_bundle(
    request: CreateBundleRequest,
    session: CartSession = Depends(get_cart_session)
):
    """
    Save the current design and cart together.
    """
    return session.create_design_bundle(request.name)


@router.post("/bundles/load", response_model=DesignBundle)
async def load_bundle(
    bundle: DesignBundle,
    session: CartSession = Depends(get_cart_session)
):
    """
    Restore a saved bundle, replacing the cart contents.
    """
    try:
        return await session.load_design_bundle(bundle)
    except CartError as e:
        raise to_http_exception(e)
