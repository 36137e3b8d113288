from typing import Optional
from fastapi import Depends, Header, HTTPException, status

from charmcart.core.sessions import get_session_registry
from charmcart.models.cart import generate_session_id
from charmcart.services.cart_session import CartSession, SessionRegistry


async def get_registry() -> SessionRegistry:
    """
    Dependency to get the cart session registry.

    Raises:
        HTTPException: If the application has not finished starting up
    """
    registry = get_session_registry()
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cart service is not ready"
        )
    return registry


async def get_cart_session(
    x_session_id: Optional[str] = Header(default=None),
    registry: SessionRegistry = Depends(get_registry)
) -> CartSession:
    """
    Dependency to get the caller's cart session.

    The session is chosen by the X-Session-ID header. Without one a new
    guest session is started; its id is returned in every cart response.
    """
    session_id = x_session_id or generate_session_id()
    return await registry.get_or_create(session_id)
