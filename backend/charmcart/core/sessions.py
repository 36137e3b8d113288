import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from charmcart.core.config import Settings, settings as default_settings
from charmcart.services.cart_session import SessionRegistry
from charmcart.services.inventory_oracle import MongoInventoryOracle
from charmcart.services.persistence import DurableCartStore, LocalCartStore, PersistenceGateway

logger = logging.getLogger(__name__)

# Global session registry
_registry: Optional[SessionRegistry] = None


def build_session_registry(
    db: Optional[AsyncIOMotorDatabase],
    config: Optional[Settings] = None
) -> SessionRegistry:
    """Wire the inventory oracle and persistence stores into a registry."""
    config = config or default_settings

    durable = DurableCartStore(db, config.USER_CARTS_COLLECTION) if db is not None else None
    inventory = MongoInventoryOracle(db, config.INVENTORY_COLLECTION) if db is not None else None
    gateway = PersistenceGateway(
        LocalCartStore(),
        durable,
        max_retries=config.PERSISTENCE_MAX_RETRIES,
        retry_delay=config.PERSISTENCE_RETRY_DELAY_SECONDS
    )
    return SessionRegistry(inventory=inventory, gateway=gateway, config=config)


def init_session_registry(db: Optional[AsyncIOMotorDatabase]) -> SessionRegistry:
    """Create the process-wide session registry."""
    global _registry
    _registry = build_session_registry(db)
    logger.info("Cart session registry initialized")
    return _registry


async def close_session_registry():
    """Flush and close every open session."""
    global _registry
    if _registry is not None:
        await _registry.close_all()
        _registry = None
        logger.info("Cart session registry closed")


def get_session_registry() -> Optional[SessionRegistry]:
    """Get the session registry instance."""
    return _registry
