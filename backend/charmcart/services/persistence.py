"""
Cart persistence gateway.

Two backends, selected by scope:
- guest scope: ephemeral local store keyed by session id, holding a JSON
  document in CartState shape
- identity scope: durable MongoDB collection with one record per identity,
  {user_id, cart_data, last_updated}

The gateway retries transient failures and raises PersistenceError once
retries are exhausted. Callers of cart operations never see that error; the
engine logs and swallows it.
"""
import json
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from charmcart.core.exceptions import PersistenceError
from charmcart.models.cart import CartState
from charmcart.utils.helpers import get_current_timestamp

logger = logging.getLogger(__name__)


class ScopeKind(str, Enum):
    """Persistence namespace kind."""
    GUEST = "guest"
    IDENTITY = "identity"


class CartScope(BaseModel):
    """Where a cart is stored: a guest session or an authenticated identity."""
    kind: ScopeKind
    key: str

    class Config:
        frozen = True

    @classmethod
    def guest(cls, session_id: str) -> "CartScope":
        return cls(kind=ScopeKind.GUEST, key=session_id)

    @classmethod
    def identity(cls, user_id: str) -> "CartScope":
        return cls(kind=ScopeKind.IDENTITY, key=user_id)

    @classmethod
    def for_state(cls, state: CartState) -> "CartScope":
        """Scope a cart state belongs to."""
        if state.user_id:
            return cls.identity(state.user_id)
        return cls.guest(state.session_id)

    @property
    def is_guest(self) -> bool:
        return self.kind == ScopeKind.GUEST

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.key}"


class LocalCartStore:
    """Ephemeral in-process store for guest carts."""

    def __init__(self):
        self._entries: Dict[str, str] = {}

    async def load(self, session_id: str) -> Optional[CartState]:
        raw = self._entries.get(session_id)
        if raw is None:
            return None

        try:
            return CartState.model_validate_json(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable guest cart for session {session_id}: {str(e)}")
            return None

    async def save(self, session_id: str, state: CartState) -> None:
        self._entries[session_id] = state.model_dump_json()

    async def delete(self, session_id: str) -> bool:
        return self._entries.pop(session_id, None) is not None

    def session_ids(self) -> List[str]:
        return list(self._entries.keys())

    async def cleanup_expired(self, max_age: timedelta) -> int:
        """
        Remove guest carts not updated within `max_age`.

        Unreadable entries are removed as well.

        Returns:
            Number of carts removed
        """
        cutoff = get_current_timestamp() - max_age
        removed = 0

        for session_id, raw in list(self._entries.items()):
            try:
                last_updated = datetime.fromisoformat(json.loads(raw)["last_updated"])
            except (ValueError, KeyError, TypeError):
                last_updated = None

            if last_updated is None or last_updated < cutoff:
                del self._entries[session_id]
                removed += 1

        if removed:
            logger.info(f"Cleaned up {removed} expired guest carts")
        return removed


class DurableCartStore:
    """Per-identity cart records in MongoDB."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "user_carts"):
        self.db = db
        self.collection_name = collection_name

    @property
    def collection(self):
        return self.db[self.collection_name]

    async def load_record(self, user_id: str) -> Optional[dict]:
        """Raw record: {user_id, cart_data, last_updated}."""
        return await self.collection.find_one({"user_id": user_id})

    async def load(self, user_id: str) -> Optional[CartState]:
        record = await self.load_record(user_id)
        if not record or not record.get("cart_data"):
            return None

        try:
            state = CartState.model_validate(record["cart_data"])
        except ValueError as e:
            logger.warning(f"Discarding unreadable cart record for user {user_id}: {str(e)}")
            return None

        state.user_id = user_id
        return state

    async def save(self, user_id: str, state: CartState) -> None:
        await self.collection.update_one(
            {"user_id": user_id},
            {
                "$set": {
                    "cart_data": state.model_dump(mode="json"),
                    "last_updated": state.last_updated
                },
                "$setOnInsert": {"created_at": get_current_timestamp()}
            },
            upsert=True
        )

    async def delete(self, user_id: str) -> bool:
        result = await self.collection.delete_one({"user_id": user_id})
        return result.deleted_count > 0


class PersistenceGateway:
    """Routes cart loads and saves to the store that owns the scope."""

    def __init__(
        self,
        local: LocalCartStore,
        durable: Optional[DurableCartStore] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        self.local = local
        self.durable = durable
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def load(self, scope: CartScope) -> Optional[CartState]:
        """Load the cart stored under a scope, or None."""
        if scope.is_guest:
            return await self.local.load(scope.key)

        durable = self._require_durable(scope)
        return await self._execute_with_retry(
            f"load_{scope}", lambda: durable.load(scope.key)
        )

    async def save(self, scope: CartScope, state: CartState) -> None:
        """Persist a cart under a scope. Raises PersistenceError on failure."""
        if scope.is_guest:
            await self._execute_with_retry(
                f"save_{scope}", lambda: self.local.save(scope.key, state)
            )
            return

        durable = self._require_durable(scope)
        await self._execute_with_retry(
            f"save_{scope}", lambda: durable.save(scope.key, state)
        )
        logger.info(f"User cart saved for user {scope.key}")

    async def delete(self, scope: CartScope) -> None:
        """Remove the cart stored under a scope."""
        if scope.is_guest:
            await self.local.delete(scope.key)
            return

        durable = self._require_durable(scope)
        await self._execute_with_retry(
            f"delete_{scope}", lambda: durable.delete(scope.key)
        )

    async def last_updated(self, scope: CartScope) -> Optional[datetime]:
        """Timestamp of the stored cart, used for sync decisions."""
        if scope.is_guest:
            state = await self.local.load(scope.key)
            return state.last_updated if state else None

        durable = self._require_durable(scope)
        record = await self._execute_with_retry(
            f"last_updated_{scope}", lambda: durable.load_record(scope.key)
        )
        return record.get("last_updated") if record else None

    def _require_durable(self, scope: CartScope) -> DurableCartStore:
        if self.durable is None:
            raise PersistenceError(f"Durable cart store is not configured for {scope}")
        return self.durable

    async def _execute_with_retry(
        self,
        operation_key: str,
        operation: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Run an operation, retrying transient failures with exponential backoff."""
        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Retrying {operation_key} in {retry_state.next_action.sleep:.2f}s, "
                f"attempt {retry_state.attempt_number}/{self.max_retries}: {retry_state.outcome.exception()}"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_delay),
            retry=retry_if_not_exception_type(PersistenceError),
            before_sleep=log_retry,
            reraise=False
        )
        try:
            return await retrying(operation)
        except RetryError as err:
            last_error = err.last_attempt.exception()
            raise PersistenceError(
                f"{operation_key} failed after {self.max_retries + 1} attempts: {last_error}"
            ) from last_error
