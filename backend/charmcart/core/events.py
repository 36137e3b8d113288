"""
Domain events and the publish-subscribe bus that carries them.

Each session owns its own bus instance; there is no process-wide registry.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class CartEvent(str, Enum):
    """Event names published by the cart engine."""
    CART_UPDATED = "cart-updated"
    CART_ITEM_ADDED = "cart-item-added"
    CART_ITEM_REMOVED = "cart-item-removed"
    CART_ITEM_UPDATED = "cart-item-updated"
    CART_CLEARED = "cart-cleared"
    CART_VALIDATION_FAILED = "cart-validation-failed"
    CART_ERROR = "cart-error"
    CART_UNDONE = "cart-undone"
    CART_REDONE = "cart-redone"
    CART_USER_LOGGED_IN = "cart-user-logged-in"
    CART_USER_LOGGED_OUT = "cart-user-logged-out"
    CART_SYNCED = "cart-synced"


class EventBus:
    """Typed publish-subscribe bus with unsubscribe handles."""

    def __init__(self, max_history_size: int = 100):
        self._listeners: Dict[CartEvent, List[Listener]] = {}
        self._history: List[Dict[str, Any]] = []
        self._max_history_size = max_history_size

    def subscribe(self, event: CartEvent, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for an event.

        Returns:
            A callable that removes the listener when invoked
        """
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def once(self, event: CartEvent, listener: Listener) -> Callable[[], None]:
        """Register a listener that is removed after its first delivery."""
        unsubscribe: Optional[Callable[[], None]] = None

        def wrapper(payload: Any) -> Any:
            unsubscribe()
            return listener(payload)

        unsubscribe = self.subscribe(event, wrapper)
        return unsubscribe

    def publish(self, event: CartEvent, payload: Any = None) -> None:
        """
        Deliver an event to every listener.

        A failing listener is logged and does not stop delivery to the others.
        Coroutine listeners are scheduled on the running loop.
        """
        self._record(event)

        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(payload)
                if asyncio.iscoroutine(result):
                    task = asyncio.ensure_future(result)
                    task.add_done_callback(self._log_task_failure(event))
            except Exception as e:
                logger.error(f"Error in cart event listener for {event.value}: {str(e)}")

    def listener_count(self, event: CartEvent) -> int:
        """Number of listeners registered for an event."""
        return len(self._listeners.get(event, []))

    def history(self) -> List[Dict[str, Any]]:
        """Recently published event names, oldest first."""
        return list(self._history)

    def clear(self) -> None:
        """Drop all listeners."""
        self._listeners.clear()

    def _record(self, event: CartEvent) -> None:
        self._history.append({"event": event.value})
        if len(self._history) > self._max_history_size:
            self._history.pop(0)

    @staticmethod
    def _log_task_failure(event: CartEvent):
        def callback(task: "asyncio.Future") -> None:
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Error in async cart event listener for {event.value}: {task.exception()}")
        return callback
