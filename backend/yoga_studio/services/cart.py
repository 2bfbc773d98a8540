# backend/yoga_studio/services/cart.py
"""
Selection set (cart) of class instance ids.

The cart stores ids only. Resolving them into displayable sessions happens
against whichever catalog snapshot is current at read time (see catalog.resolve_selection).
"""
import logging
import threading
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# listener(event, instance_id); instance_id is None for "cleared"
CartListener = Callable[[str, object], None]

ADDED = "added"
DUPLICATE = "duplicate"
REMOVED = "removed"
CLEARED = "cleared"


class SelectionSet:
    """Ordered set of instance ids; insertion order is kept for display."""

    def __init__(self):
        # dict keys give set semantics with insertion order
        self._items: Dict[int, None] = {}
        self._listeners: List[CartListener] = []

    def add(self, instance_id: int) -> bool:
        """Add an id. Returns False (and changes nothing) when it is already present."""
        if instance_id in self._items:
            self._notify(DUPLICATE, instance_id)
            return False
        self._items[instance_id] = None
        self._notify(ADDED, instance_id)
        return True

    def remove(self, instance_id: int) -> bool:
        """Remove an id. Returns False when it was not in the cart."""
        if instance_id not in self._items:
            return False
        del self._items[instance_id]
        self._notify(REMOVED, instance_id)
        return True

    def clear(self) -> None:
        self._items.clear()
        self._notify(CLEARED, None)

    def contains(self, instance_id: int) -> bool:
        return instance_id in self._items

    def list(self) -> List[int]:
        """Point-in-time copy of the ids; later mutations do not change it."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, instance_id) -> bool:
        return self.contains(instance_id)

    # ---------- notifications ----------
    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener called after every mutation. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, instance_id) -> None:
        logger.debug("cart %s: %s", event, instance_id)
        for listener in list(self._listeners):
            try:
                listener(event, instance_id)
            except Exception:
                # logged only; the mutation stands
                logger.exception("Cart listener %r failed on %s", listener, event)


class CartRegistry:
    """One SelectionSet per cart session id."""

    def __init__(self):
        self._carts: Dict[str, SelectionSet] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SelectionSet:
        with self._lock:
            cart = self._carts.get(session_id)
            if cart is None:
                cart = self._carts[session_id] = SelectionSet()
            return cart

    def peek(self, session_id: str) -> Optional[SelectionSet]:
        """The cart of session_id if one exists; never creates one."""
        with self._lock:
            return self._carts.get(session_id)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._carts.pop(session_id, None)

    def discard_if_empty(self, session_id: str) -> None:
        with self._lock:
            cart = self._carts.get(session_id)
            if cart is not None and not len(cart):
                del self._carts[session_id]

    def __len__(self) -> int:
        return len(self._carts)
