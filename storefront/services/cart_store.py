"""
Cart Store

Authoritative client-side view of what the customer intends to buy.
State lives in memory and a snapshot is written to durable storage after
every mutation. Invalid input is absorbed as a no-op and persistence
failures are logged, so no operation raises.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from ..models.cart import Cart, CartEnvelope, CartLine, LastRemovedItem
from ..models.product import Product
from ..storage import KeyValueStorage

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cart-storage"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class CartStore:
    """
    Cart state with an injected persistence port.

    Constructed once per shopper session and passed to consumers; call
    ``hydrate()`` once at mount to restore the persisted cart.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = CART_STORAGE_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._storage = storage
        self._storage_key = storage_key
        self._clock = clock
        self._lines: list[CartLine] = []
        self._last_removed: Optional[LastRemovedItem] = None

    # ==================== Read model ====================

    @property
    def cart(self) -> Cart:
        """Copy of the current cart with its derived total"""
        return Cart.from_lines(self._lines)

    @property
    def items(self) -> list[CartLine]:
        return self.cart.items

    @property
    def total(self) -> int:
        return sum(line.line_total for line in self._lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def last_removed(self) -> Optional[LastRemovedItem]:
        if self._last_removed is None:
            return None
        return self._last_removed.model_copy(deep=True)

    def get_line(self, product_id: str) -> Optional[CartLine]:
        line = self._find(product_id)
        return line.model_copy(deep=True) if line else None

    # ==================== Mutations ====================

    def add_to_cart(self, product: Product, quantity: int) -> None:
        """Add ``quantity`` of ``product``, merging with an existing line"""
        if not _is_positive_int(quantity):
            logger.debug(f"Ignoring add of {product.id} with quantity {quantity!r}")
            return

        existing = self._find(product.id)
        if existing:
            existing.quantity += quantity
        else:
            self._lines.append(
                CartLine(product=product.model_copy(deep=True), quantity=quantity)
            )

        self._persist()

    def remove_from_cart(self, product_id: str) -> None:
        """Remove a line and remember it for one-level undo"""
        line = self._find(product_id)
        if not line:
            return

        self._lines = [item for item in self._lines if item.product.id != product_id]
        self._last_removed = LastRemovedItem(
            product=line.product,
            quantity=line.quantity,
            removed_at=self._clock(),
        )
        self._persist()

    def undo_remove(self) -> None:
        """Restore the most recently removed line, once"""
        removed = self._last_removed
        if removed is None:
            return

        self.add_to_cart(removed.product, removed.quantity)
        self._last_removed = None

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set the absolute quantity of a line; zero or less removes it"""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return

        line = self._find(product_id)
        if not line:
            return

        line.quantity = quantity
        self._persist()

    def clear_cart(self) -> None:
        self._lines = []
        self._last_removed = None
        self._persist()

    def discard_line(self, product_id: str) -> None:
        """Drop a line that can no longer be bought; the undo buffer is kept"""
        if not self._find(product_id):
            return

        self._lines = [item for item in self._lines if item.product.id != product_id]
        self._persist()

    def refresh_product(self, product: Product) -> None:
        """Replace a line's product snapshot, keeping its quantity"""
        line = self._find(product.id)
        if not line:
            return

        line.product = product.model_copy(deep=True)
        self._persist()

    # ==================== Persistence ====================

    def hydrate(self) -> bool:
        """
        Load the persisted cart, replacing in-memory state.

        Returns False and leaves state unchanged when storage is empty,
        unreadable or malformed.
        """
        try:
            raw = self._storage.get_item(self._storage_key)
        except Exception as e:
            logger.error(f"Failed to read cart from storage: {e}", exc_info=True)
            return False

        if raw is None:
            return False

        try:
            envelope = CartEnvelope.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring malformed cart snapshot: {e}")
            return False

        lines = envelope.state.cart.items
        product_ids = [line.product.id for line in lines]
        if len(product_ids) != len(set(product_ids)):
            logger.warning("Ignoring cart snapshot with duplicate product lines")
            return False

        self._lines = lines
        logger.debug(f"Hydrated cart with {len(lines)} line(s)")
        return True

    def _persist(self) -> None:
        """Write the current cart snapshot; failures never propagate"""
        try:
            envelope = CartEnvelope.wrap(self.cart)
            self._storage.set_item(
                self._storage_key,
                envelope.model_dump_json(by_alias=True),
            )
        except Exception as e:
            logger.error(f"Failed to persist cart: {e}", exc_info=True)

    def _find(self, product_id: str) -> Optional[CartLine]:
        return next(
            (line for line in self._lines if line.product.id == product_id),
            None,
        )
