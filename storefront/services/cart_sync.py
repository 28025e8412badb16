"""Reconcile cart snapshots with current catalog data"""

import logging
from dataclasses import dataclass
from enum import Enum

from .api_client import StorefrontAPIError, StorefrontClient
from .cart_store import CartStore

logger = logging.getLogger(__name__)


class AdjustmentKind(str, Enum):
    REMOVED = "removed"
    PRICE_CHANGED = "price_changed"
    QUANTITY_CLAMPED = "quantity_clamped"
    ADDRESS_REQUIREMENT_CHANGED = "address_requirement_changed"


@dataclass
class CartAdjustment:
    """A change made to the cart because the catalog moved on"""
    product_id: str
    kind: AdjustmentKind
    message: str

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "kind": self.kind.value, "message": self.message}


async def revalidate_cart(store: CartStore, client: StorefrontClient) -> list[CartAdjustment]:
    """
    Refresh every cart line against the catalog.

    Products that disappeared or were deactivated are removed, price and
    address-requirement changes update the snapshot, and quantities above
    the available inventory are clamped. Lines dropped here do not replace
    the customer's undo buffer. If the catalog cannot be reached the cart
    is left as it is.
    """
    lines = store.items
    if not lines:
        return []

    try:
        fresh_products = await client.get_products([line.product.id for line in lines])
    except StorefrontAPIError as e:
        logger.error(f"Failed to validate cart products: {e}")
        return []

    catalog = {product.id: product for product in fresh_products}
    adjustments: list[CartAdjustment] = []

    for line in lines:
        current = line.product
        fresh = catalog.get(current.id)

        if fresh is None or not fresh.is_active:
            store.discard_line(current.id)
            adjustments.append(CartAdjustment(
                current.id,
                AdjustmentKind.REMOVED,
                f'"{current.title}" is no longer available and was removed from your cart.',
            ))
            continue

        if fresh.price != current.price:
            adjustments.append(CartAdjustment(
                current.id,
                AdjustmentKind.PRICE_CHANGED,
                f'The price of "{current.title}" has changed.',
            ))
        if fresh.requires_address != current.requires_address:
            adjustments.append(CartAdjustment(
                current.id,
                AdjustmentKind.ADDRESS_REQUIREMENT_CHANGED,
                f'Delivery requirements for "{current.title}" have changed.',
            ))
        if fresh != current:
            store.refresh_product(fresh)

        if fresh.inventory is not None and fresh.inventory < line.quantity:
            if fresh.inventory > 0:
                store.update_quantity(current.id, fresh.inventory)
            else:
                store.discard_line(current.id)
            adjustments.append(CartAdjustment(
                current.id,
                AdjustmentKind.QUANTITY_CLAMPED,
                f'Only {fresh.inventory} of "{current.title}" available; quantity updated.',
            ))

    if adjustments:
        logger.info(f"Cart revalidation made {len(adjustments)} adjustment(s)")
    return adjustments
