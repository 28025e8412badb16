"""Cart API routes"""

from typing import Optional
from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends

from ..core.session import ShopperSession
from ..models.cart import Cart, LastRemovedItem
from ..models.product import Product
from ..services.api_client import StorefrontClient
from ..services.cart_sync import revalidate_cart
from .deps import get_shopper_session, get_storefront_client

router = APIRouter(prefix="/api/cart", tags=["Cart"])


class AddToCartRequest(BaseModel):
    """Request to add a product snapshot to the cart"""
    product: Product
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    """Request to set a line's quantity (zero removes it)"""
    quantity: int


class CartResponse(BaseModel):
    """Cart API response"""
    cart: Cart
    item_count: int
    last_removed: Optional[LastRemovedItem] = None
    message: Optional[str] = None
    adjustments: list[dict] = Field(default_factory=list)


def _cart_response(
    session: ShopperSession,
    message: Optional[str] = None,
    adjustments: Optional[list[dict]] = None,
) -> CartResponse:
    store = session.cart_store
    return CartResponse(
        cart=store.cart,
        item_count=store.item_count,
        last_removed=store.last_removed,
        message=message,
        adjustments=adjustments or [],
    )


@router.get("", response_model=CartResponse)
async def get_cart(session: ShopperSession = Depends(get_shopper_session)):
    """Get the session's cart"""
    return _cart_response(session)


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    request: AddToCartRequest,
    session: ShopperSession = Depends(get_shopper_session),
):
    """Add an item to the cart"""
    session.cart_store.add_to_cart(request.product, request.quantity)
    return _cart_response(
        session,
        message=f"Added {request.quantity}x {request.product.title} to cart",
    )


@router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    request: UpdateCartItemRequest,
    session: ShopperSession = Depends(get_shopper_session),
):
    """Update item quantity in cart"""
    session.cart_store.update_quantity(product_id, request.quantity)
    return _cart_response(session, message="Cart updated")


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: str,
    session: ShopperSession = Depends(get_shopper_session),
):
    """Remove an item from the cart"""
    session.cart_store.remove_from_cart(product_id)
    return _cart_response(session, message="Item removed")


@router.post("/undo", response_model=CartResponse)
async def undo_remove(session: ShopperSession = Depends(get_shopper_session)):
    """Restore the last removed item"""
    restored = session.cart_store.last_removed
    session.cart_store.undo_remove()
    message = f"Restored {restored.product.title}" if restored else "Nothing to undo"
    return _cart_response(session, message=message)


@router.delete("", response_model=CartResponse)
async def clear_cart(session: ShopperSession = Depends(get_shopper_session)):
    """Clear all items from cart"""
    session.cart_store.clear_cart()
    return _cart_response(session, message="Cart cleared")


@router.post("/refresh", response_model=CartResponse)
async def refresh_cart(
    session: ShopperSession = Depends(get_shopper_session),
    client: StorefrontClient = Depends(get_storefront_client),
):
    """Reconcile the cart with current catalog data"""
    adjustments = await revalidate_cart(session.cart_store, client)
    return _cart_response(
        session,
        message="Cart updated" if adjustments else None,
        adjustments=[adjustment.to_dict() for adjustment in adjustments],
    )
