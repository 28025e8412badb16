"""Checkout API routes"""

from fastapi import APIRouter, Depends, HTTPException

from ..core.session import ShopperSession
from ..models.checkout import CheckoutForm
from ..services.api_client import StorefrontClient
from .deps import get_shopper_session, get_storefront_client

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("")
async def checkout(
    form: CheckoutForm,
    session: ShopperSession = Depends(get_shopper_session),
    client: StorefrontClient = Depends(get_storefront_client),
):
    """
    Place an order for the session's cart.

    Always answers 200 with the attempt's outcome; validation and
    submission failures are reported in ``error`` and leave the cart as
    it was. A new address is saved first when ``saveAddress`` is set;
    if that fails the order still goes through with a warning.
    """
    coordinator = session.checkout(client)
    result = await coordinator.submit(form)
    return result.to_dict()


@router.get("/addresses")
async def get_addresses(
    session: ShopperSession = Depends(get_shopper_session),
    client: StorefrontClient = Depends(get_storefront_client),
):
    """Saved addresses with the default one pre-filled into a form"""
    coordinator = session.checkout(client)
    addresses, form = await coordinator.load_addresses()
    return {
        "addresses": [address.model_dump(by_alias=True) for address in addresses],
        "selected_address_id": form.selected_address_id,
        "form": form.model_dump(mode="json", by_alias=True),
    }


@router.get("/confirmation")
async def get_confirmation(
    session: ShopperSession = Depends(get_shopper_session),
    client: StorefrontClient = Depends(get_storefront_client),
):
    """Order number of the last successful checkout"""
    order_number = session.checkout(client).last_order_number()
    if not order_number:
        raise HTTPException(status_code=404, detail="No order has been placed")
    return {"order_number": order_number}
