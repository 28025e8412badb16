# Storefront Models

from .product import Product, ShopRef
from .cart import Cart, CartLine, CartEnvelope, LastRemovedItem
from .checkout import (
    CheckoutForm,
    CustomerData,
    DeliveryAddress,
    OrderSubmission,
    PaymentMethod,
)

__all__ = [
    "Product",
    "ShopRef",
    "Cart",
    "CartLine",
    "CartEnvelope",
    "LastRemovedItem",
    "CheckoutForm",
    "CustomerData",
    "DeliveryAddress",
    "OrderSubmission",
    "PaymentMethod",
]
