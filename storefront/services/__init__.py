# Storefront services

from .cart_store import CartStore
from .api_client import (
    StorefrontClient,
    StorefrontAPIError,
    APIConnectionError,
    APIResponseError,
    MalformedResponseError,
)
from .auth import CustomerIdentity, read_identity
from .checkout import (
    CheckoutCoordinator,
    CheckoutErrorKind,
    CheckoutIssue,
    CheckoutResult,
    CheckoutState,
    validate_checkout,
)
from .cart_sync import revalidate_cart, CartAdjustment, AdjustmentKind

__all__ = [
    "CartStore",
    "StorefrontClient",
    "StorefrontAPIError",
    "APIConnectionError",
    "APIResponseError",
    "MalformedResponseError",
    "CustomerIdentity",
    "read_identity",
    "CheckoutCoordinator",
    "CheckoutErrorKind",
    "CheckoutIssue",
    "CheckoutResult",
    "CheckoutState",
    "validate_checkout",
    "revalidate_cart",
    "CartAdjustment",
    "AdjustmentKind",
]
