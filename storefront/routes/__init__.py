# Storefront Routes

from .session import router as session_router
from .cart import router as cart_router
from .checkout import router as checkout_router

__all__ = ["session_router", "cart_router", "checkout_router"]
