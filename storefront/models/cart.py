"""Cart models for the storefront"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime

from .product import Product


class CartLine(BaseModel):
    """One product and quantity pairing in a cart"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product: Product
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity


class Cart(BaseModel):
    """Shopping cart"""
    items: list[CartLine] = []
    total: int = 0

    @classmethod
    def from_lines(cls, lines: list[CartLine]) -> "Cart":
        """Build a cart whose total is computed from its lines"""
        items = [line.model_copy(deep=True) for line in lines]
        return cls(items=items, total=sum(line.line_total for line in items))

    @property
    def is_empty(self) -> bool:
        return not self.items


class LastRemovedItem(BaseModel):
    """Single-slot undo buffer for the most recent removal"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product: Product
    quantity: int = Field(ge=1)
    removed_at: datetime


class PersistedCartState(BaseModel):
    cart: Cart


class CartEnvelope(BaseModel):
    """Layout of the persisted cart snapshot"""
    state: PersistedCartState
    version: int = 0

    @classmethod
    def wrap(cls, cart: Cart) -> "CartEnvelope":
        return cls(state=PersistedCartState(cart=cart))
