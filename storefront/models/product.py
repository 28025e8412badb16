"""Product models as seen by the storefront"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional


class ShopRef(BaseModel):
    """Shop that owns a product"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    shop_name: Optional[str] = None
    seller_id: Optional[str] = None


class Product(BaseModel):
    """Product in a seller's catalog"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    price: int = Field(ge=0)  # smallest currency unit
    inventory: Optional[int] = Field(default=None, ge=0)  # None = unlimited
    requires_address: bool = True
    is_active: bool = True
    shop: ShopRef
    image_url: Optional[str] = None
    # Older snapshots carry the seller directly on the product
    seller_id: Optional[str] = None

    @property
    def known_seller_id(self) -> Optional[str]:
        """Seller id carried by the snapshot itself, if any"""
        return self.seller_id or self.shop.seller_id
