"""Checkout models for the storefront"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from enum import Enum

from .cart import CartLine

STREET_ADDRESS_MAX_LENGTH = 500


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"
    CREDIT_CARD = "credit_card"


class DeliveryAddress(BaseModel):
    """Customer delivery address"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None  # None for an unsaved draft
    full_name: str
    mobile: str
    province: str
    city: str
    address: str = Field(max_length=STREET_ADDRESS_MAX_LENGTH)
    postal_code: str
    is_default: bool = False


class CheckoutForm(BaseModel):
    """Contact and delivery data entered at checkout"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str = ""
    mobile: str = ""
    email: Optional[str] = None
    province: str = ""
    city: str = ""
    address: str = Field(default="", max_length=STREET_ADDRESS_MAX_LENGTH)
    postal_code: str = ""
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    customer_notes: Optional[str] = None
    # A saved address picked from the customer's list
    selected_address_id: Optional[str] = None
    # The entered address is new and should be stored on the account
    save_address: bool = False
    is_default: bool = False

    def to_address(self) -> DeliveryAddress:
        """Address draft built from the trimmed entered fields"""
        return DeliveryAddress(
            id=self.selected_address_id,
            full_name=self.full_name.strip(),
            mobile=self.mobile.strip(),
            province=self.province.strip(),
            city=self.city.strip(),
            address=self.address.strip(),
            postal_code=self.postal_code.strip(),
            is_default=self.is_default,
        )

    def fill_from(self, address: DeliveryAddress) -> "CheckoutForm":
        """Copy of the form pre-filled from a saved address"""
        return self.model_copy(update={
            "full_name": address.full_name,
            "mobile": address.mobile,
            "province": address.province,
            "city": address.city,
            "address": address.address,
            "postal_code": address.postal_code,
            "selected_address_id": address.id,
            "save_address": False,
        })


class CustomerData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str
    mobile: str
    email: Optional[str] = None


class OrderSubmission(BaseModel):
    """Payload sent to the order API"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_data: CustomerData
    cart_items: list[CartLine]
    total: int
    seller_id: str
    payment_method: PaymentMethod
    user_id: str
    shipping_address: Optional[str] = None
    address_id: Optional[str] = None
    customer_notes: Optional[str] = None
    is_existing_user: bool = True
