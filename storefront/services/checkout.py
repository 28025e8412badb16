"""
Checkout Coordinator

Turns the current cart plus the customer's contact and delivery data into
an order submission:

1. Validate the cart and form locally (no network)
2. Optionally save a newly entered address (failure is only a warning)
3. Resolve the seller the order belongs to
4. Submit the order and clear the cart on success

Every failed attempt leaves the cart untouched so the customer can retry.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..core.config import Settings, get_settings
from ..models.cart import Cart
from ..models.checkout import (
    CheckoutForm,
    CustomerData,
    DeliveryAddress,
    OrderSubmission,
)
from ..storage import KeyValueStorage
from .api_client import (
    APIConnectionError,
    APIResponseError,
    MalformedResponseError,
    StorefrontAPIError,
    StorefrontClient,
)
from .auth import CustomerIdentity, read_identity
from .cart_store import CartStore

logger = logging.getLogger(__name__)

POSTAL_CODE_PATTERN = re.compile(r"[0-9]{10}")

DUPLICATE_CUSTOMER_CODE = "CUSTOMER_EXISTS"
DUPLICATE_CUSTOMER_MESSAGE = "Customer with this email or mobile already exists"

ADDRESS_FIELDS = ("full_name", "mobile", "province", "city", "address", "postal_code")


class CheckoutState(str, Enum):
    """State of a checkout attempt"""
    IDLE = "idle"
    VALIDATING = "validating"
    VALIDATION_FAILED = "validation_failed"
    ADDRESS_PERSISTING = "address_persisting"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CheckoutErrorKind(str, Enum):
    # Local validation, never reaches the network
    EMPTY_CART = "empty_cart"
    UNAUTHENTICATED = "unauthenticated"
    INCOMPLETE_ADDRESS = "incomplete_address"
    INVALID_POSTAL_CODE = "invalid_postal_code"
    MIXED_SELLER_CART = "mixed_seller_cart"
    # Seller lookup, before submission
    SELLER_NOT_FOUND = "seller_not_found"
    # Warning only
    ADDRESS_SAVE_FAILED = "address_save_failed"
    # Submission phase
    MALFORMED_RESPONSE = "malformed_response"
    IDENTITY_CONFLICT = "identity_conflict"
    SUBMISSION_REJECTED = "submission_rejected"
    NETWORK_ERROR = "network_error"
    SUBMISSION_IN_PROGRESS = "submission_in_progress"


USER_MESSAGES: dict[CheckoutErrorKind, str] = {
    CheckoutErrorKind.EMPTY_CART: "Your cart is empty.",
    CheckoutErrorKind.UNAUTHENTICATED: "Please sign in again to place your order.",
    CheckoutErrorKind.INCOMPLETE_ADDRESS: "Please fill in all address fields.",
    CheckoutErrorKind.INVALID_POSTAL_CODE: "Postal code must be exactly 10 digits.",
    CheckoutErrorKind.MIXED_SELLER_CART: (
        "Your cart contains products from more than one shop. "
        "Please order from one shop at a time."
    ),
    CheckoutErrorKind.SELLER_NOT_FOUND: (
        "We could not find the seller of this shop. Please try again later."
    ),
    CheckoutErrorKind.ADDRESS_SAVE_FAILED: (
        "We could not save your new address, but your order is being placed."
    ),
    CheckoutErrorKind.MALFORMED_RESPONSE: (
        "We could not confirm your order. Please check your orders before retrying."
    ),
    CheckoutErrorKind.IDENTITY_CONFLICT: (
        "There is a problem with your account. Please sign in again and retry."
    ),
    CheckoutErrorKind.SUBMISSION_REJECTED: "Your order could not be placed.",
    CheckoutErrorKind.NETWORK_ERROR: (
        "Could not reach the server. Check your connection and try again."
    ),
    CheckoutErrorKind.SUBMISSION_IN_PROGRESS: "Your order is already being submitted.",
}

# Input errors the customer corrects inline; not worth logging
EXPECTED_KINDS = frozenset({
    CheckoutErrorKind.EMPTY_CART,
    CheckoutErrorKind.INCOMPLETE_ADDRESS,
    CheckoutErrorKind.INVALID_POSTAL_CODE,
})


@dataclass
class CheckoutIssue:
    """A checkout error or warning with the form fields it concerns"""
    kind: CheckoutErrorKind
    message: str
    fields: list[str] = field(default_factory=list)

    @classmethod
    def of(
        cls,
        kind: CheckoutErrorKind,
        message: Optional[str] = None,
        fields: Optional[list[str]] = None,
    ) -> "CheckoutIssue":
        return cls(kind=kind, message=message or USER_MESSAGES[kind], fields=fields or [])

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "fields": self.fields}


@dataclass
class CheckoutResult:
    """Outcome of one checkout attempt"""
    state: CheckoutState
    error: Optional[CheckoutIssue] = None
    warnings: list[CheckoutIssue] = field(default_factory=list)
    order_number: Optional[str] = None
    order_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == CheckoutState.SUCCEEDED

    def to_dict(self) -> dict:
        return {
            "success": self.succeeded,
            "state": self.state.value,
            "error": self.error.to_dict() if self.error else None,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "order_number": self.order_number,
            "order_id": self.order_id,
        }


# ==================== Validation ====================

def requires_address(cart: Cart) -> bool:
    """True when any product in the cart has to be shipped"""
    return any(line.product.requires_address for line in cart.items)


def resolve_shop_id(cart: Cart) -> Optional[str]:
    """The single shop all lines belong to, or None for a mixed cart"""
    shop_ids = {line.product.shop.id for line in cart.items}
    if len(shop_ids) != 1:
        return None
    return shop_ids.pop()


def snapshot_seller_id(cart: Cart) -> Optional[str]:
    """Seller id recorded on any of the cart's product snapshots"""
    return next(
        (line.product.known_seller_id for line in cart.items if line.product.known_seller_id),
        None,
    )


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_checkout(
    cart: Cart,
    identity: Optional[CustomerIdentity],
    form: CheckoutForm,
) -> Optional[CheckoutIssue]:
    """Run the local checkout rules in order and return the first failure"""
    if cart.is_empty:
        return CheckoutIssue.of(CheckoutErrorKind.EMPTY_CART)

    if identity is None or not identity.customer_id:
        return CheckoutIssue.of(CheckoutErrorKind.UNAUTHENTICATED)

    if requires_address(cart):
        missing = [name for name in ADDRESS_FIELDS if _is_blank(getattr(form, name))]
        if missing:
            return CheckoutIssue.of(CheckoutErrorKind.INCOMPLETE_ADDRESS, fields=missing)

        if not POSTAL_CODE_PATTERN.fullmatch(form.postal_code.strip()):
            return CheckoutIssue.of(
                CheckoutErrorKind.INVALID_POSTAL_CODE,
                fields=["postal_code"],
            )

    if resolve_shop_id(cart) is None:
        return CheckoutIssue.of(CheckoutErrorKind.MIXED_SELLER_CART)

    return None


# ==================== Payload ====================

def format_shipping_address(form: CheckoutForm) -> str:
    """Single-line shipping address stored on the order"""
    return (
        f"{form.full_name.strip()}, {form.mobile.strip()}, {form.province.strip()}, "
        f"{form.city.strip()}, {form.address.strip()}, کدپستی: {form.postal_code.strip()}"
    )


def build_order_submission(
    cart: Cart,
    identity: CustomerIdentity,
    form: CheckoutForm,
    seller_id: str,
    address_id: Optional[str] = None,
) -> OrderSubmission:
    """Build the order payload from a validated cart and form"""
    if resolve_shop_id(cart) is None:
        raise ValueError("Cart must belong to a single shop")

    needs_address = requires_address(cart)
    return OrderSubmission(
        customer_data=CustomerData(
            full_name=form.full_name.strip() or identity.full_name or "",
            mobile=form.mobile.strip() or identity.mobile or "",
            email=form.email or identity.email,
        ),
        cart_items=[line.model_copy(deep=True) for line in cart.items],
        total=cart.total,
        seller_id=seller_id,
        payment_method=form.payment_method,
        user_id=identity.customer_id,
        shipping_address=format_shipping_address(form) if needs_address else None,
        address_id=address_id if needs_address else None,
        customer_notes=form.customer_notes or None,
        is_existing_user=True,
    )


def select_default_address(addresses: list[DeliveryAddress]) -> Optional[DeliveryAddress]:
    """The default address, else the first one"""
    if not addresses:
        return None
    return next((address for address in addresses if address.is_default), addresses[0])


def classify_submission_error(error: StorefrontAPIError) -> CheckoutIssue:
    """Map a client failure during order submission to a checkout issue"""
    if isinstance(error, APIConnectionError):
        return CheckoutIssue.of(CheckoutErrorKind.NETWORK_ERROR)

    if isinstance(error, MalformedResponseError):
        return CheckoutIssue.of(CheckoutErrorKind.MALFORMED_RESPONSE)

    if isinstance(error, APIResponseError):
        # Prefer the machine-readable code; message matching is a fallback
        # for servers that do not send one yet.
        if error.code == DUPLICATE_CUSTOMER_CODE or (
            DUPLICATE_CUSTOMER_MESSAGE.lower() in (error.message or "").lower()
        ):
            return CheckoutIssue.of(CheckoutErrorKind.IDENTITY_CONFLICT)
        return CheckoutIssue.of(CheckoutErrorKind.SUBMISSION_REJECTED, message=error.message)

    return CheckoutIssue.of(CheckoutErrorKind.SUBMISSION_REJECTED, message=str(error))


def _order_number_from(response: dict) -> Optional[str]:
    value = response.get("orderNumber")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    value = str(value).strip()
    return value or None


# ==================== Coordinator ====================

class CheckoutCoordinator:
    """
    Runs checkout attempts for one shopper session.

    Only one attempt may be in flight at a time; a trigger that arrives
    while another attempt is running is rejected without side effects.
    """

    def __init__(
        self,
        cart_store: CartStore,
        client: StorefrontClient,
        storage: KeyValueStorage,
        settings: Optional[Settings] = None,
    ):
        self.cart_store = cart_store
        self.client = client
        self.storage = storage
        self.settings = settings or get_settings()
        self._state = CheckoutState.IDLE
        self._is_submitting = False

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def is_submitting(self) -> bool:
        return self._is_submitting

    def _transition(self, new_state: CheckoutState) -> None:
        logger.debug(f"Checkout state {self._state.value} -> {new_state.value}")
        self._state = new_state

    def current_identity(self) -> Optional[CustomerIdentity]:
        return read_identity(self.storage, self.settings)

    async def submit(self, form: CheckoutForm) -> CheckoutResult:
        """Run one checkout attempt to a terminal state"""
        if self._is_submitting:
            logger.warning("Ignoring checkout trigger while a submission is in flight")
            return CheckoutResult(
                state=self._state,
                error=CheckoutIssue.of(CheckoutErrorKind.SUBMISSION_IN_PROGRESS),
            )

        self._is_submitting = True
        try:
            return await self._attempt(form)
        finally:
            self._is_submitting = False

    async def _attempt(self, form: CheckoutForm) -> CheckoutResult:
        self._transition(CheckoutState.VALIDATING)
        cart = self.cart_store.cart
        identity = self.current_identity()

        issue = validate_checkout(cart, identity, form)
        if issue:
            self._log_issue(issue)
            return self._finish(CheckoutState.VALIDATION_FAILED, error=issue)

        warnings: list[CheckoutIssue] = []
        address_id = form.selected_address_id

        if requires_address(cart) and form.save_address and not form.selected_address_id:
            address_id = await self._save_address(form, identity, warnings)

        self._transition(CheckoutState.SUBMITTING)
        seller_id, issue = await self._resolve_seller(cart)
        if issue:
            return self._finish(CheckoutState.FAILED, error=issue, warnings=warnings)

        submission = build_order_submission(
            cart, identity, form, seller_id=seller_id, address_id=address_id,
        )

        try:
            response = await self.client.submit_order(
                submission,
                identity.token,
                timeout=self.settings.order_submit_timeout,
            )
        except StorefrontAPIError as e:
            issue = classify_submission_error(e)
            self._log_issue(issue, e)
            return self._finish(CheckoutState.FAILED, error=issue, warnings=warnings)

        order_number = _order_number_from(response)
        if not order_number:
            issue = CheckoutIssue.of(CheckoutErrorKind.MALFORMED_RESPONSE)
            self._log_issue(issue, f"response without orderNumber: {response}")
            return self._finish(CheckoutState.FAILED, error=issue, warnings=warnings)

        self.cart_store.clear_cart()
        self._remember_order_number(order_number)

        order_id = response.get("orderId")
        logger.info(
            f"Order {order_number} placed: {submission.total} for seller "
            f"{submission.seller_id} by customer {identity.customer_id}"
        )
        return self._finish(
            CheckoutState.SUCCEEDED,
            warnings=warnings,
            order_number=order_number,
            order_id=str(order_id) if order_id else None,
        )

    async def _save_address(
        self,
        form: CheckoutForm,
        identity: CustomerIdentity,
        warnings: list[CheckoutIssue],
    ) -> Optional[str]:
        """Save the entered address; a failure only adds a warning"""
        self._transition(CheckoutState.ADDRESS_PERSISTING)
        try:
            saved = await self.client.save_address(form.to_address(), identity.token)
        except StorefrontAPIError as e:
            issue = CheckoutIssue.of(CheckoutErrorKind.ADDRESS_SAVE_FAILED)
            self._log_issue(issue, e)
            warnings.append(issue)
            return None

        logger.info(f"Saved new address {saved.id} for customer {identity.customer_id}")
        return saved.id

    async def _resolve_seller(self, cart: Cart) -> tuple[Optional[str], Optional[CheckoutIssue]]:
        """
        Find the seller the order belongs to.

        The product snapshots are checked first; otherwise the shop is
        looked up. The shop id is never used in place of a seller id.
        """
        seller_id = snapshot_seller_id(cart)
        if seller_id:
            return seller_id, None

        shop_id = resolve_shop_id(cart)
        try:
            shop = await self.client.get_shop(shop_id)
        except APIConnectionError as e:
            issue = CheckoutIssue.of(CheckoutErrorKind.NETWORK_ERROR)
            self._log_issue(issue, e)
            return None, issue
        except StorefrontAPIError as e:
            issue = CheckoutIssue.of(CheckoutErrorKind.SELLER_NOT_FOUND)
            self._log_issue(issue, e)
            return None, issue

        if not shop.seller_id:
            issue = CheckoutIssue.of(CheckoutErrorKind.SELLER_NOT_FOUND)
            self._log_issue(issue, f"shop {shop_id} has no seller")
            return None, issue
        return shop.seller_id, None

    def _finish(self, state: CheckoutState, **kwargs) -> CheckoutResult:
        self._transition(state)
        return CheckoutResult(state=state, **kwargs)

    def _log_issue(self, issue: CheckoutIssue, cause: object = None) -> None:
        if issue.kind in EXPECTED_KINDS:
            return
        detail = f" ({cause})" if cause else ""
        if issue.kind == CheckoutErrorKind.ADDRESS_SAVE_FAILED:
            logger.warning(f"Checkout {issue.kind.value}{detail}")
        else:
            logger.error(f"Checkout {issue.kind.value}: {issue.message}{detail}")

    # ==================== Confirmation ====================

    def _remember_order_number(self, order_number: str) -> None:
        try:
            self.storage.set_item(self.settings.order_number_key, order_number)
        except Exception as e:
            logger.error(f"Failed to persist order number: {e}", exc_info=True)

    def last_order_number(self) -> Optional[str]:
        """Order number of the last successful checkout, for the confirmation view"""
        try:
            return self.storage.get_item(self.settings.order_number_key)
        except Exception as e:
            logger.error(f"Failed to read order number: {e}", exc_info=True)
            return None

    # ==================== Saved addresses ====================

    async def load_addresses(
        self,
        form: Optional[CheckoutForm] = None,
    ) -> tuple[list[DeliveryAddress], CheckoutForm]:
        """
        Fetch the customer's saved addresses and pre-fill the form.

        The default address (or the first one) is selected. Failures are
        logged and give an empty list with the form unchanged.
        """
        form = form or CheckoutForm()
        identity = self.current_identity()
        if identity is None:
            return [], form

        try:
            addresses = await self.client.list_addresses(identity.token)
        except StorefrontAPIError as e:
            logger.error(f"Error fetching addresses: {e}")
            return [], form

        selected = select_default_address(addresses)
        if selected:
            form = form.fill_from(selected)
        return addresses, form
