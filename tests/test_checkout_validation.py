"""Tests for local checkout validation and payload building."""
from __future__ import annotations

import pytest

from conftest import make_product, valid_form
from storefront.models import Cart, CartLine, DeliveryAddress
from storefront.services.auth import CustomerIdentity
from storefront.services.checkout import (
    CheckoutErrorKind,
    build_order_submission,
    requires_address,
    resolve_shop_id,
    snapshot_seller_id,
    select_default_address,
    validate_checkout,
)

IDENTITY = CustomerIdentity(customer_id="cust-1", token="tok", mobile="09120000000")


def _cart(*lines: tuple) -> Cart:
    return Cart.from_lines([CartLine(product=product, quantity=qty) for product, qty in lines])


class TestValidationRules:
    def test_empty_cart(self):
        issue = validate_checkout(Cart(), IDENTITY, valid_form())

        assert issue.kind == CheckoutErrorKind.EMPTY_CART

    def test_empty_cart_checked_before_authentication(self):
        issue = validate_checkout(Cart(), None, valid_form())

        assert issue.kind == CheckoutErrorKind.EMPTY_CART

    def test_unauthenticated(self):
        issue = validate_checkout(_cart((make_product(), 1)), None, valid_form())

        assert issue.kind == CheckoutErrorKind.UNAUTHENTICATED

    def test_missing_city_is_incomplete_address(self):
        issue = validate_checkout(_cart((make_product(), 1)), IDENTITY, valid_form(city=""))

        assert issue.kind == CheckoutErrorKind.INCOMPLETE_ADDRESS
        assert issue.fields == ["city"]

    def test_whitespace_counts_as_missing(self):
        issue = validate_checkout(
            _cart((make_product(), 1)),
            IDENTITY,
            valid_form(full_name="  ", postal_code=""),
        )

        assert issue.kind == CheckoutErrorKind.INCOMPLETE_ADDRESS
        assert issue.fields == ["full_name", "postal_code"]

    @pytest.mark.parametrize("postal_code", ["1234", "12345678901", "12345abcde", "۱۲۳۴۵۶۷۸۹۰"])
    def test_invalid_postal_code(self, postal_code):
        issue = validate_checkout(
            _cart((make_product(), 1)),
            IDENTITY,
            valid_form(postal_code=postal_code),
        )

        assert issue.kind == CheckoutErrorKind.INVALID_POSTAL_CODE
        assert issue.fields == ["postal_code"]

    def test_ten_digit_postal_code_passes(self):
        assert validate_checkout(
            _cart((make_product(), 1)),
            IDENTITY,
            valid_form(postal_code="1234567890"),
        ) is None

    def test_address_not_needed_for_digital_products(self):
        digital = make_product(requires_address=False)
        form = valid_form(city="", province="", address="", postal_code="12")

        assert validate_checkout(_cart((digital, 1)), IDENTITY, form) is None

    def test_one_physical_product_requires_address(self):
        cart = _cart((make_product("a", requires_address=False), 1), (make_product("b"), 1))

        assert requires_address(cart) is True
        issue = validate_checkout(cart, IDENTITY, valid_form(city=""))
        assert issue.kind == CheckoutErrorKind.INCOMPLETE_ADDRESS

    def test_mixed_seller_cart(self):
        cart = _cart((make_product("a", shop_id="shop-1"), 1), (make_product("b", shop_id="shop-2"), 1))

        issue = validate_checkout(cart, IDENTITY, valid_form())

        assert issue.kind == CheckoutErrorKind.MIXED_SELLER_CART

    def test_two_shops_of_one_seller_are_still_mixed(self):
        cart = _cart(
            (make_product("a", shop_id="shop-1", seller_id="seller-9"), 1),
            (make_product("b", shop_id="shop-2", seller_id="seller-9"), 1),
        )

        issue = validate_checkout(cart, IDENTITY, valid_form())

        assert issue.kind == CheckoutErrorKind.MIXED_SELLER_CART
        assert resolve_shop_id(cart) is None

    def test_same_shop_with_partial_seller_info_is_not_mixed(self):
        cart = _cart(
            (make_product("a", shop_id="shop-1", seller_id="seller-9"), 1),
            (make_product("b", shop_id="shop-1", seller_id=None), 1),
        )

        assert validate_checkout(cart, IDENTITY, valid_form()) is None
        assert resolve_shop_id(cart) == "shop-1"


class TestBuildOrderSubmission:
    def test_payload_from_cart_and_form(self):
        cart = _cart((make_product("a", price=500), 2), (make_product("b", price=100), 1))

        submission = build_order_submission(
            cart,
            IDENTITY,
            valid_form(customer_notes="Ring twice"),
            seller_id="seller-1",
            address_id="addr-1",
        )

        assert submission.total == 1100
        assert submission.seller_id == "seller-1"
        assert submission.user_id == "cust-1"
        assert submission.is_existing_user is True
        assert submission.address_id == "addr-1"
        assert submission.customer_notes == "Ring twice"
        assert submission.shipping_address.endswith("کدپستی: 1234567890")
        assert submission.shipping_address.startswith("Sara Ahmadi, 09121111111, Tehran")

    def test_no_shipping_address_when_not_required(self):
        cart = _cart((make_product(requires_address=False), 1))

        submission = build_order_submission(
            cart, IDENTITY, valid_form(full_name="", mobile=""), "seller-1", "addr-1",
        )

        assert submission.shipping_address is None
        assert submission.address_id is None
        assert submission.customer_data.mobile == "09120000000"

    def test_mixed_cart_cannot_be_built(self):
        cart = _cart((make_product("a", shop_id="x"), 1), (make_product("b", shop_id="y"), 1))

        with pytest.raises(ValueError):
            build_order_submission(cart, IDENTITY, valid_form(), seller_id="seller-1")


class TestSnapshotSellerId:
    def test_product_level_seller_wins(self):
        product = make_product(seller_id="shop-seller")
        product.seller_id = "product-seller"

        assert snapshot_seller_id(_cart((product, 1))) == "product-seller"

    def test_any_line_may_carry_the_seller(self):
        cart = _cart(
            (make_product("a", seller_id=None), 1),
            (make_product("b", seller_id="seller-9"), 1),
        )

        assert snapshot_seller_id(cart) == "seller-9"

    def test_shop_id_is_not_a_seller(self):
        cart = _cart((make_product(shop_id="shop-1", seller_id=None), 1))

        assert snapshot_seller_id(cart) is None


class TestAddressDraft:
    def test_entered_fields_are_trimmed(self):
        form = valid_form(full_name=" Sara Ahmadi ", city="Tehran  ", postal_code=" 1234567890\n")

        address = form.to_address()

        assert address.full_name == "Sara Ahmadi"
        assert address.city == "Tehran"
        assert address.postal_code == "1234567890"


class TestSelectDefaultAddress:
    def _address(self, address_id, is_default=False):
        return DeliveryAddress(
            id=address_id, full_name="A", mobile="0912", province="P", city="C",
            address="S", postal_code="1234567890", is_default=is_default,
        )

    def test_prefers_default(self):
        addresses = [self._address("a"), self._address("b", is_default=True)]

        assert select_default_address(addresses).id == "b"

    def test_falls_back_to_first(self):
        assert select_default_address([self._address("a"), self._address("b")]).id == "a"

    def test_empty_list(self):
        assert select_default_address([]) is None
