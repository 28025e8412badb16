"""Tests for reconciling the cart with current catalog data."""
from __future__ import annotations

import pytest

from conftest import make_product
from storefront.services.cart_sync import AdjustmentKind, revalidate_cart

BATCH = "/api/products/batch"


def _catalog(backend, *products):
    backend.reply("GET", BATCH, json_body={
        "products": [product.model_dump(by_alias=True) for product in products],
    })


class TestRevalidateCart:
    @pytest.mark.asyncio
    async def test_unchanged_cart_has_no_adjustments(self, store, client, backend):
        store.add_to_cart(make_product("a"), 2)
        _catalog(backend, make_product("a"))

        assert await revalidate_cart(store, client) == []
        assert store.get_line("a").quantity == 2

    @pytest.mark.asyncio
    async def test_empty_cart_skips_request(self, store, client, backend):
        assert await revalidate_cart(store, client) == []
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_missing_product_is_removed(self, store, client, backend):
        store.add_to_cart(make_product("a"), 1)
        store.add_to_cart(make_product("gone"), 3)
        _catalog(backend, make_product("a"))

        adjustments = await revalidate_cart(store, client)

        assert [(a.product_id, a.kind) for a in adjustments] == [("gone", AdjustmentKind.REMOVED)]
        assert store.get_line("gone") is None
        assert store.last_removed is None

    @pytest.mark.asyncio
    async def test_removals_keep_the_customers_undo(self, store, client, backend):
        store.add_to_cart(make_product("mine"), 2)
        store.add_to_cart(make_product("gone-1"), 1)
        store.add_to_cart(make_product("gone-2"), 1)
        store.remove_from_cart("mine")
        _catalog(backend, make_product("gone-2", inventory=0))

        adjustments = await revalidate_cart(store, client)

        assert {a.product_id for a in adjustments} == {"gone-1", "gone-2"}
        assert store.items == []
        assert store.last_removed.product.id == "mine"
        store.undo_remove()
        assert [line.product.id for line in store.items] == ["mine"]

    @pytest.mark.asyncio
    async def test_inactive_product_is_removed(self, store, client, backend):
        store.add_to_cart(make_product("a"), 1)
        _catalog(backend, make_product("a", is_active=False))

        adjustments = await revalidate_cart(store, client)

        assert adjustments[0].kind == AdjustmentKind.REMOVED
        assert store.items == []

    @pytest.mark.asyncio
    async def test_price_change_updates_snapshot_and_total(self, store, client, backend):
        store.add_to_cart(make_product("a", price=100), 3)
        _catalog(backend, make_product("a", price=120))

        adjustments = await revalidate_cart(store, client)

        assert [a.kind for a in adjustments] == [AdjustmentKind.PRICE_CHANGED]
        assert store.get_line("a").product.price == 120
        assert store.total == 360

    @pytest.mark.asyncio
    async def test_address_requirement_change_is_reported(self, store, client, backend):
        store.add_to_cart(make_product("a", requires_address=False), 1)
        _catalog(backend, make_product("a", requires_address=True))

        adjustments = await revalidate_cart(store, client)

        assert [a.kind for a in adjustments] == [AdjustmentKind.ADDRESS_REQUIREMENT_CHANGED]
        assert store.get_line("a").product.requires_address is True

    @pytest.mark.asyncio
    async def test_quantity_is_clamped_to_inventory(self, store, client, backend):
        store.add_to_cart(make_product("a"), 5)
        _catalog(backend, make_product("a", inventory=2))

        adjustments = await revalidate_cart(store, client)

        assert [a.kind for a in adjustments] == [AdjustmentKind.QUANTITY_CLAMPED]
        assert store.get_line("a").quantity == 2
        assert store.total == 2000

    @pytest.mark.asyncio
    async def test_sold_out_product_is_removed(self, store, client, backend):
        store.add_to_cart(make_product("a"), 1)
        _catalog(backend, make_product("a", inventory=0))

        await revalidate_cart(store, client)

        assert store.items == []

    @pytest.mark.asyncio
    async def test_catalog_failure_leaves_cart_alone(self, store, client, backend, caplog):
        store.add_to_cart(make_product("a", price=100), 2)
        backend.reply("GET", BATCH, 503, {"error": "maintenance"})

        assert await revalidate_cart(store, client) == []
        assert store.get_line("a").quantity == 2
        assert store.total == 200
        assert "Failed to validate cart products" in caplog.text
