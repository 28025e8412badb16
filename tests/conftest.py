"""Shared pytest fixtures for storefront tests."""
from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import jwt
import pytest

from storefront.core.config import Settings
from storefront.models import CheckoutForm, Product, ShopRef
from storefront.services.api_client import StorefrontClient
from storefront.services.cart_store import CartStore
from storefront.storage import MemoryStorage

API_BASE_URL = "http://backend.test"
FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_product(
    product_id: str = "p1",
    price: int = 1000,
    shop_id: str = "shop-1",
    requires_address: bool = True,
    inventory: Optional[int] = None,
    seller_id: Optional[str] = "seller-1",
    **extra,
) -> Product:
    return Product(
        id=product_id,
        title=extra.pop("title", f"Product {product_id}"),
        price=price,
        inventory=inventory,
        requires_address=requires_address,
        shop=ShopRef(id=shop_id, shop_name=f"Shop {shop_id}", seller_id=seller_id),
        **extra,
    )


def make_token(claims: Optional[dict] = None, secret: str = "test-secret-key-with-enough-length!") -> str:
    payload = {
        "userId": "cust-1",
        "mobile": "09120000000",
        "type": "customer",
        "exp": int(time.time()) + 3600,
    }
    payload.update(claims or {})
    return jwt.encode(payload, secret, algorithm="HS256")


def valid_form(**overrides) -> CheckoutForm:
    data = {
        "full_name": "Sara Ahmadi",
        "mobile": "09121111111",
        "province": "Tehran",
        "city": "Tehran",
        "address": "Valiasr St, No. 12",
        "postal_code": "1234567890",
    }
    data.update(overrides)
    return CheckoutForm(**data)


class FakeBackend:
    """Records requests and answers them through registered handlers"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, handler) -> None:
        self.routes[(method, path)] = handler

    def reply(self, method: str, path: str, status_code: int = 200, json_body=None) -> None:
        self.on(method, path, lambda request: httpx.Response(status_code, json=json_body))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def body(self, request: httpx.Request) -> dict:
        return json.loads(request.content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "Not found"})
        return route(request)


@pytest.fixture
def product() -> Product:
    return make_product()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> CartStore:
    return CartStore(storage, clock=lambda: FIXED_NOW)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        api_base_url=API_BASE_URL,
        storage_dir=None,
        auth_jwt_secret=None,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(backend: FakeBackend) -> StorefrontClient:
    return StorefrontClient(API_BASE_URL, transport=httpx.MockTransport(backend.handler))
