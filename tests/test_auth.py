"""Tests for reading the customer identity from the auth token."""
from __future__ import annotations

import time

from conftest import make_token
from storefront.services.auth import clear_token, identity_from_token, read_identity, store_token
from storefront.storage import MemoryStorage

SECRET = "test-secret-key-with-enough-length!"


class TestIdentityFromToken:
    def test_reads_user_id_claim(self):
        identity = identity_from_token(make_token())

        assert identity.customer_id == "cust-1"
        assert identity.mobile == "09120000000"
        assert identity.authorization_header.startswith("Bearer ")

    def test_falls_back_to_id_claim(self):
        token = make_token({"userId": None, "id": "legacy-7"})

        assert identity_from_token(token).customer_id == "legacy-7"

    def test_expired_token_is_rejected(self):
        token = make_token({"exp": int(time.time()) - 60})

        assert identity_from_token(token) is None

    def test_garbage_token_is_rejected(self):
        assert identity_from_token("not-a-jwt") is None

    def test_seller_token_is_not_a_customer(self):
        assert identity_from_token(make_token({"type": "seller"})) is None

    def test_token_without_identifier_is_rejected(self):
        assert identity_from_token(make_token({"userId": None})) is None

    def test_signature_checked_when_secret_configured(self):
        token = make_token(secret=SECRET)

        assert identity_from_token(token, SECRET).customer_id == "cust-1"
        assert identity_from_token(token, "another-secret-key-of-good-length!") is None


class TestTokenStorage:
    def test_store_read_clear(self, settings):
        storage = MemoryStorage()
        assert read_identity(storage, settings) is None

        store_token(storage, make_token(), settings)
        assert storage.get_item("auth_token") is not None
        assert read_identity(storage, settings).customer_id == "cust-1"

        clear_token(storage, settings)
        assert read_identity(storage, settings) is None
