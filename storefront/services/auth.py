"""
Customer authentication context

The OTP login flow leaves a bearer token in client storage. Checkout only
needs to know who the customer is; the backend verifies the token on every
request.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt

from ..core.config import Settings, get_settings
from ..storage import KeyValueStorage

logger = logging.getLogger(__name__)

CUSTOMER_TOKEN_TYPE = "customer"


@dataclass
class CustomerIdentity:
    """Authenticated customer derived from the auth token"""
    customer_id: str
    token: str
    mobile: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.token}"


def decode_token(token: str, secret: Optional[str] = None) -> Optional[dict]:
    """
    Decode an auth token's claims.

    With a secret the HS256 signature is verified; without one only the
    payload and expiry are checked.
    """
    try:
        if secret:
            return jwt.decode(token, secret, algorithms=["HS256"])
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Auth token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid auth token: {e}")
    return None


def identity_from_token(token: str, secret: Optional[str] = None) -> Optional[CustomerIdentity]:
    claims = decode_token(token, secret)
    if not claims:
        return None

    token_type = claims.get("type")
    if token_type and token_type != CUSTOMER_TOKEN_TYPE:
        logger.warning(f"Auth token belongs to a {token_type}, not a customer")
        return None

    # Older tokens carry "id" instead of "userId"
    customer_id = claims.get("userId") or claims.get("id")
    if not customer_id:
        logger.warning("Auth token has no customer identifier")
        return None

    return CustomerIdentity(
        customer_id=str(customer_id),
        token=token,
        mobile=claims.get("mobile"),
        email=claims.get("email"),
        full_name=claims.get("name") or claims.get("fullName"),
    )


def read_identity(
    storage: KeyValueStorage,
    settings: Optional[Settings] = None,
) -> Optional[CustomerIdentity]:
    """Get the authenticated customer for a session, if any"""
    settings = settings or get_settings()
    try:
        token = storage.get_item(settings.auth_token_key)
    except Exception as e:
        logger.error(f"Failed to read auth token: {e}", exc_info=True)
        return None

    if not token:
        return None
    return identity_from_token(token, settings.auth_jwt_secret)


def store_token(storage: KeyValueStorage, token: str, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    storage.set_item(settings.auth_token_key, token)


def clear_token(storage: KeyValueStorage, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    storage.remove_item(settings.auth_token_key)
