"""
Storefront API Client

HTTP client for the backend collaborators used by the storefront:
customer addresses, order submission, the product catalog and shops.
"""

import json
import logging
from typing import Optional, Any

import httpx
from pydantic import ValidationError

from ..models.checkout import DeliveryAddress, OrderSubmission
from ..models.product import Product, ShopRef

logger = logging.getLogger(__name__)


class StorefrontAPIError(Exception):
    """Base exception for storefront API errors"""
    pass


class APIConnectionError(StorefrontAPIError):
    """No response was received (network failure or timeout)"""
    pass


class MalformedResponseError(StorefrontAPIError):
    """A successful response whose body is not the expected JSON"""
    pass


class APIResponseError(StorefrontAPIError):
    """The server answered with an error status"""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        payload: Optional[dict] = None,
    ):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code
        self.payload = payload or {}


def _error_details(response: httpx.Response) -> tuple[str, Optional[str], dict]:
    """Extract a human-readable message and machine code from an error body"""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        return response.text or response.reason_phrase, None, {}

    message = payload.get("message") or payload.get("error") or response.reason_phrase
    code = payload.get("code")
    return str(message), str(code) if code else None, payload


class StorefrontClient:
    """
    Client for the storefront backend API.

    Attaches the customer's bearer token to authenticated requests and maps
    transport and HTTP failures onto ``StorefrontAPIError`` subclasses.
    """

    def __init__(
        self,
        api_base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storefront client.

        Args:
            api_base_url: Base URL of the backend API
            timeout: Default request timeout in seconds
            transport: Optional transport (used to plug in test doubles)
        """
        self.base_url = api_base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    def _generate_headers(self, token: Optional[str] = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        token: Optional[str] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Make an HTTP request and return the decoded JSON body"""
        url = f"{self.base_url}{path}"
        body_str = json.dumps(body) if body is not None else None

        request_kwargs: dict[str, Any] = {}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=self._generate_headers(token),
                content=body_str,
                params=params,
                **request_kwargs,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Request timed out: {method} {url}")
            raise APIConnectionError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise APIConnectionError(f"Could not reach {path}: {e}") from e

        if response.status_code >= 400:
            message, code, payload = _error_details(response)
            logger.error(f"Request failed: {response.status_code} - {message}")
            raise APIResponseError(response.status_code, message, code, payload)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON from {path}") from e

    # ==================== Address APIs ====================

    async def list_addresses(self, token: str) -> list[DeliveryAddress]:
        """Get the customer's saved addresses"""
        data = await self._request("GET", "/api/customer/addresses", token=token)
        if not isinstance(data, dict):
            raise MalformedResponseError("Address list is not a JSON object")
        try:
            return [DeliveryAddress.model_validate(item) for item in data.get("addresses") or []]
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid address in list: {e}") from e

    async def save_address(self, address: DeliveryAddress, token: str) -> DeliveryAddress:
        """Save a new address on the customer's account"""
        body = address.model_dump(by_alias=True, exclude={"id"})
        data = await self._request(
            "POST",
            "/api/customer/addresses",
            body=body,
            token=token,
        )
        if not isinstance(data, dict) or not isinstance(data.get("address"), dict):
            raise MalformedResponseError("Address response has no address")
        try:
            return DeliveryAddress.model_validate(data["address"])
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid saved address: {e}") from e

    # ==================== Order APIs ====================

    async def submit_order(
        self,
        submission: OrderSubmission,
        token: str,
        timeout: Optional[float] = None,
    ) -> dict:
        """Submit an order; returns the raw response body"""
        data = await self._request(
            "POST",
            "/api/orders",
            body=submission.model_dump(mode="json", by_alias=True),
            token=token,
            timeout=timeout,
        )
        if not isinstance(data, dict):
            raise MalformedResponseError("Order response is not a JSON object")
        return data

    # ==================== Product APIs ====================

    async def get_products(self, product_ids: list[str]) -> list[Product]:
        """Batch fetch current product data"""
        if not product_ids:
            return []
        data = await self._request(
            "GET",
            "/api/products/batch",
            params={"ids": ",".join(product_ids)},
        )
        if not isinstance(data, dict):
            raise MalformedResponseError("Product batch is not a JSON object")
        try:
            return [Product.model_validate(item) for item in data.get("products") or []]
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid product in batch: {e}") from e

    # ==================== Shop APIs ====================

    async def get_shop(self, shop_id: str) -> ShopRef:
        """Get a shop's public details, including the seller that owns it"""
        data = await self._request("GET", f"/api/shops/{shop_id}")
        if not isinstance(data, dict) or not isinstance(data.get("shop"), dict):
            raise MalformedResponseError("Shop response has no shop")
        try:
            return ShopRef.model_validate(data["shop"])
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid shop: {e}") from e
