"""Shared route dependencies"""

from typing import Optional
from fastapi import Depends, Header, HTTPException

from ..core.config import settings
from ..core.session import ShopperSession, SessionManager, session_manager
from ..services.api_client import StorefrontClient

# Initialize services (overridden with app.dependency_overrides in tests)
storefront_client: Optional[StorefrontClient] = None


def get_storefront_client() -> StorefrontClient:
    """Get or create the backend API client"""
    global storefront_client
    if storefront_client is None:
        storefront_client = StorefrontClient(
            api_base_url=settings.api_base_url,
            timeout=settings.request_timeout,
        )
    return storefront_client


async def close_storefront_client() -> None:
    global storefront_client
    if storefront_client is not None:
        await storefront_client.close()
        storefront_client = None


def get_session_manager() -> SessionManager:
    return session_manager


def get_shopper_session(
    x_session_id: Optional[str] = Header(None),
    manager: SessionManager = Depends(get_session_manager),
) -> ShopperSession:
    """Resolve the shopper session from the X-Session-Id header"""
    if not x_session_id:
        raise HTTPException(status_code=400, detail="X-Session-Id header is required")

    session = manager.get_session(x_session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    session.touch()
    return session
