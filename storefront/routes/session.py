"""Shopper session routes"""

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Depends

from ..core.session import SessionManager
from ..services.auth import clear_token, read_identity, store_token
from .deps import get_session_manager

router = APIRouter(prefix="/api/session", tags=["Session"])


class AuthTokenRequest(BaseModel):
    """Bearer token issued by the OTP login"""
    token: str = Field(min_length=1)


@router.post("")
async def create_session(manager: SessionManager = Depends(get_session_manager)):
    """Start a new shopper session"""
    session = manager.create_session()
    return {"session_id": session.session_id}


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """Get session details"""
    session = manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    identity = read_identity(session.storage, session.settings)
    return {
        "session_id": session.session_id,
        "authenticated": identity is not None,
        "customer_id": identity.customer_id if identity else None,
        "cart": {
            "items_count": session.cart_store.item_count,
            "total": session.cart_store.total,
        },
        "checkout_state": session.checkout_state,
    }


@router.put("/{session_id}/auth-token")
async def set_auth_token(
    session_id: str,
    request: AuthTokenRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Store the customer's bearer token for this session"""
    session = manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    store_token(session.storage, request.token, session.settings)
    identity = read_identity(session.storage, session.settings)
    return {
        "authenticated": identity is not None,
        "customer_id": identity.customer_id if identity else None,
    }


@router.delete("/{session_id}/auth-token")
async def clear_auth_token(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """Sign the customer out of this session"""
    session = manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    clear_token(session.storage, session.settings)
    return {"authenticated": False}


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """Delete a session"""
    if manager.delete_session(session_id):
        return {"message": "Session deleted"}
    raise HTTPException(status_code=404, detail="Session not found")
