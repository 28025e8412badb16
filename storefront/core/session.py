"""Session management for storefront shoppers"""

import os
import uuid
import shutil
import logging
from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass, field

from .config import Settings, get_settings
from ..storage import FileStorage, KeyValueStorage, MemoryStorage
from ..services.api_client import StorefrontClient
from ..services.cart_store import CartStore
from ..services.checkout import CheckoutCoordinator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ShopperSession:
    """One shopper's storage, cart and checkout workflow"""
    session_id: str
    created_at: datetime
    updated_at: datetime
    storage: KeyValueStorage
    cart_store: CartStore
    settings: Settings
    _checkout: Optional[CheckoutCoordinator] = field(default=None, repr=False)

    @property
    def checkout_state(self) -> str:
        return self._checkout.state.value if self._checkout else "idle"

    @property
    def is_submitting(self) -> bool:
        return bool(self._checkout and self._checkout.is_submitting)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def checkout(self, client: StorefrontClient) -> CheckoutCoordinator:
        """Get the session's checkout coordinator, creating it on first use"""
        if self._checkout is None:
            self._checkout = CheckoutCoordinator(
                cart_store=self.cart_store,
                client=client,
                storage=self.storage,
                settings=self.settings,
            )
        return self._checkout


class SessionManager:
    """Manages shopper sessions"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.sessions: dict[str, ShopperSession] = {}

    def _storage_for(self, session_id: str) -> KeyValueStorage:
        if self.settings.storage_dir:
            return FileStorage(os.path.join(self.settings.storage_dir, session_id))
        return MemoryStorage()

    def create_session(self, session_id: Optional[str] = None) -> ShopperSession:
        """Create a session and restore its persisted cart"""
        now = _utcnow()
        session_id = session_id or str(uuid.uuid4())
        storage = self._storage_for(session_id)
        cart_store = CartStore(storage, storage_key=self.settings.cart_storage_key)
        cart_store.hydrate()

        session = ShopperSession(
            session_id=session_id,
            created_at=now,
            updated_at=now,
            storage=storage,
            cart_store=cart_store,
            settings=self.settings,
        )
        self.sessions[session_id] = session
        logger.debug(f"Created session {session_id}")
        return session

    def get_session(self, session_id: str) -> Optional[ShopperSession]:
        """Get session by ID, reopening a persisted one if needed"""
        session = self.sessions.get(session_id)
        if session is None and self._has_persisted(session_id):
            session = self.create_session(session_id)
        return session

    def get_or_create_session(self, session_id: Optional[str] = None) -> ShopperSession:
        """Get existing session or create new one"""
        if session_id:
            session = self.get_session(session_id)
            if session:
                return session
        return self.create_session()

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and its stored data"""
        session = self.sessions.pop(session_id, None)
        persisted = self._has_persisted(session_id)
        if persisted:
            shutil.rmtree(os.path.join(self.settings.storage_dir, session_id), ignore_errors=True)
        return session is not None or persisted

    def cleanup_old_sessions(self, max_age_hours: Optional[int] = None) -> int:
        """Drop in-memory sessions idle for longer than max_age_hours"""
        max_age_hours = max_age_hours or self.settings.session_max_age_hours
        now = _utcnow()
        old_sessions = [
            sid for sid, session in self.sessions.items()
            if (now - session.updated_at).total_seconds() > max_age_hours * 3600
            and not session.is_submitting
        ]
        for sid in old_sessions:
            del self.sessions[sid]
        return len(old_sessions)

    def _has_persisted(self, session_id: str) -> bool:
        if not self.settings.storage_dir:
            return False
        try:
            uuid.UUID(session_id)
        except ValueError:
            return False
        return os.path.isdir(os.path.join(self.settings.storage_dir, session_id))


# Singleton instance
session_manager = SessionManager()
