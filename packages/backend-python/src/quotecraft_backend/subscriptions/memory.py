"""Process-local subscription store for development and tests."""

import logging
from threading import Lock
from typing import Dict, List, Optional

from ..models import Subscription
from .base import SubscriptionStore

logger = logging.getLogger(__name__)


class InMemorySubscriptionStore(SubscriptionStore):
    """Keeps subscriptions in a dict guarded by a lock."""

    def __init__(self):
        self._rows: Dict[str, Subscription] = {}
        self._lock = Lock()

    def upsert(self, subscription: Subscription) -> Subscription:
        with self._lock:
            for existing in self._rows.values():
                if existing.key() == subscription.key():
                    existing.is_active = True
                    logger.debug("Re-activated subscription %s", existing.id)
                    return existing.model_copy()
            stored = subscription.model_copy(update={"is_active": True})
            self._rows[stored.id] = stored
            logger.debug("Created subscription %s", stored.id)
            return stored.model_copy()

    def get(self, subscription_id: str) -> Optional[Subscription]:
        with self._lock:
            row = self._rows.get(subscription_id)
            return row.model_copy() if row else None

    def deactivate(self, subscription_id: str) -> bool:
        with self._lock:
            row = self._rows.get(subscription_id)
            if row is None:
                return False
            row.is_active = False
            return True

    def list_active(self) -> List[Subscription]:
        with self._lock:
            return [row.model_copy() for row in self._rows.values() if row.is_active]

    def email_exists(self, email: str) -> bool:
        wanted = email.strip().lower()
        with self._lock:
            return any(row.email.lower() == wanted for row in self._rows.values())
