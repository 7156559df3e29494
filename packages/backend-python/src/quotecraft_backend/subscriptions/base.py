"""
Interface for daily-subscription persistence.
Backends are swappable so the API and the dispatcher never know where rows live.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Subscription


class SubscriptionStore(ABC):
    """Abstract base class for subscription storage backends."""

    @abstractmethod
    def upsert(self, subscription: Subscription) -> Subscription:
        """
        Insert the subscription, or re-activate the existing row that has the
        same (email, famous_person, tone, quote_type). Returns the stored row.
        """

    @abstractmethod
    def get(self, subscription_id: str) -> Optional[Subscription]:
        """Return a subscription by id."""

    @abstractmethod
    def deactivate(self, subscription_id: str) -> bool:
        """Mark a subscription inactive. Returns False when the id is unknown."""

    @abstractmethod
    def list_active(self) -> List[Subscription]:
        """Return every subscription that should receive today's quote."""

    @abstractmethod
    def email_exists(self, email: str) -> bool:
        """Whether the address is already known to the store."""

    def health_check(self) -> bool:
        return True
