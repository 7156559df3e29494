"""Subscription storage backends."""

import logging

from ..config import settings
from .base import SubscriptionStore
from .memory import InMemorySubscriptionStore
from .supabase import SupabaseSubscriptionStore

logger = logging.getLogger(__name__)


def create_subscription_store() -> SubscriptionStore:
    """Use Supabase when it is configured, otherwise keep rows in memory."""
    if settings.supabase_url and settings.supabase_service_key:
        return SupabaseSubscriptionStore()
    logger.warning("SUPABASE_URL not configured; subscriptions are kept in memory only")
    return InMemorySubscriptionStore()


__all__ = [
    "SubscriptionStore",
    "InMemorySubscriptionStore",
    "SupabaseSubscriptionStore",
    "create_subscription_store",
]
