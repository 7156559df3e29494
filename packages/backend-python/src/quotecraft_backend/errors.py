"""Exceptions raised by the collaborators around the plausibility filters."""

from __future__ import annotations

from typing import Any, Optional


class QuoteCraftError(Exception):
    """Base class for failures talking to an external service."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class GenerationError(QuoteCraftError):
    """The text-generation provider failed or returned nothing usable."""

    status_code = 502


class EmailDeliveryError(QuoteCraftError):
    """The email provider rejected or failed to accept a message."""


class SubscriptionStoreError(QuoteCraftError):
    """Reading or writing subscriptions failed."""
