"""Supabase-backed subscription store talking to PostgREST over HTTP."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import settings
from ..errors import SubscriptionStoreError
from ..models import Subscription
from ..telemetry import mask_email
from .base import SubscriptionStore

logger = logging.getLogger(__name__)

CONFLICT_COLUMNS = "email,famous_person,tone,quote_type"


class SupabaseSubscriptionStore(SubscriptionStore):
    """Reads and writes the ``daily_subscriptions`` table with the service-role key."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        *,
        table: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        base_url = base_url or settings.supabase_url
        service_key = service_key or settings.supabase_service_key
        if not base_url or not service_key:
            raise SubscriptionStoreError(
                "Supabase URL or Service Key is missing from environment variables."
            )
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.table = table or settings.subscriptions_table
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    def upsert(self, subscription: Subscription) -> Subscription:
        row = {
            "email": subscription.email,
            "famous_person": subscription.famous_person,
            "tone": subscription.tone,
            "quote_type": subscription.quote_type,
            "is_active": True,
        }
        rows = self._request(
            "POST",
            self.table,
            params={"on_conflict": CONFLICT_COLUMNS},
            json=row,
            prefer="resolution=merge-duplicates,return=representation",
        )
        if not rows:
            raise SubscriptionStoreError("Could not save subscription.")
        logger.info("Stored subscription for %s", mask_email(subscription.email))
        return self._to_subscription(rows[0])

    def get(self, subscription_id: str) -> Optional[Subscription]:
        rows = self._request("GET", self.table, params={"id": f"eq.{subscription_id}", "select": "*"})
        return self._to_subscription(rows[0]) if rows else None

    def deactivate(self, subscription_id: str) -> bool:
        rows = self._request(
            "PATCH",
            self.table,
            params={"id": f"eq.{subscription_id}"},
            json={"is_active": False},
            prefer="return=representation",
        )
        return bool(rows)

    def list_active(self) -> List[Subscription]:
        rows = self._request("GET", self.table, params={"is_active": "eq.true", "select": "*"})
        return [self._to_subscription(row) for row in rows or []]

    def email_exists(self, email: str) -> bool:
        result = self._request("POST", "rpc/email_exists", json={"user_email": email})
        return bool(result)

    def health_check(self) -> bool:
        try:
            self._request("GET", self.table, params={"select": "id", "limit": "1"})
            return True
        except SubscriptionStoreError:
            return False

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self.rest_url}/{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            body = exc.response.text[:500] if exc.response is not None else ""
            logger.error("Supabase %s %s failed: %s", method, path, body)
            raise SubscriptionStoreError(
                f"Supabase request failed: {body or exc}",
                status_code=exc.response.status_code if exc.response is not None else None,
            ) from exc
        except requests.RequestException as exc:
            logger.error("Supabase %s %s unreachable: %s", method, path, exc)
            raise SubscriptionStoreError(f"Supabase request failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SubscriptionStoreError("Supabase returned an invalid JSON body.") from exc

    @staticmethod
    def _to_subscription(row: Dict[str, Any]) -> Subscription:
        data = dict(row)
        data["id"] = str(data["id"])
        if data.get("created_at") is None:
            data.pop("created_at", None)
        return Subscription(**data)
