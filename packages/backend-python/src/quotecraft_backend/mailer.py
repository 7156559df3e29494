"""Email delivery through the Resend HTTP API."""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

import requests

from .config import EmailSettings, settings
from .errors import EmailDeliveryError
from .telemetry import mask_email, metrics

logger = logging.getLogger(__name__)


def render_quote_email(
    quote: str,
    *,
    subscription_message: Optional[str] = None,
    unsubscribe_url: Optional[str] = None,
) -> str:
    """Build the HTML body shared by one-off, confirmation and daily emails."""
    parts = [
        '<div style="font-family: Georgia, serif; max-width: 560px; margin: 0 auto;">',
        "<h2>Your AI Generated Quote</h2>",
        f'<blockquote style="font-size: 18px; font-style: italic;">{html.escape(quote)}</blockquote>',
    ]
    if subscription_message:
        parts.append(f"<p>{html.escape(subscription_message)}</p>")
    if unsubscribe_url:
        parts.append(
            '<p style="font-size: 12px; color: #666;">'
            f'<a href="{html.escape(unsubscribe_url, quote=True)}">Unsubscribe</a> from daily quotes.</p>'
        )
    parts.append("</div>")
    return "\n".join(parts)


class ResendMailer:
    """Sends quote emails; every failure surfaces as ``EmailDeliveryError``."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        sender: Optional[str] = None,
        email_settings: Optional[EmailSettings] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.email_settings = email_settings or settings.app_config.email
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.base_url = (base_url or settings.resend_base_url).rstrip("/")
        self.sender = sender or settings.email_from
        self.timeout = self.email_settings.timeout_s
        self._session = session or requests.Session()

    def send_quote(
        self,
        recipient: str,
        quote: str,
        *,
        subject: Optional[str] = None,
        subscription_message: Optional[str] = None,
        unsubscribe_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "from": self.sender,
            "to": [recipient],
            "subject": subject or self.email_settings.one_time_subject,
            "html": render_quote_email(
                quote,
                subscription_message=subscription_message,
                unsubscribe_url=unsubscribe_url,
            ),
        }
        logger.info("Sending quote email to %s", mask_email(recipient))
        try:
            response = self._session.post(
                f"{self.base_url}/emails",
                json=payload,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except requests.RequestException as exc:
            metrics.increment("email.error", kind="transport")
            logger.error("Email request to %s failed: %s", self.base_url, exc)
            raise EmailDeliveryError(
                "Failed to send email due to an issue with the email service."
            ) from exc

        data = self._parse_body(response)
        if response.status_code >= 400:
            metrics.increment("email.error", kind="status", status=response.status_code)
            provider_message = data.get("message") if isinstance(data, dict) else None
            logger.error("Resend API error (%s): %s", response.status_code, provider_message or response.text[:500])
            message = (
                f"Email service error: {provider_message}"
                if provider_message
                else "Failed to send email due to an issue with the email service."
            )
            raise EmailDeliveryError(message, details=data)

        metrics.increment("email.sent")
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"message": response.text[:500]}
