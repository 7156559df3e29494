"""Daily batch that emails a fresh quote to every active subscriber."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional
from urllib.parse import urlencode

from .config import settings
from .errors import QuoteCraftError
from .generation import build_quote_prompt
from .generator import QuoteGenerator
from .mailer import ResendMailer
from .models import DispatchOutcome, DispatchReport, Subscription
from .plausibility import OutputPlausibilityChecker, get_output_checker
from .subscriptions import SubscriptionStore
from .telemetry import mask_email, metrics, sanitize_text

logger = logging.getLogger(__name__)

STATUS_SENT = "sent"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


def build_unsubscribe_url(subscription_id: str, app_url: Optional[str] = None) -> str:
    base = (app_url or settings.app_url).rstrip("/")
    return f"{base}/api/unsubscribe?{urlencode({'id': subscription_id})}"


class DailyQuoteDispatcher:
    """Generate and send one quote per active subscription.

    Subscriptions are processed concurrently and independently: a failure for
    one subscriber is recorded in the report and never stops the others.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        generator: QuoteGenerator,
        mailer: ResendMailer,
        *,
        output_checker: Optional[OutputPlausibilityChecker] = None,
        app_url: Optional[str] = None,
        max_workers: Optional[int] = None,
        subject: Optional[str] = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.mailer = mailer
        self.output_checker = output_checker or get_output_checker()
        self.app_url = app_url or settings.app_url
        self.max_workers = max_workers or settings.app_config.dispatch.max_workers
        self.subject = subject or settings.app_config.email.daily_subject

    def run(self) -> DispatchReport:
        subscriptions = self.store.list_active()
        if not subscriptions:
            logger.info("Daily dispatch: no active subscriptions")
            return DispatchReport(message="No active subscriptions to process.")

        workers = max(1, min(self.max_workers, len(subscriptions)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="daily-quote") as pool:
            outcomes: List[DispatchOutcome] = list(pool.map(self._process, subscriptions))

        report = DispatchReport(
            message=f"Processed {len(outcomes)} subscriptions.",
            processed=len(outcomes),
            sent=sum(1 for item in outcomes if item.status == STATUS_SENT),
            skipped=sum(1 for item in outcomes if item.status == STATUS_SKIPPED),
            failed=sum(1 for item in outcomes if item.status == STATUS_FAILED),
            outcomes=outcomes,
        )
        logger.info(
            "Daily dispatch finished: %d processed, %d sent, %d skipped, %d failed",
            report.processed, report.sent, report.skipped, report.failed,
        )
        return report

    def _process(self, subscription: Subscription) -> DispatchOutcome:
        recipient = mask_email(subscription.email)
        try:
            prompt = build_quote_prompt(
                subscription.quote_type,
                tone=subscription.tone,
                famous_person=subscription.famous_person,
            )
            quote = self.generator.generate(prompt)

            rule = self.output_checker.diagnose(quote)
            if rule is not None:
                metrics.increment("dispatch.skipped", rule=rule)
                logger.warning(
                    "Skipping daily quote for %s; output rejected by %s: %s",
                    recipient, rule, sanitize_text(quote, max_length=120),
                )
                return self._outcome(subscription, STATUS_SKIPPED, f"Generated quote rejected ({rule}).")

            self.mailer.send_quote(
                subscription.email,
                quote,
                subject=self.subject,
                unsubscribe_url=build_unsubscribe_url(subscription.id, self.app_url),
            )
        except QuoteCraftError as exc:
            metrics.increment("dispatch.failed", error=type(exc).__name__)
            logger.error("Failed to send daily quote to %s: %s", recipient, exc.message)
            return self._outcome(subscription, STATUS_FAILED, exc.message)
        except Exception as exc:
            metrics.increment("dispatch.failed", error=type(exc).__name__)
            logger.exception("Unexpected error sending daily quote to %s", recipient)
            return self._outcome(subscription, STATUS_FAILED, str(exc))

        metrics.increment("dispatch.sent")
        logger.info("Successfully sent daily quote to %s", recipient)
        return self._outcome(subscription, STATUS_SENT)

    @staticmethod
    def _outcome(subscription: Subscription, status: str, detail: Optional[str] = None) -> DispatchOutcome:
        return DispatchOutcome(
            subscription_id=subscription.id,
            email=subscription.email,
            status=status,
            detail=detail,
        )
