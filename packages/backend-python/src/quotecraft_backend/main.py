import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from .config import settings
from .dispatch import DailyQuoteDispatcher, build_unsubscribe_url
from .errors import EmailDeliveryError, GenerationError, SubscriptionStoreError
from .generation import build_quote_prompt
from .generator import QuoteGenerator
from .mailer import ResendMailer
from .models import (
    CheckEmailRequest,
    QuoteRequest,
    QuoteResponse,
    SendEmailRequest,
    SubscribeRequest,
    Subscription,
)
from .plausibility import (
    InputPlausibilityChecker,
    OutputPlausibilityChecker,
    get_input_checker,
    get_output_checker,
)
from .subscriptions import SubscriptionStore, create_subscription_store
from .telemetry import mask_email, metrics, sanitize_text, setup_logging


logger = logging.getLogger(__name__)

QUOTE_DESCRIPTION_FIELD = "quote description"
TONE_FIELD = "tone"
UNHELPFUL_OUTPUT_MESSAGE = (
    "The AI couldn't generate a meaningful quote for this input. "
    "Please try a more descriptive or different request."
)
INTERNAL_ERROR_MESSAGE = "An internal server error occurred."


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, **extra})


def _html(status_code: int, title: str, body: str) -> HTMLResponse:
    return HTMLResponse(content=f"<h1>{title}</h1><p>{body}</p>", status_code=status_code)


def _flatten_field_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group validation messages by field name, the way the web client expects them."""
    flattened: Dict[str, List[str]] = {}
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(location) or "body"
        flattened.setdefault(field, []).append(error.get("msg", "Invalid value."))
    return flattened


def _screen_inputs(checker: InputPlausibilityChecker, tone: Optional[str], quote_type: str) -> Optional[str]:
    """Run the gibberish filter over the free-text fields, tone first."""
    fields = []
    if tone:
        fields.append((TONE_FIELD, tone))
    fields.append((QUOTE_DESCRIPTION_FIELD, quote_type))
    for field_name, value in fields:
        verdict = checker.evaluate(value, field_name)
        if verdict.rejected:
            metrics.increment("plausibility.input_rejected", field=field_name, rule=verdict.rule)
            logger.warning(
                "Input '%s' deemed gibberish (%s): %s",
                field_name, verdict.rule, sanitize_text(value, max_length=120),
            )
            return verdict.reason
    return None


def create_app(
    *,
    generator: Optional[QuoteGenerator] = None,
    mailer: Optional[ResendMailer] = None,
    store: Optional[SubscriptionStore] = None,
    input_checker: Optional[InputPlausibilityChecker] = None,
    output_checker: Optional[OutputPlausibilityChecker] = None,
    cron_secret: Optional[str] = None,
) -> FastAPI:
    app_config = settings.app_config
    setup_logging(app_config.telemetry.log_level)
    metrics.configure(enabled=app_config.telemetry.metrics_enabled)

    app = FastAPI(
        title="QuoteCraft Backend",
        description="Generates AI quotes, emails them and runs daily quote subscriptions.",
        version="1.0.0",
    )

    # --- CORS Configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Service Initialization ---
    try:
        generator_service = generator or QuoteGenerator()
        mailer_service = mailer or ResendMailer()
        store_service = store or create_subscription_store()
    except Exception as exc:
        # Endpoints answer 503 until the missing service is configured.
        logger.error("Could not initialize services: %s", exc)
        generator_service = generator
        mailer_service = mailer
        store_service = store

    input_filter = input_checker or get_input_checker()
    output_filter = output_checker or get_output_checker()
    required_cron_secret = cron_secret if cron_secret is not None else settings.cron_secret

    app.state.generator = generator_service
    app.state.mailer = mailer_service
    app.state.store = store_service

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info("Validation error on %s: %s", request.url.path, exc.errors())
        return _error(400, "Invalid input.", errors=_flatten_field_errors(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Internal Server Error on %s", request.url.path)
        return _error(500, INTERNAL_ERROR_MESSAGE)

    # --- Health Check ---
    @app.get("/health")
    def health_check():
        services = {
            "generator": generator_service is not None,
            "mailer": mailer_service is not None,
            "subscriptions": store_service is not None and store_service.health_check(),
        }
        status = "ok" if all(services.values()) else "degraded"
        body = {"status": status, "services": services, "metrics": metrics.snapshot()}
        return JSONResponse(status_code=200 if status == "ok" else 503, content=body)

    # --- API Endpoints ---

    @app.post("/api/generate-quote", response_model=QuoteResponse)
    def generate_quote(request: QuoteRequest):
        """Screen the request, generate a quote, and screen the quote."""
        if generator_service is None:
            return _error(503, "Quote generation service not available.")

        rejection = _screen_inputs(input_filter, request.tone, request.quote_type)
        if rejection:
            return _error(400, rejection)

        prompt = build_quote_prompt(request.quote_type, request.tone, request.famous_person)
        logger.info("Generated prompt for AI: %s", sanitize_text(prompt))

        try:
            generated_text = generator_service.generate(prompt)
        except GenerationError as exc:
            return _error(exc.status_code, exc.message)

        rule = output_filter.diagnose(generated_text)
        if rule is not None:
            metrics.increment("plausibility.output_rejected", rule=rule)
            logger.warning(
                "AI response deemed unhelpful (%s): %s",
                rule, sanitize_text(generated_text, max_length=200),
            )
            return _error(400, UNHELPFUL_OUTPUT_MESSAGE)

        metrics.increment("quotes.generated")
        return QuoteResponse(quote=generated_text)

    @app.post("/api/send-email")
    def send_email(request: SendEmailRequest):
        """Email a single quote to the given address."""
        if mailer_service is None:
            return _error(503, "Email service not available.")

        try:
            data = mailer_service.send_quote(
                request.email,
                request.quote,
                subject=app_config.email.one_time_subject,
            )
        except EmailDeliveryError as exc:
            return _error(500, exc.message, errorDetails=exc.details)

        logger.info("One-time email sent to %s", mask_email(request.email))
        return {"message": "Quote sent successfully to your email!", "data": data}

    @app.post("/api/subscribe")
    def subscribe(request: SubscribeRequest):
        """Store a daily subscription and send the confirmation email."""
        if store_service is None or mailer_service is None:
            return _error(503, "Subscription service not available.")

        rejection = _screen_inputs(input_filter, request.tone, request.quote_type)
        if rejection:
            return _error(400, rejection)

        try:
            subscription = store_service.upsert(
                Subscription(
                    email=request.email,
                    famous_person=request.famous_person,
                    tone=request.tone,
                    quote_type=request.quote_type,
                )
            )
        except SubscriptionStoreError as exc:
            logger.error("Subscription store error: %s", exc.message)
            return _error(500, "Could not save subscription.")

        try:
            mailer_service.send_quote(
                subscription.email,
                request.quote,
                subject=app_config.email.subscribe_subject,
                subscription_message=app_config.email.subscription_message,
                unsubscribe_url=build_unsubscribe_url(subscription.id),
            )
        except EmailDeliveryError as exc:
            return _error(500, "Failed to send confirmation email.", errorDetails=exc.details)

        metrics.increment("subscriptions.created")
        return {"message": "Successfully subscribed! A confirmation email has been sent."}

    @app.get("/api/unsubscribe", response_class=HTMLResponse)
    def unsubscribe(subscription_id: Optional[str] = Query(None, alias="id")):
        """Deactivate a subscription from the link in every daily email."""
        if not subscription_id:
            return _html(400, "Invalid Request", "Subscription ID is missing.")
        if store_service is None:
            return _html(503, "Error", "The subscription service is not available.")

        try:
            found = store_service.deactivate(subscription_id)
        except SubscriptionStoreError as exc:
            logger.error("Unsubscribe error: %s", exc.message)
            return _html(
                500, "Error",
                "Could not process your unsubscribe request. Please try again later.",
            )

        if not found:
            logger.warning("Unsubscribe requested for unknown subscription %s", subscription_id)
        else:
            metrics.increment("subscriptions.deactivated")
        return _html(200, "Unsubscribed", "You have been successfully unsubscribed from daily quotes.")

    @app.api_route("/api/cron/send-daily-quotes", methods=["GET", "POST"])
    def send_daily_quotes(request: Request):
        """Triggered once a day by the scheduler."""
        if required_cron_secret:
            if request.headers.get("authorization") != f"Bearer {required_cron_secret}":
                return _error(401, "Unauthorized")
        if not all([store_service, generator_service, mailer_service]):
            return _error(503, "Daily quote services not available.")

        dispatcher = DailyQuoteDispatcher(
            store_service,
            generator_service,
            mailer_service,
            output_checker=output_filter,
        )
        try:
            report = dispatcher.run()
        except SubscriptionStoreError as exc:
            logger.error("Cron job error: %s", exc.message)
            return _error(500, "Error processing daily quotes.", error=exc.message)
        return report.model_dump(mode="json")

    @app.post("/api/auth/check-email")
    def check_email(request: CheckEmailRequest):
        """Tell the sign-in screen whether an address is already known."""
        if store_service is None:
            return _error(503, "Subscription service not available.")
        try:
            exists = store_service.email_exists(request.email)
        except SubscriptionStoreError as exc:
            logger.error("Check-email error: %s", exc.message)
            return _error(500, "Error checking email.")
        return {"exists": exists}

    return app


app = create_app()
