"""
API routes for checkout sessions, webhooks and monitoring.
"""
from functools import lru_cache
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from checkout_gateway.config import CheckoutUIMode, Settings, get_settings
from checkout_gateway.integrations.stripe_client import StripeClient, StripeError
from checkout_gateway.integrations.webhook_handler import WebhookError, WebhookHandler
from checkout_gateway.monitoring.health import HealthCheck
from checkout_gateway.monitoring.metrics import metrics

from .schemas import (
    CreateCheckoutSessionRequest,
    EmbeddedCheckoutSessionResponse,
    ErrorResponse,
    HealthCheckResponse,
    HostedCheckoutSessionResponse,
    SessionStatusResponse,
    WebhookAck,
)

logger = structlog.get_logger(__name__)

CHECKOUT_SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

# Create routers
checkout_router = APIRouter(tags=["checkout"])
webhook_router = APIRouter(tags=["webhooks"])
monitoring_router = APIRouter(tags=["monitoring"])


@lru_cache()
def get_stripe_client() -> StripeClient:
    """Shared Stripe client."""
    return StripeClient()


@lru_cache()
def get_webhook_handler() -> WebhookHandler:
    """Shared webhook handler with the built-in event handlers registered."""
    handler = WebhookHandler()
    handler.register_default_handlers()
    return handler


@lru_cache()
def get_health_check() -> HealthCheck:
    """Shared health check service."""
    return HealthCheck(get_stripe_client())


def resolve_origin(request: Request, settings: Settings) -> str:
    """Origin used to build default redirect URLs."""
    origin = request.headers.get("origin")
    if not origin or origin == "null":
        origin = settings.frontend_url
    return origin.rstrip("/")


def default_success_url(origin: str) -> str:
    """Success page URL with Stripe's session id template variable."""
    return f"{origin}/success?session_id={CHECKOUT_SESSION_ID_PLACEHOLDER}"


@checkout_router.post(
    "/create-checkout-session",
    responses={400: {"model": ErrorResponse}},
    summary="Create a checkout session",
    description=(
        "Create a Stripe Checkout Session. Hosted mode returns the redirect URL; "
        "embedded mode returns the client secret for mounting Checkout in the page."
    ),
)
async def create_checkout_session(
    body: CreateCheckoutSessionRequest,
    request: Request,
    stripe_client: StripeClient = Depends(get_stripe_client),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Create a checkout session in the configured UI mode.

    Hosted mode needs ``amount`` and ``customerEmail``; embedded mode needs
    ``priceId``. Any Stripe failure is reported as a 400 with its message.
    """
    ui_mode = settings.checkout_ui_mode
    origin = resolve_origin(request, settings)

    if ui_mode == CheckoutUIMode.EMBEDDED:
        missing = body.missing_fields("price_id")
    else:
        missing = body.missing_fields("amount", "customer_email")
    if missing:
        logger.warning(
            "api_create_checkout_session_validation_error",
            ui_mode=ui_mode.value,
            missing=missing,
        )
        metrics.record_checkout_session(ui_mode.value, "rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    if ui_mode == CheckoutUIMode.HOSTED and body.amount <= 0:
        metrics.record_checkout_session(ui_mode.value, "rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="amount must be a positive integer in the currency's smallest unit",
        )

    logger.info(
        "api_create_checkout_session_request",
        ui_mode=ui_mode.value,
        amount=body.amount,
        price_id=body.price_id,
        currency=body.currency or settings.default_currency,
    )

    try:
        if ui_mode == CheckoutUIMode.EMBEDDED:
            session = await stripe_client.create_embedded_session(
                price_id=body.price_id,
                return_url=body.success_url or default_success_url(origin),
                customer_email=body.customer_email,
                metadata=body.metadata,
                quantity=body.quantity,
            )
            response = EmbeddedCheckoutSessionResponse(
                client_secret=session.client_secret, session_id=session.id
            ).model_dump(by_alias=True)
        else:
            session = await stripe_client.create_hosted_session(
                amount=body.amount,
                currency=body.currency or settings.default_currency,
                customer_email=body.customer_email,
                success_url=body.success_url or default_success_url(origin),
                cancel_url=body.cancel_url or f"{origin}/cancel",
                description=body.description,
                metadata=body.metadata,
                quantity=body.quantity,
            )
            response = HostedCheckoutSessionResponse(
                session_id=session.id, url=session.url
            ).model_dump(by_alias=True)

    except StripeError as e:
        logger.warning("api_create_checkout_session_error", error=str(e))
        metrics.record_checkout_session(ui_mode.value, "failed")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    metrics.record_checkout_session(ui_mode.value, "created", body.amount)
    logger.info("api_create_checkout_session_success", session_id=session.id)

    return response


@checkout_router.get(
    "/session-status",
    response_model=SessionStatusResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Get checkout session status",
    description="Look up a checkout session for the success page",
)
async def session_status(
    session_id: Optional[str] = None,
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> Dict[str, Any]:
    """Project a checkout session onto the fields the success page needs."""
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="session_id query parameter is required",
        )

    try:
        session = await stripe_client.retrieve_session(session_id)
    except StripeError as e:
        logger.warning("api_session_status_error", session_id=session_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    customer_details = getattr(session, "customer_details", None)
    return {
        "status": session.status,
        "payment_status": session.payment_status,
        "customer_email": customer_details.email if customer_details else None,
        "amount_total": session.amount_total,
        "currency": session.currency,
    }


@webhook_router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Stripe webhook endpoint",
    description="Receive Stripe events; signatures are verified when a signing secret is set",
    responses={400: {"content": {"text/plain": {}}, "description": "Verification failed"}},
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="stripe-signature"),
    webhook_handler: WebhookHandler = Depends(get_webhook_handler),
) -> Any:
    """Verify, dispatch and acknowledge a Stripe event."""
    body = await request.body()

    try:
        event = webhook_handler.construct_event(body, stripe_signature)
    except WebhookError as e:
        metrics.record_webhook_rejected()
        return PlainTextResponse(
            f"Webhook Error: {e}", status_code=status.HTTP_400_BAD_REQUEST
        )

    logger.info("api_webhook_received", event_id=event.get("id"), event_type=event["type"])

    await webhook_handler.process_event(event)

    return {"received": True}


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Check overall system health",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Liveness probe endpoint."""
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    description="Kubernetes readiness probe endpoint",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Readiness probe endpoint."""
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
