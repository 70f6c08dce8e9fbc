"""
Stripe webhook handler with signature verification and event routing.

Implements:
- Webhook signature verification (when a signing secret is configured)
- Unverified JSON parsing when no secret is configured
- Event type routing to registered handlers
"""
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import stripe
import structlog

from checkout_gateway.config import Settings, get_settings
from checkout_gateway.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


class WebhookError(Exception):
    """Raised when a webhook cannot be verified or parsed."""

    pass


class WebhookHandler:
    """
    Handles Stripe webhook events.

    Features:
    - Signature verification using the Stripe webhook secret
    - Event type routing to appropriate handlers
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize webhook handler.

        Args:
            settings: Optional settings (uses cached settings if not provided)
        """
        self.settings = settings or get_settings()
        self.event_handlers: Dict[str, EventHandler] = {}

        if not self.settings.verifies_webhooks:
            logger.warning("webhook_signature_verification_disabled")

        logger.info("webhook_handler_initialized")

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event_type: Stripe event type (e.g., 'checkout.session.completed')
            handler: Async callable receiving the event's ``data.object``

        Example:
            async def handle_session_completed(session):
                ...

            handler.register_handler('checkout.session.completed', handle_session_completed)
        """
        self.event_handlers[event_type] = handler
        logger.info("webhook_handler_registered", event_type=event_type)

    def verify_signature(self, payload: bytes, signature: Optional[str], secret: str) -> None:
        """
        Verify the Stripe-Signature header against the raw body.

        Raises:
            WebhookError: If the header is missing, malformed, stale or wrong
        """
        if not signature:
            logger.error("webhook_signature_missing")
            raise WebhookError("No stripe-signature header value was provided.")

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.error("webhook_signature_verification_failed", error=str(e))
            raise WebhookError(str(e))
        except UnicodeDecodeError as e:
            logger.error("webhook_payload_invalid", error=str(e))
            raise WebhookError(f"Invalid payload: {e}")

    @staticmethod
    def _shape_problem(event: Any) -> Optional[str]:
        """Describe why a decoded body is not an event object, or None if it is one."""
        if not isinstance(event, dict) or "type" not in event:
            return "missing event type"
        if not isinstance(event["type"], str):
            return "event type must be a string"
        data = event.get("data")
        if data is not None and not isinstance(data, dict):
            return "event data must be an object"
        if data is not None and data.get("object") is not None and not isinstance(
            data["object"], dict
        ):
            return "event data.object must be an object"
        return None

    def metric_label(self, event_type: str) -> str:
        """Event type as a metric label; types without a handler share one label."""
        return event_type if event_type in self.event_handlers else "other"

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Build an event from the raw request body.

        With a signing secret configured the ``Stripe-Signature`` header must
        verify against it first; without one the body is parsed as-is.

        Args:
            payload: Raw request body as bytes
            signature: Stripe-Signature header value, if sent

        Returns:
            Dict[str, Any]: The decoded event

        Raises:
            WebhookError: If verification or parsing fails
        """
        webhook_secret = self.settings.stripe_webhook_secret
        if webhook_secret is not None:
            self.verify_signature(payload, signature, webhook_secret)

        try:
            event = json.loads(payload)
        except ValueError as e:
            logger.error("webhook_payload_invalid", error=str(e))
            raise WebhookError(f"Invalid payload: {e}")
        problem = self._shape_problem(event)
        if problem is not None:
            logger.error("webhook_payload_invalid", error=problem)
            raise WebhookError(f"Invalid payload: {problem}")

        if webhook_secret is None:
            logger.warning("webhook_unverified_event_accepted", event_type=event["type"])
        else:
            logger.info(
                "webhook_signature_verified",
                event_id=event.get("id"),
                event_type=event["type"],
            )
        return event

    async def process_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Route an event to its registered handler.

        Args:
            event: Verified (or, without a secret, parsed) event

        Returns:
            Dict[str, Any]: Processing result
        """
        start_time = time.time()
        event_id = event.get("id")
        event_type = event["type"]
        event_object = (event.get("data") or {}).get("object") or {}

        logger.info("processing_webhook_event", event_id=event_id, event_type=event_type)

        handler = self.event_handlers.get(event_type)
        if handler is None:
            logger.info("webhook_unhandled_event_type", event_id=event_id, event_type=event_type)
            metrics.record_webhook_event(
                self.metric_label(event_type), "unhandled", time.time() - start_time
            )
            return {"status": "unhandled", "event_id": event_id, "event_type": event_type}

        result = await handler(event_object)

        metrics.record_webhook_event(
            self.metric_label(event_type), "handled", time.time() - start_time
        )
        logger.info("webhook_event_processed", event_id=event_id, event_type=event_type)

        return {
            "status": "handled",
            "event_id": event_id,
            "event_type": event_type,
            "result": result,
        }

    async def handle_checkout_session_completed(
        self, session: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Handle checkout.session.completed event.

        Order fulfillment (provisioning, confirmation email) hooks in here;
        for now the completed session is only recorded in the logs.
        """
        customer_details = session.get("customer_details")
        if not isinstance(customer_details, dict):
            customer_details = {}

        logger.info(
            "payment_succeeded",
            session_id=session.get("id"),
            payment_status=session.get("payment_status"),
            amount_total=session.get("amount_total"),
            currency=session.get("currency"),
            customer_email=customer_details.get("email") or session.get("customer_email"),
        )
        logger.info("order_fulfillment_pending", session_id=session.get("id"))

        return {"session_id": session.get("id"), "fulfilled": False}

    async def handle_payment_intent_succeeded(
        self, payment_intent: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Handle payment_intent.succeeded event."""
        logger.info(
            "payment_intent_succeeded",
            payment_intent_id=payment_intent.get("id"),
            amount=payment_intent.get("amount"),
            currency=payment_intent.get("currency"),
        )
        return {"payment_intent_id": payment_intent.get("id")}

    def register_default_handlers(self) -> None:
        """Register the built-in checkout and payment intent handlers."""
        self.register_handler(
            "checkout.session.completed", self.handle_checkout_session_completed
        )
        self.register_handler(
            "payment_intent.succeeded", self.handle_payment_intent_succeeded
        )
