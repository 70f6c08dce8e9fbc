"""
Stripe API client for Checkout Sessions.

Implements:
- Hosted and embedded Checkout Session creation
- Session retrieval for status pages
- Error classification for provider failures

Calls are made once; failures are surfaced to the caller without retrying.
"""
import asyncio
import time
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional

import stripe
import structlog

from checkout_gateway.config import Settings, get_settings
from checkout_gateway.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class StripeErrorType(Enum):
    """Classification of Stripe errors."""

    TRANSIENT = "transient"  # network, 5xx
    PERMANENT = "permanent"  # bad request, card, auth
    RATE_LIMIT = "rate_limit"


class StripeError(Exception):
    """Base exception for Stripe-related errors."""

    def __init__(
        self,
        message: str,
        error_type: StripeErrorType,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize Stripe error.

        Args:
            message: Error message
            error_type: Classification of error
            original_error: Original Stripe exception
        """
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error


class StripeClient:
    """
    Wrapper for the Stripe Checkout Sessions API.

    The SDK is synchronous, so every call is pushed onto the event loop's
    default executor.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """Initialize Stripe client."""
        settings = settings or get_settings()
        stripe.api_key = settings.stripe_secret_key
        if settings.stripe_api_version:
            stripe.api_version = settings.stripe_api_version
        self.settings = settings

        logger.info(
            "stripe_client_initialized",
            api_version=settings.stripe_api_version,
            test_mode=settings.is_test_mode,
        )

    @staticmethod
    def _classify_error(error: stripe.StripeError) -> StripeErrorType:
        """
        Classify Stripe error.

        Args:
            error: Stripe error

        Returns:
            StripeErrorType: Error classification
        """
        if isinstance(error, stripe.RateLimitError):
            return StripeErrorType.RATE_LIMIT
        elif isinstance(
            error,
            (
                stripe.CardError,
                stripe.InvalidRequestError,
                stripe.AuthenticationError,
                stripe.PermissionError,
            ),
        ):
            return StripeErrorType.PERMANENT
        else:
            # APIConnectionError, APIError and anything unknown
            return StripeErrorType.TRANSIENT

    def _handle_stripe_error(self, operation: str, error: stripe.StripeError) -> StripeError:
        """
        Log and wrap a Stripe SDK error.

        Args:
            operation: Name of the API operation that failed
            error: Stripe error

        Returns:
            StripeError: Classified error, ready to raise
        """
        error_type = self._classify_error(error)
        message = getattr(error, "user_message", None) or str(error)

        logger.error(
            "stripe_api_error",
            operation=operation,
            error_type=error_type.value,
            error_code=getattr(error, "code", None),
            error_message=message,
        )
        metrics.record_stripe_api_error(error_type.value)

        return StripeError(
            message=message,
            error_type=error_type,
            original_error=error,
        )

    async def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        """Run a blocking SDK call in the executor, recording latency and errors."""
        start_time = time.time()
        try:
            result = await asyncio.get_event_loop().run_in_executor(
                None, partial(func, **kwargs)
            )
        except stripe.StripeError as e:
            metrics.record_stripe_api_call(operation, "error", time.time() - start_time)
            raise self._handle_stripe_error(operation, e) from e

        metrics.record_stripe_api_call(operation, "success", time.time() - start_time)
        return result

    async def create_hosted_session(
        self,
        amount: int,
        currency: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        quantity: int = 1,
    ) -> stripe.checkout.Session:
        """
        Create a Stripe-hosted Checkout Session for an ad-hoc amount.

        Args:
            amount: Unit amount in the currency's smallest unit
            currency: Currency code (e.g., 'usd')
            customer_email: Email to prefill on the checkout page
            success_url: Redirect target after payment
            cancel_url: Redirect target when the customer backs out
            description: Product name shown on the checkout page
            metadata: Optional metadata copied onto the session
            quantity: Line item quantity

        Returns:
            stripe.checkout.Session: Created session (``id`` and ``url`` set)

        Raises:
            StripeError: If session creation fails
        """
        logger.info(
            "creating_hosted_checkout_session",
            amount=amount,
            currency=currency,
            quantity=quantity,
        )

        session = await self._call(
            "create_session",
            stripe.checkout.Session.create,
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": description or "Payment"},
                        "unit_amount": amount,
                    },
                    "quantity": quantity,
                }
            ],
            customer_email=customer_email,
            metadata=metadata or {},
            success_url=success_url,
            cancel_url=cancel_url,
        )

        logger.info("checkout_session_created", session_id=session.id, ui_mode="hosted")
        return session

    async def create_embedded_session(
        self,
        price_id: str,
        return_url: str,
        customer_email: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        quantity: int = 1,
    ) -> stripe.checkout.Session:
        """
        Create an embedded Checkout Session for a catalog Price.

        Args:
            price_id: Stripe Price ID (``price_...``)
            return_url: Where Checkout sends the customer once it completes
            customer_email: Optional email to prefill
            metadata: Optional metadata copied onto the session
            quantity: Line item quantity

        Returns:
            stripe.checkout.Session: Created session (``client_secret`` set)

        Raises:
            StripeError: If session creation fails
        """
        logger.info("creating_embedded_checkout_session", price_id=price_id, quantity=quantity)

        kwargs: Dict[str, Any] = {
            "ui_mode": "embedded",
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": quantity}],
            "return_url": return_url,
            "automatic_tax": {"enabled": self.settings.automatic_tax},
        }
        if customer_email:
            kwargs["customer_email"] = customer_email
        if metadata:
            kwargs["metadata"] = metadata

        session = await self._call("create_session", stripe.checkout.Session.create, **kwargs)

        logger.info("checkout_session_created", session_id=session.id, ui_mode="embedded")
        return session

    async def retrieve_session(self, session_id: str) -> stripe.checkout.Session:
        """
        Retrieve a Checkout Session by ID.

        Args:
            session_id: Stripe Checkout Session ID

        Returns:
            stripe.checkout.Session: Retrieved session

        Raises:
            StripeError: If retrieval fails
        """
        logger.info("retrieving_checkout_session", session_id=session_id)
        return await self._call(
            "retrieve_session", stripe.checkout.Session.retrieve, id=session_id
        )

    async def ping(self) -> None:
        """Make the cheapest authenticated call available, for readiness checks."""
        await self._call("ping", stripe.Balance.retrieve)
