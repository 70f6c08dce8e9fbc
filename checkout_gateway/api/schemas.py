"""
Pydantic schemas for API request/response models.

Field names on the wire are camelCase for the checkout endpoints, matching
what the storefront frontend sends; session status keeps Stripe's own
snake_case names.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateCheckoutSessionRequest(BaseModel):
    """
    Request schema for creating a checkout session.

    Which fields are required depends on the configured checkout UI mode,
    so presence checks happen in the route rather than here.
    """

    amount: Optional[int] = Field(
        default=None, description="Amount in the currency's smallest unit (hosted mode)"
    )
    price_id: Optional[str] = Field(
        default=None, alias="priceId", description="Stripe Price ID (embedded mode)"
    )
    currency: Optional[str] = Field(default=None, description="Currency code (e.g., usd)")
    customer_email: Optional[str] = Field(
        default=None, alias="customerEmail", description="Customer email to prefill"
    )
    description: Optional[str] = Field(default=None, description="Product name on the checkout page")
    success_url: Optional[str] = Field(
        default=None, alias="successUrl", description="Redirect after successful payment"
    )
    cancel_url: Optional[str] = Field(
        default=None, alias="cancelUrl", description="Redirect when checkout is cancelled"
    )
    metadata: Optional[Dict[str, str]] = Field(
        default=None, description="Metadata copied onto the Stripe session"
    )
    quantity: int = Field(default=1, ge=1, description="Line item quantity")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "amount": 2500,
                    "currency": "usd",
                    "customerEmail": "jenny@example.com",
                    "description": "Premium plan",
                    "successUrl": "https://shop.example.com/success?session_id={CHECKOUT_SESSION_ID}",
                    "cancelUrl": "https://shop.example.com/cancel",
                    "metadata": {"order_id": "order_123"},
                },
                {"priceId": "price_1234567890", "customerEmail": "jenny@example.com"},
            ]
        },
    )

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        """Validate currency format."""
        if v is None:
            return v
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be 3-letter code")
        return v.lower()

    @field_validator("metadata", mode="before")
    @classmethod
    def stringify_metadata(cls, v: Any) -> Any:
        """Stripe metadata values are strings; coerce scalars sent as JSON numbers/bools."""
        if isinstance(v, dict):
            return {str(key): value if isinstance(value, str) else str(value) for key, value in v.items()}
        return v

    def missing_fields(self, *names: str) -> list[str]:
        """Return wire names of the given fields that were not provided (or are blank)."""
        missing = []
        for name in names:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                field = type(self).model_fields[name]
                missing.append(field.alias or name)
        return missing


class HostedCheckoutSessionResponse(BaseModel):
    """Response schema for a Stripe-hosted checkout session."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", description="Checkout Session ID")
    url: Optional[str] = Field(default=None, description="Stripe-hosted checkout page URL")


class EmbeddedCheckoutSessionResponse(BaseModel):
    """Response schema for an embedded checkout session."""

    model_config = ConfigDict(populate_by_name=True)

    client_secret: Optional[str] = Field(
        default=None, alias="clientSecret", description="Secret for mounting Checkout"
    )
    session_id: str = Field(..., alias="sessionId", description="Checkout Session ID")


class SessionStatusResponse(BaseModel):
    """Response schema for session status."""

    status: Optional[str] = Field(default=None, description="Session status (open/complete/expired)")
    payment_status: Optional[str] = Field(
        default=None, description="Payment status (paid/unpaid/no_payment_required)"
    )
    customer_email: Optional[str] = Field(default=None, description="Customer email, if known")
    amount_total: Optional[int] = Field(default=None, description="Total in smallest currency unit")
    currency: Optional[str] = Field(default=None, description="Currency code")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")


class WebhookAck(BaseModel):
    """Acknowledgement returned to Stripe for every accepted webhook."""

    received: bool = Field(default=True, description="Always true once the event is accepted")


class ErrorResponse(BaseModel):
    """Error body returned for 4xx/5xx responses."""

    error: str = Field(..., description="Human-readable error message")
