"""
Pytest configuration and fixtures.
"""
import hashlib
import hmac
import os
import time
from typing import Any, AsyncGenerator, Callable, Optional
from unittest.mock import AsyncMock

# Settings are read at import time by the app module
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key_for_testing")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_fake_secret")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from checkout_gateway.api.main import app
from checkout_gateway.api.routes import get_health_check, get_stripe_client, get_webhook_handler
from checkout_gateway.config import Settings, get_settings
from checkout_gateway.integrations.stripe_client import StripeClient
from checkout_gateway.integrations.webhook_handler import WebhookHandler
from checkout_gateway.monitoring.health import HealthCheck

TEST_WEBHOOK_SECRET = "whsec_test_fake_secret"


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build settings for tests, overriding any field."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "stripe_secret_key": "sk_test_fake_key_for_testing",
            "stripe_webhook_secret": TEST_WEBHOOK_SECRET,
            "app_name": "checkout-gateway-test",
            "app_env": "test",
            "log_level": "DEBUG",
            "frontend_url": "http://localhost:3000",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def test_settings(make_settings: Callable[..., Settings]) -> Settings:
    """Hosted-mode settings with webhook verification enabled."""
    return make_settings()


@pytest.fixture
def mock_stripe_client(test_settings: Settings) -> AsyncMock:
    """Stripe client double; no network calls."""
    client = AsyncMock(spec=StripeClient)
    client.settings = test_settings
    return client


@pytest.fixture
def webhook_handler(test_settings: Settings) -> WebhookHandler:
    """Webhook handler verifying against the test secret."""
    handler = WebhookHandler(test_settings)
    handler.register_default_handlers()
    return handler


@pytest_asyncio.fixture
async def client(
    test_settings: Settings,
    mock_stripe_client: AsyncMock,
    webhook_handler: WebhookHandler,
) -> AsyncGenerator[AsyncClient, Any]:
    """HTTP client against the app with Stripe replaced by a mock."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_stripe_client] = lambda: mock_stripe_client
    app.dependency_overrides[get_webhook_handler] = lambda: webhook_handler
    app.dependency_overrides[get_health_check] = lambda: HealthCheck(mock_stripe_client)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sign_payload() -> Callable[..., str]:
    """Produce a Stripe-Signature header value for a payload."""

    def _sign(
        payload: str, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None
    ) -> str:
        timestamp = timestamp if timestamp is not None else int(time.time())
        signed_payload = f"{timestamp}.{payload}".encode("utf-8")
        signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"

    return _sign


@pytest.fixture
def checkout_completed_event() -> dict[str, Any]:
    """Sample checkout.session.completed event."""
    return {
        "id": "evt_test_123",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_123",
                "object": "checkout.session",
                "amount_total": 2500,
                "currency": "usd",
                "payment_status": "paid",
                "status": "complete",
                "customer_details": {"email": "jenny@example.com"},
            }
        },
    }


@pytest.fixture
def sample_checkout_data() -> dict[str, Any]:
    """Sample hosted checkout request body."""
    return {
        "amount": 2500,
        "currency": "usd",
        "customerEmail": "jenny@example.com",
        "description": "Premium plan",
        "successUrl": "https://shop.example.com/success",
        "cancelUrl": "https://shop.example.com/cancel",
        "metadata": {"order_id": "order_123"},
    }
