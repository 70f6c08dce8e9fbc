"""
Unit tests for webhook verification and event routing.
"""
import json
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from checkout_gateway.config import Settings
from checkout_gateway.integrations.webhook_handler import WebhookError, WebhookHandler
from checkout_gateway.monitoring.metrics import webhook_events_received_total


class TestWebhookVerification:
    """Test suite for WebhookHandler.construct_event."""

    @pytest.mark.unit
    def test_valid_signature(
        self,
        webhook_handler: WebhookHandler,
        sign_payload: Callable[..., str],
        checkout_completed_event: dict[str, Any],
    ) -> None:
        """Test that a correctly signed payload yields the event."""
        payload = json.dumps(checkout_completed_event)

        event = webhook_handler.construct_event(payload.encode("utf-8"), sign_payload(payload))

        assert event["id"] == "evt_test_123"
        assert event["type"] == "checkout.session.completed"
        assert event["data"]["object"]["id"] == "cs_test_123"

    @pytest.mark.unit
    def test_wrong_secret_rejected(
        self,
        webhook_handler: WebhookHandler,
        sign_payload: Callable[..., str],
        checkout_completed_event: dict[str, Any],
    ) -> None:
        """Test that a signature made with another secret is rejected."""
        payload = json.dumps(checkout_completed_event)

        with pytest.raises(WebhookError):
            webhook_handler.construct_event(
                payload.encode("utf-8"), sign_payload(payload, secret="whsec_other")
            )

    @pytest.mark.unit
    def test_tampered_payload_rejected(
        self,
        webhook_handler: WebhookHandler,
        sign_payload: Callable[..., str],
        checkout_completed_event: dict[str, Any],
    ) -> None:
        """Test that the body must match what was signed."""
        payload = json.dumps(checkout_completed_event)
        signature = sign_payload(payload)
        checkout_completed_event["data"]["object"]["amount_total"] = 1

        with pytest.raises(WebhookError):
            webhook_handler.construct_event(
                json.dumps(checkout_completed_event).encode("utf-8"), signature
            )

    @pytest.mark.unit
    def test_stale_timestamp_rejected(
        self,
        webhook_handler: WebhookHandler,
        sign_payload: Callable[..., str],
        checkout_completed_event: dict[str, Any],
    ) -> None:
        """Test replay protection via the signature timestamp."""
        payload = json.dumps(checkout_completed_event)

        with pytest.raises(WebhookError):
            webhook_handler.construct_event(
                payload.encode("utf-8"), sign_payload(payload, timestamp=1_000_000)
            )

    @pytest.mark.unit
    def test_missing_signature_rejected(
        self, webhook_handler: WebhookHandler, checkout_completed_event: dict[str, Any]
    ) -> None:
        """Test that the header is mandatory when a secret is configured."""
        payload = json.dumps(checkout_completed_event).encode("utf-8")

        with pytest.raises(WebhookError, match="No stripe-signature header"):
            webhook_handler.construct_event(payload, None)

    @pytest.mark.unit
    def test_unverified_mode_parses_payload(
        self,
        make_settings: Callable[..., Settings],
        checkout_completed_event: dict[str, Any],
    ) -> None:
        """Test that without a secret the body is accepted as-is."""
        handler = WebhookHandler(make_settings(stripe_webhook_secret=None))
        payload = json.dumps(checkout_completed_event).encode("utf-8")

        event = handler.construct_event(payload, "t=1,v1=garbage")

        assert event["type"] == "checkout.session.completed"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"[1, 2, 3]",
            b'{"id": "evt_1"}',
            b'{"type": ["a"]}',
            b'{"type": "invoice.paid", "data": [1]}',
            b'{"type": "checkout.session.completed", "data": {"object": "str"}}',
        ],
    )
    def test_unverified_mode_rejects_malformed_payload(
        self, make_settings: Callable[..., Settings], payload: bytes
    ) -> None:
        """Test that garbage bodies are rejected even without verification."""
        handler = WebhookHandler(make_settings(stripe_webhook_secret=None))

        with pytest.raises(WebhookError, match="Invalid payload"):
            handler.construct_event(payload, None)


class TestWebhookRouting:
    """Test suite for WebhookHandler.process_event."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_routes_to_registered_handler(
        self, test_settings: Settings, checkout_completed_event: dict[str, Any]
    ) -> None:
        """Test that the event's data.object is passed to the handler."""
        handler = WebhookHandler(test_settings)
        session_handler = AsyncMock(return_value={"ok": True})
        handler.register_handler("checkout.session.completed", session_handler)

        result = await handler.process_event(checkout_completed_event)

        session_handler.assert_awaited_once_with(checkout_completed_event["data"]["object"])
        assert result["status"] == "handled"
        assert result["event_id"] == "evt_test_123"
        assert result["result"] == {"ok": True}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unhandled_event_type(self, webhook_handler: WebhookHandler) -> None:
        """Test that unknown event types are acknowledged without dispatch."""
        event = {"id": "evt_1", "type": "customer.created", "data": {"object": {}}}

        result = await webhook_handler.process_event(event)

        assert result == {
            "status": "unhandled",
            "event_id": "evt_1",
            "event_type": "customer.created",
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_checkout_session_completed_placeholder(
        self, webhook_handler: WebhookHandler, checkout_completed_event: dict[str, Any]
    ) -> None:
        """Test the built-in completed-session handler."""
        result = await webhook_handler.process_event(checkout_completed_event)

        assert result["status"] == "handled"
        assert result["result"] == {"session_id": "cs_test_123", "fulfilled": False}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_payment_intent_succeeded(self, webhook_handler: WebhookHandler) -> None:
        """Test the built-in payment intent handler."""
        event = {
            "id": "evt_2",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123", "amount": 2500, "currency": "usd"}},
        }

        result = await webhook_handler.process_event(event)

        assert result["result"] == {"payment_intent_id": "pi_123"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_event_types_share_metric_label(
        self, webhook_handler: WebhookHandler
    ) -> None:
        """Test that arbitrary event types do not create new metric series."""

        def received_labels() -> set[str]:
            return {
                sample.labels["event_type"]
                for metric in webhook_events_received_total.collect()
                for sample in metric.samples
                if sample.name == "webhook_events_received_total"
            }

        for event_type in ("made.up.one", "made.up.two"):
            await webhook_handler.process_event(
                {"id": "evt_x", "type": event_type, "data": {"object": {}}}
            )

        labels = received_labels()
        assert "made.up.one" not in labels
        assert "made.up.two" not in labels
        assert "other" in labels
        assert webhook_handler.metric_label("checkout.session.completed") == (
            "checkout.session.completed"
        )
