"""Stripe checkout gateway: session creation, status lookups and webhooks."""

__version__ = "1.0.0"
