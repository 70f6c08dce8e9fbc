"""
Health checks for liveness/readiness probes.

Checks:
- Stripe API reachability (with the configured secret key)
"""
from typing import Any, Dict, Optional

import structlog

from checkout_gateway.integrations.stripe_client import StripeClient, StripeError

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for monitoring the gateway's one dependency.

    Provides:
    - Stripe API reachability check
    - Overall system health status
    """

    def __init__(self, stripe_client: Optional[StripeClient] = None) -> None:
        """Initialize health check service."""
        self._stripe_client = stripe_client

    @property
    def stripe_client(self) -> StripeClient:
        """Lazily construct the client so importing this module needs no settings."""
        if self._stripe_client is None:
            self._stripe_client = StripeClient()
        return self._stripe_client

    async def check_stripe(self) -> Dict[str, Any]:
        """
        Check Stripe API reachability.

        Returns:
            Dict[str, Any]: Stripe health status

        Raises:
            HealthCheckError: If Stripe check fails
        """
        try:
            await self.stripe_client.ping()
        except StripeError as e:
            logger.error("stripe_health_check_failed", error=str(e))
            raise HealthCheckError(f"Stripe health check failed: {str(e)}")

        return {
            "status": "healthy",
            "service": "stripe",
            "message": "Stripe API connection successful",
            "test_mode": self.stripe_client.settings.is_test_mode,
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health status
        """
        checks = {}
        all_healthy = True

        try:
            checks["stripe"] = await self.check_stripe()
        except HealthCheckError as e:
            checks["stripe"] = {
                "status": "unhealthy",
                "service": "stripe",
                "error": str(e),
            }
            all_healthy = False

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """
        Liveness probe.

        Does not check external dependencies.
        """
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe: ready when Stripe answers."""
        return await self.check_all()
