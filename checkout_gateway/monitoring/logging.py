"""
Logging for the checkout gateway.

Every event is one JSON line on stdout carrying the request ID bound by the
HTTP middleware. Checkout secrets and customer emails never reach the logs
in clear text.
"""
import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger.json import JsonFormatter

from checkout_gateway.config import get_settings

# Keys whose values are dropped entirely
SECRET_KEYS = frozenset({"client_secret", "stripe_signature", "secret", "api_key"})
# Keys whose values are partially masked (still useful for support lookups)
PII_KEYS = frozenset({"customer_email", "email"})


def mask_email(value: str) -> str:
    """jenny@example.com -> j***@example.com"""
    local, sep, domain = value.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def redact_checkout_fields(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Strip session secrets and mask customer emails before rendering."""
    for key in list(event_dict):
        value = event_dict[key]
        if key in SECRET_KEYS and value is not None:
            event_dict[key] = "[redacted]"
        elif key in PII_KEYS and isinstance(value, str):
            event_dict[key] = mask_email(value)
    return event_dict


def add_service_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Tag events with the service name, environment and Stripe mode."""
    settings = get_settings()
    event_dict["app_name"] = settings.app_name
    event_dict["app_env"] = settings.app_env
    event_dict["stripe_mode"] = "test" if settings.is_test_mode else "live"
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and the stdlib root logger.

    structlog events are rendered to JSON; records from uvicorn and the
    stripe SDK go through the same stdout handler via python-json-logger.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # request_id, method, path
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            redact_checkout_fields,
            add_service_context,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "@timestamp", "levelname": "level", "name": "logger"},
        )
    )
    root_logger.addHandler(stdout_handler)

    # The SDK logs every request line at INFO
    logging.getLogger("stripe").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        checkout_ui_mode=settings.checkout_ui_mode.value,
    )
