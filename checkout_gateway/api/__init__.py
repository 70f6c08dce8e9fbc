"""FastAPI application and routes."""
from .main import app
from .schemas import (
    CreateCheckoutSessionRequest,
    EmbeddedCheckoutSessionResponse,
    HostedCheckoutSessionResponse,
    SessionStatusResponse,
)

__all__ = [
    "app",
    "CreateCheckoutSessionRequest",
    "EmbeddedCheckoutSessionResponse",
    "HostedCheckoutSessionResponse",
    "SessionStatusResponse",
]
