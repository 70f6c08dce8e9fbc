"""Application settings using Pydantic for environment-based configuration."""
from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CheckoutUIMode(str, Enum):
    """Which kind of Checkout Session the gateway creates."""

    HOSTED = "hosted"  # Stripe-hosted page, client is redirected to session.url
    EMBEDDED = "embedded"  # Checkout mounted in the frontend with client_secret


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Stripe Configuration
    stripe_secret_key: str = Field(..., description="Stripe secret API key (sk_test_...)")
    stripe_webhook_secret: Optional[str] = Field(
        default=None,
        description="Stripe webhook signing secret (signature checks are skipped when unset)",
    )
    stripe_api_version: Optional[str] = Field(
        default=None, description="Stripe API version (account default when unset)"
    )

    # Checkout Configuration
    checkout_ui_mode: CheckoutUIMode = Field(
        default=CheckoutUIMode.HOSTED, description="Checkout UI mode (hosted/embedded)"
    )
    automatic_tax: bool = Field(
        default=True, description="Enable Stripe automatic tax for embedded sessions"
    )
    default_currency: str = Field(default="usd", description="Currency when none is given")
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Fallback origin for success/cancel URLs",
    )

    # Application Configuration
    app_name: str = Field(default="checkout-gateway", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("port", "api_port"),
        description="API port",
    )
    api_workers: int = Field(default=1, description="Number of API workers")
    allowed_origins: str = Field(
        default="*", description="CORS allowed origins (comma-separated)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: str) -> str:
        """Validate the Stripe secret key format."""
        if not v.startswith(("sk_test_", "sk_live_", "rk_test_", "rk_live_")):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_', "
                "'sk_live_', 'rk_test_' or 'rk_live_'"
            )
        return v

    @field_validator("stripe_webhook_secret", "stripe_api_version")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty environment values as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Stripe expects lowercase ISO currency codes."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be 3-letter code")
        return v.lower()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_test_mode(self) -> bool:
        """Check if using Stripe test mode."""
        return self.stripe_secret_key.startswith(("sk_test_", "rk_test_"))

    @property
    def verifies_webhooks(self) -> bool:
        """Whether webhook signatures are checked."""
        return self.stripe_webhook_secret is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
