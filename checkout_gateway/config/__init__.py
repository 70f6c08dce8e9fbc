"""Configuration package for the checkout gateway."""
from .settings import CheckoutUIMode, Settings, get_settings

__all__ = ["CheckoutUIMode", "Settings", "get_settings"]
