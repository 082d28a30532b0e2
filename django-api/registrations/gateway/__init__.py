"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- MonobankGateway for production
- FakeGateway for development and testing

The backend is picked by ``PAYMENT_GATEWAY["BACKEND"]``.
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from registrations.gateway.fake_adapter import FakeGateway
from registrations.gateway.monobank_adapter import MonobankGateway
from registrations.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def build_gateway(config: dict) -> PaymentGateway:
    backend = config.get("BACKEND", "monobank")
    if backend == "fake":
        return FakeGateway()
    if backend == "monobank":
        if not config.get("API_KEY"):
            raise ImproperlyConfigured("Payment service is not configured: missing API key")
        return MonobankGateway(
            api_key=config["API_KEY"],
            api_url=config["API_URL"],
            webhook_url=config["WEBHOOK_URL"],
            currency_code=config.get("CURRENCY_CODE", 980),
            timeout=config.get("TIMEOUT", 30),
        )
    raise ImproperlyConfigured(f"Unknown payment gateway backend: {backend}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway(settings.PAYMENT_GATEWAY)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the configured gateway."""
    global _current_gateway
    _current_gateway = None
