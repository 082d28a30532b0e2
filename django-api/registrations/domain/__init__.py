from registrations.domain.models import (
    DiscountType,
    NewRegistration,
    Payment,
    PaymentState,
    PaymentStatus,
    PromoCode,
    Registration,
    RegistrationStatus,
)
from registrations.domain.pricing import PriceBreakdown, calculate_price

__all__ = [
    "DiscountType",
    "NewRegistration",
    "Payment",
    "PaymentState",
    "PaymentStatus",
    "PromoCode",
    "Registration",
    "RegistrationStatus",
    "PriceBreakdown",
    "calculate_price",
]
