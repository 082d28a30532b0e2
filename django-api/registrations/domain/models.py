"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from events.domain.value_objects import Money


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentState(str, Enum):
    """Payment progress as tracked on the registration."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


@dataclass(frozen=True)
class PromoCode:
    """Domain representation of a PromoCode."""

    id: UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    usage_limit: int
    used_count: int = 0
    is_active: bool = True
    expiration_date: datetime | None = None
    event_id: UUID | None = None

    @property
    def is_exhausted(self) -> bool:
        return self.used_count >= self.usage_limit

    def is_expired_at(self, now: datetime) -> bool:
        return self.expiration_date is not None and self.expiration_date < now


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration."""

    id: UUID
    event_id: UUID
    email: str
    name: str
    surname: str
    final_price: Money
    discount_amount: Money
    created_at: datetime
    user_id: int | None = None
    city: str = ""
    running_club: str = ""
    phone: str = ""
    promo_code: str | None = None
    promo_code_id: UUID | None = None
    status: RegistrationStatus = RegistrationStatus.PENDING
    payment_status: PaymentState = PaymentState.PENDING

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip() or "Participant"

    @property
    def is_cancelled(self) -> bool:
        return self.status == RegistrationStatus.CANCELLED


@dataclass(frozen=True)
class Payment:
    """Domain representation of a single payment attempt for a registration."""

    id: UUID
    registration_id: UUID
    amount: Money
    currency: str
    created_at: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    invoice_id: str | None = None
    provider_payment_id: str | None = None
    payment_link: str | None = None
    webhook_data: dict[str, Any] = field(default_factory=dict)
    promo_redeemed: bool = False


@dataclass(frozen=True)
class NewRegistration:
    """Input for creating a registration row."""

    event_id: UUID
    email: str
    name: str
    surname: str
    final_price: Money
    discount_amount: Money
    user_id: int | None = None
    city: str = ""
    running_club: str = ""
    phone: str = ""
    promo_code: str | None = None
    promo_code_id: UUID | None = None
    status: RegistrationStatus = RegistrationStatus.PENDING
    payment_status: PaymentState = PaymentState.PENDING
