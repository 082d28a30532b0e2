"""Promo code eligibility and usage bookkeeping.

Usage is consumed only when a payment settles successfully, never when a code
is validated or a registration is created, so abandoned payments do not burn
limited-use codes. Do not move ``redeem`` into the registration path.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable
from uuid import UUID

from django.utils import timezone

from events.domain import parse_uuid
from registrations.domain import DiscountType, PromoCode
from registrations.domain.errors import (
    PromoInvalidError,
    PromoLimitReachedError,
    PromoNotFoundError,
)
from registrations.stores.interfaces import RegistrationStore


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True)
class PromoTerms:
    code: str
    discount_type: DiscountType
    discount_value: Decimal


class PromoCodeLedger:
    """Service for promo code validation, redemption and reversal."""

    def __init__(
        self,
        store: RegistrationStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._clock = clock

    def validate(self, code: str, event_id: UUID | str | None = None) -> PromoCode:
        """Return the promo code if it can be applied right now.

        Raises:
            PromoInvalidError: If the code is unknown, inactive, exhausted,
                expired, or scoped to a different event.
        """
        promo_code = self._store.get_promo_code_by_code(normalize_code(code))

        if promo_code is None or not promo_code.is_active:
            raise PromoInvalidError("Invalid or expired promo code")
        if promo_code.is_exhausted:
            raise PromoInvalidError("Promo code usage limit reached")
        if promo_code.is_expired_at(self._clock()):
            raise PromoInvalidError("Promo code has expired")
        if promo_code.event_id is not None and event_id is not None:
            if _safe_uuid(event_id) != promo_code.event_id:
                raise PromoInvalidError("Promo code is not valid for this event")
        return promo_code

    def describe(self, code: str, event_id: UUID | str | None = None) -> PromoTerms:
        """Discount terms for a valid code. Does not consume usage."""
        promo_code = self.validate(code, event_id)
        return PromoTerms(
            code=promo_code.code,
            discount_type=promo_code.discount_type,
            discount_value=promo_code.discount_value,
        )

    def redeem(self, promo_code_id: UUID) -> None:
        """Consume one use of the code.

        Raises:
            PromoNotFoundError: If the code was deleted meanwhile.
            PromoLimitReachedError: If the usage limit is already consumed.
        """
        if self._store.increment_promo_usage(promo_code_id):
            return
        if self._store.get_promo_code(promo_code_id) is None:
            raise PromoNotFoundError(str(promo_code_id))
        raise PromoLimitReachedError(str(promo_code_id))

    def reverse(self, promo_code_id: UUID) -> None:
        """Give one use back. At zero this is a no-op.

        Call once per refunded payment that redeemed the code; the ledger cannot
        tell a second call for the same payment from a legitimate one.
        """
        self._store.decrement_promo_usage(promo_code_id)


def _safe_uuid(value: UUID | str) -> UUID | None:
    try:
        return parse_uuid(value)
    except ValueError:
        return None
