"""In-process implementation of the RegistrationStore.

Keeps domain objects in dictionaries. ``atomic()`` serialises callers on a
re-entrant lock and restores a snapshot when the block raises, so it offers the
same all-or-nothing behaviour as a database transaction within one process.
"""

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from django.utils import timezone

from events.domain import Event, Money
from registrations.domain import (
    NewRegistration,
    Payment,
    PaymentStatus,
    PromoCode,
    Registration,
)
from registrations.domain.errors import (
    DuplicateRegistrationError,
    PaymentNotFoundError,
    RegistrationNotFoundError,
)
from registrations.stores.interfaces import RegistrationStore


class InMemoryRegistrationStore(RegistrationStore):
    """Dictionary-backed store for tests and local tooling."""

    def __init__(self, clock=timezone.now) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self.events: dict[UUID, Event] = {}
        self.registrations: dict[UUID, Registration] = {}
        self.payments: dict[UUID, Payment] = {}
        self.promo_codes: dict[UUID, PromoCode] = {}

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = copy.deepcopy(
                (self.events, self.registrations, self.payments, self.promo_codes)
            )
            try:
                yield
            except BaseException:
                self.events, self.registrations, self.payments, self.promo_codes = snapshot
                raise

    def add_event(self, event: Event) -> Event:
        with self._lock:
            self.events[event.id] = event
        return event

    def add_promo_code(self, promo_code: PromoCode) -> PromoCode:
        with self._lock:
            self.promo_codes[promo_code.id] = promo_code
        return promo_code

    def get_event(self, event_id: UUID) -> Event | None:
        with self._lock:
            return self.events.get(event_id)

    def reserve_seat(self, event_id: UUID) -> bool:
        with self._lock:
            event = self.events.get(event_id)
            if event is None or not event.has_available_capacity:
                return False
            self.events[event_id] = replace(event, registered_count=event.registered_count + 1)
            return True

    def release_seat(self, event_id: UUID) -> None:
        with self._lock:
            event = self.events.get(event_id)
            if event is not None and event.registered_count > 0:
                self.events[event_id] = replace(event, registered_count=event.registered_count - 1)

    def find_active_registration(
        self, event_id: UUID, email: str, user_id: int | None = None
    ) -> Registration | None:
        with self._lock:
            for registration in self.registrations.values():
                if registration.event_id != event_id or registration.is_cancelled:
                    continue
                if registration.email == email:
                    return registration
                if user_id is not None and registration.user_id == user_id:
                    return registration
            return None

    def add_registration(self, registration: NewRegistration) -> Registration:
        with self._lock:
            if self.find_active_registration(
                registration.event_id, registration.email, registration.user_id
            ):
                raise DuplicateRegistrationError(str(registration.event_id))
            created = Registration(
                id=uuid4(), created_at=self._clock(), **vars(registration)
            )
            self.registrations[created.id] = created
            return created

    def get_registration(self, registration_id: UUID, for_update: bool = False) -> Registration | None:
        with self._lock:
            return self.registrations.get(registration_id)

    def update_registration(self, registration_id: UUID, **changes: Any) -> Registration:
        with self._lock:
            current = self.registrations.get(registration_id)
            if current is None:
                raise RegistrationNotFoundError(str(registration_id))
            updated = replace(current, **changes)
            self.registrations[registration_id] = updated
            return updated

    def delete_registration(self, registration_id: UUID) -> None:
        with self._lock:
            self.registrations.pop(registration_id, None)
            for payment_id in [
                p.id for p in self.payments.values() if p.registration_id == registration_id
            ]:
                del self.payments[payment_id]

    def registrations_for_user(self, user_id: int, offset: int, limit: int) -> list[Registration]:
        with self._lock:
            owned = [r for r in self.registrations.values() if r.user_id == user_id]
        # Later insertions win ties between equal timestamps.
        owned = sorted(reversed(owned), key=lambda r: r.created_at, reverse=True)
        return owned[offset : offset + limit]

    def count_registrations_for_user(self, user_id: int) -> int:
        with self._lock:
            return sum(1 for r in self.registrations.values() if r.user_id == user_id)

    def add_payment(self, registration_id: UUID, amount: Money, currency: str, **fields: Any) -> Payment:
        with self._lock:
            payment = Payment(
                id=uuid4(),
                registration_id=registration_id,
                amount=amount,
                currency=currency,
                created_at=self._clock(),
                **fields,
            )
            self.payments[payment.id] = payment
            return payment

    def get_payment(self, payment_id: UUID, for_update: bool = False) -> Payment | None:
        with self._lock:
            return self.payments.get(payment_id)

    def get_payment_by_invoice(self, invoice_id: str, for_update: bool = False) -> Payment | None:
        with self._lock:
            for payment in self.payments.values():
                if payment.invoice_id == invoice_id:
                    return payment
            return None

    def latest_payment(self, registration_id: UUID) -> Payment | None:
        with self._lock:
            attempts = [p for p in self.payments.values() if p.registration_id == registration_id]
        # Insertion order breaks ties between attempts created in the same instant.
        return attempts[-1] if attempts else None

    def update_payment(self, payment_id: UUID, **changes: Any) -> Payment:
        with self._lock:
            current = self.payments.get(payment_id)
            if current is None:
                raise PaymentNotFoundError(str(payment_id))
            updated = replace(current, **changes)
            self.payments[payment_id] = updated
            return updated

    def delete_payment(self, payment_id: UUID) -> None:
        with self._lock:
            self.payments.pop(payment_id, None)

    def stale_uninvoiced_payments(self, created_before: datetime) -> list[Payment]:
        with self._lock:
            return [
                p
                for p in self.payments.values()
                if p.status == PaymentStatus.PENDING
                and p.invoice_id is None
                and p.created_at < created_before
            ]

    def pending_invoiced_payments(self) -> list[Payment]:
        with self._lock:
            return [
                p
                for p in self.payments.values()
                if p.status == PaymentStatus.PENDING and p.invoice_id is not None
            ]

    def get_promo_code(self, promo_code_id: UUID) -> PromoCode | None:
        with self._lock:
            return self.promo_codes.get(promo_code_id)

    def get_promo_code_by_code(self, code: str) -> PromoCode | None:
        with self._lock:
            for promo_code in self.promo_codes.values():
                if promo_code.code == code:
                    return promo_code
            return None

    def increment_promo_usage(self, promo_code_id: UUID) -> bool:
        with self._lock:
            promo_code = self.promo_codes.get(promo_code_id)
            if promo_code is None or promo_code.is_exhausted:
                return False
            self.promo_codes[promo_code_id] = replace(promo_code, used_count=promo_code.used_count + 1)
            return True

    def decrement_promo_usage(self, promo_code_id: UUID) -> None:
        with self._lock:
            promo_code = self.promo_codes.get(promo_code_id)
            if promo_code is not None and promo_code.used_count > 0:
                self.promo_codes[promo_code_id] = replace(promo_code, used_count=promo_code.used_count - 1)
