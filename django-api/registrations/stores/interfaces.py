"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every method that mutates
more than one row is expected to run inside ``atomic()``.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any
from uuid import UUID

from events.domain import Event, Money
from registrations.domain import NewRegistration, Payment, PromoCode, Registration


class RegistrationStore(ABC):
    """Interface for event, registration, payment and promo code persistence."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Return a transaction scope. Any exception rolls back every write in it."""
        ...

    # Events

    @abstractmethod
    def get_event(self, event_id: UUID) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def reserve_seat(self, event_id: UUID) -> bool:
        """Increment registered_count if below capacity. Return False when full."""
        ...

    @abstractmethod
    def release_seat(self, event_id: UUID) -> None:
        """Decrement registered_count, never below zero."""
        ...

    # Registrations

    @abstractmethod
    def find_active_registration(
        self, event_id: UUID, email: str, user_id: int | None = None
    ) -> Registration | None:
        """Return the non-cancelled registration for the event and email or user."""
        ...

    @abstractmethod
    def add_registration(self, registration: NewRegistration) -> Registration:
        """Persist a new registration.

        Raises:
            DuplicateRegistrationError: If a non-cancelled registration exists
                for the same event and identity.
        """
        ...

    @abstractmethod
    def get_registration(self, registration_id: UUID, for_update: bool = False) -> Registration | None:
        ...

    @abstractmethod
    def update_registration(self, registration_id: UUID, **changes: Any) -> Registration:
        ...

    @abstractmethod
    def delete_registration(self, registration_id: UUID) -> None:
        ...

    @abstractmethod
    def registrations_for_user(self, user_id: int, offset: int, limit: int) -> list[Registration]:
        """Return one page of the user's registrations, newest first."""
        ...

    @abstractmethod
    def count_registrations_for_user(self, user_id: int) -> int:
        ...

    # Payments

    @abstractmethod
    def add_payment(self, registration_id: UUID, amount: Money, currency: str, **fields: Any) -> Payment:
        ...

    @abstractmethod
    def get_payment(self, payment_id: UUID, for_update: bool = False) -> Payment | None:
        ...

    @abstractmethod
    def get_payment_by_invoice(self, invoice_id: str, for_update: bool = False) -> Payment | None:
        ...

    @abstractmethod
    def latest_payment(self, registration_id: UUID) -> Payment | None:
        """Return the most recent payment attempt for a registration."""
        ...

    @abstractmethod
    def update_payment(self, payment_id: UUID, **changes: Any) -> Payment:
        ...

    @abstractmethod
    def delete_payment(self, payment_id: UUID) -> None:
        ...

    @abstractmethod
    def stale_uninvoiced_payments(self, created_before: datetime) -> list[Payment]:
        """Return pending payments that never received an invoice."""
        ...

    @abstractmethod
    def pending_invoiced_payments(self) -> list[Payment]:
        """Return pending payments that hold an invoice, oldest first."""
        ...

    # Promo codes

    @abstractmethod
    def get_promo_code(self, promo_code_id: UUID) -> PromoCode | None:
        ...

    @abstractmethod
    def get_promo_code_by_code(self, code: str) -> PromoCode | None:
        """Look a code up by its normalised (upper-case) form."""
        ...

    @abstractmethod
    def increment_promo_usage(self, promo_code_id: UUID) -> bool:
        """Add one use if below the usage limit. Return False if nothing changed."""
        ...

    @abstractmethod
    def decrement_promo_usage(self, promo_code_id: UUID) -> None:
        """Remove one use, never below zero."""
        ...
