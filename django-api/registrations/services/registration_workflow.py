"""Registration service - creation, cancellation and payment resumption.

Services:
- Depend only on interfaces (stores, gateway port)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or raise domain errors

Invoice discipline: the registration, its pending payment and the seat are
committed first; the invoice is requested outside any transaction; invoice id
and link are stored afterwards. If the provider call fails the attempt is
discarded by a compensating transaction. Attempts orphaned by a crash inside
that window are discarded by ``sweep_stale_payments``.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

from django.utils import timezone

from events.domain import Event, Money, parse_uuid
from registrations.domain import (
    NewRegistration,
    Payment,
    PaymentState,
    PaymentStatus,
    Registration,
    RegistrationStatus,
    calculate_price,
)
from registrations.domain.errors import (
    AlreadyPaidError,
    DuplicateRegistrationError,
    EventFullError,
    EventNotFoundError,
    EventNotRegistrableError,
    ForbiddenError,
    PaymentNotFoundError,
    RegistrationAlreadyCancelledError,
    RegistrationNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from registrations.gateway.port import InvoiceRequest, PaymentGateway
from registrations.services.notifications import EmailNotifier
from registrations.services.promo_ledger import PromoCodeLedger, normalize_code
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class WorkflowConfig:
    base_price: Money
    currency: str
    success_url: str
    failure_url: str


@dataclass(frozen=True)
class RegistrationRequest:
    event_id: str
    name: str
    surname: str
    email: str
    city: str = ""
    running_club: str = ""
    phone: str = ""
    promo_code: str | None = None
    user_id: int | None = None


@dataclass(frozen=True)
class RegistrationResult:
    registration: Registration
    payment: Payment
    payment_link: str | None


@dataclass(frozen=True)
class RegistrationPage:
    registrations: list[Registration]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


class RegistrationWorkflow:
    """Service for the public registration and payment flow."""

    def __init__(
        self,
        store: RegistrationStore,
        gateway: PaymentGateway,
        ledger: PromoCodeLedger,
        notifier: EmailNotifier,
        config: WorkflowConfig,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._ledger = ledger
        self._notifier = notifier
        self._config = config
        self._clock = clock

    def create_registration(self, request: RegistrationRequest) -> RegistrationResult:
        """Register a participant and issue the invoice they have to pay.

        Raises:
            ValidationError: If the event id is malformed.
            PromoInvalidError: If the supplied promo code cannot be applied.
            EventNotFoundError: If the event does not exist.
            EventNotRegistrableError: If the event already started.
            DuplicateRegistrationError: If the participant is already registered.
            EventFullError: If no seat is left.
            GatewayError: If the invoice could not be created. Nothing is kept.
        """
        event_id = _parse_id(request.event_id, "event_id")
        email = request.email.strip().lower()
        promo_code = normalize_code(request.promo_code) if request.promo_code else ""

        with self._store.atomic():
            event = self._open_event(event_id)
            if self._store.find_active_registration(event_id, email, request.user_id):
                raise DuplicateRegistrationError(str(event_id))
            if not event.has_available_capacity:
                raise EventFullError(str(event_id))

            promo = self._ledger.validate(promo_code, event_id) if promo_code else None
            price = calculate_price(event.price or self._config.base_price, promo)
            is_free = price.final_price.is_zero()

            registration = self._store.add_registration(
                NewRegistration(
                    event_id=event_id,
                    user_id=request.user_id,
                    email=email,
                    name=request.name.strip(),
                    surname=request.surname.strip(),
                    city=request.city.strip(),
                    running_club=request.running_club.strip(),
                    phone=request.phone.strip(),
                    promo_code=promo.code if promo else None,
                    promo_code_id=promo.id if promo else None,
                    final_price=price.final_price,
                    discount_amount=price.discount_amount,
                    status=RegistrationStatus.CONFIRMED if is_free else RegistrationStatus.PENDING,
                    payment_status=PaymentState.COMPLETED if is_free else PaymentState.PENDING,
                )
            )
            if not self._store.reserve_seat(event_id):
                raise EventFullError(str(event_id))

            if is_free:
                if promo:
                    self._ledger.redeem(promo.id)
                payment = self._store.add_payment(
                    registration.id,
                    price.final_price,
                    self._config.currency,
                    status=PaymentStatus.COMPLETED,
                    promo_redeemed=promo is not None,
                )
            else:
                payment = self._store.add_payment(
                    registration.id, price.final_price, self._config.currency
                )

        logger.info(
            "Registration created",
            extra={
                "registration_id": str(registration.id),
                "event_id": str(event_id),
                "final_price": str(price.final_price),
            },
        )

        if is_free:
            self._send_confirmation(registration, event, payment)
            return RegistrationResult(registration, payment, payment_link=None)

        payment = self._issue_invoice(registration, event, payment)
        return RegistrationResult(registration, payment, payment.payment_link)

    def cancel_registration(self, registration_id: UUID | str, user_id: int | None) -> Registration:
        """Cancel the caller's own registration and free its seat.

        Payments are left untouched; refunds are a separate decision.
        """
        if user_id is None:
            raise UnauthorizedError()
        registration_id = _parse_id(registration_id, "registration_id")
        with self._store.atomic():
            registration = self._store.get_registration(registration_id, for_update=True)
            if registration is None:
                raise RegistrationNotFoundError(str(registration_id))
            if registration.user_id is None or registration.user_id != user_id:
                raise ForbiddenError("You are not authorized to cancel this registration")
            if registration.is_cancelled:
                raise RegistrationAlreadyCancelledError(str(registration_id))

            registration = self._store.update_registration(
                registration_id, status=RegistrationStatus.CANCELLED
            )
            self._store.release_seat(registration.event_id)

        logger.info("Registration cancelled", extra={"registration_id": str(registration_id)})
        return registration

    def list_user_registrations(
        self, user_id: int | None, page: int | None = None, limit: int | None = None
    ) -> RegistrationPage:
        """Return the caller's registrations, newest first.

        Missing or non-positive paging values fall back to the defaults; the page
        size is capped at ``MAX_PAGE_SIZE``.
        """
        if user_id is None:
            raise UnauthorizedError()
        page = page if page and page > 0 else 1
        limit = min(limit if limit and limit > 0 else DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)

        registrations = self._store.registrations_for_user(user_id, (page - 1) * limit, limit)
        total = self._store.count_registrations_for_user(user_id)
        return RegistrationPage(registrations, total, page, limit)

    def get_payment_link(self, email: str, event_id: UUID | str) -> RegistrationResult:
        """Return the link for an unpaid registration, issuing a new invoice if the last one failed.

        Raises:
            RegistrationNotFoundError: If there is no active registration.
            AlreadyPaidError: If the registration is already paid.
            PaymentNotFoundError: If the current attempt has no link yet.
        """
        event_id = _parse_id(event_id, "event_id")
        email = email.strip().lower()

        registration = self._store.find_active_registration(event_id, email)
        if registration is None:
            raise RegistrationNotFoundError(email)
        if registration.payment_status == PaymentState.COMPLETED:
            raise AlreadyPaidError(str(registration.id))

        payment = self._store.latest_payment(registration.id)
        if payment is not None and payment.status == PaymentStatus.PENDING:
            if not payment.payment_link:
                raise PaymentNotFoundError(str(registration.id))
            return RegistrationResult(registration, payment, payment.payment_link)

        with self._store.atomic():
            event = self._open_event(event_id)
            payment = self._store.add_payment(
                registration.id, registration.final_price, self._config.currency
            )
            registration = self._store.update_registration(
                registration.id, payment_status=PaymentState.PENDING
            )

        logger.info(
            "New payment attempt",
            extra={"registration_id": str(registration.id), "payment_id": str(payment.id)},
        )
        payment = self._issue_invoice(registration, event, payment)
        return RegistrationResult(registration, payment, payment.payment_link)

    def sweep_stale_payments(self, max_age: timedelta) -> list[UUID]:
        """Discard attempts whose invoice was never recorded. Returns their ids."""
        cutoff = self._clock() - max_age
        discarded = []
        for payment in self._store.stale_uninvoiced_payments(cutoff):
            if self._discard_attempt(payment.id):
                discarded.append(payment.id)
        return discarded

    def _open_event(self, event_id: UUID) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        if not event.is_open_at(self._clock()):
            raise EventNotRegistrableError(str(event_id))
        return event

    def _issue_invoice(self, registration: Registration, event: Event, payment: Payment) -> Payment:
        redirect = f"?registrationId={registration.id}"
        try:
            invoice = self._gateway.create_invoice(
                InvoiceRequest(
                    registration_id=str(registration.id),
                    amount=payment.amount,
                    customer_name=registration.full_name,
                    event_title=event.title,
                    success_url=f"{self._config.success_url}{redirect}",
                    failure_url=f"{self._config.failure_url}{redirect}",
                )
            )
        except Exception:
            logger.warning(
                "Invoice creation failed, discarding payment attempt",
                extra={"registration_id": str(registration.id), "payment_id": str(payment.id)},
            )
            self._discard_attempt(payment.id)
            raise

        with self._store.atomic():
            return self._store.update_payment(
                payment.id,
                invoice_id=invoice.invoice_id,
                payment_link=invoice.payment_link,
            )

    def _discard_attempt(self, payment_id: UUID) -> bool:
        """Remove an uninvoiced attempt; drop its registration if nothing else backs it."""
        with self._store.atomic():
            payment = self._store.get_payment(payment_id, for_update=True)
            if payment is None or payment.status != PaymentStatus.PENDING or payment.invoice_id:
                return False
            self._store.delete_payment(payment_id)

            registration = self._store.get_registration(payment.registration_id, for_update=True)
            if registration is None:
                return True
            previous = self._store.latest_payment(registration.id)
            if previous is not None:
                if previous.status == PaymentStatus.FAILED:
                    self._store.update_registration(
                        registration.id, payment_status=PaymentState.FAILED
                    )
                return True
            self._store.delete_registration(registration.id)
            if not registration.is_cancelled:
                self._store.release_seat(registration.event_id)

        logger.info(
            "Discarded unpaid registration",
            extra={"registration_id": str(payment.registration_id), "payment_id": str(payment_id)},
        )
        return True

    def _send_confirmation(self, registration: Registration, event: Event, payment: Payment) -> None:
        try:
            self._notifier.registration_confirmed(registration, event, payment)
        except Exception:
            logger.exception(
                "Failed to send confirmation email",
                extra={"registration_id": str(registration.id)},
            )


def _parse_id(value: UUID | str, field: str) -> UUID:
    try:
        return parse_uuid(value)
    except ValueError as exc:
        raise ValidationError.for_field(field, f"Invalid {field.replace('_', ' ')} format") from exc
