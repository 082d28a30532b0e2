"""Payment reconciliation and refunds.

``sync_payment_status`` is the fallback for lost webhooks: it asks the provider
for the invoice status and replays it through the same settlement transition.

Refund policy: a refund changes the payment only. The seat stays held and the
registration keeps its status; releasing the seat is a separate, explicit
cancellation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable
from uuid import UUID

from django.utils import timezone

from events.domain import Money, parse_uuid
from registrations.domain import Payment, PaymentStatus, Registration
from registrations.domain.errors import (
    DomainError,
    ForbiddenError,
    PaymentNotFoundError,
    ReceiptNotAvailableError,
    RefundNotAllowedError,
    RegistrationNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from registrations.gateway.port import InvoiceState, PaymentGateway, settlement_outcome
from registrations.services.promo_ledger import PromoCodeLedger
from registrations.services.settlement import SettlementService
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    registration: Registration
    payment: Payment
    gateway_status: str
    status_changed: bool


@dataclass(frozen=True)
class RefundResult:
    registration: Registration
    payment: Payment
    refunded_amount: Money


@dataclass(frozen=True)
class PaymentCheck:
    payment: Payment
    invoice: InvoiceState


class ReconciliationService:
    def __init__(
        self,
        store: RegistrationStore,
        gateway: PaymentGateway,
        settlement: SettlementService,
        ledger: PromoCodeLedger,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._settlement = settlement
        self._ledger = ledger
        self._clock = clock

    def sync_payment_status(self, registration_id: UUID | str) -> SyncResult:
        """Pull the provider status for the registration's latest invoice and settle it.

        Raises:
            RegistrationNotFoundError: If the registration does not exist.
            PaymentNotFoundError: If no invoiced payment exists.
            GatewayError: If the provider could not be queried.
        """
        registration = self._get_registration(registration_id)
        payment = self._store.latest_payment(registration.id)
        if payment is None or not payment.invoice_id:
            raise PaymentNotFoundError(str(registration.id))
        return self._sync(registration, payment)

    def sync_pending_payments(self) -> list[SyncResult]:
        """Reconcile every pending invoiced payment.

        A payment that cannot be reconciled is logged and skipped; the rest of the
        batch still runs.
        """
        results = []
        for payment in self._store.pending_invoiced_payments():
            registration = self._store.get_registration(payment.registration_id)
            if registration is None:
                continue
            try:
                results.append(self._sync(registration, payment))
            except DomainError as exc:
                logger.warning(
                    "Could not reconcile payment",
                    extra={
                        "invoice_id": payment.invoice_id,
                        "payment_id": str(payment.id),
                        "code": exc.code.value,
                        "reason": exc.message,
                    },
                )
        return results

    def refund(
        self,
        registration_id: UUID | str,
        user_id: int | None,
        is_staff: bool = False,
        amount: Decimal | str | None = None,
        ext_ref: str | None = None,
    ) -> RefundResult:
        """Refund the completed payment of a registration, fully or partially.

        Raises:
            UnauthorizedError: If there is no caller.
            ForbiddenError: If the caller neither owns the registration nor is staff.
            PaymentNotFoundError: If the registration has no payment.
            RefundNotAllowedError: If the payment is not completed.
            ValidationError: If the amount is malformed or exceeds the payment.
            GatewayError: If the provider refused; nothing changes locally.
        """
        registration = self._get_registration(registration_id)
        _authorize(registration, user_id, is_staff, "refund this registration")

        payment = self._store.latest_payment(registration.id)
        if payment is None:
            raise PaymentNotFoundError(str(registration.id))
        if payment.status != PaymentStatus.COMPLETED or not payment.invoice_id:
            raise RefundNotAllowedError(str(payment.id), payment.status.value)

        refund_amount = _refund_amount(amount, payment.amount)
        cancellation = self._gateway.cancel_invoice(payment.invoice_id, refund_amount, ext_ref)

        with self._store.atomic():
            current = self._store.get_payment(payment.id, for_update=True)
            if current is None or current.status != PaymentStatus.COMPLETED:
                logger.error(
                    "Payment changed while the refund was in flight",
                    extra={"payment_id": str(payment.id), "invoice_id": payment.invoice_id},
                )
                raise RefundNotAllowedError(
                    str(payment.id), current.status.value if current else "missing"
                )

            refunds = list(current.webhook_data.get("refunds", []))
            refunds.append(
                {
                    "amount": str(refund_amount),
                    "ext_ref": ext_ref,
                    "provider_status": cancellation.status,
                    "provider_response": cancellation.raw,
                    "refunded_at": self._clock().isoformat(),
                }
            )
            payment = self._store.update_payment(
                current.id,
                status=PaymentStatus.REFUNDED,
                webhook_data={**current.webhook_data, "refunds": refunds},
            )
            if current.promo_redeemed and registration.promo_code_id:
                self._ledger.reverse(registration.promo_code_id)

        logger.info(
            "Payment refunded",
            extra={
                "payment_id": str(payment.id),
                "registration_id": str(registration.id),
                "amount": str(refund_amount),
            },
        )
        return RefundResult(registration, payment, refund_amount)

    def check_payment_status(
        self, payment_id: UUID | str, user_id: int | None, is_staff: bool = False
    ) -> PaymentCheck:
        """Return the payment with the provider's current view of its invoice.

        Read only: nothing is settled. Use ``sync_payment_status`` to apply it.
        """
        payment = self._owned_payment(payment_id, user_id, is_staff, "view this payment")
        return PaymentCheck(payment, self._gateway.get_invoice_status(payment.invoice_id))

    def get_receipt(
        self, payment_id: UUID | str, user_id: int | None, is_staff: bool = False
    ) -> dict[str, Any]:
        """Fetch the provider receipt of a completed payment.

        Raises:
            UnauthorizedError: If there is no caller.
            ForbiddenError: If the caller neither owns the registration nor is staff.
            PaymentNotFoundError: If the payment does not exist or was never invoiced.
            ReceiptNotAvailableError: If the payment is not completed.
            GatewayError: If the provider could not produce the receipt.
        """
        payment = self._owned_payment(payment_id, user_id, is_staff, "view this receipt")
        if payment.status != PaymentStatus.COMPLETED:
            raise ReceiptNotAvailableError(str(payment.id))
        return self._gateway.get_invoice_receipt(payment.invoice_id)

    def _sync(self, registration: Registration, payment: Payment) -> SyncResult:
        if payment.status == PaymentStatus.REFUNDED:
            return SyncResult(registration, payment, payment.status.value, status_changed=False)

        state = self._gateway.get_invoice_status(payment.invoice_id)
        outcome = settlement_outcome(state.status)
        if outcome is None:
            logger.info(
                "Invoice not settled yet",
                extra={"invoice_id": payment.invoice_id, "status": state.status},
            )
            return SyncResult(registration, payment, state.status, status_changed=False)

        result = self._settlement.settle(
            payment.invoice_id,
            outcome,
            provider_payment_id=state.payment_id,
            payload={**state.raw, "source": "sync"},
        )
        return SyncResult(
            registration=result.registration or registration,
            payment=result.payment,
            gateway_status=state.status,
            status_changed=result.changed,
        )

    def _get_registration(self, registration_id: UUID | str) -> Registration:
        try:
            parsed = parse_uuid(registration_id)
        except ValueError as exc:
            raise ValidationError.for_field(
                "registration_id", "Invalid registration id format"
            ) from exc
        registration = self._store.get_registration(parsed)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        return registration

    def _owned_payment(
        self, payment_id: UUID | str, user_id: int | None, is_staff: bool, action: str
    ) -> Payment:
        if user_id is None and not is_staff:
            raise UnauthorizedError()
        try:
            parsed = parse_uuid(payment_id)
        except ValueError as exc:
            raise ValidationError.for_field("payment_id", "Invalid payment id format") from exc
        payment = self._store.get_payment(parsed)
        if payment is None or not payment.invoice_id:
            raise PaymentNotFoundError(str(payment_id))
        registration = self._store.get_registration(payment.registration_id)
        if registration is None:
            raise PaymentNotFoundError(str(payment_id))
        _authorize(registration, user_id, is_staff, action)
        return payment


def _authorize(registration: Registration, user_id: int | None, is_staff: bool, action: str) -> None:
    if is_staff:
        return
    if user_id is None:
        raise UnauthorizedError()
    if registration.user_id is None or registration.user_id != user_id:
        raise ForbiddenError(f"You are not authorized to {action}")


def _refund_amount(amount: Decimal | str | None, paid: Money) -> Money:
    if amount is None:
        return paid
    try:
        requested = Money(amount=Decimal(str(amount)))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError.for_field("amount", "Refund amount must be a positive number") from exc
    if requested.is_zero() or requested.amount > paid.amount:
        raise ValidationError.for_field("amount", "Refund amount must not exceed the paid amount")
    return requested
