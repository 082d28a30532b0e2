"""Settlement of payment outcomes.

Webhooks and reconciliation both funnel through ``SettlementService.settle`` so
that replays behave identically whatever delivered them.

Legal payment transitions:

    pending   -> completed | failed
    failed    -> completed            (late success after a failed attempt)
    completed -> refunded             (refund flow only, see reconciliation)

Repeating the current terminal status is a no-op. Anything else is a conflict.

When a success lands on an older attempt while a newer one is still pending,
the newer attempt is marked failed and its invoice is removed at the provider
so the participant cannot pay twice.
"""

import logging
from dataclasses import dataclass
from typing import Any

from registrations.domain import (
    Payment,
    PaymentState,
    PaymentStatus,
    Registration,
    RegistrationStatus,
)
from registrations.domain.errors import (
    DomainError,
    PaymentNotFoundError,
    PromoLimitReachedError,
    PromoNotFoundError,
    SettlementConflictError,
    SettlementFailedError,
)
from registrations.gateway.port import PaymentGateway, SettlementOutcome
from registrations.services.notifications import EmailNotifier
from registrations.services.promo_ledger import PromoCodeLedger
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)

_ALREADY_APPLIED = {
    SettlementOutcome.SUCCESS: PaymentStatus.COMPLETED,
    SettlementOutcome.FAILURE: PaymentStatus.FAILED,
}

_APPLICABLE_FROM = {
    SettlementOutcome.SUCCESS: {PaymentStatus.PENDING, PaymentStatus.FAILED},
    SettlementOutcome.FAILURE: {PaymentStatus.PENDING},
}


@dataclass(frozen=True)
class SettlementResult:
    payment: Payment
    registration: Registration | None
    outcome: SettlementOutcome
    changed: bool
    superseded: Payment | None = None


class SettlementService:
    """Applies a terminal payment outcome to payment, registration and ledger."""

    def __init__(
        self,
        store: RegistrationStore,
        ledger: PromoCodeLedger,
        notifier: EmailNotifier,
        gateway: PaymentGateway | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._notifier = notifier
        self._gateway = gateway

    def settle(
        self,
        invoice_id: str,
        outcome: SettlementOutcome,
        provider_payment_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> SettlementResult:
        """Apply ``outcome`` to the payment holding ``invoice_id``.

        Raises:
            PaymentNotFoundError: If no payment carries the invoice.
            SettlementConflictError: If the outcome contradicts the recorded status.
            SettlementFailedError: If the mutation failed unexpectedly.
        """
        payment: Payment | None = None
        try:
            with self._store.atomic():
                payment = self._store.get_payment_by_invoice(invoice_id, for_update=True)
                if payment is None:
                    raise PaymentNotFoundError(invoice_id)
                result = self._apply(payment, outcome, provider_payment_id, payload or {})
        except DomainError:
            raise
        except Exception as exc:
            logger.exception(
                "Settlement failed, replay required",
                extra={
                    "invoice_id": invoice_id,
                    "payment_id": str(payment.id) if payment else None,
                    "registration_id": str(payment.registration_id) if payment else None,
                    "outcome": outcome.value,
                },
            )
            raise SettlementFailedError(invoice_id) from exc

        if result.superseded is not None:
            self._remove_superseded(result.superseded)
        if result.changed:
            self._notify(result)
        return result

    def _apply(
        self,
        payment: Payment,
        outcome: SettlementOutcome,
        provider_payment_id: str | None,
        payload: dict[str, Any],
    ) -> SettlementResult:
        if payment.status == _ALREADY_APPLIED[outcome]:
            logger.info(
                "Duplicate settlement ignored",
                extra={"invoice_id": payment.invoice_id, "status": payment.status.value},
            )
            registration = self._store.get_registration(payment.registration_id)
            return SettlementResult(payment, registration, outcome, changed=False)

        if payment.status not in _APPLICABLE_FROM[outcome]:
            logger.warning(
                "Conflicting settlement rejected",
                extra={
                    "invoice_id": payment.invoice_id,
                    "payment_id": str(payment.id),
                    "status": payment.status.value,
                    "outcome": outcome.value,
                },
            )
            raise SettlementConflictError(
                payment.invoice_id or str(payment.id), payment.status.value, outcome.value
            )

        registration = self._store.get_registration(payment.registration_id, for_update=True)
        if outcome == SettlementOutcome.SUCCESS:
            payment, registration = self._complete(payment, registration, provider_payment_id, payload)
            superseded = self._supersede_pending_attempt(payment)
            return SettlementResult(
                payment, registration, outcome, changed=True, superseded=superseded
            )
        payment, registration = self._fail(payment, registration, payload)
        return SettlementResult(payment, registration, outcome, changed=True)

    def _complete(
        self,
        payment: Payment,
        registration: Registration | None,
        provider_payment_id: str | None,
        payload: dict[str, Any],
    ) -> tuple[Payment, Registration | None]:
        redeemed = payment.promo_redeemed
        if registration is not None and registration.promo_code_id and not redeemed:
            try:
                self._ledger.redeem(registration.promo_code_id)
                redeemed = True
            except (PromoNotFoundError, PromoLimitReachedError) as exc:
                # The participant already paid the discounted price.
                logger.warning(
                    "Promo code could not be redeemed at settlement",
                    extra={
                        "promo_code_id": str(registration.promo_code_id),
                        "registration_id": str(registration.id),
                        "reason": exc.code.value,
                    },
                )

        payment = self._store.update_payment(
            payment.id,
            status=PaymentStatus.COMPLETED,
            provider_payment_id=provider_payment_id or payment.provider_payment_id,
            webhook_data=payload,
            promo_redeemed=redeemed,
        )

        if registration is None:
            return payment, None
        if registration.is_cancelled:
            logger.warning(
                "Payment completed for a cancelled registration",
                extra={"registration_id": str(registration.id), "payment_id": str(payment.id)},
            )
            registration = self._store.update_registration(
                registration.id, payment_status=PaymentState.COMPLETED
            )
        else:
            registration = self._store.update_registration(
                registration.id,
                status=RegistrationStatus.CONFIRMED,
                payment_status=PaymentState.COMPLETED,
            )
        return payment, registration

    def _fail(
        self,
        payment: Payment,
        registration: Registration | None,
        payload: dict[str, Any],
    ) -> tuple[Payment, Registration | None]:
        payment = self._store.update_payment(
            payment.id, status=PaymentStatus.FAILED, webhook_data=payload
        )
        # Another attempt may already have paid for this registration.
        if registration is not None and registration.payment_status != PaymentState.COMPLETED:
            registration = self._store.update_registration(
                registration.id, payment_status=PaymentState.FAILED
            )
        return payment, registration

    def _supersede_pending_attempt(self, paid: Payment) -> Payment | None:
        latest = self._store.latest_payment(paid.registration_id)
        if latest is None or latest.id == paid.id or latest.status != PaymentStatus.PENDING:
            return None
        logger.warning(
            "Pending attempt superseded by a late success",
            extra={
                "registration_id": str(paid.registration_id),
                "payment_id": str(latest.id),
                "invoice_id": latest.invoice_id,
                "paid_payment_id": str(paid.id),
            },
        )
        return self._store.update_payment(
            latest.id,
            status=PaymentStatus.FAILED,
            webhook_data={**latest.webhook_data, "superseded_by": str(paid.id)},
        )

    def _remove_superseded(self, payment: Payment) -> None:
        if not payment.invoice_id:
            return
        if self._gateway is None:
            logger.warning(
                "Superseded invoice must be removed manually",
                extra={"payment_id": str(payment.id), "invoice_id": payment.invoice_id},
            )
            return
        try:
            self._gateway.remove_invoice(payment.invoice_id)
        except DomainError as exc:
            logger.error(
                "Could not remove superseded invoice, remove it manually",
                extra={
                    "payment_id": str(payment.id),
                    "invoice_id": payment.invoice_id,
                    "reason": exc.message,
                },
            )

    def _notify(self, result: SettlementResult) -> None:
        registration = result.registration
        if registration is None or not registration.email:
            return
        event = self._store.get_event(registration.event_id)
        if event is None:
            return
        try:
            if result.outcome == SettlementOutcome.SUCCESS:
                self._notifier.registration_confirmed(registration, event, result.payment)
            else:
                self._notifier.payment_failed(registration, event)
        except Exception:
            logger.exception(
                "Failed to send settlement email",
                extra={"registration_id": str(registration.id), "outcome": result.outcome.value},
            )
