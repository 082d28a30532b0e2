"""Inbound payment webhook processing.

Delivery is at-least-once: the same notification may arrive several times and
must settle state exactly once.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from registrations.domain.errors import InvalidSignatureError, PaymentNotFoundError
from registrations.gateway.port import settlement_outcome
from registrations.gateway.signatures import SignatureVerifier
from registrations.services.settlement import SettlementResult, SettlementService
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookNotification:
    """A validated provider notification."""

    invoice_id: str
    status: str
    payment_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class WebhookProcessor:
    def __init__(
        self,
        store: RegistrationStore,
        verifier: SignatureVerifier,
        settlement: SettlementService,
    ) -> None:
        self._store = store
        self._verifier = verifier
        self._settlement = settlement

    def verify_signature(self, body: bytes, signature: str | None) -> None:
        """Check the signature over the raw request body.

        Raises:
            InvalidSignatureError: If the signature does not match the body.
        """
        if not self._verifier.verify(body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise InvalidSignatureError()

    def process(self, notification: WebhookNotification) -> SettlementResult | None:
        """Settle the notification. Returns None for non-terminal statuses.

        Raises:
            PaymentNotFoundError: If the invoice is unknown.
        """
        if self._store.get_payment_by_invoice(notification.invoice_id) is None:
            raise PaymentNotFoundError(notification.invoice_id)

        outcome = settlement_outcome(notification.status)
        if outcome is None:
            logger.info(
                "Webhook acknowledged without settlement",
                extra={"invoice_id": notification.invoice_id, "status": notification.status},
            )
            return None

        return self._settlement.settle(
            notification.invoice_id,
            outcome,
            provider_payment_id=notification.payment_id,
            payload=notification.payload,
        )
