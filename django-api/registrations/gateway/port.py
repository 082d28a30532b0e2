"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and MonobankGateway
(production) without changing any service code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from events.domain import Money


class InvoiceStatus(str, Enum):
    """Invoice statuses reported by the provider."""

    CREATED = "created"
    PROCESSING = "processing"
    HOLD = "hold"
    SUCCESS = "success"
    FAILURE = "failure"
    EXPIRED = "expired"
    REVERSED = "reversed"


class SettlementOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# Statuses not listed here are not terminal and never trigger settlement.
_OUTCOMES = {
    InvoiceStatus.SUCCESS: SettlementOutcome.SUCCESS,
    InvoiceStatus.FAILURE: SettlementOutcome.FAILURE,
    InvoiceStatus.EXPIRED: SettlementOutcome.FAILURE,
}


def settlement_outcome(status: InvoiceStatus | str) -> SettlementOutcome | None:
    """Map a provider status to a settlement outcome, or None if still in flight."""
    try:
        return _OUTCOMES.get(InvoiceStatus(status))
    except ValueError:
        return None


@dataclass(frozen=True)
class InvoiceRequest:
    """Everything the provider needs to bill one registration."""

    registration_id: str
    amount: Money
    customer_name: str
    event_title: str
    success_url: str
    failure_url: str


@dataclass(frozen=True)
class Invoice:
    invoice_id: str
    payment_link: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvoiceState:
    """Current provider-side state of an invoice."""

    invoice_id: str
    status: str
    payment_id: str | None = None
    amount: Money | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CancellationResult:
    invoice_id: str
    status: str
    raw: dict[str, Any] = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface.

    Implementations raise GatewayError (or GatewayTimeoutError) on any provider
    failure and never return partial results.
    """

    @abstractmethod
    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        """Create an invoice and return its id and the hosted payment page link."""
        ...

    @abstractmethod
    def cancel_invoice(
        self,
        invoice_id: str,
        amount: Money | None = None,
        ext_ref: str | None = None,
    ) -> CancellationResult:
        """Cancel (refund) a paid invoice, fully or for the given amount."""
        ...

    @abstractmethod
    def remove_invoice(self, invoice_id: str) -> None:
        """Invalidate an unpaid invoice so its payment page can no longer be used."""
        ...

    @abstractmethod
    def get_invoice_status(self, invoice_id: str) -> InvoiceState:
        """Look up the provider-side state of an invoice."""
        ...

    @abstractmethod
    def get_invoice_receipt(self, invoice_id: str) -> dict[str, Any]:
        """Return the provider receipt for a paid invoice (base64 PDF under ``file``)."""
        ...

    @abstractmethod
    def get_public_key(self) -> str:
        """Return the key used to sign webhooks (base64 PEM)."""
        ...
