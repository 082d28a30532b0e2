"""Configurable fake payment gateway for development and testing.

This adapter simulates the provider without any external calls. It can be
configured at runtime to succeed or fail, and keeps a per-invoice status so
reconciliation can be exercised end to end.
"""

from typing import Any
from uuid import uuid4

from events.domain import Money
from registrations.domain.errors import GatewayError, GatewayTimeoutError
from registrations.gateway.port import (
    CancellationResult,
    Invoice,
    InvoiceRequest,
    InvoiceState,
    InvoiceStatus,
    PaymentGateway,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.should_time_out: bool = False
        self.failure_reason: str = "Provider unavailable"
        self.calls: list[dict] = []
        self.statuses: dict[str, InvoiceStatus] = {}

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Provider unavailable",
        should_time_out: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_time_out = should_time_out

    def set_status(self, invoice_id: str, status: InvoiceStatus) -> None:
        """Simulate the provider moving an invoice to a new status."""
        self.statuses[invoice_id] = status

    def _check(self) -> None:
        if self.should_time_out:
            raise GatewayTimeoutError()
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        self.calls.append(
            {
                "method": "create_invoice",
                "registration_id": request.registration_id,
                "amount": request.amount,
            }
        )
        self._check()
        invoice_id = f"fake_inv_{uuid4().hex[:12]}"
        self.statuses[invoice_id] = InvoiceStatus.CREATED
        return Invoice(
            invoice_id=invoice_id,
            payment_link=f"https://pay.example.com/{invoice_id}",
            raw={"invoiceId": invoice_id},
        )

    def cancel_invoice(
        self,
        invoice_id: str,
        amount: Money | None = None,
        ext_ref: str | None = None,
    ) -> CancellationResult:
        self.calls.append(
            {
                "method": "cancel_invoice",
                "invoice_id": invoice_id,
                "amount": amount,
                "ext_ref": ext_ref,
            }
        )
        self._check()
        self.statuses[invoice_id] = InvoiceStatus.REVERSED
        return CancellationResult(
            invoice_id=invoice_id,
            status="success",
            raw={"status": "success", "createdDate": "fake"},
        )

    def remove_invoice(self, invoice_id: str) -> None:
        self.calls.append({"method": "remove_invoice", "invoice_id": invoice_id})
        self._check()
        if self.statuses.get(invoice_id) == InvoiceStatus.SUCCESS:
            raise GatewayError("Payment provider error: invoice already paid")
        self.statuses[invoice_id] = InvoiceStatus.EXPIRED

    def get_invoice_status(self, invoice_id: str) -> InvoiceState:
        self.calls.append({"method": "get_invoice_status", "invoice_id": invoice_id})
        self._check()
        status = self.statuses.get(invoice_id)
        if status is None:
            raise GatewayError("Invoice not found")
        payment_id = f"fake_pay_{invoice_id}" if status == InvoiceStatus.SUCCESS else None
        return InvoiceState(
            invoice_id=invoice_id,
            status=status.value,
            payment_id=payment_id,
            raw={"invoiceId": invoice_id, "status": status.value},
        )

    def get_invoice_receipt(self, invoice_id: str) -> dict[str, Any]:
        self.calls.append({"method": "get_invoice_receipt", "invoice_id": invoice_id})
        self._check()
        if self.statuses.get(invoice_id) != InvoiceStatus.SUCCESS:
            raise GatewayError("Payment provider error: receipt not found")
        return {"invoiceId": invoice_id, "file": "ZmFrZS1yZWNlaXB0"}

    def get_public_key(self) -> str:
        return ""
