"""Monobank acquiring adapter.

API reference: https://monobank.ua/api-docs/acquiring/
Amounts travel in minor units (kopiykas); ``ccy`` is the ISO 4217 numeric code.
"""

import logging
from typing import Any

import requests

from events.domain import Money
from registrations.domain.errors import GatewayError, GatewayTimeoutError
from registrations.gateway.port import (
    CancellationResult,
    Invoice,
    InvoiceRequest,
    InvoiceState,
    PaymentGateway,
)

logger = logging.getLogger(__name__)


class MonobankGateway(PaymentGateway):
    """Production gateway talking to the Monobank merchant API."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        webhook_url: str,
        currency_code: int = 980,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.webhook_url = webhook_url
        self.currency_code = currency_code
        self.timeout = timeout
        self._session = session or requests.Session()

    def create_invoice(self, request: InvoiceRequest) -> Invoice:
        body = {
            "amount": request.amount.minor_units,
            "ccy": self.currency_code,
            "merchantPaymInfo": {},
            "redirectUrl": request.success_url,
            "successUrl": request.success_url,
            "failUrl": request.failure_url,
            "webHookUrl": self.webhook_url,
            "merchantData": {
                "registrationId": request.registration_id,
                "customerName": request.customer_name,
                "eventTitle": request.event_title,
            },
        }
        logger.info(
            "Creating invoice",
            extra={"registration_id": request.registration_id, "amount": body["amount"]},
        )
        data = self._request(
            "POST",
            "/api/merchant/invoice/create",
            json=body,
            context={"registration_id": request.registration_id},
        )

        invoice_id = data.get("invoiceId") or data.get("id")
        payment_link = data.get("pageUrl") or data.get("paymentLink")
        if not invoice_id or not payment_link:
            logger.error(
                "Invoice response is missing id or link",
                extra={"registration_id": request.registration_id, "response": data},
            )
            raise GatewayError("Failed to create payment link")
        return Invoice(invoice_id=invoice_id, payment_link=payment_link, raw=data)

    def cancel_invoice(
        self,
        invoice_id: str,
        amount: Money | None = None,
        ext_ref: str | None = None,
    ) -> CancellationResult:
        body: dict[str, Any] = {"invoiceId": invoice_id}
        if amount is not None:
            body["amount"] = amount.minor_units
        if ext_ref is not None:
            body["extRef"] = ext_ref

        data = self._request(
            "POST",
            "/api/merchant/invoice/cancel",
            json=body,
            context={"invoice_id": invoice_id},
        )
        return CancellationResult(
            invoice_id=invoice_id, status=str(data.get("status", "")), raw=data
        )

    def remove_invoice(self, invoice_id: str) -> None:
        self._request(
            "POST",
            "/api/merchant/invoice/remove",
            json={"invoiceId": invoice_id},
            context={"invoice_id": invoice_id},
        )

    def get_invoice_status(self, invoice_id: str) -> InvoiceState:
        data = self._request(
            "GET",
            "/api/merchant/invoice/status",
            params={"invoiceId": invoice_id},
            context={"invoice_id": invoice_id},
        )
        payment_info = data.get("paymentInfo") or {}
        amount = data.get("finalAmount", data.get("amount"))
        return InvoiceState(
            invoice_id=invoice_id,
            status=str(data.get("status", "")),
            payment_id=data.get("paymentId") or payment_info.get("tranId"),
            amount=Money.from_minor_units(amount) if amount is not None else None,
            raw=data,
        )

    def get_invoice_receipt(self, invoice_id: str) -> dict[str, Any]:
        return self._request(
            "GET",
            "/api/merchant/invoice/receipt",
            params={"invoiceId": invoice_id},
            context={"invoice_id": invoice_id},
        )

    def get_public_key(self) -> str:
        data = self._request("GET", "/api/merchant/pubkey", context={})
        key = data.get("key")
        if not key:
            raise GatewayError("Provider did not return a public key")
        return key

    def _request(self, method: str, path: str, context: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        url = f"{self.api_url}{path}"
        headers = {"X-Token": self.api_key, "Content-Type": "application/json"}
        try:
            response = self._session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.Timeout as exc:
            logger.error("Payment provider request timed out", extra={"url": url, **context})
            raise GatewayTimeoutError() from exc
        except requests.RequestException as exc:
            logger.error(
                "Payment provider connection failed",
                extra={"url": url, "error": str(exc), **context},
            )
            raise GatewayError("Unable to connect to payment service") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            logger.error(
                "Payment provider returned an error",
                extra={"url": url, "status": response.status_code, "response": data, **context},
            )
            description = data.get("errText") or data.get("errDescription") or "Unknown error"
            raise GatewayError(f"Payment provider error: {description}")
        return data
