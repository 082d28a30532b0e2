"""Tests for the payment gateway adapters and webhook signature verifiers.

Run with: pytest tests/test_gateway.py -v
"""

import base64
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from django.core.exceptions import ImproperlyConfigured

from events.domain import Money
from registrations.domain.errors import GatewayError, GatewayTimeoutError
from registrations.gateway import build_gateway
from registrations.gateway.fake_adapter import FakeGateway
from registrations.gateway.monobank_adapter import MonobankGateway
from registrations.gateway.port import (
    InvoiceRequest,
    InvoiceStatus,
    SettlementOutcome,
    settlement_outcome,
)
from registrations.gateway.signatures import (
    EcdsaSignatureVerifier,
    HmacSignatureVerifier,
    UnsignedWebhookVerifier,
    build_signature_verifier,
)

INVOICE_REQUEST = InvoiceRequest(
    registration_id="8a1c3f0e-0000-4000-8000-000000000001",
    amount=Money(amount=Decimal("850.50")),
    customer_name="Olena Koval",
    event_title="Spring Run",
    success_url="https://frontend.example.com/ok?registrationId=1",
    failure_url="https://frontend.example.com/failed?registrationId=1",
)


def response(status_code=200, data=None):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.json.return_value = data if data is not None else {}
    return resp


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def monobank(session):
    return MonobankGateway(
        api_key="token",
        api_url="https://api.monobank.ua/",
        webhook_url="https://api.example.com/api/webhooks/payments",
        session=session,
    )


class TestSettlementOutcome:
    """Tests for provider status mapping."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("success", SettlementOutcome.SUCCESS),
            ("failure", SettlementOutcome.FAILURE),
            ("expired", SettlementOutcome.FAILURE),
            ("created", None),
            ("processing", None),
            ("hold", None),
            ("reversed", None),
            ("something-new", None),
        ],
    )
    def test_mapping(self, status, expected):
        assert settlement_outcome(status) == expected


class TestMonobankGateway:
    """Tests for MonobankGateway with a mocked HTTP session."""

    def test_create_invoice(self, monobank, session):
        session.request.return_value = response(
            data={"invoiceId": "inv_1", "pageUrl": "https://pay.mbnk.biz/inv_1"}
        )

        invoice = monobank.create_invoice(INVOICE_REQUEST)

        assert invoice.invoice_id == "inv_1"
        assert invoice.payment_link == "https://pay.mbnk.biz/inv_1"
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://api.monobank.ua/api/merchant/invoice/create"
        assert kwargs["headers"]["X-Token"] == "token"
        assert kwargs["timeout"] == 30
        assert kwargs["json"]["amount"] == 85050
        assert kwargs["json"]["ccy"] == 980
        assert kwargs["json"]["webHookUrl"] == "https://api.example.com/api/webhooks/payments"
        assert kwargs["json"]["merchantData"]["registrationId"] == INVOICE_REQUEST.registration_id

    def test_create_invoice_without_link(self, monobank, session):
        session.request.return_value = response(data={"invoiceId": "inv_1"})
        with pytest.raises(GatewayError):
            monobank.create_invoice(INVOICE_REQUEST)

    def test_provider_error_message(self, monobank, session):
        session.request.return_value = response(400, {"errText": "invalid amount"})
        with pytest.raises(GatewayError) as exc_info:
            monobank.create_invoice(INVOICE_REQUEST)
        assert exc_info.value.message == "Payment provider error: invalid amount"

    def test_timeout(self, monobank, session):
        session.request.side_effect = requests.Timeout()
        with pytest.raises(GatewayTimeoutError):
            monobank.create_invoice(INVOICE_REQUEST)

    def test_connection_error(self, monobank, session):
        session.request.side_effect = requests.ConnectionError()
        with pytest.raises(GatewayError) as exc_info:
            monobank.get_invoice_status("inv_1")
        assert exc_info.value.message == "Unable to connect to payment service"

    def test_invoice_status(self, monobank, session):
        session.request.return_value = response(
            data={"invoiceId": "inv_1", "status": "success", "finalAmount": 90000, "paymentInfo": {"tranId": "t1"}}
        )

        state = monobank.get_invoice_status("inv_1")

        assert state.status == InvoiceStatus.SUCCESS.value
        assert state.payment_id == "t1"
        assert state.amount == Money(amount=Decimal("900"))
        assert session.request.call_args.kwargs["params"] == {"invoiceId": "inv_1"}

    def test_cancel_invoice_partial(self, monobank, session):
        session.request.return_value = response(data={"status": "processing"})

        result = monobank.cancel_invoice("inv_1", Money(amount=Decimal("100")), "ref-1")

        assert result.status == "processing"
        assert session.request.call_args.kwargs["json"] == {
            "invoiceId": "inv_1",
            "amount": 10000,
            "extRef": "ref-1",
        }

    def test_invoice_receipt(self, monobank, session):
        session.request.return_value = response(data={"file": "JVBERi0xLjQ="})

        receipt = monobank.get_invoice_receipt("inv_1")

        assert receipt == {"file": "JVBERi0xLjQ="}
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://api.monobank.ua/api/merchant/invoice/receipt"
        assert session.request.call_args.kwargs["params"] == {"invoiceId": "inv_1"}

    def test_remove_invoice(self, monobank, session):
        session.request.return_value = response(data={})

        monobank.remove_invoice("inv_1")

        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://api.monobank.ua/api/merchant/invoice/remove")
        assert session.request.call_args.kwargs["json"] == {"invoiceId": "inv_1"}

    def test_public_key(self, monobank, session):
        session.request.return_value = response(data={"key": "LS0tLS1CRUdJTg=="})
        assert monobank.get_public_key() == "LS0tLS1CRUdJTg=="


class TestFakeGateway:
    """Tests for FakeGateway."""

    def test_invoice_lifecycle(self):
        gateway = FakeGateway()
        invoice = gateway.create_invoice(INVOICE_REQUEST)
        assert gateway.get_invoice_status(invoice.invoice_id).status == "created"

        gateway.set_status(invoice.invoice_id, InvoiceStatus.SUCCESS)
        state = gateway.get_invoice_status(invoice.invoice_id)
        assert state.payment_id == f"fake_pay_{invoice.invoice_id}"

    def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="declined")
        with pytest.raises(GatewayError) as exc_info:
            gateway.create_invoice(INVOICE_REQUEST)
        assert exc_info.value.message == "declined"
        assert len(gateway.calls) == 1

    def test_receipt_only_for_paid_invoice(self):
        gateway = FakeGateway()
        invoice = gateway.create_invoice(INVOICE_REQUEST)
        with pytest.raises(GatewayError):
            gateway.get_invoice_receipt(invoice.invoice_id)

        gateway.set_status(invoice.invoice_id, InvoiceStatus.SUCCESS)
        assert gateway.get_invoice_receipt(invoice.invoice_id)["file"]

    def test_removed_invoice_expires(self):
        gateway = FakeGateway()
        invoice = gateway.create_invoice(INVOICE_REQUEST)

        gateway.remove_invoice(invoice.invoice_id)

        assert gateway.get_invoice_status(invoice.invoice_id).status == "expired"


class TestBuildGateway:
    def test_fake_backend(self):
        assert isinstance(build_gateway({"BACKEND": "fake"}), FakeGateway)

    def test_monobank_requires_api_key(self):
        with pytest.raises(ImproperlyConfigured):
            build_gateway({"BACKEND": "monobank", "API_KEY": ""})

    def test_monobank_backend(self):
        gateway = build_gateway(
            {
                "BACKEND": "monobank",
                "API_KEY": "token",
                "API_URL": "https://api.monobank.ua",
                "WEBHOOK_URL": "https://example.com/hook",
            }
        )
        assert isinstance(gateway, MonobankGateway)

    def test_unknown_backend(self):
        with pytest.raises(ImproperlyConfigured):
            build_gateway({"BACKEND": "paypal"})


@pytest.fixture(scope="module")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


def public_key_b64(private_key) -> str:
    pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return base64.b64encode(pem).decode()


def ecdsa_sign(private_key, body: bytes) -> str:
    return base64.b64encode(private_key.sign(body, ec.ECDSA(hashes.SHA256()))).decode()


class TestSignatureVerifiers:
    """Tests for webhook signature verification."""

    def test_hmac_round_trip(self):
        verifier = HmacSignatureVerifier("secret")
        body = b'{"invoiceId":"inv_1"}'
        assert verifier.verify(body, verifier.sign(body))
        assert not verifier.verify(body + b" ", verifier.sign(body))
        assert not verifier.verify(body, "")

    def test_ecdsa_accepts_provider_signature(self, ec_key):
        verifier = EcdsaSignatureVerifier(public_key_b64(ec_key))
        body = b'{"invoiceId":"inv_1","status":"success"}'
        assert verifier.verify(body, ecdsa_sign(ec_key, body))

    def test_ecdsa_rejects_other_body(self, ec_key):
        verifier = EcdsaSignatureVerifier(public_key_b64(ec_key))
        signature = ecdsa_sign(ec_key, b'{"status":"failure"}')
        assert not verifier.verify(b'{"status":"success"}', signature)
        assert not verifier.verify(b'{"status":"success"}', "not base64!")
        assert not verifier.verify(b'{"status":"success"}', None)

    def test_ecdsa_rejects_bad_key(self):
        with pytest.raises(ImproperlyConfigured):
            EcdsaSignatureVerifier(base64.b64encode(b"garbage").decode())


class TestBuildSignatureVerifier:
    """Tests for build_signature_verifier."""

    def test_hmac_with_secret(self):
        verifier = build_signature_verifier(
            {"SIGNATURE_ALGORITHM": "hmac-sha256", "WEBHOOK_SECRET": "s"}, allow_unsigned=False
        )
        assert isinstance(verifier, HmacSignatureVerifier)

    def test_no_key_refused_in_production(self):
        """Without a key and without the development flag nothing is accepted."""
        with pytest.raises(ImproperlyConfigured):
            build_signature_verifier(
                {"SIGNATURE_ALGORITHM": "hmac-sha256", "WEBHOOK_SECRET": ""}, allow_unsigned=False
            )

    def test_no_key_allowed_in_development(self):
        verifier = build_signature_verifier(
            {"SIGNATURE_ALGORITHM": "hmac-sha256"}, allow_unsigned=True
        )
        assert isinstance(verifier, UnsignedWebhookVerifier)

    def test_ecdsa_key_fetched_from_provider(self, ec_key):
        gateway = Mock()
        gateway.get_public_key.return_value = public_key_b64(ec_key)

        verifier = build_signature_verifier(
            {"SIGNATURE_ALGORITHM": "ecdsa-sha256", "API_KEY": "token"},
            allow_unsigned=False,
            gateway=gateway,
        )

        assert isinstance(verifier, EcdsaSignatureVerifier)
        gateway.get_public_key.assert_called_once_with()

    def test_unknown_algorithm(self):
        with pytest.raises(ImproperlyConfigured):
            build_signature_verifier({"SIGNATURE_ALGORITHM": "md5"}, allow_unsigned=True)
