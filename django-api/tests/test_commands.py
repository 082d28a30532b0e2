"""Tests for the reconcile_payments management command.

Run with: pytest tests/test_commands.py -v
"""

from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from events.domain import Money
from events.models import Event as EventModel
from registrations.domain import NewRegistration
from registrations.gateway.port import InvoiceStatus
from registrations.models import Payment as PaymentModel
from registrations.models import Registration as RegistrationModel
from registrations.stores import DjangoRegistrationStore


@pytest.fixture
def event_row():
    return EventModel.objects.create(
        title="Night Run",
        location="Kyiv",
        date=timezone.now() + timedelta(days=5),
        capacity=5,
        price=Decimal("300.00"),
    )


def abandoned_attempt(event_row, age: timedelta):
    """A registration whose invoice was never recorded."""
    store = DjangoRegistrationStore()
    registration = store.add_registration(
        NewRegistration(
            event_id=event_row.id,
            email="late@example.com",
            name="Ivan",
            surname="Franko",
            final_price=Money(amount=Decimal("300")),
            discount_amount=Money.zero(),
        )
    )
    store.reserve_seat(event_row.id)
    payment = store.add_payment(registration.id, Money(amount=Decimal("300")), "UAH")
    PaymentModel.objects.filter(pk=payment.id).update(created_at=timezone.now() - age)
    return registration, payment


def run(*args) -> str:
    out = StringIO()
    call_command("reconcile_payments", *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestReconcilePaymentsCommand:
    """Tests for `manage.py reconcile_payments`."""

    def test_discards_stale_attempt(self, event_row, fake_gateway):
        abandoned_attempt(event_row, timedelta(hours=1))

        output = run()

        assert "Discarded 1 stale payment attempt(s)." in output
        assert not RegistrationModel.objects.exists()
        assert not PaymentModel.objects.exists()
        event_row.refresh_from_db()
        assert event_row.registered_count == 0

    def test_recent_attempt_is_kept(self, event_row, fake_gateway):
        abandoned_attempt(event_row, timedelta(minutes=1))

        output = run("--ttl-minutes", "30")

        assert "Discarded 0 stale payment attempt(s)." in output
        assert PaymentModel.objects.count() == 1

    def test_rejects_invalid_ttl(self, fake_gateway):
        with pytest.raises(CommandError):
            run("--ttl-minutes", "0")

    def test_sync_applies_provider_status(self, api_client, event_row, fake_gateway):
        api_client.post(
            "/api/registrations",
            {
                "event_id": str(event_row.id),
                "name": "Lesya",
                "surname": "Ukrainka",
                "email": "lesya@example.com",
            },
            format="json",
        )
        fake_gateway.set_status(PaymentModel.objects.get().invoice_id, InvoiceStatus.SUCCESS)

        output = run("--sync")

        assert "Checked 1 pending invoice(s), 1 updated." in output
        assert PaymentModel.objects.get().status == "completed"
        assert RegistrationModel.objects.get().status == "confirmed"
