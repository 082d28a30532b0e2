"""Database-backed checks that the registration flow keeps seats and payments consistent.

The store's lookups are stubbed to return what a concurrent request could have
seen a moment earlier; the conditional updates and unique constraints must still
hold the line.
Run with: pytest tests/test_registration_integrity.py -v
"""

from datetime import timedelta
from decimal import Decimal
from smtplib import SMTPException
from unittest.mock import patch

import pytest
from django.utils import timezone

from events.models import Event as EventModel
from registrations.domain.errors import DuplicateRegistrationError, EventFullError
from registrations.models import Payment as PaymentModel
from registrations.models import PromoCode as PromoCodeModel
from registrations.models import Registration as RegistrationModel
from registrations.services import RegistrationRequest, WebhookNotification, factory
from registrations.stores import DjangoRegistrationStore


@pytest.fixture
def event_row():
    return EventModel.objects.create(
        title="Dnipro Half",
        location="Dnipro",
        date=timezone.now() + timedelta(days=14),
        capacity=2,
        price=Decimal("400.00"),
    )


def request_for(event_row, email="runner@example.com", **overrides) -> RegistrationRequest:
    fields = {"event_id": str(event_row.id), "name": "Mykola", "surname": "Lysenko", "email": email}
    fields.update(overrides)
    return RegistrationRequest(**fields)


@pytest.mark.django_db
class TestSeatRaces:
    """Seat and identity checks that run against stale reads."""

    def test_stale_event_snapshot_cannot_oversell(self, event_row, fake_gateway):
        """The snapshot shows a free seat but the row is already full."""
        snapshot = DjangoRegistrationStore().get_event(event_row.id)
        EventModel.objects.filter(pk=event_row.pk).update(registered_count=2)

        with patch.object(DjangoRegistrationStore, "get_event", return_value=snapshot):
            with pytest.raises(EventFullError):
                factory.registration_workflow().create_registration(request_for(event_row))

        assert RegistrationModel.objects.count() == 0
        assert PaymentModel.objects.count() == 0
        event_row.refresh_from_db()
        assert event_row.registered_count == 2
        assert fake_gateway.calls == []

    def test_missed_duplicate_check_is_caught_by_constraint(self, event_row, fake_gateway):
        workflow = factory.registration_workflow()
        workflow.create_registration(request_for(event_row))

        with patch.object(DjangoRegistrationStore, "find_active_registration", return_value=None):
            with pytest.raises(DuplicateRegistrationError):
                workflow.create_registration(request_for(event_row, email="RUNNER@example.com"))

        assert RegistrationModel.objects.count() == 1
        assert PaymentModel.objects.count() == 1
        event_row.refresh_from_db()
        assert event_row.registered_count == 1
        assert len(fake_gateway.calls) == 1


@pytest.mark.django_db
class TestEmailFailures:
    """Mail delivery never decides the fate of a payment."""

    def test_paid_settlement_survives_mail_outage(self, event_row, fake_gateway):
        result = factory.registration_workflow().create_registration(request_for(event_row))
        invoice_id = result.payment.invoice_id

        with patch(
            "registrations.services.notifications.send_mail",
            side_effect=SMTPException("mail server down"),
        ) as send_mail:
            settled = factory.webhook_processor().process(
                WebhookNotification(
                    invoice_id=invoice_id,
                    status="success",
                    payment_id="pay_9",
                    payload={"invoiceId": invoice_id, "status": "success"},
                )
            )

        assert send_mail.called
        assert settled.changed
        assert PaymentModel.objects.get().status == "completed"
        registration = RegistrationModel.objects.get()
        assert registration.status == "confirmed"
        assert registration.payment_status == "completed"

    def test_free_registration_survives_mail_outage(self, event_row, fake_gateway):
        PromoCodeModel.objects.create(
            code="FREE", discount_type="percentage", discount_value=Decimal("100"), usage_limit=1
        )

        with patch(
            "registrations.services.notifications.send_mail",
            side_effect=SMTPException("mail server down"),
        ):
            result = factory.registration_workflow().create_registration(
                request_for(event_row, promo_code="FREE")
            )

        assert result.payment_link is None
        assert RegistrationModel.objects.get().status == "confirmed"
        assert PaymentModel.objects.get().status == "completed"
        assert PromoCodeModel.objects.get().used_count == 1
