"""Participant email notifications."""

from django.conf import settings
from django.core.mail import send_mail

from events.domain import Event
from registrations.domain import Payment, Registration


class EmailNotifier:
    """Sends registration emails through Django's configured email backend."""

    def __init__(self, failure_url: str, from_email: str | None = None) -> None:
        self.failure_url = failure_url
        self.from_email = from_email

    @classmethod
    def from_settings(cls) -> "EmailNotifier":
        return cls(
            failure_url=settings.FRONTEND_FAILURE_URL,
            from_email=settings.DEFAULT_FROM_EMAIL,
        )

    def retry_link(self, registration: Registration) -> str:
        return f"{self.failure_url}?registrationId={registration.id}"

    def registration_confirmed(
        self, registration: Registration, event: Event, payment: Payment
    ) -> None:
        message = (
            f"Hello {registration.full_name},\n\n"
            f"Your registration for {event.title} is confirmed.\n"
            f"Date: {event.date:%Y-%m-%d %H:%M}\n"
            f"Location: {event.location}\n"
            f"Paid: {payment.amount} {payment.currency}\n"
            f"Registration ID: {registration.id}\n"
        )
        send_mail(
            subject=f"Registration Confirmed - {event.title}",
            message=message,
            from_email=self.from_email,
            recipient_list=[registration.email],
        )

    def payment_failed(self, registration: Registration, event: Event) -> None:
        message = (
            f"Hello {registration.full_name},\n\n"
            f"Your payment for {event.title} was declined.\n"
            f"You can try again here: {self.retry_link(registration)}\n"
        )
        send_mail(
            subject=f"Payment Failed - {event.title}",
            message=message,
            from_email=self.from_email,
            recipient_list=[registration.email],
        )
