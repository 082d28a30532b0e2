"""Django ORM implementation of the RegistrationStore."""

from contextlib import AbstractContextManager
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from events import models as event_models
from events.domain import Capacity, Event, Money
from registrations import models
from registrations.domain import (
    DiscountType,
    NewRegistration,
    Payment,
    PaymentState,
    PaymentStatus,
    PromoCode,
    Registration,
    RegistrationStatus,
)
from registrations.domain.errors import (
    DuplicateRegistrationError,
    PaymentNotFoundError,
    RegistrationNotFoundError,
)
from registrations.stores.interfaces import RegistrationStore

# Domain attribute -> ORM attribute, where they differ.
_REGISTRATION_ATTRS = {"promo_code_id": "promo_code_ref_id"}


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Money):
        return value.amount
    return value


class DjangoRegistrationStore(RegistrationStore):
    """Relational store using Django ORM transactions and row locks."""

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()

    def get_event(self, event_id: UUID) -> Event | None:
        obj = event_models.Event.objects.filter(pk=event_id).first()
        return _to_event(obj) if obj else None

    def reserve_seat(self, event_id: UUID) -> bool:
        updated = event_models.Event.objects.filter(
            pk=event_id, registered_count__lt=F("capacity")
        ).update(registered_count=F("registered_count") + 1, updated_at=timezone.now())
        return updated == 1

    def release_seat(self, event_id: UUID) -> None:
        event_models.Event.objects.filter(pk=event_id, registered_count__gt=0).update(
            registered_count=F("registered_count") - 1, updated_at=timezone.now()
        )

    def find_active_registration(
        self, event_id: UUID, email: str, user_id: int | None = None
    ) -> Registration | None:
        queryset = models.Registration.objects.filter(event_id=event_id).exclude(
            status=models.Registration.Status.CANCELLED
        )
        obj = queryset.filter(email=email).first()
        if obj is None and user_id is not None:
            obj = queryset.filter(user_id=user_id).first()
        return _to_registration(obj) if obj else None

    def add_registration(self, registration: NewRegistration) -> Registration:
        try:
            with transaction.atomic():
                obj = models.Registration.objects.create(
                    event_id=registration.event_id,
                    user_id=registration.user_id,
                    name=registration.name,
                    surname=registration.surname,
                    email=registration.email,
                    city=registration.city,
                    running_club=registration.running_club,
                    phone=registration.phone,
                    promo_code=registration.promo_code,
                    promo_code_ref_id=registration.promo_code_id,
                    status=registration.status.value,
                    payment_status=registration.payment_status.value,
                    final_price=registration.final_price.amount,
                    discount_amount=registration.discount_amount.amount,
                )
        except IntegrityError as exc:
            raise DuplicateRegistrationError(str(registration.event_id)) from exc
        return _to_registration(obj)

    def get_registration(self, registration_id: UUID, for_update: bool = False) -> Registration | None:
        queryset = models.Registration.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        obj = queryset.filter(pk=registration_id).first()
        return _to_registration(obj) if obj else None

    def update_registration(self, registration_id: UUID, **changes: Any) -> Registration:
        obj = models.Registration.objects.filter(pk=registration_id).first()
        if obj is None:
            raise RegistrationNotFoundError(str(registration_id))
        for name, value in changes.items():
            setattr(obj, _REGISTRATION_ATTRS.get(name, name), _column_value(value))
        obj.save()
        return _to_registration(obj)

    def delete_registration(self, registration_id: UUID) -> None:
        models.Registration.objects.filter(pk=registration_id).delete()

    def registrations_for_user(self, user_id: int, offset: int, limit: int) -> list[Registration]:
        queryset = models.Registration.objects.filter(user_id=user_id).order_by("-created_at")
        return [_to_registration(obj) for obj in queryset[offset : offset + limit]]

    def count_registrations_for_user(self, user_id: int) -> int:
        return models.Registration.objects.filter(user_id=user_id).count()

    def add_payment(self, registration_id: UUID, amount: Money, currency: str, **fields: Any) -> Payment:
        obj = models.Payment.objects.create(
            registration_id=registration_id,
            amount=amount.amount,
            currency=currency,
            **{name: _column_value(value) for name, value in fields.items()},
        )
        return _to_payment(obj)

    def get_payment(self, payment_id: UUID, for_update: bool = False) -> Payment | None:
        queryset = models.Payment.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        obj = queryset.filter(pk=payment_id).first()
        return _to_payment(obj) if obj else None

    def get_payment_by_invoice(self, invoice_id: str, for_update: bool = False) -> Payment | None:
        queryset = models.Payment.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        obj = queryset.filter(invoice_id=invoice_id).first()
        return _to_payment(obj) if obj else None

    def latest_payment(self, registration_id: UUID) -> Payment | None:
        obj = (
            models.Payment.objects.filter(registration_id=registration_id)
            .order_by("-created_at")
            .first()
        )
        return _to_payment(obj) if obj else None

    def update_payment(self, payment_id: UUID, **changes: Any) -> Payment:
        obj = models.Payment.objects.filter(pk=payment_id).first()
        if obj is None:
            raise PaymentNotFoundError(str(payment_id))
        for name, value in changes.items():
            setattr(obj, name, _column_value(value))
        obj.save()
        return _to_payment(obj)

    def delete_payment(self, payment_id: UUID) -> None:
        models.Payment.objects.filter(pk=payment_id).delete()

    def stale_uninvoiced_payments(self, created_before: datetime) -> list[Payment]:
        queryset = models.Payment.objects.filter(
            status=models.Payment.Status.PENDING,
            invoice_id__isnull=True,
            created_at__lt=created_before,
        ).order_by("created_at")
        return [_to_payment(obj) for obj in queryset]

    def pending_invoiced_payments(self) -> list[Payment]:
        queryset = models.Payment.objects.filter(
            status=models.Payment.Status.PENDING, invoice_id__isnull=False
        ).order_by("created_at")
        return [_to_payment(obj) for obj in queryset]

    def get_promo_code(self, promo_code_id: UUID) -> PromoCode | None:
        obj = models.PromoCode.objects.filter(pk=promo_code_id).first()
        return _to_promo_code(obj) if obj else None

    def get_promo_code_by_code(self, code: str) -> PromoCode | None:
        obj = models.PromoCode.objects.filter(code=code).first()
        return _to_promo_code(obj) if obj else None

    def increment_promo_usage(self, promo_code_id: UUID) -> bool:
        updated = models.PromoCode.objects.filter(
            pk=promo_code_id, used_count__lt=F("usage_limit")
        ).update(used_count=F("used_count") + 1, updated_at=timezone.now())
        return updated == 1

    def decrement_promo_usage(self, promo_code_id: UUID) -> None:
        models.PromoCode.objects.filter(pk=promo_code_id, used_count__gt=0).update(
            used_count=F("used_count") - 1, updated_at=timezone.now()
        )


def _to_event(obj: event_models.Event) -> Event:
    return Event(
        id=obj.id,
        title=obj.title,
        location=obj.location,
        date=obj.date,
        capacity=Capacity(value=obj.capacity),
        registered_count=obj.registered_count,
        price=Money(amount=obj.price) if obj.price is not None else None,
    )


def _to_registration(obj: models.Registration) -> Registration:
    return Registration(
        id=obj.id,
        event_id=obj.event_id,
        user_id=obj.user_id,
        email=obj.email,
        name=obj.name,
        surname=obj.surname,
        city=obj.city,
        running_club=obj.running_club,
        phone=obj.phone,
        promo_code=obj.promo_code,
        promo_code_id=obj.promo_code_ref_id,
        status=RegistrationStatus(obj.status),
        payment_status=PaymentState(obj.payment_status),
        final_price=Money(amount=obj.final_price),
        discount_amount=Money(amount=obj.discount_amount),
        created_at=obj.created_at,
    )


def _to_payment(obj: models.Payment) -> Payment:
    return Payment(
        id=obj.id,
        registration_id=obj.registration_id,
        amount=Money(amount=obj.amount),
        currency=obj.currency,
        status=PaymentStatus(obj.status),
        invoice_id=obj.invoice_id,
        provider_payment_id=obj.provider_payment_id,
        payment_link=obj.payment_link,
        webhook_data=dict(obj.webhook_data or {}),
        promo_redeemed=obj.promo_redeemed,
        created_at=obj.created_at,
    )


def _to_promo_code(obj: models.PromoCode) -> PromoCode:
    return PromoCode(
        id=obj.id,
        code=obj.code,
        discount_type=DiscountType(obj.discount_type),
        discount_value=obj.discount_value,
        usage_limit=obj.usage_limit,
        used_count=obj.used_count,
        is_active=obj.is_active,
        expiration_date=obj.expiration_date,
        event_id=obj.event_id,
    )
