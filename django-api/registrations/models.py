"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q


class PromoCode(models.Model):
    """Persistence model for promo codes."""

    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", "Percentage"
        AMOUNT = "amount", "Amount"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    usage_limit = models.PositiveIntegerField()
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    expiration_date = models.DateTimeField(blank=True, null=True)
    event = models.ForeignKey(
        "events.Event",
        on_delete=models.CASCADE,
        related_name="promo_codes",
        blank=True,
        null=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["is_active"], name="promo_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(usage_limit__gte=1), name="promo_usage_limit_at_least_one"
            ),
            models.CheckConstraint(
                condition=Q(used_count__lte=F("usage_limit")),
                name="promo_used_count_within_limit",
            ),
            models.CheckConstraint(
                condition=Q(discount_value__gte=0), name="promo_discount_not_negative"
            ),
        ]

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.code


class Registration(models.Model):
    """Persistence model for event registrations."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        "events.Event", on_delete=models.CASCADE, related_name="registrations"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="registrations",
        blank=True,
        null=True,
    )
    name = models.CharField(max_length=50)
    surname = models.CharField(max_length=50)
    email = models.EmailField()
    city = models.CharField(max_length=100, blank=True)
    running_club = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    promo_code = models.CharField(max_length=50, blank=True, null=True)
    promo_code_ref = models.ForeignKey(
        PromoCode,
        on_delete=models.SET_NULL,
        related_name="registrations",
        blank=True,
        null=True,
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "status"], name="registration_event_status_idx"),
            models.Index(fields=["email"], name="registration_email_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "email"],
                condition=~Q(status="cancelled"),
                name="unique_active_registration_per_email",
            ),
            models.UniqueConstraint(
                fields=["event", "user"],
                condition=~Q(status="cancelled") & Q(user__isnull=False),
                name="unique_active_registration_per_user",
            ),
            models.CheckConstraint(
                condition=Q(final_price__gte=0), name="registration_price_not_negative"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.email} - {self.event_id}"


class Payment(models.Model):
    """Persistence model for payment attempts."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="payments"
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="UAH")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    invoice_id = models.CharField(max_length=255, unique=True, blank=True, null=True)
    provider_payment_id = models.CharField(max_length=255, blank=True, null=True)
    payment_link = models.URLField(max_length=500, blank=True, null=True)
    webhook_data = models.JSONField(default=dict, blank=True)
    promo_redeemed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0), name="payment_amount_not_negative"
            ),
        ]

    def __str__(self) -> str:
        return f"Payment {self.id} - {self.amount} {self.currency}"
