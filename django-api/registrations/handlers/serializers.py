"""Serializers for request validation and API responses.

Input serializers check format only. Business rules (capacity, promo
eligibility, payment state) live in the services.
"""

from rest_framework import serializers

from registrations.gateway.port import InvoiceStatus

WEBHOOK_STATUSES = [
    InvoiceStatus.CREATED.value,
    InvoiceStatus.PROCESSING.value,
    InvoiceStatus.HOLD.value,
    InvoiceStatus.SUCCESS.value,
    InvoiceStatus.FAILURE.value,
    InvoiceStatus.EXPIRED.value,
    InvoiceStatus.REVERSED.value,
]


class RegistrationCreateSerializer(serializers.Serializer):
    """Input for POST /api/registrations"""

    event_id = serializers.CharField()
    name = serializers.CharField(max_length=50)
    surname = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    city = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    running_club = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    promo_code = serializers.CharField(
        max_length=50, required=False, allow_blank=True, allow_null=True, default=None
    )


class PaymentLinkQuerySerializer(serializers.Serializer):
    email = serializers.EmailField()
    event_id = serializers.CharField()


class RegistrationListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, required=False)


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    ext_ref = serializers.CharField(max_length=100, required=False, allow_blank=True)


class PromoValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    event_id = serializers.CharField(required=False, allow_null=True)


class MerchantDataSerializer(serializers.Serializer):
    registrationId = serializers.CharField(required=False, allow_blank=True)
    customerName = serializers.CharField(required=False, allow_blank=True)
    eventTitle = serializers.CharField(required=False, allow_blank=True)


class WebhookPayloadSerializer(serializers.Serializer):
    """Provider notification body. Unknown keys are kept in the raw payload."""

    invoiceId = serializers.CharField()
    status = serializers.ChoiceField(choices=WEBHOOK_STATUSES)
    paymentId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    amount = serializers.IntegerField(required=False, allow_null=True)
    merchantData = MerchantDataSerializer(required=False, allow_null=True)


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.UUIDField()
    event_id = serializers.UUIDField()
    email = serializers.EmailField()
    name = serializers.CharField()
    surname = serializers.CharField()
    city = serializers.CharField()
    running_club = serializers.CharField()
    phone = serializers.CharField()
    promo_code = serializers.CharField(allow_null=True)
    status = serializers.CharField(source="status.value")
    payment_status = serializers.CharField(source="payment_status.value")
    final_price = serializers.DecimalField(
        source="final_price.amount", max_digits=10, decimal_places=2
    )
    discount_amount = serializers.DecimalField(
        source="discount_amount.amount", max_digits=10, decimal_places=2
    )
    created_at = serializers.DateTimeField()


class PaymentSerializer(serializers.Serializer):
    """Serializer for Payment domain model."""

    id = serializers.UUIDField()
    amount = serializers.DecimalField(source="amount.amount", max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    status = serializers.CharField(source="status.value")
    invoice_id = serializers.CharField(allow_null=True)
    payment_link = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField()


class PromoTermsSerializer(serializers.Serializer):
    code = serializers.CharField()
    discount_type = serializers.CharField(source="discount_type.value")
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2)
    is_valid = serializers.SerializerMethodField()

    def get_is_valid(self, terms) -> bool:
        # Codes that fail validation are reported as errors, never serialized.
        return True
