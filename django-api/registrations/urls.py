from django.urls import path

from registrations.handlers import (
    MyRegistrationsView,
    PaymentLinkView,
    PaymentReceiptView,
    PaymentStatusView,
    PaymentWebhookView,
    PromoCodeValidateView,
    RefundView,
    RegistrationCreateView,
    RegistrationDetailView,
    SyncPaymentView,
)

urlpatterns = [
    path("registrations", RegistrationCreateView.as_view(), name="registration-create"),
    path("registrations/my", MyRegistrationsView.as_view(), name="registration-my"),
    path(
        "registrations/payment-link",
        PaymentLinkView.as_view(),
        name="registration-payment-link",
    ),
    path(
        "registrations/<str:registration_id>",
        RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    path(
        "registrations/<str:registration_id>/refund",
        RefundView.as_view(),
        name="registration-refund",
    ),
    path(
        "registrations/<str:registration_id>/sync-payment",
        SyncPaymentView.as_view(),
        name="registration-sync-payment",
    ),
    path(
        "payments/<str:payment_id>/status",
        PaymentStatusView.as_view(),
        name="payment-status",
    ),
    path(
        "payments/<str:payment_id>/receipt",
        PaymentReceiptView.as_view(),
        name="payment-receipt",
    ),
    path("promo-codes/validate", PromoCodeValidateView.as_view(), name="promo-code-validate"),
    path("webhooks/payments", PaymentWebhookView.as_view(), name="payment-webhook"),
]
