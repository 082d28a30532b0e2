from registrations.handlers.views import (
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

__all__ = [
    "MyRegistrationsView",
    "PaymentLinkView",
    "PaymentReceiptView",
    "PaymentStatusView",
    "PaymentWebhookView",
    "PromoCodeValidateView",
    "RefundView",
    "RegistrationCreateView",
    "RegistrationDetailView",
    "SyncPaymentView",
]
