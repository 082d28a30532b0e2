from registrations.services.notifications import EmailNotifier
from registrations.services.promo_ledger import PromoCodeLedger, PromoTerms
from registrations.services.reconciliation import (
    PaymentCheck,
    ReconciliationService,
    RefundResult,
    SyncResult,
)
from registrations.services.registration_workflow import (
    RegistrationPage,
    RegistrationRequest,
    RegistrationResult,
    RegistrationWorkflow,
    WorkflowConfig,
)
from registrations.services.settlement import SettlementResult, SettlementService
from registrations.services.webhook_processor import WebhookNotification, WebhookProcessor

__all__ = [
    "EmailNotifier",
    "PromoCodeLedger",
    "PaymentCheck",
    "PromoTerms",
    "ReconciliationService",
    "RefundResult",
    "RegistrationPage",
    "RegistrationRequest",
    "RegistrationResult",
    "RegistrationWorkflow",
    "SettlementResult",
    "SettlementService",
    "SyncResult",
    "WebhookNotification",
    "WebhookProcessor",
    "WorkflowConfig",
]
