"""Service wiring for the HTTP handlers and management commands.

Everything is built per call except the webhook signature verifier, which may
fetch the provider public key and is therefore cached. Tests swap the gateway
with ``set_gateway`` and clear the verifier with ``webhook_verifier.cache_clear``.
"""

from functools import lru_cache

from django.conf import settings

from events.domain import Money
from registrations.gateway import get_gateway
from registrations.gateway.signatures import SignatureVerifier, build_signature_verifier
from registrations.services.notifications import EmailNotifier
from registrations.services.promo_ledger import PromoCodeLedger
from registrations.services.reconciliation import ReconciliationService
from registrations.services.registration_workflow import RegistrationWorkflow, WorkflowConfig
from registrations.services.settlement import SettlementService
from registrations.services.webhook_processor import WebhookProcessor
from registrations.stores.django_store import DjangoRegistrationStore


def workflow_config() -> WorkflowConfig:
    return WorkflowConfig(
        base_price=Money(amount=settings.EVENT_BASE_PRICE),
        currency=settings.PAYMENT_GATEWAY.get("CURRENCY", "UAH"),
        success_url=settings.FRONTEND_SUCCESS_URL,
        failure_url=settings.FRONTEND_FAILURE_URL,
    )


@lru_cache(maxsize=1)
def webhook_verifier() -> SignatureVerifier:
    return build_signature_verifier(
        settings.PAYMENT_GATEWAY,
        allow_unsigned=settings.ALLOW_UNSIGNED_WEBHOOKS,
        gateway=get_gateway(),
    )


def promo_ledger() -> PromoCodeLedger:
    return PromoCodeLedger(DjangoRegistrationStore())


def registration_workflow() -> RegistrationWorkflow:
    store = DjangoRegistrationStore()
    return RegistrationWorkflow(
        store=store,
        gateway=get_gateway(),
        ledger=PromoCodeLedger(store),
        notifier=EmailNotifier.from_settings(),
        config=workflow_config(),
    )


def webhook_processor() -> WebhookProcessor:
    store = DjangoRegistrationStore()
    return WebhookProcessor(store, webhook_verifier(), _settlement_service(store))


def reconciliation_service() -> ReconciliationService:
    store = DjangoRegistrationStore()
    return ReconciliationService(
        store, get_gateway(), _settlement_service(store), PromoCodeLedger(store)
    )


def _settlement_service(store: DjangoRegistrationStore) -> SettlementService:
    return SettlementService(
        store, PromoCodeLedger(store), EmailNotifier.from_settings(), gateway=get_gateway()
    )
