"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from events.domain import Capacity, Event, Money
from registrations.domain import DiscountType, PromoCode
from registrations.gateway import reset_gateway, set_gateway
from registrations.gateway.fake_adapter import FakeGateway
from registrations.gateway.signatures import HmacSignatureVerifier
from registrations.services import (
    EmailNotifier,
    PromoCodeLedger,
    ReconciliationService,
    RegistrationWorkflow,
    SettlementService,
    WebhookProcessor,
    WorkflowConfig,
    factory,
)
from registrations.stores import InMemoryRegistrationStore

WEBHOOK_SECRET = "test-webhook-secret"
FAILURE_URL = "https://frontend.example.com/registration/failed"
SUCCESS_URL = "https://frontend.example.com/registration/success"


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def fake_gateway():
    """Installs a fresh FakeGateway as the process-wide gateway."""
    gateway = FakeGateway()
    set_gateway(gateway)
    factory.webhook_verifier.cache_clear()
    yield gateway
    reset_gateway()
    factory.webhook_verifier.cache_clear()


@pytest.fixture
def store() -> InMemoryRegistrationStore:
    return InMemoryRegistrationStore()


@pytest.fixture
def make_event(store):
    def _make_event(capacity=10, price=None, starts_in=timedelta(days=30), registered_count=0):
        return store.add_event(
            Event(
                id=uuid4(),
                title="Spring Run",
                location="Kyiv",
                date=timezone.now() + starts_in,
                capacity=Capacity(value=capacity),
                registered_count=registered_count,
                price=Money(amount=Decimal(price)) if price is not None else None,
            )
        )

    return _make_event


@pytest.fixture
def make_promo(store):
    def _make_promo(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value="10",
        usage_limit=10,
        used_count=0,
        is_active=True,
        expiration_date=None,
        event_id=None,
    ):
        return store.add_promo_code(
            PromoCode(
                id=uuid4(),
                code=code,
                discount_type=discount_type,
                discount_value=Decimal(discount_value),
                usage_limit=usage_limit,
                used_count=used_count,
                is_active=is_active,
                expiration_date=expiration_date,
                event_id=event_id,
            )
        )

    return _make_promo


@dataclass
class Services:
    ledger: PromoCodeLedger
    settlement: SettlementService
    workflow: RegistrationWorkflow
    webhooks: WebhookProcessor
    reconciliation: ReconciliationService
    verifier: HmacSignatureVerifier


@pytest.fixture
def services(store, fake_gateway) -> Services:
    """Services wired to the in-memory store and the fake gateway."""
    ledger = PromoCodeLedger(store)
    notifier = EmailNotifier(failure_url=FAILURE_URL, from_email="noreply@example.com")
    settlement = SettlementService(store, ledger, notifier, gateway=fake_gateway)
    verifier = HmacSignatureVerifier(WEBHOOK_SECRET)
    workflow = RegistrationWorkflow(
        store=store,
        gateway=fake_gateway,
        ledger=ledger,
        notifier=notifier,
        config=WorkflowConfig(
            base_price=Money(amount=Decimal("1000")),
            currency="UAH",
            success_url=SUCCESS_URL,
            failure_url=FAILURE_URL,
        ),
    )
    return Services(
        ledger=ledger,
        settlement=settlement,
        workflow=workflow,
        webhooks=WebhookProcessor(store, verifier, settlement),
        reconciliation=ReconciliationService(store, fake_gateway, settlement, ledger),
        verifier=verifier,
    )
