"""Payment housekeeping.

Discards payment attempts that never received an invoice (the process died
between committing the registration and recording the invoice) and, with
``--sync``, replays the provider status of every pending invoice.

Meant to run from cron every few minutes.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from registrations.domain.errors import DomainError
from registrations.services import factory

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Discard stale uninvoiced payment attempts and optionally sync pending invoices."

    def add_arguments(self, parser):
        parser.add_argument(
            "--ttl-minutes",
            type=int,
            default=settings.PENDING_PAYMENT_TTL_MINUTES,
            help="Age after which an attempt without invoice is discarded.",
        )
        parser.add_argument(
            "--sync",
            action="store_true",
            help="Also query the payment provider for every pending invoice.",
        )

    def handle(self, *args, **options):
        ttl = options["ttl_minutes"]
        if ttl < 1:
            raise CommandError("--ttl-minutes must be at least 1")

        discarded = factory.registration_workflow().sweep_stale_payments(timedelta(minutes=ttl))
        self.stdout.write(f"Discarded {len(discarded)} stale payment attempt(s).")
        logger.info("Stale payment sweep finished", extra={"discarded": len(discarded)})

        if not options["sync"]:
            return

        try:
            results = factory.reconciliation_service().sync_pending_payments()
        except DomainError as exc:
            raise CommandError(f"Reconciliation failed: {exc.message}") from exc

        changed = sum(1 for result in results if result.status_changed)
        self.stdout.write(
            self.style.SUCCESS(f"Checked {len(results)} pending invoice(s), {changed} updated.")
        )
