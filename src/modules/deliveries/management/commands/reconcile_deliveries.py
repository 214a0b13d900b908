from __future__ import annotations

from django.core.management.base import BaseCommand

from modules.deliveries.services import build_delivery_service


class Command(BaseCommand):
    help = "Cancel open deliveries whose purchase order has been cancelled."

    def handle(self, *args, **options):
        results = build_delivery_service().reconcile_cancelled_orders()
        cancelled = sum(len(r.cancelled) for r in results)
        skipped = sum(len(r.skipped) for r in results)
        self.stdout.write(
            self.style.SUCCESS(
                f"Reconciled {len(results)} orders: "
                f"cancelled={cancelled}, skipped={skipped}"
            )
        )
