"""Django ORM implementation of the Courier repository.

Status changes use guarded ``UPDATE`` statements (no read-modify-write)
and are announced on the change feed after commit.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.core.repositories.conditional import ChangeFeedRepositoryMixin
from modules.couriers.constants import CourierStatus, VehicleType
from modules.couriers.models import Courier
from modules.couriers.repositories.interfaces import ICourierRepository
from shared.domain.feed import ChangeOperation

logger = structlog.get_logger(__name__)


class CourierDjangoRepository(ChangeFeedRepositoryMixin, ICourierRepository):
    """Concrete Courier repository backed by Django ORM."""

    model = Courier
    feed_table = "couriers"

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Courier:
        courier = Courier(
            user_id=data["user_id"],
            vehicle_type=data.get("vehicle_type", VehicleType.BIKE),
            status=data.get("status", CourierStatus.OFFLINE),
        )
        courier.save(force_insert=True)
        self._announce_insert(courier)
        logger.info("courier.created", courier_id=courier.pk)
        return courier

    def get_by_id(self, id: Any) -> Optional[Courier]:
        try:
            return Courier.objects.filter(pk=id).first()
        except (TypeError, ValueError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Courier]:
        queryset = Courier.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Courier) -> Courier:
        old = self._snapshot(entity.pk)
        entity.save()
        self._announce(ChangeOperation.UPDATE, old, self._snapshot(entity.pk))
        return entity

    # ------------------------------------------------------------------
    # Guarded status writes
    # ------------------------------------------------------------------

    def set_status(self, courier_id: Any, expected: str, new: str) -> bool:
        return self._guarded_update(courier_id, {"status": expected}, {"status": new})

    def mark_busy(self, courier_id: Any) -> bool:
        with transaction.atomic():
            old = self._snapshot(courier_id)
            updated = Courier.objects.filter(
                pk=courier_id, status=CourierStatus.ONLINE
            ).update(status=CourierStatus.BUSY, updated_at=timezone.now())
            if not updated:
                return False
            self._announce(ChangeOperation.UPDATE, old, self._snapshot(courier_id))
        return True

    def release(self, courier_id: Any) -> bool:
        return self._guarded_update(
            courier_id,
            {"status": CourierStatus.BUSY},
            {"status": CourierStatus.ONLINE},
        )

    def credit_delivery(self, courier_id: Any, fee_cents: int, release: bool) -> bool:
        changes: Dict[str, Any] = {
            "total_deliveries": F("total_deliveries") + 1,
            "total_earnings_cents": F("total_earnings_cents") + fee_cents,
        }
        if release:
            changes["status"] = CourierStatus.ONLINE
        credited = self._guarded_update(courier_id, {}, changes)
        logger.info(
            "courier.credited",
            courier_id=courier_id,
            fee_cents=fee_cents,
            released=release,
            credited=credited,
        )
        return credited

