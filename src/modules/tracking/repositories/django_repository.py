"""Django ORM implementation of the Tracking repository.

The foreground watch and the background task both publish for the same
delivery, so writes can arrive out of order.  An upsert carrying an
older ``captured_at`` than the stored row is dropped.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.core.repositories.conditional import ChangeFeedRepositoryMixin
from modules.tracking.models import TrackingSample
from modules.tracking.repositories.interfaces import ITrackingRepository
from shared.domain.feed import ChangeOperation

logger = structlog.get_logger(__name__)


class TrackingDjangoRepository(ChangeFeedRepositoryMixin, ITrackingRepository):
    model = TrackingSample
    feed_table = "delivery_tracking"

    def get_by_id(self, id: Any) -> Optional[TrackingSample]:
        try:
            return TrackingSample.objects.filter(pk=id).first()
        except (ValueError, TypeError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[TrackingSample]:
        queryset = TrackingSample.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: TrackingSample) -> TrackingSample:
        old = self._snapshot(entity.pk)
        entity.save()
        operation = ChangeOperation.INSERT if old is None else ChangeOperation.UPDATE
        self._announce(operation, old, self._snapshot(entity.pk))
        return entity

    @transaction.atomic
    def upsert(
        self, delivery_id: Any, courier_id: Any, values: Dict[str, Any]
    ) -> Optional[TrackingSample]:
        current = (
            TrackingSample.objects.select_for_update().filter(pk=delivery_id).first()
        )
        if current is not None and current.captured_at > values["captured_at"]:
            logger.debug(
                "tracking.sample_out_of_order",
                delivery_id=delivery_id,
                stored=current.captured_at.isoformat(),
            )
            return None

        sample = current or TrackingSample(delivery_id=delivery_id)
        sample.courier_id = courier_id
        for field, value in values.items():
            setattr(sample, field, value)
        return self.save(sample)

    @transaction.atomic
    def delete(self, delivery_id: Any) -> bool:
        old = self._snapshot(delivery_id)
        if old is None:
            return False
        TrackingSample.objects.filter(pk=delivery_id).delete()
        self._announce(ChangeOperation.DELETE, old, None)
        return True
