"""Guarded (compare-and-set) writes that announce themselves on the change feed.

Every state change in the dispatch subsystem is a single
``UPDATE ... WHERE <expected current values>`` evaluated by the database.
The affected row count decides success: ``0`` means another writer got
there first and the caller must report a conflict.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from shared.domain.feed import ChangeEvent, ChangeOperation
from shared.infrastructure.feed import publish_on_commit


class ChangeFeedRepositoryMixin:
    """Mixin for Django repositories whose table is observed in realtime.

    Subclasses set ``model`` and ``feed_table``.
    """

    model: type[models.Model]
    feed_table: str

    def _coerce_pk(self, pk: Any) -> Optional[Any]:
        """The primary key in its Python type, or ``None`` when malformed."""
        try:
            return self.model._meta.pk.to_python(pk)
        except (ValidationError, TypeError):
            return None

    def _snapshot(self, pk: Any) -> Optional[Dict[str, Any]]:
        pk = self._coerce_pk(pk)
        if pk is None:
            return None
        return self.model.objects.filter(pk=pk).values().first()

    def _announce(
        self,
        operation: ChangeOperation,
        old: Optional[Dict[str, Any]],
        new: Optional[Dict[str, Any]],
    ) -> None:
        publish_on_commit(
            ChangeEvent(table=self.feed_table, operation=operation, old=old, new=new)
        )

    def _guarded_update(
        self, pk: Any, expected: Dict[str, Any], changes: Dict[str, Any]
    ) -> bool:
        """Apply *changes* only if the row still matches *expected*.

        A malformed *pk* matches no row.
        """
        pk = self._coerce_pk(pk)
        if pk is None:
            return False
        with transaction.atomic():
            old = self._snapshot(pk)
            updated = self.model.objects.filter(pk=pk, **expected).update(
                updated_at=timezone.now(), **changes
            )
            if not updated:
                return False
            self._announce(ChangeOperation.UPDATE, old, self._snapshot(pk))
        return True

    def _announce_insert(self, instance: models.Model) -> None:
        self._announce(ChangeOperation.INSERT, None, self._snapshot(instance.pk))
