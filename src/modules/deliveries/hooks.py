"""Lifecycle hooks fired by the delivery state machine.

Hooks run after the transition has been committed and are best-effort:
a failing hook is logged and never turns a successful transition into
an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryOrder

logger = structlog.get_logger(__name__)


class DeliveryLifecycleHooks(Protocol):
    def after_pickup(self, delivery: DeliveryOrder) -> None:
        """The courier collected the items; seed a fresh position."""

    def after_finished(self, delivery: DeliveryOrder) -> None:
        """The delivery reached a terminal status; tracking is over."""


class NoopHooks:
    def after_pickup(self, delivery: DeliveryOrder) -> None:
        pass

    def after_finished(self, delivery: DeliveryOrder) -> None:
        pass


class ChainedHooks:
    """Fan a lifecycle event out to several hook sets, in order."""

    def __init__(self, *hooks: DeliveryLifecycleHooks) -> None:
        self._hooks = hooks

    def after_pickup(self, delivery: DeliveryOrder) -> None:
        for hooks in self._hooks:
            run_hook(hooks, "after_pickup", delivery)

    def after_finished(self, delivery: DeliveryOrder) -> None:
        for hooks in self._hooks:
            run_hook(hooks, "after_finished", delivery)


def run_hook(hooks: DeliveryLifecycleHooks, name: str, delivery: DeliveryOrder) -> None:
    try:
        getattr(hooks, name)(delivery)
    except Exception:
        logger.exception(
            "delivery.hook_failed",
            hook=name,
            hooks=type(hooks).__name__,
            delivery_id=delivery.pk,
        )
