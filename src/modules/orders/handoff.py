"""Payment handoff resolution.

A buyer returning from the payment provider may land with the order id
in several places: the return URL, the navigation parameters, local
storage written before the redirect, or nowhere at all (in which case
the buyer's most recent ``pending_payment`` order is assumed).  The
sources are tried in a fixed order; the first valid id wins and the
winning source is logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

import structlog

from modules.orders.constants import PENDING_ORDER_STORAGE_KEY

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IPurchaseOrderRepository
    from modules.tracking.storage import KeyValueStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HandoffSource:
    name: str
    lookup: Callable[[], Any]


@dataclass(frozen=True)
class HandoffResolution:
    order_id: int
    source: str


def parse_order_id(raw: Any) -> Optional[int]:
    """Positive integer id, or ``None`` for anything else."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


def resolve_order_id(sources: Iterable[HandoffSource]) -> Optional[HandoffResolution]:
    """Walk *sources* in order and return the first usable order id."""
    tried = []
    for source in sources:
        tried.append(source.name)
        try:
            raw = source.lookup()
        except Exception:
            logger.warning("handoff.source_failed", source=source.name, exc_info=True)
            continue

        order_id = parse_order_id(raw)
        if order_id is None:
            if raw not in (None, ""):
                logger.info("handoff.source_invalid", source=source.name)
            continue

        logger.info("handoff.resolved", source=source.name, order_id=order_id)
        return HandoffResolution(order_id=order_id, source=source.name)

    logger.info("handoff.unresolved", tried=tried)
    return None


# ---------------------------------------------------------------------------
# Standard source chain
# ---------------------------------------------------------------------------


def pending_order_key(buyer_id: Any) -> str:
    return PENDING_ORDER_STORAGE_KEY.format(buyer_id=buyer_id)


def remember_pending_order(store: KeyValueStore, buyer_id: Any, order_id: Any) -> None:
    store.set(pending_order_key(buyer_id), str(order_id))


def forget_pending_order(store: KeyValueStore, buyer_id: Any) -> None:
    store.remove(pending_order_key(buyer_id))


def default_sources(
    *,
    buyer_id: Any,
    query_params: Mapping[str, Any],
    route_params: Mapping[str, Any],
    store: KeyValueStore,
    repository: IPurchaseOrderRepository,
) -> list[HandoffSource]:
    """URL param, navigation param, local storage, then server lookup."""

    def _latest_pending() -> Optional[int]:
        order = repository.latest_pending_for_buyer(buyer_id)
        return order.pk if order else None

    return [
        HandoffSource("url_param", lambda: query_params.get("order_id")),
        HandoffSource("navigation_param", lambda: route_params.get("order_id")),
        HandoffSource("local_storage", lambda: store.get(pending_order_key(buyer_id))),
        HandoffSource("latest_pending_order", _latest_pending),
    ]
