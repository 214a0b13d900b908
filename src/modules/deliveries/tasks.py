"""Delivery background tasks.

Both tasks are best-effort: failures are logged and never retried into
the caller.  A cascade that fails is picked up by the next
reconciliation sweep.
"""

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="deliveries.cancel_deliveries_for_order")
def cancel_deliveries_for_order(order_id):
    """Cancel the open deliveries of a cancelled purchase order."""
    from modules.deliveries.services import build_delivery_service

    try:
        result = build_delivery_service().cancel_for_purchase_order(order_id)
    except Exception:
        logger.exception("delivery.cascade_failed", purchase_order_id=order_id)
        return {"status": "failed", "order_id": order_id}
    return {
        "status": "ok",
        "order_id": order_id,
        "cancelled": result.cancelled,
        "skipped": result.skipped,
    }


@shared_task(name="deliveries.reconcile_cancelled_orders")
def reconcile_cancelled_orders():
    """Periodic sweep for deliveries stranded by a failed cascade."""
    from modules.deliveries.services import build_delivery_service

    try:
        results = build_delivery_service().reconcile_cancelled_orders()
    except Exception:
        logger.exception("delivery.reconcile_failed")
        return {"status": "failed"}
    return {
        "status": "ok",
        "orders": len(results),
        "cancelled": sum(len(r.cancelled) for r in results),
    }
