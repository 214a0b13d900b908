"""Purchase order repositories package."""

from modules.orders.repositories.django_repository import PurchaseOrderDjangoRepository
from modules.orders.repositories.interfaces import IPurchaseOrderRepository

__all__ = ["IPurchaseOrderRepository", "PurchaseOrderDjangoRepository"]
