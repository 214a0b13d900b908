"""Courier service layer.

Registration and the manual online/offline switch.  The ``busy`` flag
is not reachable from here: only the delivery state machine sets or
clears it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from django.db import transaction

from modules.couriers.constants import AVAILABILITY_TOGGLE, CourierStatus
from modules.couriers.exceptions import (
    CourierAlreadyRegistered,
    CourierBusy,
    CourierNotFound,
)

if TYPE_CHECKING:
    from modules.couriers.dtos import RegisterCourierDTO
    from modules.couriers.models import Courier
    from modules.couriers.repositories.interfaces import ICourierRepository

logger = structlog.get_logger(__name__)


class CourierService:
    def __init__(self, repository: ICourierRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def register(self, dto: RegisterCourierDTO) -> Courier:
        if self._repo.get_by_id(dto.user_id):
            raise CourierAlreadyRegistered(f"User {dto.user_id} is already a courier.")
        courier = self._repo.create(
            {"user_id": dto.user_id, "vehicle_type": dto.vehicle_type}
        )
        logger.info(
            "courier.registered",
            courier_id=courier.pk,
            vehicle_type=courier.vehicle_type,
        )
        return courier

    def get_courier(self, courier_id: Any) -> Courier:
        courier = self._repo.get_by_id(courier_id)
        if courier is None:
            raise CourierNotFound(f"Courier {courier_id} not found.")
        return courier

    def toggle_availability(self, courier_id: Any) -> Courier:
        """Flip offline <-> online.

        Raises:
            CourierNotFound: the user has no courier profile.
            CourierBusy: the courier holds an active delivery, or became
                busy between the read and the guarded write.
        """
        courier = self.get_courier(courier_id)
        log = logger.bind(courier_id=courier.pk, current_status=courier.status)

        if courier.status == CourierStatus.BUSY:
            log.info("courier.toggle_rejected_busy")
            raise CourierBusy(
                "Complete your active delivery before changing your availability."
            )

        target = AVAILABILITY_TOGGLE[courier.status]
        if not self._repo.set_status(courier.pk, courier.status, target):
            log.warning("courier.toggle_conflict")
            raise CourierBusy("Courier status changed; refresh and try again.")

        log.info("courier.availability_changed", new_status=target)
        return self.get_courier(courier.pk)
