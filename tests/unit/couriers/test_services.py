import pytest

from modules.couriers.constants import CourierStatus, VehicleType
from modules.couriers.dtos import CourierOutputDTO, RegisterCourierDTO
from modules.couriers.exceptions import (
    CourierAlreadyRegistered,
    CourierBusy,
    CourierNotFound,
)
from modules.couriers.repositories import CourierDjangoRepository
from modules.couriers.services import CourierService
from modules.deliveries.exceptions import DeliveryConflict

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return CourierService(CourierDjangoRepository())


class TestRegister:
    def test_new_courier_starts_offline(self, service, make_user):
        user = make_user()

        dto = RegisterCourierDTO(user_id=user.pk, vehicle_type="walk")

        courier = service.register(dto)

        assert courier.pk == user.pk
        assert courier.status == CourierStatus.OFFLINE
        assert courier.vehicle_type == VehicleType.WALK
        assert courier.total_deliveries == 0

    def test_default_vehicle_is_bike(self, service, make_user):
        courier = service.register(RegisterCourierDTO(user_id=make_user().pk))
        assert courier.vehicle_type == VehicleType.BIKE

    def test_second_registration_rejected(self, service, courier):
        with pytest.raises(CourierAlreadyRegistered):
            service.register(RegisterCourierDTO(user_id=courier.pk))

    def test_registration_announced(
        self, service, make_user, feed, django_capture_on_commit_callbacks
    ):
        events = []
        feed.subscribe("couriers", events.append)

        with django_capture_on_commit_callbacks(execute=True):
            courier = service.register(RegisterCourierDTO(user_id=make_user().pk))

        assert [e.operation.value for e in events] == ["INSERT"]
        assert events[0].new["user_id"] == courier.pk


class TestToggle:
    def test_online_goes_offline_and_back(self, service, courier):
        assert service.toggle_availability(courier.pk).status == CourierStatus.OFFLINE
        assert service.toggle_availability(courier.pk).status == CourierStatus.ONLINE

    def test_busy_courier_cannot_toggle(self, service, make_courier):
        busy = make_courier(status=CourierStatus.BUSY)

        with pytest.raises(CourierBusy):
            service.toggle_availability(busy.pk)

    def test_stale_status_is_a_conflict(self, service, courier, monkeypatch):
        monkeypatch.setattr(
            CourierDjangoRepository, "set_status", lambda self, *args: False
        )

        with pytest.raises(CourierBusy, match="refresh"):
            service.toggle_availability(courier.pk)

    def test_unknown_courier(self, service, buyer):
        with pytest.raises(CourierNotFound):
            service.toggle_availability(buyer.pk)


class TestBusyLifecycle:
    def test_claim_marks_busy_and_delivery_releases(
        self, service, courier, make_delivery, delivery_service
    ):
        delivery = make_delivery()

        delivery_service.claim(delivery.pk, courier.pk)
        assert service.get_courier(courier.pk).is_busy

        delivery_service.confirm_pickup(delivery.pk, courier.pk)
        delivery_service.confirm_delivered(delivery.pk, courier.pk)

        courier = service.get_courier(courier.pk)
        assert courier.status == CourierStatus.ONLINE
        assert courier.total_deliveries == 1
        assert courier.total_earnings_cents == delivery.delivery_fee_cents

    def test_claiming_requires_going_online(
        self, service, make_courier, make_delivery, delivery_service
    ):
        offline = make_courier(status=CourierStatus.OFFLINE)
        delivery = make_delivery()

        with pytest.raises(DeliveryConflict):
            delivery_service.claim(delivery.pk, offline.pk)

        service.toggle_availability(offline.pk)
        delivery_service.claim(delivery.pk, offline.pk)

        assert service.get_courier(offline.pk).status == CourierStatus.BUSY


def test_output_dto(courier):
    dto = CourierOutputDTO.from_entity(courier)
    assert dto.id == courier.pk
    assert dto.status == "online"
    assert dto.total_earnings_cents == 0
