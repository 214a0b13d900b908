import pytest

from modules.deliveries.exceptions import NotDeliveryParticipant
from modules.deliveries.repositories import DeliveryDjangoRepository
from modules.dispatch.buyer import BuyerTrackingView
from modules.tracking.dtos import TrackingSampleDTO
from modules.tracking.repositories import TrackingDjangoRepository
from modules.tracking.services import TrackingService

pytestmark = pytest.mark.unit


@pytest.fixture()
def tracking():
    return TrackingService(TrackingDjangoRepository(), DeliveryDjangoRepository())


@pytest.fixture()
def in_transit(make_delivery, courier, delivery_service):
    delivery = make_delivery()
    delivery_service.claim(delivery.pk, courier.pk)
    delivery_service.confirm_pickup(delivery.pk, courier.pk)
    return delivery


@pytest.fixture()
def make_view(tracking, feed, timers):
    views = []

    def _make(delivery, viewer_id, **kwargs):
        view = BuyerTrackingView(
            delivery.pk,
            viewer_id,
            DeliveryDjangoRepository(),
            tracking,
            feed,
            timer_factory=timers,
            **kwargs,
        )
        views.append(view)
        return view

    yield _make
    for view in views:
        view.close()


def test_open_before_any_position(make_view, make_delivery, buyer):
    view = make_view(make_delivery(), buyer.pk)

    snapshot = view.open()

    assert snapshot.status == "pending"
    assert snapshot.tracking is None
    assert snapshot.distance_miles is None
    assert snapshot.distance_label == "N/A"
    assert snapshot.is_live is True


def test_distance_and_eta_to_dropoff(
    make_view, in_transit, buyer, courier, tracking, spots
):
    tracking.record_sample(
        in_transit.pk,
        courier.pk,
        TrackingSampleDTO(
            lat=spots.library["pickup_lat"], lng=spots.library["pickup_lng"]
        ),
    )
    view = make_view(in_transit, buyer.pk, mph=6)

    snapshot = view.open()

    assert snapshot.status == "picked_up"
    assert snapshot.tracking.is_active
    assert snapshot.distance_miles == pytest.approx(0.82, abs=0.01)
    assert snapshot.distance_label == "0.8 mi"
    assert snapshot.eta_minutes == 9


def test_only_the_buyer_may_follow(make_view, make_delivery, seller):
    view = make_view(make_delivery(), seller.pk)

    with pytest.raises(NotDeliveryParticipant):
        view.open()


def test_position_cleared_after_delivery(
    make_view,
    in_transit,
    buyer,
    courier,
    tracking,
    delivery_service,
    timers,
    django_capture_on_commit_callbacks,
):
    tracking.record_sample(
        in_transit.pk, courier.pk, TrackingSampleDTO(lat=39.2, lng=-96.59)
    )
    view = make_view(in_transit, buyer.pk)
    view.open()

    with django_capture_on_commit_callbacks(execute=True):
        delivery_service.confirm_delivered(in_transit.pk, courier.pk)
    timers.fire_pending()

    assert view.snapshot.status == "delivered"
    assert view.snapshot.tracking is None
    assert view.snapshot.eta_minutes is None


def test_new_position_schedules_refresh(
    make_view,
    in_transit,
    buyer,
    courier,
    tracking,
    timers,
    django_capture_on_commit_callbacks,
):
    updates = []
    view = make_view(in_transit, buyer.pk, on_update=updates.append)
    view.open()

    with django_capture_on_commit_callbacks(execute=True):
        tracking.record_sample(
            in_transit.pk, courier.pk, TrackingSampleDTO(lat=39.2, lng=-96.59)
        )

    assert len(timers.pending) == 1
    timers.fire_pending()
    assert updates[-1].tracking.lat == 39.2


def test_unrelated_delivery_is_ignored(
    make_view,
    in_transit,
    make_delivery,
    buyer,
    timers,
    django_capture_on_commit_callbacks,
):
    view = make_view(in_transit, buyer.pk)
    view.open()

    with django_capture_on_commit_callbacks(execute=True):
        make_delivery()

    assert timers.pending == []


def test_timeline_follows_the_delivery(
    make_view, in_transit, buyer, courier, delivery_service
):
    view = make_view(in_transit, buyer.pk)

    opened = view.open()
    assert [step.new_status for step in opened.timeline] == [
        "pending",
        "accepted",
        "picked_up",
    ]
    assert opened.timeline[-1].updated_by_role == "courier"

    delivery_service.confirm_delivered(in_transit.pk, courier.pk)
    refreshed = view.refresh()

    assert refreshed.timeline[-1].new_status == "delivered"
    assert refreshed.timeline[-1].message == "Order delivered"
