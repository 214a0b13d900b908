import pytest

from shared.domain.feed import ChangeEvent, ChangeOperation, FeedUnavailable
from shared.infrastructure.feed import InMemoryChangeFeed, publish_on_commit

pytestmark = pytest.mark.unit


def _event(table="delivery_orders", operation=ChangeOperation.UPDATE, **row):
    return ChangeEvent(table=table, operation=operation, new=row or {"id": 1})


@pytest.fixture()
def local_feed():
    return InMemoryChangeFeed()


class TestSubscriptions:
    def test_handler_receives_matching_table_only(self, local_feed):
        seen = []
        local_feed.subscribe("delivery_orders", seen.append)

        local_feed.publish(_event())
        local_feed.publish(_event(table="couriers"))

        assert [e.table for e in seen] == ["delivery_orders"]

    def test_row_filter_compares_as_strings(self, local_feed):
        seen = []
        local_feed.subscribe("delivery_orders", seen.append, row_filter={"id": "7"})

        local_feed.publish(_event(id=7))
        local_feed.publish(_event(id=8))

        assert len(seen) == 1
        assert seen[0].value("id") == 7

    def test_operation_filter(self, local_feed):
        seen = []
        local_feed.subscribe(
            "couriers", seen.append, operations={ChangeOperation.UPDATE}
        )

        local_feed.publish(_event(table="couriers", operation=ChangeOperation.INSERT))
        local_feed.publish(_event(table="couriers", operation=ChangeOperation.UPDATE))

        assert [e.operation for e in seen] == [ChangeOperation.UPDATE]

    def test_delete_events_match_on_old_image(self, local_feed):
        seen = []
        local_feed.subscribe(
            "delivery_tracking", seen.append, row_filter={"delivery_id": 3}
        )

        local_feed.publish(
            ChangeEvent(
                table="delivery_tracking",
                operation=ChangeOperation.DELETE,
                old={"delivery_id": 3},
            )
        )

        assert len(seen) == 1

    def test_unsubscribe_stops_delivery(self, local_feed):
        seen = []
        subscription = local_feed.subscribe("delivery_orders", seen.append)
        subscription.unsubscribe()

        local_feed.publish(_event())

        assert seen == []
        assert not subscription.active
        assert local_feed.subscriber_count() == 0

    def test_failing_handler_does_not_block_others(self, local_feed):
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        local_feed.subscribe("delivery_orders", broken)
        local_feed.subscribe("delivery_orders", seen.append)

        local_feed.publish(_event())

        assert len(seen) == 1


class TestConnection:
    def test_disconnect_drops_subscriptions_and_refuses_new_ones(self, local_feed):
        subscription = local_feed.subscribe("couriers", lambda e: None)

        local_feed.disconnect()

        assert not subscription.active
        assert not local_feed.connected
        with pytest.raises(FeedUnavailable):
            local_feed.subscribe("couriers", lambda e: None)

    def test_reconnect_accepts_subscriptions_again(self, local_feed):
        local_feed.disconnect()
        local_feed.connect()

        local_feed.subscribe("couriers", lambda e: None)

        assert local_feed.subscriber_count("couriers") == 1


class TestPublishOnCommit:
    def test_waits_for_commit(self, local_feed, django_capture_on_commit_callbacks):
        seen = []
        local_feed.subscribe("delivery_orders", seen.append)

        with django_capture_on_commit_callbacks() as callbacks:
            publish_on_commit(_event(), feed=local_feed)
            assert seen == []

        for callback in callbacks:
            callback()
        assert len(seen) == 1

    def test_row_falls_back_to_old_image(self):
        event = ChangeEvent(
            table="couriers", operation=ChangeOperation.DELETE, old={"user_id": 1}
        )
        assert event.row == {"user_id": 1}
        assert event.value("missing") is None
