import pytest

from modules.tracking.location import LocationProviderAdapter, Position
from modules.tracking.storage import MemoryKeyValueStore

ORIGIN = Position(
    lat=39.1905, lng=-96.5815, heading=90.0, speed=3.0, accuracy=5.0, timestamp=1000.0
)


class FakeWatch:
    def __init__(self):
        self.removed = False

    def remove(self):
        self.removed = True


class FakeProvider:
    """Scriptable positioning backend."""

    def __init__(self, foreground=True, background=True, position=ORIGIN):
        self.foreground = foreground
        self.background = background
        self.position = position
        self.watches = []
        self.background_tasks = {}
        self.accuracy_requests = []

    def request_foreground_permission(self):
        return self.foreground

    def request_background_permission(self):
        return self.background

    def current_position(self, accuracy):
        self.accuracy_requests.append(accuracy)
        if isinstance(self.position, Exception):
            raise self.position
        return self.position

    def watch_position(self, options, callback):
        handle = FakeWatch()
        self.watches.append((options, callback, handle))
        return handle

    def start_background_updates(self, task_name, options, callback):
        self.background_tasks[task_name] = (options, callback)

    def stop_background_updates(self, task_name):
        self.background_tasks.pop(task_name)

    def has_started_background_updates(self, task_name):
        return task_name in self.background_tasks

    def emit(self, position):
        self.watches[-1][1](position)

    def emit_background(self, positions):
        _, callback = next(iter(self.background_tasks.values()))
        callback(positions)


class RecordingPublisher:
    def __init__(self):
        self.samples = []
        self.error = None
        self.stored = True

    def publish(self, delivery_id, courier_id, sample):
        if self.error is not None:
            raise self.error
        self.samples.append((delivery_id, courier_id, sample))
        return self.stored


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def origin():
    return ORIGIN


@pytest.fixture()
def provider():
    return FakeProvider()


@pytest.fixture()
def adapter(provider):
    return LocationProviderAdapter(provider)


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return MemoryKeyValueStore()
