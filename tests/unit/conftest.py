import pytest


class FakeTimer:
    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class TimerFactory:
    """Records every timer the coordinator creates; nothing fires by itself."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, function):
        timer = FakeTimer(delay, function)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.started and not t.cancelled]

    def fire_pending(self):
        for timer in self.pending:
            timer.cancelled = True
            timer.fire()


@pytest.fixture()
def timers():
    return TimerFactory()
