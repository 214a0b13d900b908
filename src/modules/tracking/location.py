"""Device location adapter.

``LocationProvider`` describes what a positioning backend offers (a phone
SDK bridge, a GPS daemon, a simulator).  ``LocationProviderAdapter``
puts a uniform interface over it with the watch profiles used for
delivery tracking, and drops fixes that did not move far enough since
the last one delivered.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone as dt_timezone
from typing import Callable, List, Optional, Protocol

import structlog

from shared.domain.geo import Coordinate, haversine_distance_miles, miles_to_meters

logger = structlog.get_logger(__name__)

BACKGROUND_TASK_NAME = "campusdash-delivery-location-task"


class Accuracy(enum.IntEnum):
    LOWEST = 1
    LOW = 2
    BALANCED = 3
    HIGH = 4
    HIGHEST = 5


@dataclass(frozen=True)
class Position:
    """One fix.  ``timestamp`` is epoch seconds as reported by the device."""

    lat: float
    lng: float
    heading: Optional[float] = None
    speed: Optional[float] = None
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def captured_at(self) -> Optional[datetime]:
        if self.timestamp is None:
            return None
        return datetime.fromtimestamp(self.timestamp, tz=dt_timezone.utc)


@dataclass(frozen=True)
class WatchOptions:
    accuracy: Accuracy
    distance_interval_m: float
    time_interval_s: Optional[float] = None
    deferred_distance_m: Optional[float] = None
    deferred_interval_s: Optional[float] = None


FOREGROUND_WATCH = WatchOptions(
    accuracy=Accuracy.HIGHEST, distance_interval_m=10, time_interval_s=5
)
BACKGROUND_WATCH = WatchOptions(
    accuracy=Accuracy.BALANCED,
    distance_interval_m=20,
    time_interval_s=10,
    deferred_distance_m=20,
    deferred_interval_s=10,
)

PositionCallback = Callable[[Position], None]
BatchCallback = Callable[[List[Position]], None]


class WatchHandle(Protocol):
    def remove(self) -> None: ...


class LocationProvider(Protocol):
    def request_foreground_permission(self) -> bool: ...

    def request_background_permission(self) -> bool: ...

    def current_position(self, accuracy: Accuracy) -> Position: ...

    def watch_position(
        self, options: WatchOptions, callback: PositionCallback
    ) -> WatchHandle: ...

    def start_background_updates(
        self, task_name: str, options: WatchOptions, callback: BatchCallback
    ) -> None: ...

    def stop_background_updates(self, task_name: str) -> None: ...

    def has_started_background_updates(self, task_name: str) -> bool: ...


def normalize(position: Position) -> Position:
    """Replace non-finite optional readings with ``None``."""

    def finite(value: Optional[float]) -> Optional[float]:
        if value is None or not math.isfinite(value):
            return None
        return value

    return replace(
        position,
        heading=finite(position.heading),
        speed=finite(position.speed),
        accuracy=finite(position.accuracy),
    )


class MovementFilter:
    """Pass a fix when it moved at least the watch distance, or enough time passed."""

    def __init__(self, options: WatchOptions) -> None:
        self._options = options
        self._last: Optional[Position] = None

    def reset(self) -> None:
        self._last = None

    def accept(self, position: Position) -> bool:
        last = self._last
        if last is None:
            self._last = position
            return True

        moved_m = miles_to_meters(
            haversine_distance_miles(last.coordinate, position.coordinate)
        )
        accepted = moved_m >= self._options.distance_interval_m
        if (
            not accepted
            and self._options.time_interval_s is not None
            and last.timestamp is not None
            and position.timestamp is not None
        ):
            elapsed = position.timestamp - last.timestamp
            accepted = elapsed >= self._options.time_interval_s

        if accepted:
            self._last = position
        return accepted


class LocationProviderAdapter:
    def __init__(
        self,
        provider: LocationProvider,
        foreground: WatchOptions = FOREGROUND_WATCH,
        background: WatchOptions = BACKGROUND_WATCH,
        task_name: str = BACKGROUND_TASK_NAME,
    ) -> None:
        self._provider = provider
        self._foreground_options = foreground
        self._background_options = background
        self._task_name = task_name
        self._foreground_filter = MovementFilter(foreground)
        self._background_filter = MovementFilter(background)
        self._watch: Optional[WatchHandle] = None

    def request_foreground_permission(self) -> bool:
        return bool(self._provider.request_foreground_permission())

    def current_position(self, high_accuracy: bool = True) -> Position:
        accuracy = Accuracy.HIGH if high_accuracy else Accuracy.BALANCED
        return normalize(self._provider.current_position(accuracy))

    def watch_foreground(self, callback: PositionCallback) -> None:
        """Start the continuous foreground watch, replacing any previous one."""
        self._stop_foreground()
        self._foreground_filter.reset()

        def _deliver(position: Position) -> None:
            position = normalize(position)
            if self._foreground_filter.accept(position):
                callback(position)

        self._watch = self._provider.watch_position(self._foreground_options, _deliver)

    def start_background(self, callback: BatchCallback) -> bool:
        """Start background updates; ``False`` if the permission was refused."""
        if not self._provider.request_background_permission():
            logger.info("location.background_permission_denied")
            return False

        self._background_filter.reset()

        def _deliver(positions: List[Position]) -> None:
            accepted = [
                p
                for p in (normalize(p) for p in positions)
                if self._background_filter.accept(p)
            ]
            if accepted:
                callback(accepted)

        self._provider.start_background_updates(
            self._task_name, self._background_options, _deliver
        )
        return True

    def stop(self) -> None:
        self._stop_foreground()
        try:
            if self._provider.has_started_background_updates(self._task_name):
                self._provider.stop_background_updates(self._task_name)
        except Exception:
            logger.warning("location.background_stop_failed", exc_info=True)

    def _stop_foreground(self) -> None:
        if self._watch is None:
            return
        self._watch.remove()
        self._watch = None
