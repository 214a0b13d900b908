"""Courier-side tracking session.

Owns which (delivery, courier) pair is being tracked, persists it so a
restarted process picks up where it left off, and applies a
time-or-distance debounce to the positions it is fed:

- the first position after a (re)start is always published;
- later positions are published once 5 s have elapsed since the last
  publish, or once the courier moved at least 0.01 mi (~16 m).

A failing publish is logged once per session and otherwise ignored.
The debounce state only advances when a sample is actually stored, so
after a failure or an out-of-order drop the next sample retries.  One
session per process.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.tracking.constants import SampleSource
from modules.tracking.dtos import TrackingSampleDTO
from modules.tracking.exceptions import LocationPermissionDenied
from modules.tracking.storage import ACTIVE_COURIER_KEY, ACTIVE_DELIVERY_KEY
from shared.domain.geo import Coordinate, haversine_distance_miles

if TYPE_CHECKING:
    from modules.tracking.location import LocationProviderAdapter, Position
    from modules.tracking.publishers import TrackingPublisher
    from modules.tracking.storage import KeyValueStore

logger = structlog.get_logger(__name__)

BACKGROUND_DENIED_REASON = (
    "Background location was not granted. Tracking will pause if the app is closed."
)


@dataclass(frozen=True)
class TrackingStartResult:
    started: bool
    background: bool
    reason: Optional[str] = None


class TrackingSession:
    def __init__(
        self,
        adapter: LocationProviderAdapter,
        publisher: TrackingPublisher,
        store: KeyValueStore,
        *,
        min_interval_s: Optional[float] = None,
        min_move_miles: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._adapter = adapter
        self._publisher = publisher
        self._store = store
        self._min_interval_s = (
            settings.TRACKING_MIN_SEND_INTERVAL_SECONDS
            if min_interval_s is None
            else min_interval_s
        )
        self._min_move_miles = (
            settings.TRACKING_MIN_MOVE_MILES
            if min_move_miles is None
            else min_move_miles
        )
        self._clock = clock
        self._lock = threading.RLock()

        self._delivery_id: Optional[int] = None
        self._courier_id: Optional[int] = None
        self._last_at: Optional[float] = None
        self._last_point: Optional[Coordinate] = None
        self._warned = False

    # ------------------------------------------------------------------
    # Debounce
    # ------------------------------------------------------------------

    def should_publish(self, lat: float, lng: float) -> bool:
        with self._lock:
            if self._last_point is None or self._last_at is None:
                return True
            if self._clock() - self._last_at >= self._min_interval_s:
                return True
            moved = haversine_distance_miles(self._last_point, Coordinate(lat, lng))
            return moved >= self._min_move_miles

    def _reset_debounce(self) -> None:
        self._last_at = None
        self._last_point = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, delivery_id: int, courier_id: int) -> TrackingStartResult:
        """Begin tracking a delivery.

        Raises:
            LocationPermissionDenied: foreground permission was refused.
                The delivery workflow itself is unaffected.
        """
        log = logger.bind(delivery_id=delivery_id, courier_id=courier_id)
        with self._lock:
            self._set_identity(delivery_id, courier_id)
            self._reset_debounce()
            self._warned = False

            if not self._adapter.request_foreground_permission():
                self._clear_identity()
                log.warning("tracking.permission_denied")
                raise LocationPermissionDenied("Location permission denied.")

            try:
                initial = self._adapter.current_position(high_accuracy=True)
                self._publish(initial, SampleSource.MANUAL)
            except Exception:
                log.warning("tracking.initial_fix_failed", exc_info=True)

            self._adapter.watch_foreground(self._on_foreground)
            background = self._adapter.start_background(self.handle_background)

        log.info("tracking.started", background=background)
        if not background:
            return TrackingStartResult(
                started=True, background=False, reason=BACKGROUND_DENIED_REASON
            )
        return TrackingStartResult(started=True, background=True)

    def stop(self) -> None:
        with self._lock:
            delivery_id = self._delivery_id
            self._adapter.stop()
            self._clear_identity()
            self._reset_debounce()
        logger.info("tracking.stopped", delivery_id=delivery_id)

    def sync_once(self, delivery_id: int, courier_id: int) -> bool:
        """Publish one fresh position now, bypassing the debounce."""
        with self._lock:
            self._set_identity(delivery_id, courier_id)
            if not self._adapter.request_foreground_permission():
                logger.info("tracking.sync_permission_denied", delivery_id=delivery_id)
                return False
            try:
                position = self._adapter.current_position(high_accuracy=False)
            except Exception:
                logger.warning(
                    "tracking.sync_fix_failed", delivery_id=delivery_id, exc_info=True
                )
                return False
            return self._publish(position, SampleSource.MANUAL)

    def active_delivery_id(self) -> Optional[int]:
        with self._lock:
            self._hydrate()
            return self._delivery_id

    def active_courier_id(self) -> Optional[int]:
        with self._lock:
            self._hydrate()
            return self._courier_id

    # ------------------------------------------------------------------
    # Incoming positions
    # ------------------------------------------------------------------

    def handle_background(self, positions: List[Position]) -> bool:
        """Entry point for the background task; may run in a fresh process."""
        if not positions:
            return False
        with self._lock:
            self._hydrate()
            if self._delivery_id is None or self._courier_id is None:
                logger.debug("tracking.background_sample_dropped", count=len(positions))
                return False
            return self._process(positions[-1], SampleSource.BACKGROUND)

    def _on_foreground(self, position: Position) -> None:
        with self._lock:
            self._process(position, SampleSource.FOREGROUND)

    def _process(self, position: Position, source: SampleSource) -> bool:
        if not self.should_publish(position.lat, position.lng):
            return False
        return self._publish(position, source)

    def _publish(self, position: Position, source: SampleSource) -> bool:
        if self._delivery_id is None or self._courier_id is None:
            return False

        sample = TrackingSampleDTO(
            lat=position.lat,
            lng=position.lng,
            heading=position.heading,
            speed_mps=position.speed,
            accuracy_m=position.accuracy,
            captured_at=position.captured_at or timezone.now(),
            source=source,
        )
        try:
            stored = self._publisher.publish(
                self._delivery_id, self._courier_id, sample
            )
        except Exception:
            if not self._warned:
                logger.warning(
                    "tracking.publish_failed",
                    delivery_id=self._delivery_id,
                    source=source,
                    exc_info=True,
                )
                self._warned = True
            return False
        if not stored:
            logger.debug(
                "tracking.sample_superseded",
                delivery_id=self._delivery_id,
                source=source,
            )
            return False

        self._last_at = self._clock()
        self._last_point = Coordinate(position.lat, position.lng)
        return True

    # ------------------------------------------------------------------
    # Identity persistence
    # ------------------------------------------------------------------

    def _set_identity(self, delivery_id: Any, courier_id: Any) -> None:
        self._delivery_id = int(delivery_id)
        self._courier_id = int(courier_id)
        self._store.set(ACTIVE_DELIVERY_KEY, str(self._delivery_id))
        self._store.set(ACTIVE_COURIER_KEY, str(self._courier_id))

    def _clear_identity(self) -> None:
        self._delivery_id = None
        self._courier_id = None
        self._store.remove(ACTIVE_DELIVERY_KEY)
        self._store.remove(ACTIVE_COURIER_KEY)

    def _hydrate(self) -> None:
        if self._delivery_id is not None and self._courier_id is not None:
            return
        delivery_raw = self._store.get(ACTIVE_DELIVERY_KEY)
        courier_raw = self._store.get(ACTIVE_COURIER_KEY)
        if delivery_raw and delivery_raw.isdigit():
            self._delivery_id = int(delivery_raw)
        if courier_raw and courier_raw.isdigit():
            self._courier_id = int(courier_raw)
        if self._delivery_id is not None:
            logger.debug("tracking.identity_hydrated", delivery_id=self._delivery_id)
