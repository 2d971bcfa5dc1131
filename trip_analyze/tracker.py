"""Tracking orchestrator: position input -> filter -> aggregator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from trip_analyze.aggregator import TrackingParams, TripAggregator
from trip_analyze.errors import InvalidSampleError, NoActiveTripError
from trip_analyze.models import PositionSample, Trip, TripCategory
from trip_analyze.repository import TripRepository
from trip_analyze.timeutils import now_ms

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackingCounters:
    """Per-trip ingestion counters."""

    accepted: int = 0
    rejected: int = 0
    invalid: int = 0
    ignored: int = 0

    @property
    def received(self) -> int:
        return self.accepted + self.rejected + self.invalid + self.ignored


class TripTracker:
    """Bridges an external position source to the active trip.

    Whatever delivers positions (timer, OS callback, queue consumer) calls
    :meth:`on_position` once per sample, never concurrently. Bad samples and
    samples arriving while idle are logged and dropped; they never abort a trip.
    """

    def __init__(self, aggregator: TripAggregator) -> None:
        self._aggregator = aggregator
        self._counters = TrackingCounters()

    @classmethod
    def from_repository(
        cls,
        repository: TripRepository,
        params: TrackingParams | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> TripTracker:
        return cls(TripAggregator(repository, params=params, clock=clock))

    @property
    def aggregator(self) -> TripAggregator:
        return self._aggregator

    @property
    def counters(self) -> TrackingCounters:
        return self._counters

    @property
    def is_tracking(self) -> bool:
        return self._aggregator.active_trip is not None

    @property
    def current_trip(self) -> Trip | None:
        return self._aggregator.active_trip

    def start(self, category: TripCategory | str, destination: str = "", notes: str = "") -> Trip:
        trip = self._aggregator.start(category, destination=destination, notes=notes)
        self._counters = TrackingCounters()
        return trip

    def stop(self) -> Trip:
        trip = self._aggregator.stop()
        c = self._counters
        logger.info(
            "trip %s: received=%d accepted=%d rejected=%d invalid=%d",
            trip.trip_id,
            c.received,
            c.accepted,
            c.rejected,
            c.invalid,
        )
        return trip

    def ingest(self, sample: PositionSample) -> float:
        """Ingest one sample and return the running distance in km (0.0 when idle)."""

        try:
            result = self._aggregator.ingest(sample)
        except NoActiveTripError:
            self._counters.ignored += 1
            logger.debug("sample at %s ignored: not tracking", getattr(sample, "timestamp_ms", None))
            return 0.0
        except InvalidSampleError as exc:
            self._counters.invalid += 1
            logger.warning("dropping invalid sample: %s", exc)
            trip = self._aggregator.active_trip
            return trip.distance_km if trip is not None else 0.0

        if result.accepted:
            self._counters.accepted += 1
        else:
            self._counters.rejected += 1
        return result.distance_km

    def on_position(self, latitude: float, longitude: float, timestamp_ms: int, accuracy_m: float = 0.0) -> float:
        """Position-source entry point for ``(lat, lon, timestamp, accuracy)`` tuples."""

        return self.ingest(PositionSample(latitude, longitude, timestamp_ms, accuracy_m))

    def replay(self, samples: Iterable[PositionSample]) -> float:
        """Ingest samples in order; returns the final running distance in km."""

        trip = self.current_trip
        distance_km = trip.distance_km if trip is not None else 0.0
        for sample in samples:
            distance_km = self.ingest(sample)
        return distance_km
