"""Lifecycle and distance aggregation for the single active trip."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable

from trip_analyze.errors import AlreadyActiveError, InvalidSampleError, NoActiveTripError, TripNotFoundError
from trip_analyze.geo import is_valid_coordinate
from trip_analyze.location_filter import LocationFilter
from trip_analyze.models import NOISE_THRESHOLD_M, PositionSample, Trip, TripCategory, TripPoint
from trip_analyze.repository import TripRepository
from trip_analyze.timeutils import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrackingParams:
    """Parameters controlling sample aggregation."""

    # Displacements below this are treated as GPS jitter while stationary.
    noise_threshold_m: float = NOISE_THRESHOLD_M


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Caller-visible state after one ingest call."""

    accepted: bool
    distance_km: float
    increment_m: float = 0.0
    point: TripPoint | None = None


def validate_sample(sample: PositionSample, previous: PositionSample | None = None) -> PositionSample:
    """Return a normalized copy of ``sample`` or raise InvalidSampleError.

    Args:
        sample: Raw sample from the position source.
        previous: Last accepted sample of the same trip; timestamps must not go backwards.
    """

    try:
        lat = float(sample.latitude)
        lon = float(sample.longitude)
        ts = int(sample.timestamp_ms)
        acc = float(sample.accuracy_m)
    except (TypeError, ValueError) as exc:
        raise InvalidSampleError(f"malformed sample: {sample!r}") from exc

    if not is_valid_coordinate(lat, lon):
        raise InvalidSampleError(f"coordinates out of range: lat={lat}, lon={lon}")
    if ts < 0:
        raise InvalidSampleError(f"negative timestamp: {ts}")
    if previous is not None and ts < previous.timestamp_ms:
        raise InvalidSampleError(f"timestamp {ts} is older than last accepted point {previous.timestamp_ms}")
    if not math.isfinite(acc):
        acc = 0.0
    return PositionSample(latitude=lat, longitude=lon, timestamp_ms=ts, accuracy_m=acc)


class TripAggregator:
    """Owns the active trip: Idle -> Active -> Completed.

    Distance is accumulated in meters and written to the repository as
    kilometers derived from the meter total on each update.

    If the repository already holds an active trip (e.g. after a restart), the
    aggregator resumes it, including its last accepted point.
    """

    def __init__(
        self,
        repository: TripRepository,
        params: TrackingParams | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._repo = repository
        self._params = params or TrackingParams()
        self._clock = clock
        self._filter = LocationFilter(self._params.noise_threshold_m)
        self._trip: Trip | None = None
        self._distance_m = 0.0
        self._resume()

    def _resume(self) -> None:
        trip = self._repo.get_active_trip()
        if trip is None:
            return
        points = self._repo.list_points_for_trip(trip.trip_id)
        last = None
        if points:
            p = points[-1]
            last = PositionSample(p.latitude, p.longitude, p.timestamp_ms, p.accuracy_m)
        self._trip = trip
        self._distance_m = trip.distance_km * 1000.0
        self._filter.reset(last)
        logger.info("resumed active trip %s (%.3f km, %d points)", trip.trip_id, trip.distance_km, len(points))

    @property
    def active_trip(self) -> Trip | None:
        return self._trip

    @property
    def distance_m(self) -> float:
        return self._distance_m

    def start(self, category: TripCategory | str, destination: str = "", notes: str = "") -> Trip:
        """Create a new active trip starting now.

        Raises:
            AlreadyActiveError: If a trip is already active, here or in the repository.
            ValueError: If category is not a TripCategory value.
        """

        if self._trip is not None:
            raise AlreadyActiveError(self._trip.trip_id)

        trip = self._repo.create_trip(TripCategory(category), self._clock(), destination=destination, notes=notes)
        self._trip = trip
        self._distance_m = 0.0
        self._filter.reset()
        logger.info("trip %s started (%s)", trip.trip_id, trip.category.value)
        return trip

    def ingest(self, sample: PositionSample) -> IngestResult:
        """Feed one sample into the active trip.

        A sample rejected by the noise filter is not an error; the result simply
        reports ``accepted=False`` and the unchanged distance.

        Raises:
            NoActiveTripError: If no trip is active.
            InvalidSampleError: If the sample is malformed. Trip state is untouched.
        """

        if self._trip is None:
            raise NoActiveTripError("ingest")

        clean = validate_sample(sample, self._filter.last_accepted)
        decision = self._filter.check(clean)
        if not decision.accepted:
            return IngestResult(accepted=False, distance_km=self._trip.distance_km)

        point = self._repo.append_point(
            self._trip.trip_id,
            clean.latitude,
            clean.longitude,
            clean.timestamp_ms,
            clean.accuracy_m,
        )
        self._filter.commit(clean)
        if decision.increment_m > 0.0:
            self._distance_m += decision.increment_m
            self._trip = replace(self._trip, distance_km=self._distance_m / 1000.0)
            self._repo.update_trip(self._trip)
        return IngestResult(
            accepted=True,
            distance_km=self._trip.distance_km,
            increment_m=decision.increment_m,
            point=point,
        )

    def stop(self) -> Trip:
        """Finalize the active trip and return it.

        Raises:
            NoActiveTripError: If no trip is active.
        """

        if self._trip is None:
            raise NoActiveTripError("stop")

        end_ms = max(self._clock(), self._trip.start_ms)
        trip = replace(
            self._trip,
            end_ms=end_ms,
            active=False,
            distance_km=self._distance_m / 1000.0,
        )
        self._repo.update_trip(trip)
        self._trip = None
        self._distance_m = 0.0
        self._filter.reset()
        logger.info("trip %s stopped (%.3f km)", trip.trip_id, trip.distance_km)
        return trip

    def update_details(self, trip_id: int, destination: str | None = None, notes: str | None = None) -> Trip:
        """Edit the user-facing text of a trip; distance and times are untouched.

        Raises:
            TripNotFoundError: If the trip does not exist.
        """

        if self._trip is not None and self._trip.trip_id == trip_id:
            trip = self._trip
        else:
            trip = self._repo.get_trip_by_id(trip_id)
            if trip is None:
                raise TripNotFoundError(f"trip {trip_id} does not exist")

        changes: dict[str, str] = {}
        if destination is not None:
            changes["destination"] = destination
        if notes is not None:
            changes["notes"] = notes
        if not changes:
            return trip

        trip = replace(trip, **changes)
        self._repo.update_trip(trip)
        if self._trip is not None and self._trip.trip_id == trip_id:
            self._trip = trip
        return trip
