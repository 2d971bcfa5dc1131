"""Data models for trips, trip points and raw position samples."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final


class TripCategory(str, Enum):
    """Kind of trip, chosen by the user when tracking starts."""

    LOCAL = "LOCAL"
    DAY = "DAY"
    MULTI_DAY = "MULTI_DAY"


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A single raw sample pushed by the position source.

    Attributes:
        latitude: Latitude in decimal degrees (WGS84).
        longitude: Longitude in decimal degrees (WGS84).
        timestamp_ms: Unix epoch milliseconds.
        accuracy_m: Horizontal accuracy in meters. Informational only; some
            sources report 0.0 or -1.0 when unknown.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    accuracy_m: float = 0.0


@dataclass(frozen=True, slots=True)
class Trip:
    """One tracked journey.

    Note:
        Trips are immutable snapshots. The aggregator produces a new snapshot
        (``dataclasses.replace``) for every state change and hands it to the
        repository.
    """

    trip_id: int
    category: TripCategory
    start_ms: int
    destination: str = ""
    end_ms: int | None = None
    distance_km: float = 0.0
    active: bool = True
    notes: str = ""

    @property
    def duration_seconds(self) -> float | None:
        """Trip duration in seconds, or None while the trip is still active."""

        if self.end_ms is None:
            return None
        return max(0.0, (self.end_ms - self.start_ms) / 1000.0)


@dataclass(frozen=True, slots=True)
class TripPoint:
    """An accepted location sample belonging to a trip's trajectory."""

    point_id: int
    trip_id: int
    latitude: float
    longitude: float
    timestamp_ms: int
    accuracy_m: float = 0.0


NOISE_THRESHOLD_M: Final[float] = 5.0
DEFAULT_TZ: Final[str] = "Europe/Rome"
