"""Descriptive statistics over stored trips."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from trip_analyze.models import Trip, TripCategory


@dataclass(frozen=True, slots=True)
class CategoryStats:
    """Trip count and distance for one category."""

    trips: int = 0
    distance_km: float = 0.0


@dataclass(frozen=True, slots=True)
class TripStats:
    """High-level summary of a trip collection."""

    total_trips: int
    completed_trips: int
    active_trips: int
    total_distance_km: float
    avg_distance_km: float
    by_category: dict[TripCategory, CategoryStats] = field(default_factory=dict)
    longest_by_distance: Trip | None = None
    longest_by_duration: Trip | None = None


def summarize_trips(trips: Sequence[Trip]) -> TripStats:
    """Summarize trips (active ones included in counts and distance)."""

    if not trips:
        return TripStats(
            total_trips=0,
            completed_trips=0,
            active_trips=0,
            total_distance_km=0.0,
            avg_distance_km=0.0,
            by_category={c: CategoryStats() for c in TripCategory},
        )

    total_distance = sum(t.distance_km for t in trips)
    by_category: dict[TripCategory, CategoryStats] = {}
    for category in TripCategory:
        of_type = [t for t in trips if t.category == category]
        by_category[category] = CategoryStats(
            trips=len(of_type),
            distance_km=sum(t.distance_km for t in of_type),
        )

    completed = [t for t in trips if not t.active]
    longest_duration = max(completed, key=lambda t: t.duration_seconds or 0.0) if completed else None
    return TripStats(
        total_trips=len(trips),
        completed_trips=len(completed),
        active_trips=len(trips) - len(completed),
        total_distance_km=total_distance,
        avg_distance_km=total_distance / len(trips),
        by_category=by_category,
        longest_by_distance=max(trips, key=lambda t: t.distance_km),
        longest_by_duration=longest_duration,
    )
