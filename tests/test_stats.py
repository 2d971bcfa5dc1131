"""Tests for all-time trip statistics."""

from __future__ import annotations

import pytest

from trip_analyze.models import Trip, TripCategory
from trip_analyze.stats import CategoryStats, summarize_trips


def _trip(trip_id: int, category: TripCategory, km: float, start_ms: int, end_ms: int | None) -> Trip:
    return Trip(
        trip_id=trip_id,
        category=category,
        start_ms=start_ms,
        end_ms=end_ms,
        distance_km=km,
        active=end_ms is None,
    )


def test_empty_collection_lists_every_category():
    st = summarize_trips([])
    assert st.total_trips == 0
    assert st.avg_distance_km == 0.0
    assert set(st.by_category) == set(TripCategory)
    assert all(cs == CategoryStats() for cs in st.by_category.values())
    assert st.longest_by_distance is None
    assert st.longest_by_duration is None


def test_summary_counts_and_longest():
    trips = [
        _trip(1, TripCategory.LOCAL, 2.0, 0, 3_600_000),
        _trip(2, TripCategory.DAY, 40.0, 10_000_000, 20_000_000),
        _trip(3, TripCategory.MULTI_DAY, 300.0, 50_000_000, 60_000_000),
        _trip(4, TripCategory.LOCAL, 500.0, 90_000_000, None),
    ]
    st = summarize_trips(trips)

    assert st.total_trips == 4
    assert st.completed_trips == 3
    assert st.active_trips == 1
    assert st.total_distance_km == pytest.approx(842.0)
    assert st.avg_distance_km == pytest.approx(210.5)
    assert st.by_category[TripCategory.LOCAL] == CategoryStats(trips=2, distance_km=502.0)
    assert st.by_category[TripCategory.DAY].trips == 1
    # the active trip counts for distance but not for duration
    assert st.longest_by_distance.trip_id == 4
    assert st.longest_by_duration.trip_id == 2


def test_only_active_trips_have_no_longest_duration():
    st = summarize_trips([_trip(1, TripCategory.DAY, 1.0, 0, None)])
    assert st.longest_by_duration is None
    assert st.longest_by_distance.trip_id == 1
