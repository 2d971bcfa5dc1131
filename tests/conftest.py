"""Shared fixtures for trip_analyze tests."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from trip_analyze.geo import offset_north_m
from trip_analyze.models import PositionSample
from trip_analyze.repository import InMemoryTripRepository
from trip_analyze.timeutils import ManualClock, epoch_ms_from_dt

BASE_LAT = 41.8902
BASE_LON = 12.4922
BASE_MS = epoch_ms_from_dt(datetime(2025, 5, 10, 8, 0, tzinfo=UTC))


class FakeClock(ManualClock):
    """ManualClock starting at BASE_MS."""

    def __init__(self, value_ms: int = BASE_MS) -> None:
        super().__init__(value_ms)


def sample_north(meters: float, seconds: float = 0.0, accuracy_m: float = 5.0) -> PositionSample:
    """Sample ``meters`` north of the base point, ``seconds`` after BASE_MS."""

    return PositionSample(
        latitude=offset_north_m(BASE_LAT, meters),
        longitude=BASE_LON,
        timestamp_ms=BASE_MS + int(seconds * 1000),
        accuracy_m=accuracy_m,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> InMemoryTripRepository:
    return InMemoryTripRepository()
