"""Historical analysis of completed trips over a trailing calendar window."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

from trip_analyze.errors import AnalysisError
from trip_analyze.models import DEFAULT_TZ, Trip, TripCategory
from trip_analyze.repository import TripRepository
from trip_analyze.timeutils import dt_from_epoch_ms, epoch_ms_from_dt, months_before, now_ms

logger = logging.getLogger(__name__)


class TrendType(str, Enum):
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


class DataQuality(str, Enum):
    HIGH = "HIGH"  # 10+ trips
    MEDIUM = "MEDIUM"  # 3-9 trips
    LOW = "LOW"  # 1-2 trips
    INSUFFICIENT = "INSUFFICIENT"  # no trips


TREND_CHANGE_THRESHOLD_PCT = 20.0
MIN_TRIPS_FOR_TREND = 6


@dataclass(frozen=True, slots=True)
class AnalysisParams:
    """Parameters controlling the look-back window."""

    window_months: int = 3
    # Calendar months are stepped back in this timezone.
    tz_name: str = DEFAULT_TZ


@dataclass(frozen=True, slots=True)
class HistoricalAnalysis:
    """Aggregate statistics over the completed trips of the window."""

    total_trips: int
    total_distance_km: float
    avg_trips_per_period: float
    avg_distance_per_period: float
    trips_by_category: dict[TripCategory, int] = field(default_factory=dict)
    trend: TrendType = TrendType.STABLE
    data_quality: DataQuality = DataQuality.INSUFFICIENT
    window_start_ms: int | None = None
    window_end_ms: int | None = None

    @property
    def most_common_category(self) -> TripCategory | None:
        """Category with the highest count; ties go to the earlier TripCategory member."""

        best: TripCategory | None = None
        best_n = 0
        for category in TripCategory:
            n = self.trips_by_category.get(category, 0)
            if n > best_n:
                best, best_n = category, n
        return best


def classify_data_quality(trip_count: int) -> DataQuality:
    if trip_count <= 0:
        return DataQuality.INSUFFICIENT
    if trip_count < 3:
        return DataQuality.LOW
    if trip_count < 10:
        return DataQuality.MEDIUM
    return DataQuality.HIGH


def calculate_trend(
    trips: Sequence[Trip],
    start_ms: int | None = None,
    end_ms: int | None = None,
) -> TrendType:
    """Compare how many trips started in the first third of the window with the last third.

    The window is split into three equal time slices (integer ms arithmetic,
    truncating). Slicing the sorted trip list by index instead would put the
    same number of trips in each third, so the change would always be zero.

    Without explicit bounds the span of the trips' start times is used. Fewer
    than six trips are always STABLE. An empty first third cannot produce a
    percent change and is treated as STABLE as well.
    """

    if len(trips) < MIN_TRIPS_FOR_TREND:
        return TrendType.STABLE

    ordered = sorted(trips, key=lambda t: t.start_ms)
    lo = ordered[0].start_ms if start_ms is None else start_ms
    hi = ordered[-1].start_ms if end_ms is None else end_ms
    third = (hi - lo) // 3
    if third <= 0:
        return TrendType.STABLE

    first_end = lo + third
    last_start = hi - third
    first_count = sum(1 for t in ordered if t.start_ms < first_end)
    last_count = sum(1 for t in ordered if t.start_ms >= last_start)

    if first_count == 0:
        logger.debug("trend: empty first third, falling back to STABLE")
        return TrendType.STABLE

    change = (last_count - first_count) * 100.0 / first_count
    if change > TREND_CHANGE_THRESHOLD_PCT:
        return TrendType.INCREASING
    if change < -TREND_CHANGE_THRESHOLD_PCT:
        return TrendType.DECREASING
    return TrendType.STABLE


def analyze_trips(
    trips: Sequence[Trip],
    periods: int,
    window_start_ms: int | None = None,
    window_end_ms: int | None = None,
) -> HistoricalAnalysis:
    """Summarize already-selected trips. Active trips are ignored.

    Args:
        trips: Trips inside the window.
        periods: Window length in periods (months); the averages divide by this.
        window_start_ms: Window bounds used for the trend thirds; None means the span of the trips.
        window_end_ms: See window_start_ms.
    """

    if periods <= 0:
        raise ValueError(f"periods must be positive, got {periods}")

    completed = [t for t in trips if not t.active]
    if not completed:
        return HistoricalAnalysis(
            total_trips=0,
            total_distance_km=0.0,
            avg_trips_per_period=0.0,
            avg_distance_per_period=0.0,
            trips_by_category={},
            trend=TrendType.STABLE,
            data_quality=DataQuality.INSUFFICIENT,
            window_start_ms=window_start_ms,
            window_end_ms=window_end_ms,
        )

    total_distance = sum(t.distance_km for t in completed)
    by_category = Counter(t.category for t in completed)
    return HistoricalAnalysis(
        total_trips=len(completed),
        total_distance_km=total_distance,
        avg_trips_per_period=len(completed) / float(periods),
        avg_distance_per_period=total_distance / float(periods),
        trips_by_category=dict(by_category),
        trend=calculate_trend(completed, window_start_ms, window_end_ms),
        data_quality=classify_data_quality(len(completed)),
        window_start_ms=window_start_ms,
        window_end_ms=window_end_ms,
    )


class HistoricalAnalyzer:
    """Reads completed trips from the repository and summarizes the trailing window."""

    def __init__(
        self,
        repository: TripRepository,
        params: AnalysisParams | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._repo = repository
        self._params = params or AnalysisParams()
        self._clock = clock
        if self._params.window_months <= 0:
            raise ValueError(f"window_months must be positive, got {self._params.window_months}")

    @property
    def params(self) -> AnalysisParams:
        return self._params

    def window(self) -> tuple[int, int]:
        """Return the [start_ms, end_ms] window ending now."""

        end_ms = self._clock()
        end_dt: datetime = dt_from_epoch_ms(end_ms, self._params.tz_name)
        start_dt = months_before(end_dt, self._params.window_months)
        return epoch_ms_from_dt(start_dt), end_ms

    def analyze(self) -> HistoricalAnalysis:
        """Compute the analysis.

        Raises:
            AnalysisError: If the repository cannot be read.
        """

        start_ms, end_ms = self.window()
        try:
            trips = self._repo.list_trips_in_range(start_ms, end_ms)
        except Exception as exc:
            raise AnalysisError(f"failed to read trips in [{start_ms}, {end_ms}]") from exc

        analysis = analyze_trips(trips, self._params.window_months, start_ms, end_ms)
        logger.debug(
            "analysis: trips=%d distance=%.2fkm trend=%s quality=%s",
            analysis.total_trips,
            analysis.total_distance_km,
            analysis.trend.value,
            analysis.data_quality.value,
        )
        return analysis
