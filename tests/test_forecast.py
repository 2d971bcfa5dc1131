"""Tests for the next-period forecast."""

from __future__ import annotations

import pytest

from trip_analyze.analysis import DataQuality, HistoricalAnalysis, TrendType
from trip_analyze.forecast import (
    CONFIDENCE_BY_QUALITY,
    INSUFFICIENT_DATA_MESSAGE,
    TREND_MESSAGE,
    Forecaster,
    MonthlyForecast,
    generate_forecast,
)


def _analysis(trend=TrendType.STABLE, quality=DataQuality.HIGH, avg_trips=4.0, avg_km=100.0) -> HistoricalAnalysis:
    return HistoricalAnalysis(
        total_trips=12,
        total_distance_km=avg_km * 3,
        avg_trips_per_period=avg_trips,
        avg_distance_per_period=avg_km,
        trend=trend,
        data_quality=quality,
    )


class TestGenerateForecast:
    def test_insufficient_data(self):
        f = generate_forecast(_analysis(quality=DataQuality.INSUFFICIENT))
        assert f == MonthlyForecast(0, 0.0, 0.0, INSUFFICIENT_DATA_MESSAGE)

    def test_stable(self):
        f = generate_forecast(_analysis())
        assert f.predicted_trips == 4
        assert f.predicted_distance_km == pytest.approx(100.0)
        assert f.confidence == 0.85
        assert f.message == TREND_MESSAGE[TrendType.STABLE]

    def test_increasing_floors_trip_count(self):
        f = generate_forecast(_analysis(trend=TrendType.INCREASING))
        assert f.predicted_trips == 4  # floor(4.6)
        assert f.predicted_distance_km == pytest.approx(115.0)
        assert f.message == TREND_MESSAGE[TrendType.INCREASING]

    def test_decreasing(self):
        f = generate_forecast(_analysis(trend=TrendType.DECREASING))
        assert f.predicted_trips == 3  # floor(3.4)
        assert f.predicted_distance_km == pytest.approx(85.0)
        assert f.message == TREND_MESSAGE[TrendType.DECREASING]

    @pytest.mark.parametrize(
        "quality,confidence",
        [(DataQuality.HIGH, 0.85), (DataQuality.MEDIUM, 0.65), (DataQuality.LOW, 0.40)],
    )
    def test_confidence_by_quality(self, quality, confidence):
        assert generate_forecast(_analysis(quality=quality)).confidence == confidence

    def test_confidence_table_is_total(self):
        assert set(CONFIDENCE_BY_QUALITY) == set(DataQuality)
        assert CONFIDENCE_BY_QUALITY[DataQuality.INSUFFICIENT] == 0.0
        assert all(0.0 <= v <= 1.0 for v in CONFIDENCE_BY_QUALITY.values())

    def test_small_averages_round_down_to_zero(self):
        f = generate_forecast(_analysis(quality=DataQuality.LOW, avg_trips=1 / 3, avg_km=2.0))
        assert f.predicted_trips == 0
        assert f.predicted_distance_km == pytest.approx(2.0)

    def test_idempotent(self):
        a = _analysis(trend=TrendType.INCREASING, quality=DataQuality.MEDIUM, avg_trips=2.7, avg_km=41.3)
        forecaster = Forecaster()
        assert forecaster.forecast(a) == forecaster.forecast(a)
        assert generate_forecast(a) == generate_forecast(a)
