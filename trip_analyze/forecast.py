"""Next-period forecast derived from a historical analysis."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final, Mapping

from trip_analyze.analysis import DataQuality, HistoricalAnalysis, TrendType

TREND_MULTIPLIER: Final[Mapping[TrendType, float]] = {
    TrendType.INCREASING: 1.15,
    TrendType.DECREASING: 0.85,
    TrendType.STABLE: 1.0,
}

CONFIDENCE_BY_QUALITY: Final[Mapping[DataQuality, float]] = {
    DataQuality.HIGH: 0.85,
    DataQuality.MEDIUM: 0.65,
    DataQuality.LOW: 0.40,
    DataQuality.INSUFFICIENT: 0.0,
}

TREND_MESSAGE: Final[Mapping[TrendType, str]] = {
    TrendType.INCREASING: "Trending up! Keep it going!",
    TrendType.DECREASING: "Activity is down compared to previous months",
    TrendType.STABLE: "Activity is steady, keep up the pace",
}

INSUFFICIENT_DATA_MESSAGE: Final[str] = "Not enough data to generate a forecast"


@dataclass(frozen=True, slots=True)
class MonthlyForecast:
    """Point forecast for the next period."""

    predicted_trips: int
    predicted_distance_km: float
    confidence: float
    message: str


def generate_forecast(analysis: HistoricalAnalysis) -> MonthlyForecast:
    """Scale the per-period averages by the trend multiplier.

    Pure: the same analysis always yields an equal forecast.
    """

    if analysis.data_quality == DataQuality.INSUFFICIENT:
        return MonthlyForecast(
            predicted_trips=0,
            predicted_distance_km=0.0,
            confidence=0.0,
            message=INSUFFICIENT_DATA_MESSAGE,
        )

    multiplier = TREND_MULTIPLIER[analysis.trend]
    predicted_trips = max(0, math.floor(analysis.avg_trips_per_period * multiplier))
    predicted_distance = max(0.0, analysis.avg_distance_per_period * multiplier)

    return MonthlyForecast(
        predicted_trips=predicted_trips,
        predicted_distance_km=predicted_distance,
        confidence=CONFIDENCE_BY_QUALITY[analysis.data_quality],
        message=TREND_MESSAGE[analysis.trend],
    )


class Forecaster:
    """Object seam around :func:`generate_forecast` for injection into the prediction service."""

    def forecast(self, analysis: HistoricalAnalysis) -> MonthlyForecast:
        return generate_forecast(analysis)
