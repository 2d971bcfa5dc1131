"""Rule-based recommendations from a forecast and its historical analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from trip_analyze.analysis import HistoricalAnalysis, TrendType
from trip_analyze.forecast import MonthlyForecast
from trip_analyze.models import TripCategory

LOW_DISTANCE_KM = 50.0
LOW_TRIP_COUNT = 3
VARIETY_MIN_TRIPS = 5


class Priority(int, Enum):
    """Higher value sorts first."""

    HIGH = 3
    MEDIUM = 2
    LOW = 1


class RecommendationType(str, Enum):
    ACTIVITY_BOOST = "ACTIVITY_BOOST"
    EXPLORATION = "EXPLORATION"
    GOAL_SETTING = "GOAL_SETTING"
    VARIETY = "VARIETY"
    POSITIVE_FEEDBACK = "POSITIVE_FEEDBACK"
    GENERAL = "GENERAL"


@dataclass(frozen=True, slots=True)
class Recommendation:
    type: RecommendationType
    title: str
    description: str
    priority: Priority


def generate_recommendations(forecast: MonthlyForecast, analysis: HistoricalAnalysis) -> list[Recommendation]:
    """Evaluate every rule in order and sort the hits by priority (stable).

    The result is never empty: when no rule fires a LOW "keep the pace"
    recommendation is returned.
    """

    out: list[Recommendation] = []

    if analysis.trend == TrendType.DECREASING:
        out.append(
            Recommendation(
                type=RecommendationType.ACTIVITY_BOOST,
                title="Boost your activity",
                description="You have traveled less over the last months. Try planning a local outing this weekend!",
                priority=Priority.HIGH,
            )
        )

    if forecast.predicted_distance_km < LOW_DISTANCE_KM:
        out.append(
            Recommendation(
                type=RecommendationType.EXPLORATION,
                title="Explore new destinations",
                description="Most of your trips stay close to home. How about a trip out of town?",
                priority=Priority.MEDIUM,
            )
        )

    if forecast.predicted_trips < LOW_TRIP_COUNT:
        out.append(
            Recommendation(
                type=RecommendationType.GOAL_SETTING,
                title="Set a goal",
                description="Aim for at least one trip a week. Even a walk counts!",
                priority=Priority.MEDIUM,
            )
        )

    if analysis.most_common_category == TripCategory.LOCAL and analysis.total_trips > VARIETY_MIN_TRIPS:
        out.append(
            Recommendation(
                type=RecommendationType.VARIETY,
                title="Add some variety",
                description="You mostly take local trips. Try a multi-day trip!",
                priority=Priority.LOW,
            )
        )

    if analysis.trend == TrendType.INCREASING:
        out.append(
            Recommendation(
                type=RecommendationType.POSITIVE_FEEDBACK,
                title="Great job!",
                description="Your activity is growing. Keep it up!",
                priority=Priority.LOW,
            )
        )

    if not out:
        out.append(
            Recommendation(
                type=RecommendationType.GENERAL,
                title="Keep the pace",
                description="You are doing well. Keep recording your trips.",
                priority=Priority.LOW,
            )
        )

    # sorted() is stable, so equal priorities keep rule order
    return sorted(out, key=lambda r: r.priority, reverse=True)


class RecommendationEngine:
    def recommend(self, forecast: MonthlyForecast, analysis: HistoricalAnalysis) -> list[Recommendation]:
        return generate_recommendations(forecast, analysis)
