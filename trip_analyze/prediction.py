"""Analysis -> forecast -> recommendations pipeline and its refresh runner."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from trip_analyze.analysis import AnalysisParams, HistoricalAnalysis, HistoricalAnalyzer
from trip_analyze.errors import SupersededError
from trip_analyze.forecast import Forecaster, MonthlyForecast
from trip_analyze.recommendations import Recommendation, RecommendationEngine
from trip_analyze.repository import TripRepository
from trip_analyze.timeutils import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PredictionResult:
    historical_analysis: HistoricalAnalysis
    forecast: MonthlyForecast
    recommendations: list[Recommendation]


class PredictionService:
    """Runs the whole read-only analysis pipeline over the trip history."""

    def __init__(
        self,
        analyzer: HistoricalAnalyzer,
        forecaster: Forecaster | None = None,
        engine: RecommendationEngine | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._forecaster = forecaster or Forecaster()
        self._engine = engine or RecommendationEngine()

    @classmethod
    def from_repository(
        cls,
        repository: TripRepository,
        params: AnalysisParams | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> PredictionService:
        return cls(HistoricalAnalyzer(repository, params=params, clock=clock))

    def generate_complete_prediction(self) -> PredictionResult:
        """Analyze history, forecast the next period and derive recommendations.

        Raises:
            AnalysisError: If the trip history cannot be read. No partial result is returned.
        """

        analysis = self._analyzer.analyze()
        forecast = self._forecaster.forecast(analysis)
        recommendations = self._engine.recommend(forecast, analysis)
        return PredictionResult(
            historical_analysis=analysis,
            forecast=forecast,
            recommendations=recommendations,
        )


class LatestPredictionRunner:
    """Runs prediction refreshes in the background with latest-request-wins semantics.

    Every :meth:`refresh` supersedes the previous one: a refresh that has not
    started yet is cancelled, and one already running finishes but its result
    or error is discarded (its future raises SupersededError).
    """

    def __init__(self, service: PredictionService, max_workers: int = 1) -> None:
        self._service = service
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="prediction")
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Future[PredictionResult] | None = None

    def refresh(self) -> Future[PredictionResult]:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._current is not None and self._current.cancel():
                logger.debug("prediction refresh %d cancelled before start", generation - 1)
            fut = self._executor.submit(self._run, generation)
            self._current = fut
            return fut

    def _check_current(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("prediction refresh %d superseded by %d", generation, self._generation)
                raise SupersededError(f"refresh {generation} superseded by {self._generation}")

    def _run(self, generation: int) -> PredictionResult:
        # a stale refresh is discarded whether it succeeded or failed
        try:
            result = self._service.generate_complete_prediction()
        except Exception:
            self._check_current(generation)
            raise
        self._check_current(generation)
        return result

    def latest(self, timeout: float | None = None) -> PredictionResult:
        """Wait for the most recent refresh, following newer ones that supersede it."""

        while True:
            with self._lock:
                fut = self._current
            if fut is None:
                raise RuntimeError("no refresh has been requested")
            try:
                return fut.result(timeout=timeout)
            except (SupersededError, CancelledError):
                with self._lock:
                    if self._current is fut:
                        raise

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> LatestPredictionRunner:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
