"""Tests for the prediction pipeline and the latest-request-wins runner."""

from __future__ import annotations

import threading
from concurrent.futures import CancelledError

import pytest

from trip_analyze.aggregator import TripAggregator
from trip_analyze.analysis import DataQuality, TrendType
from trip_analyze.errors import AnalysisError, SupersededError
from trip_analyze.models import TripCategory
from trip_analyze.prediction import LatestPredictionRunner, PredictionService
from trip_analyze.recommendations import RecommendationType
from trip_analyze.repository import InMemoryTripRepository

from conftest import FakeClock, sample_north


class TestPredictionService:
    def test_empty_history(self, repo, clock):
        result = PredictionService.from_repository(repo, clock=clock).generate_complete_prediction()
        assert result.historical_analysis.data_quality is DataQuality.INSUFFICIENT
        assert result.forecast.confidence == 0.0
        assert result.recommendations

    def test_trips_tracked_then_analyzed(self, repo, clock):
        agg = TripAggregator(repo, clock=clock)
        for _ in range(3):
            agg.start(TripCategory.LOCAL)
            agg.ingest(sample_north(0))
            agg.ingest(sample_north(500, seconds=60))
            clock.advance(3_600_000)
            agg.stop()
            clock.advance(86_400_000)

        result = PredictionService.from_repository(repo, clock=clock).generate_complete_prediction()
        a = result.historical_analysis
        assert a.total_trips == 3
        assert a.total_distance_km == pytest.approx(1.5, rel=1e-6)
        assert a.data_quality is DataQuality.MEDIUM
        assert a.trend is TrendType.STABLE
        assert result.forecast.predicted_trips == 1
        assert result.forecast.confidence == 0.65

    def test_active_trip_is_not_analyzed(self, repo, clock):
        agg = TripAggregator(repo, clock=clock)
        agg.start(TripCategory.DAY)
        clock.advance(1_000)
        result = PredictionService.from_repository(repo, clock=clock).generate_complete_prediction()
        assert result.historical_analysis.total_trips == 0

    def test_repository_failure_propagates(self):
        class BrokenRepo(InMemoryTripRepository):
            def list_trips_in_range(self, start_ms, end_ms):
                raise RuntimeError("connection lost")

        service = PredictionService.from_repository(BrokenRepo(), clock=FakeClock())
        with pytest.raises(AnalysisError):
            service.generate_complete_prediction()


class _GatedService:
    """First call blocks until released; later calls return immediately."""

    def __init__(self, fail_first: bool = False) -> None:
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self.fail_first = fail_first
        self._lock = threading.Lock()

    def generate_complete_prediction(self):
        with self._lock:
            self.calls += 1
            n = self.calls
        if n == 1:
            self.started.set()
            self.release.wait(timeout=5)
            if self.fail_first:
                raise AnalysisError("history unavailable")
        return f"result-{n}"


class TestLatestPredictionRunner:
    def test_single_refresh(self, repo, clock):
        with LatestPredictionRunner(PredictionService.from_repository(repo, clock=clock)) as runner:
            fut = runner.refresh()
            result = fut.result(timeout=5)
            assert runner.latest(timeout=5) is result

    def test_latest_request_wins(self):
        service = _GatedService()
        with LatestPredictionRunner(service) as runner:
            first = runner.refresh()
            assert service.started.wait(timeout=5)
            second = runner.refresh()
            third = runner.refresh()

            assert second.cancelled()
            service.release.set()

            with pytest.raises(SupersededError):
                first.result(timeout=5)
            with pytest.raises(CancelledError):
                second.result(timeout=5)
            assert third.result(timeout=5) == "result-2"
            assert runner.latest(timeout=5) == "result-2"

    def test_failed_stale_refresh_is_superseded(self):
        service = _GatedService(fail_first=True)
        with LatestPredictionRunner(service) as runner:
            first = runner.refresh()
            assert service.started.wait(timeout=5)
            second = runner.refresh()
            service.release.set()

            with pytest.raises(SupersededError):
                first.result(timeout=5)
            assert second.result(timeout=5) == "result-2"
            assert runner.latest(timeout=5) == "result-2"

    def test_latest_without_refresh(self, repo, clock):
        with LatestPredictionRunner(PredictionService.from_repository(repo, clock=clock)) as runner:
            with pytest.raises(RuntimeError):
                runner.latest()

    def test_analysis_error_reaches_caller(self):
        class BrokenRepo(InMemoryTripRepository):
            def list_trips_in_range(self, start_ms, end_ms):
                raise OSError("read failed")

        service = PredictionService.from_repository(BrokenRepo(), clock=FakeClock())
        with LatestPredictionRunner(service) as runner:
            runner.refresh()
            with pytest.raises(AnalysisError):
                runner.latest(timeout=5)

    def test_recommendations_present_after_refresh(self, repo, clock):
        with LatestPredictionRunner(PredictionService.from_repository(repo, clock=clock)) as runner:
            runner.refresh()
            result = runner.latest(timeout=5)
        assert result.recommendations[0].type in set(RecommendationType)
