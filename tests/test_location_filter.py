"""Unit tests for the GPS jitter filter."""

from __future__ import annotations

import pytest

from trip_analyze.location_filter import LocationFilter, evaluate_sample
from trip_analyze.models import PositionSample

from conftest import sample_north


class TestEvaluateSample:
    """Pure accept/reject decision."""

    def test_first_sample_is_accepted_with_zero_increment(self):
        decision = evaluate_sample(None, sample_north(0))
        assert decision.accepted is True
        assert decision.increment_m == 0.0
        assert decision.displacement_m is None

    def test_identical_coordinates_are_rejected(self):
        s = sample_north(0)
        decision = evaluate_sample(s, sample_north(0, seconds=3))
        assert decision.accepted is False
        assert decision.increment_m == 0.0
        assert decision.displacement_m == pytest.approx(0.0)

    def test_small_displacement_is_jitter(self):
        decision = evaluate_sample(sample_north(0), sample_north(4.0, seconds=3))
        assert decision.accepted is False
        assert decision.displacement_m == pytest.approx(4.0, rel=1e-6)

    def test_real_movement_is_accepted(self):
        decision = evaluate_sample(sample_north(0), sample_north(50.0, seconds=3))
        assert decision.accepted is True
        assert decision.increment_m == pytest.approx(50.0, rel=1e-6)

    def test_custom_threshold(self):
        decision = evaluate_sample(sample_north(0), sample_north(8.0), threshold_m=10.0)
        assert decision.accepted is False

    def test_accuracy_is_not_an_input(self):
        last = sample_north(0)
        bad_acc = PositionSample(last.latitude, last.longitude + 0.001, last.timestamp_ms + 1000, accuracy_m=-1.0)
        zero_acc = PositionSample(last.latitude, last.longitude + 0.001, last.timestamp_ms + 1000, accuracy_m=0.0)
        assert evaluate_sample(last, bad_acc) == evaluate_sample(last, zero_acc)
        assert evaluate_sample(last, bad_acc).accepted is True


class TestLocationFilter:
    """Stateful filter keeps the last accepted point only."""

    def test_check_does_not_change_state(self):
        f = LocationFilter()
        f.check(sample_north(0))
        assert f.last_accepted is None

    def test_offer_commits_accepted_samples_only(self):
        f = LocationFilter()
        first = sample_north(0)
        assert f.offer(first).accepted
        assert f.last_accepted == first

        assert not f.offer(sample_north(2.0, seconds=3)).accepted
        assert f.last_accepted == first

        moved = sample_north(20.0, seconds=6)
        assert f.offer(moved).accepted
        assert f.last_accepted == moved

    def test_jitter_does_not_creep(self):
        """Many sub-threshold steps are measured against the last accepted point, not the last sample."""
        f = LocationFilter()
        f.offer(sample_north(0))
        accepted = [f.offer(sample_north(1.0 * i, seconds=i)).accepted for i in range(1, 5)]
        assert accepted == [False, False, False, False]
        assert f.offer(sample_north(6.0, seconds=6)).accepted

    def test_reset(self):
        f = LocationFilter(threshold_m=5.0)
        f.offer(sample_north(0))
        f.reset()
        assert f.last_accepted is None
        assert f.threshold_m == 5.0
