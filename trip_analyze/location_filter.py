"""Noise filter deciding whether a raw sample is real movement or GPS jitter."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from trip_analyze.geo import haversine_m
from trip_analyze.models import NOISE_THRESHOLD_M, PositionSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Result of filtering one sample.

    Attributes:
        accepted: True if the sample counts as movement.
        increment_m: Distance in meters contributed by the sample (0.0 when rejected
            or when it is the first point of a trip).
        displacement_m: Raw distance from the last accepted point, None for the first one.
    """

    accepted: bool
    increment_m: float = 0.0
    displacement_m: float | None = None


def evaluate_sample(
    last: PositionSample | None,
    sample: PositionSample,
    threshold_m: float = NOISE_THRESHOLD_M,
) -> FilterDecision:
    """Decide whether ``sample`` is movement relative to ``last``.

    Args:
        last: Last accepted sample, or None if the trip has no points yet.
        sample: Candidate sample.
        threshold_m: Minimum displacement in meters; anything closer is jitter.

    Returns:
        FilterDecision. Accuracy is not an input.
    """

    if last is None:
        return FilterDecision(accepted=True, increment_m=0.0, displacement_m=None)

    d = haversine_m(last.latitude, last.longitude, sample.latitude, sample.longitude)
    if d < threshold_m:
        return FilterDecision(accepted=False, increment_m=0.0, displacement_m=d)
    return FilterDecision(accepted=True, increment_m=d, displacement_m=d)


class LocationFilter:
    """Stateful wrapper around :func:`evaluate_sample` remembering the last accepted point.

    Checking and committing are separate so the caller can persist an accepted
    point before it becomes the new reference.
    """

    def __init__(self, threshold_m: float = NOISE_THRESHOLD_M, last: PositionSample | None = None) -> None:
        self._threshold_m = threshold_m
        self._last = last

    @property
    def last_accepted(self) -> PositionSample | None:
        return self._last

    @property
    def threshold_m(self) -> float:
        return self._threshold_m

    def reset(self, last: PositionSample | None = None) -> None:
        self._last = last

    def check(self, sample: PositionSample) -> FilterDecision:
        """Filter ``sample`` against the last accepted point without changing state."""

        decision = evaluate_sample(self._last, sample, self._threshold_m)
        if not decision.accepted:
            logger.debug(
                "sample at %s rejected as jitter (%.2fm < %.2fm)",
                sample.timestamp_ms,
                decision.displacement_m or 0.0,
                self._threshold_m,
            )
        return decision

    def commit(self, sample: PositionSample) -> None:
        """Make ``sample`` the new last accepted point."""

        self._last = sample

    def offer(self, sample: PositionSample) -> FilterDecision:
        """Check ``sample`` and commit it when accepted."""

        decision = self.check(sample)
        if decision.accepted:
            self.commit(sample)
        return decision
