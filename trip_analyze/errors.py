"""Exception types raised by the tracking and analysis paths."""

from __future__ import annotations


class TripAnalyzeError(Exception):
    """Base class for all trip_analyze errors."""


class AlreadyActiveError(TripAnalyzeError):
    """A trip is already being tracked; stop it before starting another."""

    def __init__(self, trip_id: int) -> None:
        super().__init__(f"trip {trip_id} is already active")
        self.trip_id = trip_id


class NoActiveTripError(TripAnalyzeError):
    """An operation needs an active trip but none is being tracked."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation}: no active trip")
        self.operation = operation


class InvalidSampleError(TripAnalyzeError, ValueError):
    """A position sample is malformed (coordinates or timestamp)."""


class TripNotFoundError(TripAnalyzeError, KeyError):
    """The repository has no trip with the requested id."""


class AnalysisError(TripAnalyzeError):
    """Historical analysis could not be computed (e.g. repository read failure)."""


class SupersededError(TripAnalyzeError):
    """A prediction refresh was discarded because a newer one was requested."""
