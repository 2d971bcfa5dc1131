"""Trip repository contract plus in-memory and JSON-file implementations."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Protocol, Sequence

from trip_analyze.errors import AlreadyActiveError, TripNotFoundError
from trip_analyze.models import Trip, TripCategory, TripPoint

logger = logging.getLogger(__name__)


class TripRepository(Protocol):
    """Storage operations the core depends on."""

    def create_trip(self, category: TripCategory, start_ms: int, destination: str = "", notes: str = "") -> Trip: ...

    def update_trip(self, trip: Trip) -> None: ...

    def get_trip_by_id(self, trip_id: int) -> Trip | None: ...

    def get_active_trip(self) -> Trip | None: ...

    def list_trips_in_range(self, start_ms: int, end_ms: int) -> list[Trip]: ...

    def list_trips(self) -> list[Trip]: ...

    def append_point(
        self,
        trip_id: int,
        latitude: float,
        longitude: float,
        timestamp_ms: int,
        accuracy_m: float = 0.0,
    ) -> TripPoint: ...

    def list_points_for_trip(self, trip_id: int) -> list[TripPoint]: ...

    def delete_trip(self, trip_id: int) -> None: ...


class InMemoryTripRepository:
    """Dict-backed repository with auto-increment ids.

    Analysis may read from a worker thread while tracking writes, so every
    operation takes the instance lock. At most one trip is active at a time;
    the check and the write happen under the same lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._trips: dict[int, Trip] = {}
        self._points: dict[int, list[TripPoint]] = {}
        self._next_trip_id = 1
        self._next_point_id = 1

    def _active_other_than(self, trip_id: int | None) -> Trip | None:
        for trip in self._trips.values():
            if trip.active and trip.trip_id != trip_id:
                return trip
        return None

    def create_trip(self, category: TripCategory, start_ms: int, destination: str = "", notes: str = "") -> Trip:
        """Create a new active trip.

        Raises:
            AlreadyActiveError: If another trip is still active.
        """

        with self._lock:
            active = self._active_other_than(None)
            if active is not None:
                raise AlreadyActiveError(active.trip_id)
            trip = Trip(
                trip_id=self._next_trip_id,
                category=TripCategory(category),
                start_ms=start_ms,
                destination=destination,
                notes=notes,
            )
            self._next_trip_id += 1
            self._trips[trip.trip_id] = trip
            self._points[trip.trip_id] = []
            self._changed()
            return trip

    def update_trip(self, trip: Trip) -> None:
        with self._lock:
            if trip.trip_id not in self._trips:
                raise TripNotFoundError(f"trip {trip.trip_id} does not exist")
            if trip.active:
                active = self._active_other_than(trip.trip_id)
                if active is not None:
                    raise AlreadyActiveError(active.trip_id)
            self._trips[trip.trip_id] = trip
            self._changed()

    def get_trip_by_id(self, trip_id: int) -> Trip | None:
        with self._lock:
            return self._trips.get(trip_id)

    def get_active_trip(self) -> Trip | None:
        with self._lock:
            for trip in self._trips.values():
                if trip.active:
                    return trip
            return None

    def list_trips_in_range(self, start_ms: int, end_ms: int) -> list[Trip]:
        """Trips whose start time lies in [start_ms, end_ms], oldest first."""

        with self._lock:
            hits = [t for t in self._trips.values() if start_ms <= t.start_ms <= end_ms]
        return sorted(hits, key=lambda t: t.start_ms)

    def list_trips(self) -> list[Trip]:
        """All trips, newest first."""

        with self._lock:
            trips = list(self._trips.values())
        return sorted(trips, key=lambda t: t.start_ms, reverse=True)

    def append_point(
        self,
        trip_id: int,
        latitude: float,
        longitude: float,
        timestamp_ms: int,
        accuracy_m: float = 0.0,
    ) -> TripPoint:
        with self._lock:
            if trip_id not in self._trips:
                raise TripNotFoundError(f"trip {trip_id} does not exist")
            point = TripPoint(
                point_id=self._next_point_id,
                trip_id=trip_id,
                latitude=latitude,
                longitude=longitude,
                timestamp_ms=timestamp_ms,
                accuracy_m=accuracy_m,
            )
            self._next_point_id += 1
            self._points[trip_id].append(point)
            self._changed()
            return point

    def list_points_for_trip(self, trip_id: int) -> list[TripPoint]:
        with self._lock:
            points = list(self._points.get(trip_id, ()))
        return sorted(points, key=lambda p: p.timestamp_ms)

    def delete_trip(self, trip_id: int) -> None:
        """Delete a trip together with its points."""

        with self._lock:
            if self._trips.pop(trip_id, None) is None:
                raise TripNotFoundError(f"trip {trip_id} does not exist")
            self._points.pop(trip_id, None)
            self._changed()

    def _changed(self) -> None:
        """Hook called (under the lock) after every mutation."""


def _trip_to_dict(trip: Trip) -> dict[str, Any]:
    d = asdict(trip)
    d["category"] = trip.category.value
    return d


def _trip_from_dict(d: dict[str, Any]) -> Trip:
    return Trip(
        trip_id=int(d["trip_id"]),
        category=TripCategory(d["category"]),
        start_ms=int(d["start_ms"]),
        destination=str(d.get("destination", "") or ""),
        end_ms=None if d.get("end_ms") is None else int(d["end_ms"]),
        distance_km=float(d.get("distance_km", 0.0) or 0.0),
        active=bool(d.get("active", False)),
        notes=str(d.get("notes", "") or ""),
    )


def _point_from_dict(d: dict[str, Any]) -> TripPoint:
    return TripPoint(
        point_id=int(d["point_id"]),
        trip_id=int(d["trip_id"]),
        latitude=float(d["latitude"]),
        longitude=float(d["longitude"]),
        timestamp_ms=int(d["timestamp_ms"]),
        accuracy_m=float(d.get("accuracy_m", 0.0) or 0.0),
    )


class JsonTripStore(InMemoryTripRepository):
    """Repository persisted as a single JSON document.

    Every mutation rewrites the snapshot (temp file + replace), so a write
    costs time proportional to the whole store. Fine for replaying exported
    tracks and for stores of a few thousand points; a long-running recorder
    would want an append-only journal instead.

    A corrupted file (not JSON, or JSON of the wrong shape) is kept as
    ``<name>.broken`` and the store starts empty.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _backup_broken(self, text: str, reason: object) -> None:
        backup = self._path.with_suffix(self._path.suffix + ".broken")
        backup.write_text(text, encoding="utf-8")
        logger.warning("trip store %s is corrupted (%s), backed up to %s", self._path, reason, backup)

    def _load(self) -> None:
        if not self._path.exists():
            return
        text = self._path.read_text(encoding="utf-8").strip()
        if not text:
            return

        # ValueError covers JSONDecodeError and bad enum values
        try:
            data = json.loads(text)
            raw_trips: Sequence[dict[str, Any]] = data.get("trips", [])
            raw_points: Sequence[dict[str, Any]] = data.get("points", [])
            trips = {t.trip_id: t for t in map(_trip_from_dict, raw_trips)}
            points = [_point_from_dict(raw) for raw in raw_points]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            self._backup_broken(text, exc)
            return

        self._trips = trips
        self._points = {trip_id: [] for trip_id in trips}
        for point in points:
            if point.trip_id in self._points:
                self._points[point.trip_id].append(point)
        self._next_trip_id = max(self._trips, default=0) + 1
        self._next_point_id = max((p.point_id for p in points), default=0) + 1

        actives = [t for t in self._trips.values() if t.active]
        if len(actives) > 1:
            # keep the newest one active, close the rest at their start time
            actives.sort(key=lambda t: t.start_ms)
            for stale in actives[:-1]:
                logger.warning("trip %s was left active; closing it", stale.trip_id)
                self._trips[stale.trip_id] = replace(stale, active=False, end_ms=stale.start_ms)

    def _changed(self) -> None:
        payload = {
            "trips": [_trip_to_dict(t) for t in sorted(self._trips.values(), key=lambda t: t.trip_id)],
            "points": [asdict(p) for pts in self._points.values() for p in pts],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)
