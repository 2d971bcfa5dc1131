from __future__ import annotations

import argparse
import csv
import math
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "Europe/Rome"
EARTH_RADIUS_M: Final[float] = 6_371_000.0


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _step(lat: float, lon: float, meters: float, bearing_deg: float) -> tuple[float, float]:
    """Move ``meters`` along ``bearing_deg`` (flat-earth approximation, fine for short steps)."""

    b = math.radians(bearing_deg)
    d_lat = meters * math.cos(b) / EARTH_RADIUS_M
    d_lon = meters * math.sin(b) / (EARTH_RADIUS_M * math.cos(math.radians(lat)))
    return lat + math.degrees(d_lat), lon + math.degrees(d_lon)


def generate_samples(
    *,
    rows: int,
    seed: int,
    start_local: datetime,
    origin: tuple[float, float],
) -> list[dict[str, str]]:
    """Generate fake sample rows: walking legs mixed with stationary jitter."""

    rng = random.Random(seed)
    cur = start_local.replace(tzinfo=ZoneInfo(TZ))
    lat, lon = origin
    bearing = rng.uniform(0, 360)

    out: list[dict[str, str]] = []
    for _ in range(rows):
        # Pause ~20% of the time: GPS jitter of a couple of meters around the same spot
        if rng.random() < 0.2:
            s_lat, s_lon = _step(lat, lon, rng.uniform(0.0, 3.0), rng.uniform(0, 360))
        else:
            bearing = (bearing + rng.uniform(-25, 25)) % 360
            lat, lon = _step(lat, lon, rng.uniform(4.0, 15.0), bearing)
            s_lat, s_lon = lat, lon

        cur = cur + timedelta(seconds=rng.uniform(2.0, 5.0))
        hacc = rng.choice([3.0, 5.0, 8.0, 12.0, 20.0, -1.0])
        out.append(
            {
                "geoTime": str(_epoch_ms(cur)),
                "latitude": f"{s_lat:.7f}",
                "longitude": f"{s_lon:.7f}",
                "horizontalAccuracy": f"{hacc:.1f}",
            }
        )

    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake trip samples CSV for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/trip.csv", help="Output CSV path")
    p.add_argument("--rows", type=int, default=600, help="Number of rows")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start local time in Europe/Rome, e.g. '2025-01-01 08:00:00'",
    )
    p.add_argument("--lat", type=float, default=41.8902000, help="Origin latitude")
    p.add_argument("--lon", type=float, default=12.4922000, help="Origin longitude")
    args = p.parse_args()

    rows = generate_samples(
        rows=args.rows,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        origin=(args.lat, args.lon),
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude", "horizontalAccuracy"])
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
