from __future__ import annotations

from pathlib import Path

import streamlit as st

from trip_analyze.aggregator import TrackingParams
from trip_analyze.analysis import AnalysisParams
from trip_analyze.csv_io import load_position_samples
from trip_analyze.errors import AlreadyActiveError, AnalysisError
from trip_analyze.models import DEFAULT_TZ, NOISE_THRESHOLD_M, TripCategory
from trip_analyze.prediction import PredictionService
from trip_analyze.repository import JsonTripStore
from trip_analyze.stats import summarize_trips
from trip_analyze.timeutils import ManualClock, dt_from_epoch_ms, format_hhmmss
from trip_analyze.tracker import TripTracker


def _replay_csv(store: JsonTripStore, csv_path: str, category: str, destination: str, threshold_m: float) -> str:
    """Replay a samples CSV as one trip; returns a status line."""

    samples, summary = load_position_samples(csv_path)
    if not samples:
        return f"no usable samples (rows={summary.rows_total})"

    clock = ManualClock(samples[0].timestamp_ms)
    tracker = TripTracker.from_repository(
        store,
        params=TrackingParams(noise_threshold_m=threshold_m),
        clock=clock,
    )
    tracker.start(category, destination=destination)
    tracker.replay(samples)
    clock.value_ms = samples[-1].timestamp_ms
    trip = tracker.stop()
    return f"trip #{trip.trip_id}: {trip.distance_km:.2f} km, accepted={tracker.counters.accepted}"


def main() -> None:
    st.set_page_config(page_title="Trip history & forecast", layout="wide")
    st.title("Trip history, forecast and recommendations")

    with st.sidebar:
        st.subheader("Data")
        tz_name = st.text_input("Timezone (IANA)", value=DEFAULT_TZ)
        store_path = st.text_input("Trip store (JSON)", value="trips.json")
        window_months = st.number_input("Look-back window (months)", value=3, min_value=1, step=1)

        st.subheader("Replay a samples CSV as a trip")
        samples_csv = st.text_input("Samples CSV", value="sample_data/trip.csv")
        category = st.selectbox("Category", [c.value for c in TripCategory])
        destination = st.text_input("Destination", value="")
        with st.expander("Advanced", expanded=False):
            threshold_m = st.number_input("Noise threshold (m)", value=NOISE_THRESHOLD_M, step=1.0)

        if st.button("Replay into store", type="primary", use_container_width=True):
            if not Path(samples_csv).exists():
                st.error(f"file not found: {samples_csv!r}")
            else:
                with st.spinner("Replaying samples ..."):
                    try:
                        msg = _replay_csv(
                            JsonTripStore(store_path), samples_csv, category, destination, float(threshold_m)
                        )
                    except AlreadyActiveError as exc:
                        st.error(str(exc))
                    else:
                        st.success(msg)

    if not Path(store_path).exists():
        st.info(f"no trip store at {store_path!r} yet; replay a samples CSV to create one.")
        return

    store = JsonTripStore(store_path)
    service = PredictionService.from_repository(
        store, params=AnalysisParams(window_months=int(window_months), tz_name=tz_name)
    )
    try:
        result = service.generate_complete_prediction()
    except AnalysisError as exc:
        st.error("could not analyze trip history; try again")
        st.exception(exc)
        return

    a = result.historical_analysis
    f = result.forecast

    st.subheader(f"Last {int(window_months)} months")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Trips", str(a.total_trips))
    c2.metric("Distance", f"{a.total_distance_km:.1f} km")
    c3.metric("Trend", a.trend.value)
    c4.metric("Data quality", a.data_quality.value)

    st.subheader("Next month")
    c1, c2, c3 = st.columns(3)
    c1.metric("Predicted trips", str(f.predicted_trips))
    c2.metric("Predicted distance", f"{f.predicted_distance_km:.1f} km")
    c3.metric("Confidence", f"{f.confidence:.0%}")
    st.caption(f.message)

    st.subheader("Recommendations")
    for r in result.recommendations:
        st.markdown(f"**[{r.priority.name}] {r.title}**  \n{r.description}")

    stats = summarize_trips(store.list_trips())
    with st.expander("All-time statistics", expanded=False):
        st.dataframe(
            [
                {"category": c.value, "trips": cs.trips, "distance_km": round(cs.distance_km, 2)}
                for c, cs in stats.by_category.items()
            ],
            use_container_width=True,
        )

    st.subheader("Trips")
    rows = [
        {
            "id": t.trip_id,
            "category": t.category.value,
            "start": dt_from_epoch_ms(t.start_ms, tz_name).isoformat(sep=" ", timespec="minutes"),
            "duration": format_hhmmss(t.duration_seconds) if t.duration_seconds is not None else "in progress",
            "distance_km": round(t.distance_km, 3),
            "destination": t.destination,
        }
        for t in store.list_trips()
    ]
    st.dataframe(rows, use_container_width=True, height=420)


if __name__ == "__main__":
    main()
