"""Streamlit demo UI for day-planner."""

from __future__ import annotations

import tempfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from day_planner.adapters import csv_adapter, json_adapter
from day_planner.drag import compute_drop
from day_planner.layout import positions_for_date
from day_planner.reminders import InMemoryNotificationBackend, ReminderScheduler
from day_planner.schema import REMINDER_LEAD_OPTIONS, NotificationSettings, format_time
from day_planner.time_coordinate import hour_labels, now_indicator_top

DEMO_DATASET = "examples/sample_events.csv"
CARD_WIDTH = 360


def _parse_events_from_path(file_path: str) -> list:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.parse(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _parse_uploaded(uploaded_file) -> list:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return _parse_events_from_path(temp_path)


def _timeline_html(positions: list, now: datetime) -> str:
    rows = "".join(
        f'<div style="position:absolute;top:{row * 80}px;left:0;font-size:11px;color:#888">{label}</div>'
        for row, label in enumerate(hour_labels())
    )
    cards = []
    for position in positions:
        width = CARD_WIDTH / position.total_columns
        cards.append(
            f'<div style="position:absolute;top:{position.top}px;height:{position.height - 2}px;'
            f'left:{48 + position.column * width}px;width:{width - 4}px;background:#22C55E33;'
            f'border-left:3px solid #22C55E;font-size:12px;overflow:hidden">'
            f"{position.event.title}<br>{format_time(position.event.start_time)}</div>"
        )
    indicator = (
        f'<div style="position:absolute;top:{now_indicator_top(now)}px;left:40px;'
        f'width:{CARD_WIDTH + 16}px;border-top:2px solid #EF4444"></div>'
    )
    return f'<div style="position:relative;height:{24 * 80}px">{rows}{"".join(cards)}{indicator}</div>'


def run_planner(events: list, day: date, now: datetime, settings: NotificationSettings) -> dict[str, Any]:
    """Lay out the day and run a reconciliation pass against a scratch backend."""

    positions = positions_for_date(events, day)
    backend = InMemoryNotificationBackend()
    with ReminderScheduler(backend, now=lambda: now) as scheduler:
        scheduler.reschedule_all(events, settings, selected_date=day)
    reminders = sorted(backend.list_all(), key=lambda record: record.trigger_instant)
    return {
        "positions": positions,
        "reminders": [
            {
                "event": record.content.title if record.content else record.event_id,
                "fires": record.trigger_instant.strftime("%a %d %b %H:%M"),
            }
            for record in reminders
        ],
        "max_columns": max((position.total_columns for position in positions), default=0),
    }


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Day Planner Demo", layout="wide")
    st.title("Day Planner — Streamlit Demo")

    with st.sidebar:
        st.header("Controls")
        uploaded = st.file_uploader("Upload events", type=["csv", "json"])
        use_demo = st.checkbox("Load demo dataset", value=True)
        day = st.date_input("Day", value=date(2026, 10, 19))
        now_clock = st.time_input("Now", value=time(8, 0))
        enabled = st.checkbox("Enable notifications", value=True)
        minutes_before = st.selectbox(
            "Reminder time",
            options=list(REMINDER_LEAD_OPTIONS),
            format_func=REMINDER_LEAD_OPTIONS.get,
            index=0,
        )
        drag_px = st.slider("Drag selected card (px)", min_value=-400, max_value=400, value=37)

    try:
        if use_demo:
            events = csv_adapter.parse(DEMO_DATASET)
            data_source = f"demo dataset ({DEMO_DATASET})"
        elif uploaded is not None:
            events = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a CSV/JSON file or enable 'Load demo dataset'.")
            return

        now = datetime.combine(day, now_clock)
        settings = NotificationSettings(enabled=enabled, minutes_before=int(minutes_before))
        result = run_planner(events, day, now, settings)
        st.success(f"Loaded {len(events)} events from {data_source}.")

        left, right = st.columns([3, 2])
        with left:
            st.subheader("A) Timeline")
            st.markdown(_timeline_html(result["positions"], now), unsafe_allow_html=True)

        with right:
            st.subheader("B) Layout")
            c1, c2 = st.columns(2)
            c1.metric("Events today", len(result["positions"]))
            c2.metric("Widest cluster", result["max_columns"])

            st.subheader("C) Drag preview")
            if result["positions"]:
                titles = [position.event.title for position in result["positions"]]
                picked = st.selectbox("Card", options=range(len(titles)), format_func=titles.__getitem__)
                position = result["positions"][picked]
                drop = compute_drop(position.event, position.top, drag_px)
                if drop is None:
                    st.write("Card snaps back; no change.")
                else:
                    st.write(f"New time: {format_time(drop.new_start)} - {format_time(drop.new_end)}")
            else:
                st.write("No events on this day.")

            st.subheader("D) Reminder queue")
            if result["reminders"]:
                st.table(result["reminders"])
            else:
                st.write("No reminders would be scheduled.")

    except ValueError as exc:
        st.error(f"Input error: {exc}")
    except Exception:
        st.error("Something went wrong while running the demo. Please verify the input format.")


if __name__ == "__main__":
    main()
