from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo

from conftest import FakeClock, FakeFetcher
from dashboard import app
from dashboard.config import load_config
from dashboard.polling import PollingController, PollingState
from dashboard.state import ViewState
from dashboard.view_model import to_display_points


def _y_domain(chart_dict: dict) -> list:
    return chart_dict["layer"][0]["encoding"]["y"]["scale"]["domain"]


def test_chart_uses_fixed_domain_and_limit_line(scenario_readings) -> None:
    points = to_display_points(scenario_readings, tz="UTC")
    spec = app.build_chart(points, 10).to_dict()

    assert _y_domain(spec) == [0, 15]
    rule = spec["layer"][1]
    assert rule["mark"]["type"] == "rule"
    assert rule["mark"]["color"] == "red"
    assert rule["encoding"]["y"]["field"] == "threshold"


def test_chart_domain_grows_for_large_counts(scenario_readings) -> None:
    readings = scenario_readings + [
        scenario_readings[-1].model_copy(update={"id": "c", "people_count": 22})
    ]
    spec = app.build_chart(to_display_points(readings, tz="UTC"), 10).to_dict()

    assert _y_domain(spec) == [0, 22]


def test_chart_handles_empty_points() -> None:
    spec = app.build_chart(to_display_points([], tz="UTC"), 10).to_dict()

    assert _y_domain(spec) == [0, 15]


def test_chart_x_axis_uses_display_timezone(scenario_readings) -> None:
    berlin = ZoneInfo("Europe/Berlin")
    spec = app.build_chart(to_display_points(scenario_readings, tz=berlin), 10, berlin).to_dict()

    x = spec["layer"][0]["encoding"]["x"]
    assert x["field"] == "wall_clock"
    assert x["type"] == "temporal"
    assert x["scale"]["type"] == "utc"
    rows = [r for values in spec["datasets"].values() for r in values if "wall_clock" in r]
    # 08:00 UTC is 10:00 in Berlin summer time, matching the table's time column
    assert [r["wall_clock"] for r in rows] == ["2024-05-01T10:00:00Z", "2024-05-01T10:00:05Z"]
    assert [r["time"] for r in rows] == ["10:00:00", "10:00:05"]


def test_threshold_input_keeps_out_of_range_default(monkeypatch) -> None:
    state = ViewState(threshold=150)

    assert app.threshold_input_value(state.threshold) == 100
    assert app.threshold_input_value(-3) == 0
    assert state.threshold == 150

    monkeypatch.setattr(app.st, "session_state", {app.THRESHOLD_KEY: 42})
    app._on_threshold_change(state)
    assert state.threshold == 42


def test_table_frame_is_newest_first(scenario_readings, fixed_now) -> None:
    frame = app.build_table_frame(to_display_points(scenario_readings, tz="UTC"), fixed_now)

    assert list(frame.columns) == ["Time (HH:mm:ss)", "People", "Relative time ago"]
    assert frame["People"].tolist() == [12, 3]
    assert frame["Time (HH:mm:ss)"].tolist() == ["08:00:05", "08:00:00"]
    assert frame["Relative time ago"].tolist() == ["3 minutes ago", "3 minutes ago"]


def test_long_date_format() -> None:
    assert app.format_long_date(date(2024, 5, 1)) == "Wednesday, May 1, 2024"


def test_mount_always_on_starts_polling_without_fetching_yet() -> None:
    fetcher = FakeFetcher()
    controller = PollingController(fetcher, ViewState(), clock=FakeClock())

    app.mount(controller, load_config({}))

    assert controller.mode is PollingState.POLLING
    assert fetcher.calls == 0
    assert controller.is_due() is True


def test_mount_gated_prefetches_once_and_stays_idle() -> None:
    fetcher = FakeFetcher()
    controller = PollingController(fetcher, ViewState(), clock=FakeClock())

    app.mount(controller, load_config({"POLLING_MODE": "gated"}))

    assert controller.mode is PollingState.IDLE
    assert fetcher.calls == 1
    assert controller.state.last_refreshed is not None


def test_build_controller_wires_config() -> None:
    config = load_config({"ROW_CAP": "none", "POLL_INTERVAL_SECONDS": "2", "DEFAULT_THRESHOLD": "4"})
    controller = app.build_controller(config)

    assert controller.fetcher.row_cap is None
    assert controller.interval_seconds == 2.0
    assert controller.state.threshold == 4
    assert controller.mode is PollingState.IDLE
