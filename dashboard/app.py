# dashboard/app.py
#
# CrowdSense – People Counter Dashboard
#
# Streamlit UI that:
#   - Polls the people_counter table on a fixed interval, either from the
#     moment the page opens or after a password prompt (POLLING_MODE)
#   - Validates every row and reports how many were rejected
#   - Charts the readings with the alert threshold as a reference line
#   - Raises a pulsing banner when any reading is above the threshold
#   - Lists recent entries newest-first and exports them to CSV
#
# Run:
#   pip install -e .
#   streamlit run dashboard/app.py

import logging
from datetime import date, datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

import altair as alt
import pandas as pd
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from dashboard.access_gate import AccessGate, enable_with_password
from dashboard.config import (
    PAGE_TITLE,
    THRESHOLD_INPUT_RANGE,
    Y_AXIS_DOMAIN,
    ConfigError,
    DashboardConfig,
    load_config,
)
from dashboard.data_source import DataFetcher
from dashboard.export import EXPORT_MIME, build_csv, export_filename
from dashboard.polling import PollingController, PollingState
from dashboard.state import VIEW_STATE_KEY, ViewState
from dashboard.view_model import (
    is_threshold_exceeded,
    latest_value,
    local_timezone,
    relative_times,
    to_display_points,
    to_table,
)

logger = logging.getLogger(__name__)

# -------------------------------------------------
# Page constants
# -------------------------------------------------

CONTROLLER_KEY = "polling_controller"
CONFIG_KEY = "dashboard_config"
REFRESH_KEY = "people_counter_refresh"
TOGGLE_KEY = "polling_toggle"
THRESHOLD_KEY = "threshold_input"

LINE_COLOR = "#3b82f6"
LIMIT_COLOR = "red"

ALERT_CSS = """
<style>
@keyframes crowdsense-pulse {
  0%, 100% { opacity: 1; }
  50% { opacity: .5; }
}
.crowdsense-alert {
  position: fixed;
  top: 2.5rem;
  right: 2.5rem;
  z-index: 1000;
  background: #dc2626;
  color: #ffffff;
  padding: .5rem 1rem;
  border-radius: .25rem;
  box-shadow: 0 10px 15px -3px rgba(0, 0, 0, .2);
  animation: crowdsense-pulse 2s cubic-bezier(.4, 0, .6, 1) infinite;
}
</style>
"""


# -------------------------------------------------
# Session
# -------------------------------------------------


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    logging.getLogger("dashboard").setLevel(level)


def display_timezone(config: DashboardConfig) -> tzinfo:
    if config.display_timezone:
        return ZoneInfo(config.display_timezone)
    return local_timezone()


def build_controller(config: DashboardConfig) -> PollingController:
    state = ViewState(threshold=config.default_threshold)
    fetcher = DataFetcher(
        config.data_source_url,
        api_key=config.api_key,
        row_cap=config.row_cap,
        timeout=config.request_timeout_seconds,
    )
    return PollingController(fetcher, state, interval_seconds=config.poll_interval_seconds)


def mount(controller: PollingController, config: DashboardConfig) -> None:
    """
    Supply the initial data. Always-on pages start polling straight away
    (the first tick fetches); gated pages load one snapshot and wait for
    the password before polling.
    """
    if config.gated:
        controller.refresh()
    else:
        controller.enable()


def get_controller(config: DashboardConfig) -> PollingController:
    """Return this session's controller, rebuilding it if the config changed."""
    controller: Optional[PollingController] = st.session_state.get(CONTROLLER_KEY)
    if controller is not None and st.session_state.get(CONFIG_KEY) == config:
        return controller

    if controller is not None:
        controller.teardown()

    controller = build_controller(config)
    st.session_state[CONTROLLER_KEY] = controller
    st.session_state[VIEW_STATE_KEY] = controller.state
    st.session_state[CONFIG_KEY] = config
    mount(controller, config)
    return controller


# -------------------------------------------------
# Chart and table builders
# -------------------------------------------------


def build_chart(
    points: pd.DataFrame, threshold: int, tz: Optional[tzinfo] = None
) -> alt.LayerChart:
    """
    Line chart of people count over time with a dashed limit line.

    The Y axis starts at the fixed [0, 15] domain and only grows when a
    reading goes past the top. The X axis shows wall-clock time in `tz`
    (the same zone as the table), not the browser's zone.
    """
    y_max = Y_AXIS_DOMAIN[1]
    if not points.empty:
        y_max = max(y_max, int(points["value"].max()))
    y_scale = alt.Scale(domain=[Y_AXIS_DOMAIN[0], y_max], nice=False)

    # Display-zone wall clock written as UTC and drawn on a UTC scale, so the
    # browser applies no offset of its own
    wall_clock = points["timestamp"].dt.tz_convert(tz or local_timezone())
    chart_points = points.assign(wall_clock=wall_clock.dt.strftime("%Y-%m-%dT%H:%M:%SZ"))

    line = (
        alt.Chart(chart_points)
        .mark_line(interpolate="monotone", strokeWidth=2, color=LINE_COLOR, point=True)
        .encode(
            x=alt.X(
                "wall_clock:T",
                title="Time",
                scale=alt.Scale(type="utc"),
                axis=alt.Axis(format="%H:%M:%S"),
            ),
            y=alt.Y("value:Q", title="People", scale=y_scale),
            tooltip=[
                alt.Tooltip("time:N", title="Time"),
                alt.Tooltip("value:Q", title="People"),
            ],
        )
    )

    limit_df = pd.DataFrame({"threshold": [threshold], "label": [f"Limit ({threshold})"]})
    limit_rule = (
        alt.Chart(limit_df)
        .mark_rule(color=LIMIT_COLOR, strokeDash=[3, 3])
        .encode(y=alt.Y("threshold:Q", scale=y_scale))
    )
    limit_label = (
        alt.Chart(limit_df)
        .mark_text(color=LIMIT_COLOR, align="left", dx=4, dy=-8)
        .encode(y=alt.Y("threshold:Q", scale=y_scale), text="label:N")
    )

    return alt.layer(line, limit_rule, limit_label).properties(height=320)


def build_table_frame(points: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
    table = to_table(points)
    return pd.DataFrame(
        {
            "Time (HH:mm:ss)": table["time"].tolist(),
            "People": [int(v) for v in table["value"]],
            "Relative time ago": relative_times(table, now),
        }
    )


def format_long_date(day: date) -> str:
    return f"{day:%A, %B} {day.day}, {day.year}"


# -------------------------------------------------
# UI helpers
# -------------------------------------------------


def render_header() -> None:
    st.title(PAGE_TITLE)
    st.subheader(f"People Counter - {format_long_date(date.today())}")


def render_alert(points: pd.DataFrame, threshold: int) -> None:
    if not is_threshold_exceeded(points, threshold):
        return
    st.markdown(ALERT_CSS, unsafe_allow_html=True)
    st.markdown(
        f'<div class="crowdsense-alert">🚨 People count exceeded the limit of {threshold}!</div>',
        unsafe_allow_html=True,
    )


def _on_polling_toggle(controller: PollingController) -> None:
    if st.session_state.get(TOGGLE_KEY):
        controller.enable()
    else:
        controller.disable()


def render_polling_control(
    controller: PollingController, gate: Optional[AccessGate]
) -> None:
    polling = controller.mode is PollingState.POLLING

    if gate is None:
        st.toggle(
            "Live polling",
            value=polling,
            key=TOGGLE_KEY,
            on_change=_on_polling_toggle,
            args=(controller,),
        )
        return

    if polling:
        st.button("Disable polling", on_click=controller.disable)
        return

    with st.form("access_gate", clear_on_submit=True):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Enable polling")
    if submitted and enable_with_password(controller, gate, password):
        st.rerun()
    if controller.state.gate_error:
        st.error(controller.state.gate_error)


def threshold_input_value(threshold: int) -> int:
    """Starting value for the threshold widget, which only takes 0..100."""
    lo, hi = THRESHOLD_INPUT_RANGE
    return min(max(threshold, lo), hi)


def _on_threshold_change(state: ViewState) -> None:
    # Only a user edit replaces the threshold; an out-of-range configured
    # default stays in effect until then.
    state.threshold = int(st.session_state[THRESHOLD_KEY])


def render_controls(
    controller: PollingController, gate: Optional[AccessGate], points: pd.DataFrame
) -> None:
    state = controller.state
    lo, hi = THRESHOLD_INPUT_RANGE
    c1, c2, c3 = st.columns([1, 1, 2])
    with c1:
        st.number_input(
            "Alert Threshold",
            min_value=lo,
            max_value=hi,
            value=threshold_input_value(state.threshold),
            step=1,
            key=THRESHOLD_KEY,
            on_change=_on_threshold_change,
            args=(state,),
        )
    with c2:
        st.download_button(
            "Export to CSV",
            data=build_csv(points),
            file_name=export_filename(),
            mime=EXPORT_MIME,
        )
    with c3:
        render_polling_control(controller, gate)


def render_status(placeholder, state: ViewState, tz: tzinfo) -> None:
    if state.refreshing:
        placeholder.caption("⟳ Refreshing…")
    elif state.last_refreshed is not None:
        stamp = state.last_refreshed.astimezone(tz).strftime("%H:%M:%S")
        placeholder.caption(f"Last refreshed at {stamp}")
    else:
        placeholder.empty()


def render_data_quality(state: ViewState) -> None:
    if state.last_error:
        st.error(f"Unable to load people counter data.\n\n{state.last_error}")
    if state.rejected_rows:
        noun = "row" if state.rejected_rows == 1 else "rows"
        st.warning(f"{state.rejected_rows} {noun} rejected by validation.")


def render_chart(points: pd.DataFrame, threshold: int, tz: tzinfo) -> None:
    st.markdown("### Time Series Graph")
    st.altair_chart(build_chart(points, threshold, tz), use_container_width=True)


def render_latest(points: pd.DataFrame) -> None:
    st.metric("Latest People Count", latest_value(points))


def render_table(points: pd.DataFrame) -> None:
    st.markdown("### Recent Entries")
    st.dataframe(build_table_frame(points), hide_index=True)


# -------------------------------------------------
# Main layout
# -------------------------------------------------


def main() -> None:
    st.set_page_config(page_title=PAGE_TITLE, page_icon="👥", layout="wide")

    try:
        config = load_config()
        gate = AccessGate(config.gate_secret_b64) if config.gated else None
    except ConfigError as err:
        st.title(PAGE_TITLE)
        st.error(f"Invalid dashboard configuration.\n\n{err}")
        return

    _configure_logging(config.log_level)
    tz = display_timezone(config)

    controller = get_controller(config)
    state = controller.state

    # Timer only exists while polling; each fire reruns the script
    if controller.mode is PollingState.POLLING:
        st_autorefresh(interval=int(config.poll_interval_seconds * 1000), key=REFRESH_KEY)

    render_header()
    controls_area = st.container()
    status_area = st.empty()

    if controller.is_due():
        status_area.caption("⟳ Refreshing…")
        controller.tick()

    points = to_display_points(state.readings, tz)

    with controls_area:
        render_controls(controller, gate, points)
    render_status(status_area, state, tz)
    render_data_quality(state)

    render_alert(points, state.threshold)
    render_chart(points, state.threshold, tz)
    render_latest(points)
    render_table(points)


if __name__ == "__main__":
    main()
