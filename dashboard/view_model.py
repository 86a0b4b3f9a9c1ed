# dashboard/view_model.py
#
# Pure transformations from validated readings to what the page displays:
#   - display points (one row per reading, chart order)
#   - newest-first table
#   - threshold flag and latest value
#   - human-relative time labels for the table

from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Sequence, Union

import pandas as pd

from dashboard.data_source import Reading

NO_DATA = "N/A"

DISPLAY_COLUMNS = ["id", "time", "value", "timestamp"]

# Largest unit first; months and years use calendar averages
_RELATIVE_UNITS = [
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
]


def local_timezone() -> tzinfo:
    return datetime.now().astimezone().tzinfo


def _empty_points() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "id": pd.Series(dtype=object),
            "time": pd.Series(dtype=object),
            "value": pd.Series(dtype="int64"),
            "timestamp": pd.Series(dtype="datetime64[ns, UTC]"),
        }
    )


def to_display_points(
    readings: Sequence[Reading], tz: Optional[Union[str, tzinfo]] = None
) -> pd.DataFrame:
    """
    Turn readings into chart-ordered display points.

    Row order follows the input. `timestamp` is a UTC instant; `time` is the
    same instant rendered as HH:MM:SS in `tz` (the machine's zone when None).
    """
    if not readings:
        return _empty_points()

    df = pd.DataFrame(
        {
            "id": [r.id for r in readings],
            "value": pd.Series([r.people_count for r in readings], dtype="int64"),
            "timestamp": pd.to_datetime([r.created_at for r in readings], utc=True),
        }
    )
    display_tz = tz if tz is not None else local_timezone()
    df["time"] = df["timestamp"].dt.tz_convert(display_tz).dt.strftime("%H:%M:%S")
    return df[DISPLAY_COLUMNS]


def to_table(points: pd.DataFrame) -> pd.DataFrame:
    """Newest first; equal timestamps keep their chart order."""
    if points.empty:
        return points.copy()
    return points.sort_values("timestamp", ascending=False, kind="stable").reset_index(drop=True)


def is_threshold_exceeded(points: pd.DataFrame, threshold: int) -> bool:
    if points.empty:
        return False
    return bool((points["value"] > threshold).any())


def latest_value(points: pd.DataFrame) -> Union[int, str]:
    """Value of the last point in chart (ascending) order, or NO_DATA."""
    if points.empty:
        return NO_DATA
    return int(points["value"].iloc[-1])


def relative_time(ts: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe `ts` relative to `now`, e.g. "3 minutes ago" or "in 1 hour".

    Counts are truncated to the largest whole unit.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    delta = (now - ts).total_seconds()
    magnitude = abs(delta)
    if magnitude < 1:
        return "just now"

    for unit, seconds in _RELATIVE_UNITS:
        if magnitude >= seconds:
            count = int(magnitude // seconds)
            label = f"{count} {unit}{'' if count == 1 else 's'}"
            return f"{label} ago" if delta > 0 else f"in {label}"
    return "just now"


def relative_times(points: pd.DataFrame, now: Optional[datetime] = None) -> List[str]:
    if now is None:
        now = datetime.now(timezone.utc)
    return [relative_time(ts.to_pydatetime(), now) for ts in points["timestamp"]]
