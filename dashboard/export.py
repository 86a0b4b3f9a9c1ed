# dashboard/export.py
#
# CSV export of the chart-ordered display points.

import csv
from datetime import date
from typing import Optional

import pandas as pd

EXPORT_HEADER = ["People Count", "Timestamp (ISO)"]
EXPORT_MIME = "text/csv;charset=utf-8"


def iso_millis(ts: pd.Timestamp) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    utc = ts.tz_convert("UTC") if ts.tzinfo is not None else ts.tz_localize("UTC")
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_csv(points: pd.DataFrame) -> str:
    """
    Render points as CSV: a header row, then one row per point in the order
    given. Every field is double-quoted and rows are joined by "\\n".
    """
    export = pd.DataFrame(
        {
            EXPORT_HEADER[0]: [int(v) for v in points["value"]],
            EXPORT_HEADER[1]: [iso_millis(ts) for ts in points["timestamp"]],
        }
    )
    text = export.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return text.rstrip("\n")


def export_filename(today: Optional[date] = None) -> str:
    if today is None:
        today = date.today()
    return f"people_counter_export_{today.isoformat()}.csv"
