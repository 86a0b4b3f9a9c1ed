"""
CrowdSense - Local people_counter API

FastAPI stand-in for the hosted data source, for local development:
- Accepts POSTed readings from the emulator at /rest/v1/people_counter
- Serves them back via GET /rest/v1/people_counter using the same
  select / order / limit query parameters the dashboard sends
- Keeps only the most recent BUFFER_SIZE readings in memory

Run (dev):
    uvicorn api.api:app --reload --port 8000
"""

import itertools
import os
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

app = FastAPI(title="CrowdSense people_counter API")

TABLE_NAME = "people_counter"
COLUMNS = ("id", "created_at", "people_count")

# -------------------------------------------------------------------
# Data models
# -------------------------------------------------------------------


class ReadingIn(BaseModel):
    people_count: int = Field(..., ge=0, description="Number of people counted")
    created_at: Optional[datetime] = Field(
        None, description="Timestamp in ISO format; defaults to now (UTC)"
    )


class ReadingOut(BaseModel):
    id: str
    created_at: datetime
    people_count: int


# -------------------------------------------------------------------
# In-memory storage
# -------------------------------------------------------------------

BUFFER_SIZE = int(os.getenv("BUFFER_SIZE", "2000"))
READINGS: Deque[Dict] = deque(maxlen=BUFFER_SIZE)
_ids = itertools.count(1)


# -------------------------------------------------------------------
# Helper functions
# -------------------------------------------------------------------


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_select(select: str) -> List[str]:
    if select.strip() == "*":
        return list(COLUMNS)
    cols = [c.strip() for c in select.split(",") if c.strip()]
    unknown = [c for c in cols if c not in COLUMNS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown columns: {', '.join(unknown)}")
    return cols


ORDER_KEYS = {
    "created_at": lambda r: r["created_at"],
    "id": lambda r: int(r["id"]),
}


def _parse_order(order: str) -> List[Tuple[str, bool]]:
    """Parse `col.dir[,col.dir...]` into (column, descending) pairs."""
    terms = []
    for term in order.split(","):
        column, _, direction = term.strip().partition(".")
        if column not in ORDER_KEYS or direction not in ("", "asc", "desc"):
            raise HTTPException(status_code=400, detail=f"Unsupported order {order!r}")
        terms.append((column, direction == "desc"))
    return terms


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------


@app.get("/")
def root():
    return {"status": "ok", "table": TABLE_NAME, "rows": len(READINGS)}


@app.post(f"/rest/v1/{TABLE_NAME}", response_model=ReadingOut, status_code=201)
def insert_reading(body: ReadingIn):
    created_at = body.created_at or _now_utc()
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    row = {
        "id": str(next(_ids)),
        "created_at": created_at,
        "people_count": body.people_count,
    }
    READINGS.append(row)
    return row


@app.get(f"/rest/v1/{TABLE_NAME}")
def select_readings(
    select: str = "*",
    order: str = "created_at.asc",
    limit: Optional[int] = Query(None),
):
    if limit is not None and limit <= 0:
        raise HTTPException(status_code=400, detail="limit must be > 0")
    cols = _parse_select(select)
    terms = _parse_order(order)

    # stable sorts, least significant term first
    rows = list(READINGS)
    for column, descending in reversed(terms):
        rows.sort(key=ORDER_KEYS[column], reverse=descending)
    if limit is not None:
        rows = rows[:limit]
    return [
        {c: (r[c].isoformat() if c == "created_at" else r[c]) for c in cols}
        for r in rows
    ]
