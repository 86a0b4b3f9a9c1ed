# dashboard/data_source.py
#
# Data access for the people counter table.
#
# Pulls the most recent readings over the PostgREST-style query interface
# (the one Supabase exposes), validates every row, and hands back readings
# in ascending created_at order.

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dashboard.config import ORDER_COLUMN, SELECT_COLUMNS, TABLE_NAME, TIEBREAK_COLUMN

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Errors
# -------------------------------------------------


class FetchFailure(Exception):
    """The data source could not be reached or answered with something unusable."""


class ParseFailure(ValueError):
    """A single row failed validation and was left out of the batch."""

    def __init__(self, row: Any, reason: str) -> None:
        super().__init__(reason)
        self.row = row
        self.reason = reason


# -------------------------------------------------
# Data models
# -------------------------------------------------


class Reading(BaseModel):
    """One people-count observation as stored in the remote table."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Row identifier (stringified)")
    created_at: datetime = Field(..., description="Creation time, ISO-8601")
    people_count: int = Field(..., ge=0, strict=True)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or value == "":
            raise ValueError("id is required")
        if isinstance(value, (int, str)):
            return str(value)
        return value

    @field_validator("created_at", mode="before")
    @classmethod
    def _require_iso_string(cls, value: Any) -> Any:
        # Epoch numbers are not ISO-8601 and would parse as 1970
        if isinstance(value, (str, datetime)):
            return value
        raise ValueError("created_at must be an ISO-8601 string")

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC so every reading is comparable
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


@dataclass
class FetchResult:
    readings: List[Reading] = field(default_factory=list)
    rejected: List[ParseFailure] = field(default_factory=list)


def parse_readings(rows: Iterable[Any]) -> Tuple[List[Reading], List[ParseFailure]]:
    """
    Validate raw rows into Reading objects.

    Invalid rows are skipped and returned as ParseFailure instances so the
    caller can report them; valid rows keep their input order.
    """
    readings: List[Reading] = []
    rejected: List[ParseFailure] = []
    for row in rows:
        if not isinstance(row, dict):
            rejected.append(ParseFailure(row, "row is not an object"))
            continue
        try:
            readings.append(Reading.model_validate(row))
        except ValidationError as exc:
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            rejected.append(ParseFailure(row, reason))
    for failure in rejected:
        logger.warning("Rejected people_counter row %r: %s", failure.row, failure.reason)
    return readings, rejected


# -------------------------------------------------
# Fetcher
# -------------------------------------------------


class DataFetcher:
    """
    Read-only client for the people_counter table.

    With a row cap the newest `row_cap` rows are requested (descending) and
    reversed locally; without one the whole table is requested ascending.
    Either way `fetch()` returns readings oldest-first.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        row_cap: Optional[int] = 100,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.row_cap = row_cap
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.base_url}/{TABLE_NAME}"

    def build_params(self) -> Dict[str, str]:
        params = {"select": ",".join(SELECT_COLUMNS)}
        if self.row_cap is None:
            params["order"] = f"{ORDER_COLUMN}.asc,{TIEBREAK_COLUMN}.asc"
        else:
            params["order"] = f"{ORDER_COLUMN}.desc,{TIEBREAK_COLUMN}.desc"
            params["limit"] = str(self.row_cap)
        return params

    def build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def fetch(self) -> FetchResult:
        try:
            resp = self.session.get(
                self.url,
                params=self.build_params(),
                headers=self.build_headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FetchFailure(f"Error calling people_counter API: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchFailure("people_counter API returned a non-JSON payload") from exc

        if not isinstance(data, list):
            raise FetchFailure(
                f"people_counter API returned {type(data).__name__}, expected a list of rows"
            )

        readings, rejected = parse_readings(data)
        if self.row_cap is not None:
            readings.reverse()
        logger.debug("Fetched %d readings (%d rejected)", len(readings), len(rejected))
        return FetchResult(readings=readings, rejected=rejected)
