# dashboard/polling.py
#
# Fixed-interval polling of the people counter table.
#
# The controller is a two-state machine (IDLE / POLLING). In the Streamlit
# page the timer itself is streamlit-autorefresh, which reruns the script;
# every rerun calls tick(), and the controller decides whether a fetch is
# due. Refreshes are guarded so that only one is in flight at a time, and
# each carries a generation token: results that come back after disable(),
# teardown() or a newer refresh are dropped instead of applied.

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from dashboard.data_source import DataFetcher, FetchFailure, FetchResult
from dashboard.state import ViewState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0

# A rerun this close to the due time (as a fraction of the interval) counts
# as on time. Browser timer reruns land a few ms either side of the mark.
DUE_TOLERANCE = 0.2


class PollingState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PollingController:
    def __init__(
        self,
        fetcher: DataFetcher,
        state: ViewState,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.fetcher = fetcher
        self.state = state
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._wall_clock = wall_clock

        self._mode = PollingState.IDLE
        self._next_due: Optional[float] = None
        self._generation = 0
        self._in_flight: Optional[int] = None
        self._torn_down = False

    # -------------------------------------------------
    # State machine
    # -------------------------------------------------

    @property
    def mode(self) -> PollingState:
        return self._mode

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    def enable(self) -> None:
        """IDLE -> POLLING. The first fetch is due immediately."""
        if self._torn_down:
            raise RuntimeError("polling controller has been torn down")
        if self._mode is PollingState.POLLING:
            return
        self._mode = PollingState.POLLING
        self._next_due = self._clock()
        self.state.polling_enabled = True
        logger.info("Polling enabled (every %.1fs)", self.interval_seconds)

    def disable(self) -> None:
        """POLLING -> IDLE. A fetch still running will not be applied."""
        if self._mode is PollingState.IDLE:
            return
        self._mode = PollingState.IDLE
        self._next_due = None
        self._in_flight = None
        self.state.polling_enabled = False
        self.state.refreshing = False
        logger.info("Polling disabled")

    def teardown(self) -> None:
        """Stop for good; late results are ignored from here on."""
        self.disable()
        self._in_flight = None
        self._torn_down = True
        logger.info("Polling controller torn down")

    # -------------------------------------------------
    # Timer
    # -------------------------------------------------

    def is_due(self) -> bool:
        if self._torn_down or self._mode is not PollingState.POLLING:
            return False
        if self._in_flight is not None:
            return False
        if self._next_due is None:
            return False
        return self._clock() >= self._next_due - self.interval_seconds * DUE_TOLERANCE

    def tick(self) -> bool:
        """Run a refresh if one is due. Returns True when a fetch was attempted."""
        if not self.is_due():
            return False
        self._advance_schedule()
        self.refresh()
        return True

    def _advance_schedule(self) -> None:
        # Step from the previous due time so the period does not drift with
        # rerun latency; skip whole periods missed while nothing ran.
        now = self._clock()
        self._next_due += self.interval_seconds
        while self._next_due <= now:
            self._next_due += self.interval_seconds

    # -------------------------------------------------
    # Refresh
    # -------------------------------------------------

    def begin_refresh(self) -> Optional[int]:
        """Claim the in-flight slot. Returns a token, or None if busy or torn down."""
        if self._torn_down:
            return None
        if self._in_flight is not None:
            logger.debug("Skipping refresh; previous fetch still in flight")
            return None
        self._generation += 1
        self._in_flight = self._generation
        self.state.refreshing = True
        return self._generation

    def _accepts(self, token: int) -> bool:
        return not self._torn_down and token == self._in_flight

    def _release(self) -> None:
        self._in_flight = None
        self.state.refreshing = False

    def complete_refresh(self, token: int, result: FetchResult) -> bool:
        if not self._accepts(token):
            logger.debug("Discarding stale fetch result (token %d)", token)
            return False
        self.state.readings = list(result.readings)
        self.state.rejected_rows = len(result.rejected)
        self.state.last_refreshed = self._wall_clock()
        self.state.last_error = None
        self._release()
        logger.debug("Applied %d readings", len(result.readings))
        return True

    def fail_refresh(self, token: int, exc: Exception) -> bool:
        if not self._accepts(token):
            logger.debug("Discarding stale fetch failure (token %d): %s", token, exc)
            return False
        logger.error("Fetch failed: %s", exc)
        self.state.last_error = str(exc)
        self._release()
        return True

    def refresh(self) -> bool:
        """Fetch once now. Returns True when new readings were applied."""
        token = self.begin_refresh()
        if token is None:
            return False
        try:
            result = self.fetcher.fetch()
        except FetchFailure as exc:
            self.fail_refresh(token, exc)
            return False
        except Exception:
            if self._accepts(token):
                self._release()
            raise
        return self.complete_refresh(token, result)
