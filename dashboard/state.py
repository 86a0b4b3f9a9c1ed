# dashboard/state.py
#
# Per-session view state. One instance lives in st.session_state for the
# lifetime of a browser session and is handed to the render helpers.

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from dashboard.data_source import Reading

VIEW_STATE_KEY = "view_state"


@dataclass
class ViewState:
    readings: List[Reading] = field(default_factory=list)
    threshold: int = 10
    polling_enabled: bool = False
    last_refreshed: Optional[datetime] = None
    refreshing: bool = False
    # last fetch error message, cleared by the next successful refresh
    last_error: Optional[str] = None
    gate_error: Optional[str] = None
    rejected_rows: int = 0
