from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional


class SessionState(str, Enum):
    AWAITING_REQUEST = "awaiting_request"
    RUNNING = "running"
    TERMINAL = "terminal"


class SessionOutcome(str, Enum):
    COMPLETED = "completed"
    JOB_ERROR = "job_error"
    JOB_CRASHED = "job_crashed"
    CLIENT_CLOSED = "client_closed"
    # pre-job outcomes
    REJECTED = "rejected"
    CLOSED_BEFORE_REQUEST = "closed_before_request"
    CONNECTION_ERROR = "connection_error"


# A session never re-enters RUNNING once it has left it
SESSION_TRANSITIONS: Dict[SessionState, List[SessionState]] = {
    SessionState.AWAITING_REQUEST: [SessionState.RUNNING, SessionState.TERMINAL],
    SessionState.RUNNING: [SessionState.TERMINAL],
    SessionState.TERMINAL: [],
}


def next_state(current: SessionState) -> Optional[SessionState]:
    options = SESSION_TRANSITIONS.get(current, [])
    return options[0] if options else None


def is_valid_transition(current: SessionState, target: SessionState) -> bool:
    return target in SESSION_TRANSITIONS.get(current, [])
