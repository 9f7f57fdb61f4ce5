"""
Per-visit application state.

A session starts when the app opens and ends when the user leaves or signs
out. It holds whether the flash popup was already shown and the gate for
the session's searches.

Sessions are touched only from the event loop, never from worker threads.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class LatestRequestGate:
    """
    Hands out increasing request tokens; only the newest token may apply
    its response. An older search finishing late is dropped instead of
    overwriting newer results.
    """

    def __init__(self):
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_latest(self, token: int) -> bool:
        return token == self._latest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionState:
    session_id: str
    user_id: Optional[str] = None
    started_at: datetime = field(default_factory=_utcnow)
    last_seen: datetime = field(default_factory=_utcnow)
    flash_popup_shown: bool = False
    search_gate: LatestRequestGate = field(default_factory=LatestRequestGate)
    last_search: List[Any] = field(default_factory=list)

    def take_flash_popup(self) -> bool:
        """True the first time it is called in this session, False afterwards."""
        if self.flash_popup_shown:
            return False
        self.flash_popup_shown = True
        return True

    def apply_search(self, token: int, results: List[Any]) -> bool:
        if not self.search_gate.is_latest(token):
            logger.debug(f"Dropping stale search {token} (latest {self.search_gate.latest}) in {self.session_id}")
            return False
        self.last_search = results
        return True


class SessionRegistry:
    """
    Live sessions keyed by id.

    Sessions idle for longer than `idle_timeout` are dropped, and when
    `max_sessions` is reached the least recently seen one makes room for a
    new session.
    """

    def __init__(
        self,
        idle_timeout: timedelta = timedelta(hours=2),
        max_sessions: int = 10000,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.idle_timeout = idle_timeout
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: Dict[str, SessionState] = {}

    def _expired(self, state: SessionState, now: datetime) -> bool:
        return now - state.last_seen > self.idle_timeout

    def evict_idle(self) -> int:
        now = self._clock()
        idle = [sid for sid, state in self._sessions.items() if self._expired(state, now)]
        for session_id in idle:
            del self._sessions[session_id]
        if idle:
            logger.info(f"Evicted {len(idle)} idle sessions")
        return len(idle)

    def start(self, user_id: Optional[str] = None) -> SessionState:
        self.evict_idle()
        while len(self._sessions) >= self.max_sessions:
            oldest = min(self._sessions.values(), key=lambda s: s.last_seen)
            del self._sessions[oldest.session_id]
            logger.warning(f"Session limit reached, dropped {oldest.session_id}")

        now = self._clock()
        state = SessionState(session_id=uuid.uuid4().hex, user_id=user_id, started_at=now, last_seen=now)
        self._sessions[state.session_id] = state
        logger.info(f"Session started: {state.session_id}")
        return state

    def get(self, session_id: str) -> Optional[SessionState]:
        """The live session, refreshing its idle timer; None if unknown or expired."""
        state = self._sessions.get(session_id)
        if state is None:
            return None
        now = self._clock()
        if self._expired(state, now):
            del self._sessions[session_id]
            logger.info(f"Session expired: {session_id}")
            return None
        state.last_seen = now
        return state

    def end(self, session_id: str) -> bool:
        state = self._sessions.pop(session_id, None)
        if state is not None:
            logger.info(f"Session ended: {session_id}")
        return state is not None

    def __len__(self) -> int:
        return len(self._sessions)
