import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional, List, Dict

from ecoscan.orchestrator.contracts import ClassificationResult
from ecoscan.orchestrator.errors import SessionBusy

MAX_LOGS = 200
MAX_SESSIONS = 256


@dataclass
class ScanSession:
    session_id: str
    busy: bool = False          # one scan in flight per session
    cancelled: bool = False     # caller went away; discard the in-flight result
    scans: int = 0


@dataclass
class StatusStore:
    last_error: Optional[str] = None
    last_result: Optional[ClassificationResult] = None
    logs: List[str] = field(default_factory=list)
    sessions: Dict[str, ScanSession] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def log(self, msg: str):
        with self._lock:
            self.logs.append(msg)
            if len(self.logs) > MAX_LOGS:
                self.logs = self.logs[-MAX_LOGS:]

    def start_session(self, session_id: Optional[str] = None) -> ScanSession:
        sid = session_id or str(uuid.uuid4())[:8]
        with self._lock:
            return self._session(sid)

    def _session(self, sid: str) -> ScanSession:
        # caller holds _lock
        session = self.sessions.get(sid)
        if session is None:
            session = self.sessions[sid] = ScanSession(session_id=sid)
            self._evict_idle_sessions(keep=sid)
        return session

    def _evict_idle_sessions(self, keep: str):
        # oldest idle sessions go first; in-flight ones are never dropped
        excess = len(self.sessions) - MAX_SESSIONS
        if excess <= 0:
            return
        idle = [sid for sid, s in self.sessions.items() if not s.busy and sid != keep]
        for sid in idle[:excess]:
            del self.sessions[sid]

    def active_sessions(self) -> int:
        with self._lock:
            return sum(1 for s in self.sessions.values() if s.busy)

    def begin_scan(self, session_id: str) -> ScanSession:
        with self._lock:
            session = self._session(session_id)
            if session.busy:
                raise SessionBusy()
            session.busy = True
            session.cancelled = False
        return session

    def end_scan(self, session: ScanSession):
        with self._lock:
            session.busy = False
            session.scans += 1

    def cancel_session(self, session_id: str) -> bool:
        """Mark the in-flight scan as abandoned. False if nothing was running."""
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or not session.busy:
                return False
            session.cancelled = True
        self.log(f"session {session_id}: cancel requested")
        return True
