import logging
import threading
import uuid
from collections import OrderedDict
from typing import Dict, List, Optional

from .models import ChatHistoryEntry, Session

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, history_limit: int = 50, max_sessions: int = 1000):
        self.history_limit = history_limit
        self.max_sessions = max_sessions
        # {session_id: Session}, least recently used first
        self.sessions: Dict[str, Session] = OrderedDict()
        self._busy: set = set()
        self._lock = threading.Lock()

    def get_or_create(self, session_id: Optional[str] = None) -> Session:
        with self._lock:
            if session_id and session_id in self.sessions:
                self.sessions.move_to_end(session_id)
                return self.sessions[session_id]
            sid = session_id or f"session_{uuid.uuid4()}"
            session = Session(session_id=sid)
            self.sessions[sid] = session
            self._evict(keep=sid)
            return session

    def _evict(self, keep: str):
        # Caller holds the lock. Busy sessions and the one just created are never dropped.
        while len(self.sessions) > self.max_sessions:
            idle = next((sid for sid in self.sessions if sid not in self._busy and sid != keep), None)
            if idle is None:
                break
            del self.sessions[idle]
            logger.debug(f"Evicted idle session {idle}")

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def get_history(self, session_id: str) -> List[ChatHistoryEntry]:
        session = self.sessions.get(session_id)
        return list(session.history) if session else []

    def add_interaction(self, session_id: str, role: str, message: str):
        session = self.get_or_create(session_id)
        with self._lock:
            session.history.append(ChatHistoryEntry(role=role, content=message))
            # Keep only the newest entries
            if len(session.history) > self.history_limit:
                del session.history[: len(session.history) - self.history_limit]

    # ---------------------------------------------------------
    # IN-FLIGHT GUARD (one send per session at a time)
    # ---------------------------------------------------------
    def try_acquire(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._busy:
                return False
            self._busy.add(session_id)
            return True

    def release(self, session_id: str):
        with self._lock:
            self._busy.discard(session_id)
