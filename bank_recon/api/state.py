import uuid
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from bank_recon.common.logging_config import get_logger
from bank_recon.common.models import Client, CompanyInfo, ExistingTransaction, ImportResult

logger = get_logger("api.state")


# Session-Based State Management
# Each session holds the reference data it uploaded and its last import
class AppState:
    def __init__(self):
        self.clients: List[Client] = []
        self.transactions: List[ExistingTransaction] = []
        self.company: Optional[CompanyInfo] = None
        self.last_result: Optional[ImportResult] = None
        self.last_accessed = datetime.now()

    def touch(self):
        """Update last accessed time"""
        self.last_accessed = datetime.now()


class SessionManager:
    """Manages multiple sessions; idle sessions expire when a new one is opened"""

    def __init__(self, session_timeout_hours: int = 4):
        self._sessions: Dict[str, AppState] = {}
        self._lock = threading.Lock()
        self.session_timeout = timedelta(hours=session_timeout_hours)

    def get_or_create_session(self, session_id: str) -> AppState:
        """Get existing session or create a new one"""
        with self._lock:
            if session_id not in self._sessions:
                expired = self._expire_inactive()
                if expired:
                    logger.info("Expired inactive sessions.", count=expired)
                self._sessions[session_id] = AppState()

            state = self._sessions[session_id]
            state.touch()
            return state

    def _expire_inactive(self) -> int:
        """Remove sessions not accessed within the timeout. Caller holds the lock."""
        now = datetime.now()
        inactive_sessions = [
            sid for sid, state in self._sessions.items()
            if now - state.last_accessed > self.session_timeout
        ]
        for sid in inactive_sessions:
            del self._sessions[sid]
        return len(inactive_sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    @staticmethod
    def generate_session_id() -> str:
        return str(uuid.uuid4())


def get_session_state(request) -> AppState:
    """
    Session state for a request; the middleware puts the session id on
    ``request.state`` and the manager on ``app.state``.
    """
    manager: SessionManager = request.app.state.sessions
    session_id = getattr(request.state, "session_id", None)
    if not session_id:
        logger.warning("No session_id found in request.state, creating new session")
        session_id = manager.generate_session_id()
    return manager.get_or_create_session(session_id)
