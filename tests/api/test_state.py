from datetime import datetime, timedelta

from bank_recon.api.state import SessionManager


class TestSessionManager:

    def test_same_id_same_state(self):
        manager = SessionManager()
        first = manager.get_or_create_session("a")
        first.clients = ["marker"]
        assert manager.get_or_create_session("a").clients == ["marker"]
        assert len(manager) == 1

    def test_idle_sessions_expire_on_new_session(self):
        manager = SessionManager(session_timeout_hours=1)
        stale = manager.get_or_create_session("old")
        stale.last_accessed = datetime.now() - timedelta(hours=2)

        manager.get_or_create_session("new")

        assert len(manager) == 1
        assert manager.get_or_create_session("old") is not stale

    def test_generated_ids_are_unique(self):
        assert SessionManager.generate_session_id() != SessionManager.generate_session_id()
