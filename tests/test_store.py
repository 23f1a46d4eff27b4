from clarity.store import SessionStore

from conftest import T0, FakeClock


class TestSessionStore:
    def test_create_and_get(self, request_details):
        store = SessionStore(clock=FakeClock())
        session = store.create("CA_1", request_details)
        assert store.get("CA_1") is session
        assert session.started_at == T0
        assert "CA_1" in store
        assert len(store) == 1

    def test_get_unknown_returns_none(self):
        assert SessionStore().get("CA_missing") is None

    def test_mutate_returns_fn_result_and_touches(self, request_details):
        clock = FakeClock()
        store = SessionStore(clock=clock)
        store.create("CA_1", request_details)
        clock.advance(30)
        result = store.mutate("CA_1", lambda s: s.call_id.lower())
        assert result == "ca_1"
        assert store.get("CA_1").last_activity == T0 + 30

    def test_mutate_unknown_returns_none(self):
        assert SessionStore().mutate("CA_missing", lambda s: "x") is None

    def test_delete(self, request_details):
        store = SessionStore(clock=FakeClock())
        store.create("CA_1", request_details)
        assert store.delete("CA_1") is not None
        assert store.get("CA_1") is None
        assert store.delete("CA_1") is None

    def test_idle_sessions_evicted(self, request_details):
        clock = FakeClock()
        store = SessionStore(ttl_seconds=600, clock=clock)
        store.create("CA_old", request_details)
        clock.advance(300)
        store.create("CA_new", request_details)
        clock.advance(400)
        assert store.get("CA_old") is None
        assert store.get("CA_new") is not None

    def test_activity_keeps_session_alive(self, request_details):
        clock = FakeClock()
        store = SessionStore(ttl_seconds=600, clock=clock)
        store.create("CA_1", request_details)
        clock.advance(500)
        store.mutate("CA_1", lambda s: None)
        clock.advance(500)
        assert store.get("CA_1") is not None

    def test_zero_ttl_disables_eviction(self, request_details):
        clock = FakeClock()
        store = SessionStore(ttl_seconds=0, clock=clock)
        store.create("CA_1", request_details)
        clock.advance(10 ** 6)
        assert store.evict_expired() == []
        assert store.get("CA_1") is not None
