import threading

from group_chat.realtime.sessions import Session
from group_chat.realtime.sessions import SessionRegistry


class TestSessionRegistry:
    def test_register_and_count(self):
        registry = SessionRegistry()
        assert registry.register("a") == "a"
        registry.register("b", "bob")
        assert registry.count() == 2
        assert registry.get("b").display_name == "bob"
        assert registry.get("a").display_name is None

    def test_unregister(self):
        registry = SessionRegistry()
        registry.register("a")
        session = registry.unregister("a")
        assert isinstance(session, Session)
        assert registry.count() == 0
        assert registry.unregister("a") is None

    def test_set_display_name(self):
        registry = SessionRegistry()
        registry.register("a")
        assert registry.set_display_name("a", "alice") is True
        assert registry.get("a").display_name == "alice"
        assert registry.set_display_name("ghost", "x") is False

    def test_for_each_visits_sessions_in_registration_order(self):
        registry = SessionRegistry()
        for sid in ("c", "a", "b"):
            registry.register(sid)
        assert registry.for_each(lambda s: s.sid) == ["c", "a", "b"]

    def test_for_each_works_on_a_snapshot(self):
        registry = SessionRegistry()
        registry.register("a")
        registry.register("b")

        def drop_everyone(session):
            registry.unregister("a")
            registry.unregister("b")
            return session.sid

        assert registry.for_each(drop_everyone) == ["a", "b"]
        assert registry.count() == 0

    def test_concurrent_registration_loses_nothing(self):
        registry = SessionRegistry()

        def worker(prefix):
            for i in range(200):
                registry.register(f"{prefix}-{i}")
            for i in range(0, 200, 2):
                registry.unregister(f"{prefix}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.count() == 8 * 100
        assert all(registry.is_registered(f"3-{i}") for i in range(1, 200, 2))
