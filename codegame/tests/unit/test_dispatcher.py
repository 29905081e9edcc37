import asyncio
import logging

from codegame.messaging.dispatcher import EventDispatcher


class TestEventDispatcher:
    def test_delivers_payload_to_listener(self):
        dispatcher = EventDispatcher()
        received = []
        dispatcher.register("move", lambda data, origin: received.append((data, origin)))

        delivered = dispatcher.dispatch("move", {"x": 1}, "p1")

        assert delivered is True
        assert received == [({"x": 1}, "p1")]

    def test_returns_false_without_listeners(self):
        dispatcher = EventDispatcher()

        assert dispatcher.dispatch("move") is False

    def test_listeners_run_in_registration_order(self):
        dispatcher = EventDispatcher()
        order = []
        dispatcher.register("tick", lambda: order.append("a"))
        dispatcher.register("tick", lambda: order.append("b"))
        dispatcher.register("tick", lambda: order.append("c"))

        dispatcher.dispatch("tick")

        assert order == ["a", "b", "c"]

    def test_only_matching_name_is_invoked(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.register("a", lambda: calls.append("a"))
        dispatcher.register("b", lambda: calls.append("b"))

        dispatcher.dispatch("b")

        assert calls == ["b"]

    def test_once_listener_fires_at_most_once(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.register("tick", lambda: calls.append(1), once=True)

        dispatcher.dispatch("tick")
        dispatcher.dispatch("tick")

        assert calls == [1]
        assert len(dispatcher) == 0

    def test_once_listener_is_removed_before_it_runs(self):
        dispatcher = EventDispatcher()
        calls = []

        def reentrant():
            calls.append(1)
            dispatcher.dispatch("tick")

        dispatcher.register("tick", reentrant, once=True)
        dispatcher.dispatch("tick")

        assert calls == [1]

    def test_remove_stops_delivery(self):
        dispatcher = EventDispatcher()
        calls = []
        listener_id = dispatcher.register("tick", lambda: calls.append(1))

        assert dispatcher.remove(listener_id) is True
        dispatcher.dispatch("tick")

        assert calls == []
        assert not dispatcher.has_listeners("tick")

    def test_remove_unknown_id_returns_false(self):
        dispatcher = EventDispatcher()
        listener_id = dispatcher.register("tick", lambda: None)
        dispatcher.remove(listener_id)

        assert dispatcher.remove(listener_id) is False

    def test_listener_ids_are_unique(self):
        dispatcher = EventDispatcher()

        ids = {dispatcher.register("tick", lambda: None) for _ in range(50)}

        assert len(ids) == 50

    def test_listener_removed_during_dispatch_is_skipped(self):
        dispatcher = EventDispatcher()
        calls = []
        second_id = None

        def first():
            calls.append("first")
            dispatcher.remove(second_id)

        dispatcher.register("tick", first)
        second_id = dispatcher.register("tick", lambda: calls.append("second"))

        dispatcher.dispatch("tick")

        assert calls == ["first"]

    def test_raising_listener_does_not_stop_others(self, caplog):
        dispatcher = EventDispatcher()
        calls = []

        def broken():
            raise RuntimeError("boom")

        dispatcher.register("tick", broken)
        dispatcher.register("tick", lambda: calls.append("after"))

        with caplog.at_level(logging.ERROR):
            dispatcher.dispatch("tick")

        assert calls == ["after"]
        assert "unhandled exception in listener" in caplog.text

    def test_clear_removes_everything(self):
        dispatcher = EventDispatcher()
        dispatcher.register("a", lambda: None)
        dispatcher.register("b", lambda: None)

        dispatcher.clear()

        assert len(dispatcher) == 0
        assert dispatcher.dispatch("a") is False

    async def test_coroutine_listener_runs_as_task(self):
        dispatcher = EventDispatcher()
        done = asyncio.Event()

        async def listener(value):
            done.set()

        dispatcher.register("tick", listener)
        dispatcher.dispatch("tick", 1)

        await asyncio.wait_for(done.wait(), timeout=1)

    async def test_failing_coroutine_listener_is_logged(self, caplog):
        dispatcher = EventDispatcher()

        async def broken():
            raise RuntimeError("boom")

        dispatcher.register("tick", broken)
        with caplog.at_level(logging.ERROR):
            dispatcher.dispatch("tick")
            for _ in range(3):
                await asyncio.sleep(0)

        assert "unhandled exception in listener" in caplog.text
