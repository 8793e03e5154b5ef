import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from event_bus import BEFORE_SAVE, EventBus, EventValidationError, make_event


class TestEventBus(unittest.TestCase):
    def test_handlers_called_in_order(self) -> None:
        bus = EventBus()
        calls = []

        def h1(evt) -> None:
            calls.append("h1")

        def h2(evt) -> None:
            calls.append("h2")

        bus.subscribe("order.confirmed", h1)
        bus.subscribe("order.confirmed", h2)
        bus.broadcast("order.confirmed", {"id": 1})
        self.assertEqual(calls, ["h1", "h2"])

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        calls = []

        def h1(evt) -> None:
            calls.append("h1")

        bus.subscribe("order.confirmed", h1)
        removed = bus.unsubscribe("order.confirmed", h1)
        self.assertTrue(removed)
        self.assertFalse(bus.unsubscribe("order.confirmed", h1))
        bus.broadcast("order.confirmed")
        self.assertEqual(calls, [])

    def test_subscribe_returns_remover(self) -> None:
        bus = EventBus()
        calls = []
        remove = bus.subscribe("x", lambda evt: calls.append(evt.payload))
        bus.broadcast("x", 1)
        self.assertTrue(remove())
        bus.broadcast("x", 2)
        self.assertEqual(calls, [1])

    def test_broadcast_reaches_children(self) -> None:
        parent = EventBus()
        child = EventBus(parent)
        seen = []
        child.subscribe("refresh", lambda evt: seen.append(evt.name))
        parent.broadcast("refresh")
        child.broadcast("refresh")
        self.assertEqual(seen, ["refresh", "refresh"])
        parent.detach(child)
        parent.broadcast("refresh")
        self.assertEqual(len(seen), 2)

    def test_prevent_default_is_visible_to_publisher(self) -> None:
        bus = EventBus()
        bus.subscribe(BEFORE_SAVE, lambda evt: evt.prevent_default("Fix the form"))
        event = bus.broadcast(BEFORE_SAVE)
        self.assertTrue(event.default_prevented)
        self.assertEqual(event.error, "Fix the form")

    def test_failing_handler_does_not_stop_broadcast(self) -> None:
        bus = EventBus()
        calls = []

        def boom(evt) -> None:
            raise RuntimeError("boom")

        bus.subscribe("x", boom)
        bus.subscribe("x", lambda evt: calls.append("after"))
        with self.assertLogs("formact.events", level="ERROR"):
            bus.broadcast("x")
        self.assertEqual(calls, ["after"])

    def test_invalid_event_name(self) -> None:
        with self.assertRaises(EventValidationError):
            make_event("")
        with self.assertRaises(EventValidationError):
            EventBus().broadcast(None)


if __name__ == "__main__":
    unittest.main()
