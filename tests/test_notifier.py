from __future__ import annotations

from pyvehsim.state.events import EngineEvent
from pyvehsim.state.notifier import Notifier


def test_publish_reaches_all_subscribers_in_order() -> None:
    notifier = Notifier()
    seen: list[tuple[str, object]] = []
    notifier.subscribe(EngineEvent.STATE_UPDATE, lambda payload: seen.append(("a", payload)))
    notifier.subscribe(EngineEvent.STATE_UPDATE, lambda payload: seen.append(("b", payload)))

    notifier.publish(EngineEvent.STATE_UPDATE, 1)

    assert seen == [("a", 1), ("b", 1)]


def test_publish_without_subscribers_is_noop() -> None:
    Notifier().publish(EngineEvent.STATE_UPDATE, {"power": 0})


def test_unsubscribe_callable() -> None:
    notifier = Notifier()
    seen: list[object] = []
    unsubscribe = notifier.subscribe(EngineEvent.STATE_UPDATE, seen.append)

    notifier.publish(EngineEvent.STATE_UPDATE, 1)
    unsubscribe()
    notifier.publish(EngineEvent.STATE_UPDATE, 2)

    assert seen == [1]
    assert notifier.subscriber_count(EngineEvent.STATE_UPDATE) == 0


def test_unsubscribe_unknown_callback_is_ignored() -> None:
    notifier = Notifier()
    notifier.unsubscribe(EngineEvent.STATE_UPDATE, print)
    notifier.subscribe(EngineEvent.STATE_UPDATE, len)
    notifier.unsubscribe(EngineEvent.STATE_UPDATE, print)
    assert notifier.subscriber_count(EngineEvent.STATE_UPDATE) == 1


def test_subscriber_may_unsubscribe_during_publish() -> None:
    notifier = Notifier()
    seen: list[str] = []

    def _once(_payload: object) -> None:
        seen.append("once")
        notifier.unsubscribe(EngineEvent.STATE_UPDATE, _once)

    notifier.subscribe(EngineEvent.STATE_UPDATE, _once)
    notifier.subscribe(EngineEvent.STATE_UPDATE, lambda _payload: seen.append("always"))

    notifier.publish(EngineEvent.STATE_UPDATE, None)
    notifier.publish(EngineEvent.STATE_UPDATE, None)

    assert seen == ["once", "always", "always"]


def test_failing_subscriber_is_isolated() -> None:
    notifier = Notifier()
    seen: list[object] = []

    def _boom(_payload: object) -> None:
        raise ValueError("boom")

    notifier.subscribe(EngineEvent.STATE_UPDATE, _boom)
    notifier.subscribe(EngineEvent.STATE_UPDATE, seen.append)

    notifier.publish(EngineEvent.STATE_UPDATE, "x")

    assert seen == ["x"]


def test_event_name_matches_wire_name() -> None:
    assert EngineEvent.STATE_UPDATE == "stateUpdate"
