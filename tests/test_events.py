from adaptive_quality.events import DECISION_CHANGED, Event, EventBus


def test_publish_delivers_payload_to_subscribers():
    bus = EventBus()
    seen: list[Event] = []
    bus.subscribe(DECISION_CHANGED, seen.append)

    bus.publish(DECISION_CHANGED, {"decision": "x"})
    bus.publish("other", {"decision": "y"})

    assert [e.payload["decision"] for e in seen] == ["x"]
    assert seen[0].name == DECISION_CHANGED


def test_unsubscribe_is_idempotent():
    bus = EventBus()
    unsubscribe = bus.subscribe(DECISION_CHANGED, lambda event: None)
    assert bus.subscriber_count(DECISION_CHANGED) == 1
    unsubscribe()
    unsubscribe()
    assert bus.subscriber_count(DECISION_CHANGED) == 0


def test_handler_may_unsubscribe_while_publishing():
    bus = EventBus()
    calls: list[str] = []

    def once(event: Event) -> None:
        calls.append("once")
        unsubscribe()

    unsubscribe = bus.subscribe(DECISION_CHANGED, once)
    bus.subscribe(DECISION_CHANGED, lambda event: calls.append("always"))

    bus.publish(DECISION_CHANGED, {})
    bus.publish(DECISION_CHANGED, {})
    assert calls == ["once", "always", "always"]


def test_failing_handler_is_isolated():
    bus = EventBus()
    seen: list[Event] = []

    def broken(event: Event) -> None:
        raise RuntimeError("boom")

    bus.subscribe(DECISION_CHANGED, broken)
    bus.subscribe(DECISION_CHANGED, seen.append)
    bus.publish(DECISION_CHANGED, {})
    assert len(seen) == 1
