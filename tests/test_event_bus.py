from voratiq.event_bus import EventBus, RunEvent


def test_event_bus_pub_sub():
    test_bus = EventBus()
    received_events: list[RunEvent] = []

    def dummy_subscriber(event: RunEvent):
        received_events.append(event)

    # Subscribe to the bus
    test_bus.subscribe(dummy_subscriber)

    # Emit an event
    test_bus.emit(
        event_type="stage_completed",
        run_id="run-1",
        agent_id="codex",
        payload={"stage": "invoked"},
    )

    # Verify the event was received and formatted correctly
    assert len(received_events) == 1

    event = received_events[0]
    assert event.event_type == "stage_completed"
    assert event.run_id == "run-1"
    assert event.agent_id == "codex"
    assert event.payload == {"stage": "invoked"}

    # Verify auto-generated fields
    assert event.event_id is not None
    assert isinstance(event.event_id, str)
    assert event.timestamp is not None


def test_failing_subscriber_does_not_stop_others():
    test_bus = EventBus()
    received: list[RunEvent] = []

    def broken(event: RunEvent):
        raise RuntimeError("subscriber bug")

    test_bus.subscribe(broken)
    test_bus.subscribe(received.append)

    test_bus.emit(event_type="agent_started", run_id="run-1")

    assert len(received) == 1
    assert received[0].agent_id is None
    assert received[0].payload == {}
