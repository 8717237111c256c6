from hermes.api.state.startup import SessionEventLog


def test_events_are_recorded_with_details():
    log = SessionEventLog()
    event = log.record("start", "session_started", mode="simulate")
    assert event["details"] == {"mode": "simulate"}
    assert "details" not in log.record("stop", "session_stopped")
    assert [e["kind"] for e in log.recent()] == ["start", "stop"]


def test_log_is_bounded():
    log = SessionEventLog(maxlen=3)
    for i in range(5):
        log.record("tick", str(i))
    assert [e["message"] for e in log.recent()] == ["2", "3", "4"]
    assert [e["message"] for e in log.recent(1)] == ["4"]
    assert log.recent(0) == []
    log.clear()
    assert log.recent() == []
