"""Tests for the event broadcast hub."""

import threading

import pytest

from grid_swarm.hub import EventBroadcastHub
from grid_swarm.schemas import OrchestratorStatus, Severity, StageEvent


def _event(code: str, severity: Severity = Severity.INFO) -> StageEvent:
    return StageEvent(source_stage="WA", target_stage="LF", short_code=code, severity=severity)


class TestEventLog:
    def test_ring_buffer_keeps_most_recent_k_in_order(self):
        hub = EventBroadcastHub(capacity=10)
        for i in range(15):
            hub.publish(_event(f"E{i}"))
        codes = [e.short_code for e in hub.current_log()]
        assert codes == [f"E{i}" for i in range(5, 15)]

    def test_publish_notifies_full_snapshot(self):
        hub = EventBroadcastHub(capacity=3)
        snapshots = []
        hub.subscribe_log(snapshots.append)
        hub.publish(_event("A"))
        hub.publish(_event("B"))
        assert [[e.short_code for e in s] for s in snapshots] == [[], ["A"], ["A", "B"]]

    def test_subscribe_log_delivers_current_snapshot(self):
        hub = EventBroadcastHub()
        hub.publish(_event("A"))
        received = []
        hub.subscribe_log(received.append)
        assert [e.short_code for e in received[0]] == ["A"]

    def test_current_log_is_a_copy(self):
        hub = EventBroadcastHub()
        hub.publish(_event("A"))
        snapshot = hub.current_log()
        snapshot.clear()
        assert len(hub.current_log()) == 1

    def test_events_are_immutable(self):
        event = _event("A")
        with pytest.raises(Exception):
            event.short_code = "B"

    def test_invalid_capacity_rejected(self):
        with pytest.raises(ValueError):
            EventBroadcastHub(capacity=0)


class TestStatus:
    def test_initial_status_is_idle_and_delivered_on_subscribe(self):
        hub = EventBroadcastHub()
        seen = []
        hub.subscribe_status(seen.append)
        assert seen == [OrchestratorStatus.IDLE]

    def test_unchanged_status_does_not_notify(self):
        hub = EventBroadcastHub()
        seen = []
        hub.subscribe_status(seen.append)
        assert hub.set_status(OrchestratorStatus.RUNNING) is True
        assert hub.set_status(OrchestratorStatus.RUNNING) is False
        hub.set_status(OrchestratorStatus.ERROR)
        assert seen == [OrchestratorStatus.IDLE, OrchestratorStatus.RUNNING, OrchestratorStatus.ERROR]

    def test_unsubscribe_stops_delivery(self):
        hub = EventBroadcastHub()
        seen = []
        unsubscribe = hub.subscribe_status(seen.append)
        unsubscribe()
        unsubscribe()  # idempotent
        hub.set_status(OrchestratorStatus.RUNNING)
        assert seen == [OrchestratorStatus.IDLE]
        assert hub.listener_count() == 0


class TestDispatchSafety:
    def test_unsubscribe_during_dispatch_does_not_skip_others(self):
        hub = EventBroadcastHub()
        calls = []
        handles = {}

        def first(snapshot):
            calls.append("first")
            if snapshot:
                handles["first"]()

        def second(snapshot):
            calls.append("second")

        handles["first"] = hub.subscribe_log(first)
        hub.subscribe_log(second)
        calls.clear()

        hub.publish(_event("A"))
        hub.publish(_event("B"))
        assert calls == ["first", "second", "second"]

    def test_failing_listener_does_not_break_others(self):
        hub = EventBroadcastHub()
        seen = []

        def broken(_status):
            raise RuntimeError("ui torn down")

        hub.subscribe_status(broken)
        hub.subscribe_status(seen.append)
        hub.set_status(OrchestratorStatus.RUNNING)
        assert seen[-1] == OrchestratorStatus.RUNNING

    def test_concurrent_subscribe_and_publish(self):
        hub = EventBroadcastHub(capacity=20)
        stop = threading.Event()

        def churn():
            while not stop.is_set():
                hub.subscribe_log(lambda _s: None)()

        worker = threading.Thread(target=churn)
        worker.start()
        try:
            for i in range(200):
                hub.publish(_event(f"E{i}"))
        finally:
            stop.set()
            worker.join()
        assert len(hub.current_log()) == 20
        assert hub.current_log()[-1].short_code == "E199"
