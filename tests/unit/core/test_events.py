"""
Tests for the ChangeEventBridge.

Batches are delivered through InMemoryObservationManager.dispatch(), the
way the store's dispatch thread would deliver them.
"""

import logging
import threading
import time

import pytest

from flatrepo.backend import Event, EventType, NodeType
from flatrepo.core.events import OBSERVED_EVENTS, ChangeEventBridge
from tests.fakes.node_store import InMemorySession


def _batch(count: int, event_type: EventType = EventType.PROPERTY_CHANGED):
    return [Event(event_type, f"/project/{i}", "flat:revision") for i in range(count)]


class Counter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


@pytest.fixture()
def bridge():
    bridge = ChangeEventBridge(listener_timeout=1.0)
    yield bridge
    bridge.deactivate()


class TestActivation:
    """Test the registration lifecycle."""

    def test_activate_registers_listener(self, bridge):
        session = InMemorySession()

        bridge.activate(session)

        [registration] = session.observation_manager.registrations
        assert registration["event_types"] == OBSERVED_EVENTS
        assert registration["abs_path"] == "/"
        assert registration["is_deep"] is True
        assert registration["node_type_names"] == [NodeType.COMMON_ENTITY]
        assert bridge.is_listening

    def test_observed_events(self):
        assert EventType.PROPERTY_ADDED in OBSERVED_EVENTS
        assert EventType.PROPERTY_CHANGED in OBSERVED_EVENTS
        assert EventType.PROPERTY_REMOVED in OBSERVED_EVENTS
        assert EventType.NODE_REMOVED in OBSERVED_EVENTS
        assert EventType.NODE_ADDED not in OBSERVED_EVENTS

    def test_activate_twice_registers_once(self, bridge):
        session = InMemorySession()

        bridge.activate(session)
        bridge.activate(session)

        assert len(session.observation_manager.registrations) == 1

    def test_deactivate_unregisters(self, bridge):
        session = InMemorySession()
        bridge.activate(session)

        bridge.deactivate()

        assert session.observation_manager.registrations == []
        assert not bridge.is_listening

    def test_deactivate_is_idempotent(self, bridge):
        session = InMemorySession()
        bridge.activate(session)

        bridge.deactivate()
        bridge.deactivate()

    def test_deactivate_without_activate(self, bridge):
        bridge.deactivate()

    def test_deactivate_after_session_is_gone(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        session.logout()

        bridge.deactivate()

        assert not bridge.is_listening

    def test_reactivate_after_deactivate_fails(self, bridge):
        bridge.activate(InMemorySession())
        bridge.deactivate()

        with pytest.raises(RuntimeError):
            bridge.activate(InMemorySession())


class TestCoalescing:
    """Test that batches produce at most one notification."""

    def test_batch_of_five_notifies_once(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)

        session.observation_manager.dispatch(_batch(5))

        assert counter.calls == 1

    def test_two_batches_notify_twice(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)

        session.observation_manager.dispatch(_batch(3))
        session.observation_manager.dispatch(_batch(2, EventType.NODE_REMOVED))

        assert counter.calls == 2

    def test_empty_batch_does_not_notify(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)

        bridge.on_event(iter([]))

        assert counter.calls == 0

    def test_unobserved_events_do_not_notify(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)

        bridge.on_event(_batch(4, EventType.NODE_ADDED))

        assert counter.calls == 0

    def test_cleared_listener_gets_nothing(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)
        bridge.set_listener(None)

        session.observation_manager.dispatch(_batch(5))

        assert counter.calls == 0

    def test_listener_is_replaced(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        first, second = Counter(), Counter()
        bridge.set_listener(first)
        bridge.set_listener(second)

        session.observation_manager.dispatch(_batch(2))

        assert first.calls == 0
        assert second.calls == 1

    def test_no_notification_before_activate(self, bridge):
        counter = Counter()
        bridge.set_listener(counter)

        bridge.on_event(_batch(1))

        assert counter.calls == 0

    def test_no_notification_after_deactivate(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        counter = Counter()
        bridge.set_listener(counter)
        bridge.deactivate()

        bridge.on_event(_batch(1))

        assert counter.calls == 0


class TestListenerFailures:
    """Test that listener faults never reach the store."""

    def test_failing_listener_is_logged(self, bridge, caplog):
        session = InMemorySession()
        bridge.activate(session)

        def explode():
            raise ValueError("listener failure")

        bridge.set_listener(explode)

        session.observation_manager.dispatch(_batch(1))

        assert "onEvent" in caplog.text
        assert "listener failure" in caplog.text

    def test_failing_listener_does_not_stop_later_batches(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        calls = []

        def explode():
            calls.append(1)
            raise RuntimeError("always fails")

        bridge.set_listener(explode)

        session.observation_manager.dispatch(_batch(5))
        session.observation_manager.dispatch(_batch(5))
        session.observation_manager.dispatch(_batch(5))

        assert len(calls) == 3
        assert len(session.observation_manager.registrations) == 1

    def test_slow_listener_is_bounded(self, caplog):
        bridge = ChangeEventBridge(listener_timeout=0.1)
        session = InMemorySession()
        bridge.activate(session)
        release = threading.Event()
        bridge.set_listener(lambda: release.wait(5))

        started = time.monotonic()
        session.observation_manager.dispatch(_batch(1))
        elapsed = time.monotonic() - started

        release.set()
        bridge.deactivate()
        assert elapsed < 2
        assert "did not return within" in caplog.text

    def test_listener_runs_off_the_dispatch_thread(self, bridge):
        session = InMemorySession()
        bridge.activate(session)
        threads = []
        bridge.set_listener(lambda: threads.append(threading.current_thread()))

        session.observation_manager.dispatch(_batch(1))

        assert threads and threads[0] is not threading.current_thread()

    def test_hung_listener_keeps_one_call_pending(self, caplog):
        caplog.set_level(logging.DEBUG, logger="flatrepo.core.events")
        bridge = ChangeEventBridge(listener_timeout=0.02)
        session = InMemorySession()
        bridge.activate(session)
        release = threading.Event()
        calls = []

        def hang():
            calls.append(1)
            release.wait(5)

        bridge.set_listener(hang)

        for _ in range(30):
            session.observation_manager.dispatch(_batch(1))
        release.set()
        time.sleep(0.1)

        assert len(calls) == 1
        assert "already pending" in caplog.text

        deadline = time.monotonic() + 2
        while len(calls) < 2 and time.monotonic() < deadline:
            session.observation_manager.dispatch(_batch(1))
            time.sleep(0.01)
        bridge.deactivate()

        assert len(calls) == 2
