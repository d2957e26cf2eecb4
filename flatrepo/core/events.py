"""
Change notification bridge.

Subscribes to the backing store's raw change feed and turns every batch of
events into at most one call of a single registered "changed" callback.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Iterable, Optional

from flatrepo.backend import Event, EventType, NodeType, Session, StoreError

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]

OBSERVED_EVENTS = (
    EventType.PROPERTY_ADDED
    | EventType.PROPERTY_CHANGED
    | EventType.PROPERTY_REMOVED
    | EventType.NODE_REMOVED
)


class ChangeEventBridge:
    """Coalesces raw store events into single change notifications."""

    def __init__(self, listener_timeout: float = 5.0, event_types: EventType = OBSERVED_EVENTS):
        self.listener_timeout = listener_timeout
        self.event_types = event_types
        self._listener: Optional[ChangeListener] = None
        self._session: Optional[Session] = None
        self._closed = False
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        # At most one listener call queued or running
        self._pending: Optional[Future] = None

    @property
    def is_listening(self) -> bool:
        return self._session is not None

    def activate(self, session: Session) -> None:
        """
        Register with the session's observation manager.

        Raises:
            RuntimeError: if the bridge was already deactivated
            StoreError: if the registration fails
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Change event bridge has been deactivated")
            if self._session is not None:
                logger.debug("Change event bridge already listening; skipping activate")
                return
            session.observation_manager.add_event_listener(
                self.on_event,
                self.event_types,
                "/",
                True,
                [NodeType.COMMON_ENTITY],
            )
            self._session = session
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="flatrepo-listener")
        logger.info("Change event bridge listening", extra={"component": "events"})

    def set_listener(self, listener: Optional[ChangeListener]) -> None:
        """Register the single change callback, replacing any previous one. None clears it."""
        with self._lock:
            self._listener = listener

    def on_event(self, events: Iterable[Event]) -> None:
        """Handle one batch delivered by the store's dispatch thread."""
        if not any(event.type & self.event_types for event in events):
            return

        with self._lock:
            listener = self._listener
            executor = self._executor
            if listener is None or executor is None:
                return
            if self._pending is not None and not self._pending.done():
                logger.debug(
                    "Change notification already pending; coalescing batch",
                    extra={"component": "events"},
                )
                return
            try:
                future = executor.submit(listener)
            except RuntimeError as e:
                # Executor shut down by a concurrent deactivate
                logger.debug(f"Dropping change notification: {e}")
                return
            self._pending = future

        try:
            future.result(timeout=self.listener_timeout)
        except FutureTimeoutError:
            logger.warning(
                f"Change listener did not return within {self.listener_timeout}s; continuing without it"
            )
        except Exception:
            logger.error("onEvent", exc_info=True)

    def deactivate(self) -> None:
        """Clear the listener and unregister from the store. Safe to call repeatedly."""
        with self._lock:
            self._listener = None
            session, self._session = self._session, None
            executor, self._executor = self._executor, None
            self._pending = None
            self._closed = True

        if executor is not None:
            executor.shutdown(wait=False)

        if session is None:
            return
        try:
            session.observation_manager.remove_event_listener(self.on_event)
        except StoreError as e:
            logger.debug(f"release: {e}")
        logger.info("Change event bridge stopped", extra={"component": "events"})
