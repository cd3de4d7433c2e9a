"""Periodic refresh of execution telemetry while a viewer is open."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Generic, TypeVar

from flowkit.analysis.resolver import ExecutionState
from flowkit.models.execution import FlowExecution
from flowkit.sdk.client import FlowsClient
from flowkit.sdk.tracker import ExecutionTracker

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

T = TypeVar("T")


def default_poll_interval() -> float:
    return float(os.getenv("EXECUTION_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))


class ExecutionPoller(Generic[T]):
    """Calls ``fetch`` every ``interval`` seconds on a background thread.

    Each result is handed to ``on_result`` and kept as ``latest``. Fetch
    errors go to ``on_error`` (or the log) and polling carries on. A result
    that arrives after ``stop()`` is dropped, so whoever opened the poller
    stops receiving updates the moment it closes it.

    Usage:
        with ExecutionPoller.for_detail(client, 42, 7, render) as poller:
            ...  # render() is called every two seconds
    """

    def __init__(
        self,
        fetch: Callable[[], T],
        on_result: Callable[[T], None] | None = None,
        interval: float | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.fetch = fetch
        self.on_result = on_result
        self.on_error = on_error
        self.interval = interval if interval is not None else default_poll_interval()
        self.latest: T | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def for_detail(
        cls,
        client: FlowsClient,
        flow_id: int,
        execution_id: int,
        on_result: Callable[[FlowExecution], None] | None = None,
        **kwargs,
    ) -> ExecutionPoller[FlowExecution]:
        return cls(lambda: client.get_execution_detail(flow_id, execution_id), on_result, **kwargs)

    @classmethod
    def for_state(
        cls,
        tracker: ExecutionTracker,
        flow_id: int,
        on_result: Callable[[ExecutionState], None] | None = None,
        **kwargs,
    ) -> ExecutionPoller[ExecutionState]:
        return cls(lambda: tracker.fetch_state(flow_id), on_result, **kwargs)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> T | None:
        """Run one fetch and dispatch its result unless stopped meanwhile."""
        return self._poll(self._stop_event)

    def _poll(self, stop_event: threading.Event) -> T | None:
        try:
            result = self.fetch()
        except Exception as e:
            if self.on_error is not None:
                self.on_error(e)
            else:
                logger.warning("execution poll failed: %s", e)
            return None

        if stop_event.is_set():
            logger.debug("discarding poll result that arrived after stop")
            return None

        self.latest = result
        if self.on_result is not None:
            self.on_result(result)
        return result

    def _run(self, stop_event: threading.Event) -> None:
        # a thread orphaned by stop(timeout) still sees its own event set
        while not stop_event.is_set():
            self._poll(stop_event)
            stop_event.wait(self.interval)

    def start(self) -> ExecutionPoller[T]:
        if self.is_running:
            return self
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), daemon=True
        )
        self._thread.start()
        return self

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def __enter__(self) -> ExecutionPoller[T]:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
