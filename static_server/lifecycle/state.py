"""Shutdown state shared by the signal handlers, accept loop and workers."""

import logging
import threading
import time

from static_server.domain.connection_id import ConnectionLoggerAdapter

LIFECYCLE_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("static_server.lifecycle"), {}
)


class ServerLifecycle:
    """Draining flag plus the worker threads started in threaded mode.

    Sequential mode never starts a thread, so there is nothing to track and
    ``wait_for_workers`` returns immediately.
    """

    def __init__(self) -> None:
        self._draining = threading.Event()
        self._lock = threading.Lock()
        self._workers: list[threading.Thread] = []

    def is_draining(self) -> bool:
        return self._draining.is_set()

    def begin_draining(self) -> None:
        """Stop accepting connections; safe to call from a signal handler."""
        self._draining.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown", extra={"event": "shutdown_requested"}
        )

    def track_worker(self, thread: threading.Thread) -> None:
        """Remember a started worker, forgetting those that already finished."""
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(thread)

    def wait_for_workers(self, timeout: float) -> bool:
        """Join tracked workers, sharing ``timeout`` seconds between them.

        Returns False when some worker was still running at the deadline.
        """
        with self._lock:
            workers, self._workers = self._workers, []

        deadline = time.monotonic() + timeout
        for worker in workers:
            worker.join(max(0.0, deadline - time.monotonic()))

        stragglers = [w for w in workers if w.is_alive()]
        if stragglers:
            LIFECYCLE_LOGGER.warning(
                "Shutdown timeout exceeded",
                extra={
                    "event": "shutdown_timeout",
                    "remaining_workers": len(stragglers),
                },
            )
            return False
        return True
