"""Server lifecycle state management."""

import logging
import threading

from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(logging.getLogger("tinyhttpd.lifecycle"), {})


class ServerLifecycle:
    """Flags shared by the signal handler, the acceptor and the shutdown path.

    The signal handler only posts a shutdown request. The acceptor consumes it
    on its own thread and decides whether the server actually stops.
    """

    def __init__(self) -> None:
        self._shutdown_requested = threading.Event()
        self._stop_event = threading.Event()

    def request_shutdown(self) -> None:
        """Post a shutdown request; safe to call from a signal handler."""
        self._shutdown_requested.set()

    def shutdown_requested(self) -> bool:
        """Check whether a shutdown request is waiting to be handled."""
        return self._shutdown_requested.is_set()

    def consume_shutdown_request(self) -> bool:
        """Clear a pending shutdown request, returning whether one was pending."""
        if not self._shutdown_requested.is_set():
            return False
        self._shutdown_requested.clear()
        return True

    def begin_stopping(self) -> None:
        """Signal the acceptor to stop accepting new connections."""
        self._stop_event.set()
        LIFECYCLE_LOGGER.info("Stopping server", extra={"event": "server_stopping"})

    def should_stop(self) -> bool:
        """Check if the server should stop accepting new connections."""
        return self._stop_event.is_set()
