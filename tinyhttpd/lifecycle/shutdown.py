"""Operator-confirmed shutdown and the teardown routine."""

import logging
import signal
import threading
from typing import Optional

from tinyhttpd.bootstrap.config import SHUTDOWN_QUESTION
from tinyhttpd.bootstrap.diagnostics import FATAL_EXIT_STATUS
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter
from tinyhttpd.transport.context import ServerContext

SHUTDOWN_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("tinyhttpd.lifecycle.shutdown"), {}
)


class ShutdownCoordinator:
    """Turns SIGINT into a confirmed, single teardown of the server context."""

    def __init__(self, context: ServerContext) -> None:
        self._context = context
        self._teardown_lock = threading.Lock()
        self._teardown_status: Optional[int] = None

    def install_signal_handler(self) -> None:
        """Route SIGINT to a shutdown request. Must run on the main thread."""
        signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, _signum: int, _frame) -> None:
        self._context.lifecycle.request_shutdown()

    def confirm(self) -> bool:
        """Ask the operator whether the server should really stop."""
        if not self._context.config.confirm_shutdown:
            return True
        answer = self._context.sink.question(SHUTDOWN_QUESTION)
        return answer[:1] in ("y", "Y")

    def poll_shutdown(self) -> bool:
        """Handle a pending shutdown request; return True once the server stops."""
        lifecycle = self._context.lifecycle
        if lifecycle.should_stop():
            return True
        if not lifecycle.consume_shutdown_request():
            return False

        SHUTDOWN_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "shutdown_requested", "signal": signal.SIGINT.name},
        )
        if not self.confirm():
            SHUTDOWN_LOGGER.info(
                "Shutdown cancelled", extra={"event": "shutdown_cancelled"}
            )
            return False
        lifecycle.begin_stopping()
        return True

    def teardown(self) -> int:
        """Close the listener, join every worker and return the exit status.

        Only the first call does any work; later calls return its status.
        """
        with self._teardown_lock:
            if self._teardown_status is not None:
                return self._teardown_status

            context = self._context
            if not context.lifecycle.should_stop():
                context.lifecycle.begin_stopping()
            if context.listener is not None:
                context.listener.close()

            SHUTDOWN_LOGGER.info(
                "Waiting for active connections to complete",
                extra={
                    "event": "shutdown_waiting",
                    "active_workers": context.pool.active_count(),
                    "shutdown_grace_seconds": context.config.shutdown_grace_seconds,
                },
            )
            joined = context.pool.join_all(context.config.join_timeout)
            if not joined:
                SHUTDOWN_LOGGER.warning(
                    "Shutdown timeout exceeded",
                    extra={
                        "event": "shutdown_timeout",
                        "remaining_workers": context.pool.active_count(),
                    },
                )

            self._teardown_status = 0 if joined else 1
            SHUTDOWN_LOGGER.warning("Server was shut down", extra={"event": "server_stopped"})
            SHUTDOWN_LOGGER.warning(
                "Closed...",
                extra={"event": "server_closed", "exit_status": self._teardown_status},
            )
            return self._teardown_status

    def fatal_exit_status(self) -> int:
        """Exit callback for fatal diagnostics: tear down, then fail."""
        return self.teardown() or FATAL_EXIT_STATUS
