"""Main connection acceptance loop."""

import functools
import logging
import socket
from typing import Optional

from tinyhttpd.bootstrap.config import ACCEPT_POLL_SECONDS, ServerConfig
from tinyhttpd.bootstrap.diagnostics import DiagnosticsSink
from tinyhttpd.bootstrap.socket_factory import create_listener
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter
from tinyhttpd.lifecycle.shutdown import ShutdownCoordinator
from tinyhttpd.transport.context import ServerContext
from tinyhttpd.transport.worker import handle_connection
from tinyhttpd.transport.worker_pool import WorkerPool

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("tinyhttpd.transport.accept"), {}
)


def create_context(config: ServerConfig, sink: DiagnosticsSink) -> ServerContext:
    """Build the server context with a worker pool bound to handle_connection."""
    pool = WorkerPool(
        functools.partial(handle_connection, config=config), config.pool_capacity
    )
    return ServerContext(config=config, sink=sink, pool=pool)


def _reserve_slot(
    context: ServerContext, coordinator: ShutdownCoordinator
) -> Optional[int]:
    """Wait for a free worker slot, giving up if the server stops meanwhile."""
    waiting_logged = False
    while True:
        slot = context.pool.reserve_slot(timeout=ACCEPT_POLL_SECONDS)
        if slot is not None:
            return slot
        if not waiting_logged:
            ACCEPT_LOGGER.warning(
                "All worker slots are busy",
                extra={"event": "pool_exhausted", "pool_capacity": context.pool.capacity},
            )
            waiting_logged = True
        if coordinator.poll_shutdown():
            return None


def _dispatch(
    connection: socket.socket,
    client_address: tuple[str, int],
    context: ServerContext,
    coordinator: ShutdownCoordinator,
) -> None:
    """Hand an accepted connection to a new worker in the next ring slot."""
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={"event": "client_accepted", "client": client_addr_str},
        )

    slot = _reserve_slot(context, coordinator)
    if slot is None:
        connection.close()
        return
    context.pool.spawn(slot, connection, client_address)


def serve(context: ServerContext, coordinator: ShutdownCoordinator) -> None:
    """Accept connections until a confirmed shutdown or a fatal accept error."""
    listener = context.listener
    if listener is None:
        raise RuntimeError("Server context has no listener")

    while not coordinator.poll_shutdown():
        try:
            connection, client_address = listener.accept()
        except socket.timeout:
            continue
        except OSError as error:
            if context.lifecycle.should_stop():
                break
            context.sink.fatal(
                "Unable to open secondary socket",
                logger=ACCEPT_LOGGER,
                extra={
                    "event": "accept_error",
                    "error_type": type(error).__name__,
                    "errno": error.errno,
                },
            )
            break

        _dispatch(connection, client_address, context, coordinator)


def run_server(
    config: ServerConfig, sink: DiagnosticsSink, install_signal_handler: bool = True
) -> int:
    """Set up the listener, serve until shutdown and return the exit status."""
    context = create_context(config, sink)
    coordinator = ShutdownCoordinator(context)
    sink.set_exit_callback(coordinator.fatal_exit_status)
    if install_signal_handler:
        coordinator.install_signal_handler()

    context.listener = create_listener(config, sink)
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_started",
            "host": config.host,
            "port": config.port,
            "pool_capacity": config.pool_capacity,
        },
    )

    try:
        serve(context, coordinator)
    finally:
        exit_status = coordinator.teardown()
    return exit_status
