"""Listening socket creation, binding and listen setup."""

import logging
import socket

from tinyhttpd.bootstrap.config import ACCEPT_POLL_SECONDS, ServerConfig
from tinyhttpd.bootstrap.diagnostics import DiagnosticsSink
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter

SOCKET_LOGGER = CorrelationLoggerAdapter(logging.getLogger("tinyhttpd.socket"), {})


def open_listener_socket(sink: DiagnosticsSink) -> socket.socket:
    """Create the IPv4 TCP socket the server listens on."""
    try:
        return socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as error:
        sink.fatal(
            "Unable to create the socket",
            logger=SOCKET_LOGGER,
            extra={"event": "socket_failed", "errno": error.errno},
        )
        raise


def bind_to_port(
    listener: socket.socket, host: str, port: int, sink: DiagnosticsSink
) -> None:
    """Enable address reuse and bind the listener to host:port."""
    try:
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    except OSError as error:
        sink.fatal(
            "Unable to set the reuse option",
            logger=SOCKET_LOGGER,
            extra={"event": "reuse_failed", "errno": error.errno},
        )
        raise
    SOCKET_LOGGER.info("Reuse option: OPEN", extra={"event": "reuse_enabled"})

    try:
        listener.bind((host, port))
    except OSError as error:
        sink.fatal(
            "Unable to bind to socket",
            logger=SOCKET_LOGGER,
            extra={"event": "bind_failed", "host": host, "port": port, "errno": error.errno},
        )
        raise
    SOCKET_LOGGER.info(
        "Bind to port %s", port, extra={"event": "bound", "host": host, "port": port}
    )


def start_listening(listener: socket.socket, backlog: int, sink: DiagnosticsSink) -> None:
    """Put the listener into listening mode with the given backlog."""
    try:
        listener.listen(backlog)
    except OSError as error:
        sink.fatal(
            "Unable to listen",
            logger=SOCKET_LOGGER,
            extra={"event": "listen_failed", "backlog": backlog, "errno": error.errno},
        )
        raise
    SOCKET_LOGGER.info(
        "Waiting for connections...",
        extra={"event": "server_listening", "backlog": backlog},
    )


def create_listener(config: ServerConfig, sink: DiagnosticsSink) -> socket.socket:
    """Create, bind and start the listening socket described by config."""
    listener = open_listener_socket(sink)
    try:
        bind_to_port(listener, config.host, config.port, sink)
        start_listening(listener, config.backlog, sink)
    except BaseException:
        listener.close()
        raise
    # accept() wakes up periodically so the acceptor can observe shutdown requests
    listener.settimeout(ACCEPT_POLL_SECONDS)
    return listener
