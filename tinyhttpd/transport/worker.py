"""Worker thread logic for handling one client connection."""

import logging
import socket

from tinyhttpd.bootstrap.config import ServerConfig
from tinyhttpd.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    set_correlation_id,
)
from tinyhttpd.domain.http_types import FIXED_REPLY
from tinyhttpd.pipeline.io import RequestTooLarge, read_line, send_reply
from tinyhttpd.pipeline.parsing import RequestParseError, parse_request

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("tinyhttpd.transport.worker"), {}
)


def _close_connection(connection: socket.socket, connection_id: int, client: str) -> None:
    try:
        connection.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    connection.close()
    WORKER_LOGGER.info(
        "[Connection %s] is closed",
        connection_id,
        extra={"event": "connection_closed", "connection_id": connection_id, "client": client},
    )


def handle_connection(
    connection: socket.socket,
    client_address: tuple[str, int],
    config: ServerConfig,
) -> None:
    """Read one request, answer with the fixed reply and close the connection."""
    set_correlation_id(generate_correlation_id())
    connection_id = connection.fileno()
    client = f"{client_address[0]}:{client_address[1]}"
    log_fields = {"connection_id": connection_id, "client": client}

    try:
        connection.settimeout(config.connection_timeout)

        try:
            raw_request = read_line(connection, config.max_request_bytes - 1)
        except (OSError, RequestTooLarge) as error:
            WORKER_LOGGER.error(
                "[Connection %s] Unable to read the request",
                connection_id,
                extra={"event": "read_failed", "error_type": type(error).__name__, **log_fields},
            )
            return

        if not raw_request:
            WORKER_LOGGER.debug(
                "Client disconnected before sending a request",
                extra={"event": "client_disconnected", **log_fields},
            )
            return

        try:
            request = parse_request(raw_request)
        except RequestParseError as error:
            WORKER_LOGGER.error(
                "[Connection %s] Unable to analyze the request",
                connection_id,
                extra={"event": "parse_failed", "error_type": type(error).__name__, **log_fields},
            )
            return

        WORKER_LOGGER.info(
            "[Connection %s] New request: %s %s",
            connection_id,
            request.command,
            request.target,
            extra={
                "event": "request_received",
                "method": request.command,
                "target": request.target,
                "version": request.version,
                "header_count": request.header_count,
                "request_host": request.get_header("host"),
                **log_fields,
            },
        )

        try:
            send_reply(connection, FIXED_REPLY)
        except OSError as error:
            WORKER_LOGGER.error(
                "[Connection %s] Failed to send message",
                connection_id,
                extra={"event": "send_failed", "error_type": type(error).__name__, **log_fields},
            )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={"event": "worker_error", "error_type": type(error).__name__, **log_fields},
            exc_info=True,
        )
    finally:
        _close_connection(connection, connection_id, client)
        clear_correlation_id()
