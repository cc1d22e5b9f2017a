"""Socket input/output for a single request and its reply."""

import logging
import socket

from tinyhttpd.bootstrap.config import LINE_TERMINATOR, MAX_REQUEST_BYTES, RECV_CHUNK_SIZE
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter
from tinyhttpd.domain.http_types import HttpReply

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("tinyhttpd.io"), {})


class RequestTooLarge(ValueError):
    """Raised when no line terminator arrives within the read budget."""


def read_line(connection: socket.socket, max_length: int = MAX_REQUEST_BYTES - 1) -> bytes:
    """Receive until a chunk ends with the line terminator.

    Returns the accumulated bytes without the final terminator, or ``b""``
    when the peer closes the connection first. Socket errors propagate.
    """
    buffer = bytearray()
    while True:
        remaining = max_length - len(buffer)
        if remaining <= 0:
            raise RequestTooLarge(f"No line terminator within {max_length} bytes")
        chunk = connection.recv(min(remaining, RECV_CHUNK_SIZE))
        if not chunk:
            IO_LOGGER.debug(
                "Peer closed before line terminator",
                extra={"event": "peer_closed", "bytes_in": len(buffer)},
            )
            return b""
        buffer += chunk
        if buffer.endswith(LINE_TERMINATOR):
            del buffer[-len(LINE_TERMINATOR) :]
            IO_LOGGER.debug(
                "Received request", extra={"event": "request_read", "bytes_in": len(buffer)}
            )
            return bytes(buffer)


def send_reply(connection: socket.socket, reply: HttpReply) -> None:
    """Send the status block, then the body. A failed send is not retried."""
    connection.sendall(reply.status_line)
    connection.sendall(reply.body)
    IO_LOGGER.debug(
        "Sent reply",
        extra={
            "event": "reply_sent",
            "bytes_out": len(reply.status_line) + len(reply.body),
        },
    )
