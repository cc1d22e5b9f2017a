"""Unit tests covering the line reader and the reply writer."""

import socket
from unittest.mock import MagicMock, call

import pytest

from tinyhttpd.domain.http_types import FIXED_REPLY
from tinyhttpd.pipeline.io import RequestTooLarge, read_line, send_reply


class FakeSocket:
    """Minimal socket stub that returns predefined chunks sequentially."""

    def __init__(self, chunks):
        self._chunks = [
            chunk.encode() if isinstance(chunk, str) else chunk for chunk in chunks
        ]
        self.requested_sizes = []

    def recv(self, size):
        """Return the next chunk or an empty bytes object when exhausted."""

        self.requested_sizes.append(size)
        if self._chunks:
            chunk = self._chunks.pop(0)
            if isinstance(chunk, Exception):
                raise chunk
            return chunk
        return b""


def test_read_line_strips_terminator():
    client = FakeSocket([b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"])
    assert read_line(client) == b"GET / HTTP/1.1\r\nHost: x\r\n\r"


def test_read_line_accumulates_until_chunk_ends_with_terminator():
    """Partial reads keep accumulating while the last byte is not a line feed."""
    client = FakeSocket([b"GET / HT", b"TP/1.1\r\nHo", b"st: x\r\n\r\n"])
    assert read_line(client) == b"GET / HTTP/1.1\r\nHost: x\r\n\r"


def test_read_line_stops_at_first_chunk_ending_in_line_feed():
    """Only the final byte of each receive is checked for the terminator."""
    client = FakeSocket([b"GET / HTTP/1.1\r\n", b"Host: x\r\n\r\n"])
    assert read_line(client) == b"GET / HTTP/1.1\r"


def test_read_line_returns_empty_when_peer_closes_first():
    """A close before the terminator yields an empty line, not an error."""
    assert read_line(FakeSocket([])) == b""
    assert read_line(FakeSocket([b"GET / HTTP/1.1"])) == b""


def test_read_line_propagates_socket_errors():
    client = FakeSocket([b"GET", ConnectionResetError("reset")])
    with pytest.raises(ConnectionResetError):
        read_line(client)


def test_read_line_enforces_length_budget():
    """The reader never asks for more than the remaining budget."""
    client = FakeSocket([b"x" * 6, b"y" * 4])
    with pytest.raises(RequestTooLarge):
        read_line(client, max_length=10)
    assert client.requested_sizes == [10, 4]


def test_send_reply_writes_status_then_body():
    client = MagicMock(spec=socket.socket)
    send_reply(client, FIXED_REPLY)
    assert client.sendall.call_args_list == [
        call(b"HTTP/1.1 200 OK\r\n\r\n"),
        call(b"Hello!\r\n"),
    ]


def test_send_reply_skips_body_when_status_fails():
    """A failed status send is not retried and the body is never attempted."""
    client = MagicMock(spec=socket.socket)
    client.sendall.side_effect = BrokenPipeError("gone")
    with pytest.raises(BrokenPipeError):
        send_reply(client, FIXED_REPLY)
    client.sendall.assert_called_once_with(b"HTTP/1.1 200 OK\r\n\r\n")
