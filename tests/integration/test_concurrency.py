"""Integration tests for concurrent clients."""

import socket
import threading

from tests.utils.http import EXPECTED_REPLY, read_until_closed


def test_simultaneous_clients_are_served_independently(server_process):
    """Clients that connect together each receive their own complete reply."""
    host, port = server_process["host"], server_process["port"]
    client_count = 32
    sockets = [socket.create_connection((host, port), timeout=5) for _ in range(client_count)]
    replies = [b""] * client_count

    def talk(index: int) -> None:
        sock = sockets[index]
        sock.sendall(f"GET /{index} HTTP/1.1\r\nHost: x\r\n\r\n".encode())
        replies[index] = read_until_closed(sock)

    try:
        threads = [threading.Thread(target=talk, args=(i,)) for i in range(client_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
    finally:
        for sock in sockets:
            sock.close()

    assert replies == [EXPECTED_REPLY] * client_count


def test_slow_client_does_not_block_others(server_process):
    """A connection that never sends keeps its worker busy, others still get served."""
    host, port = server_process["host"], server_process["port"]
    with socket.create_connection((host, port), timeout=5) as idle:
        with socket.create_connection((host, port), timeout=5) as active:
            active.sendall(b"GET / HTTP/1.1\r\n\r\n")
            assert read_until_closed(active) == EXPECTED_REPLY
        idle.sendall(b"GET /late HTTP/1.1\r\n\r\n")
        assert read_until_closed(idle) == EXPECTED_REPLY
