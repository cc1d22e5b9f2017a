"""Integration tests for SIGINT with operator confirmation."""

import json
import signal
import socket
import time

import pytest

from tests.utils.http import (
    EXPECTED_REPLY,
    exchange,
    read_until_closed,
    reserve_port,
    send_signal_to_process,
)
from tests.utils.process import launch_server


def _answer(process, text: str) -> None:
    process.stdin.write(text)
    process.stdin.flush()


def _events(log_file):
    return [
        json.loads(line).get("event")
        for line in log_file.read_text().splitlines()
        if line.strip()
    ]


def test_declined_shutdown_keeps_accepting(server_process):
    process = server_process["process"]
    host, port = server_process["host"], server_process["port"]

    send_signal_to_process(process.pid, signal.SIGINT)
    _answer(process, "n\n")
    time.sleep(1.0)

    assert process.poll() is None
    assert exchange(host, port) == EXPECTED_REPLY
    assert "shutdown_cancelled" in _events(server_process["log_file"])


def test_confirmed_shutdown_exits_cleanly(server_process):
    process = server_process["process"]
    host, port = server_process["host"], server_process["port"]
    assert exchange(host, port) == EXPECTED_REPLY

    send_signal_to_process(process.pid, signal.SIGINT)
    _answer(process, "y\n")

    assert process.wait(timeout=5) == 0
    with pytest.raises(OSError):
        socket.create_connection((host, port), timeout=1).close()
    events = _events(server_process["log_file"])
    assert "server_stopped" in events
    assert "server_closed" in events


def test_prompt_is_written_to_stdout(server_process):
    process = server_process["process"]
    send_signal_to_process(process.pid, signal.SIGINT)
    _answer(process, "y\n")
    process.wait(timeout=5)

    assert "Are you sure to shutdown the server? [y/N]" in process.stdout.read()


def test_shutdown_waits_for_in_flight_worker(server_process):
    """A worker still reading its request is joined before the process exits."""
    process = server_process["process"]
    host, port = server_process["host"], server_process["port"]

    with socket.create_connection((host, port), timeout=5) as sock:
        time.sleep(0.2)
        send_signal_to_process(process.pid, signal.SIGINT)
        _answer(process, "y\n")
        time.sleep(1.0)
        assert process.poll() is None

        sock.sendall(b"GET /in-flight HTTP/1.1\r\n\r\n")
        assert read_until_closed(sock) == EXPECTED_REPLY

    assert process.wait(timeout=5) == 0
    events = _events(server_process["log_file"])
    assert "worker_join" in events


def test_grace_period_bounds_shutdown(tmp_path):
    """With a grace period, a stalled client cannot hold shutdown forever."""
    host = "127.0.0.1"
    port = reserve_port(host)
    log_file = tmp_path / "server.log"
    server = launch_server(
        host, port, log_file, ["--shutdown-grace-seconds", "1", "--no-confirm-shutdown"]
    )
    info = next(server)
    process = info["process"]
    try:
        with socket.create_connection((host, port), timeout=5):
            time.sleep(0.2)
            send_signal_to_process(process.pid, signal.SIGINT)
            assert process.wait(timeout=5) == 1
        assert "shutdown_timeout" in _events(log_file)
    finally:
        if process.poll() is None:
            process.kill()
        server.close()
