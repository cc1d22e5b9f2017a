"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


DEFAULT_HOST = os.getenv("TINYHTTPD_HOST", "0.0.0.0")
DEFAULT_PORT = _env_int("TINYHTTPD_PORT", 8080)
DEFAULT_BACKLOG = _env_int("TINYHTTPD_BACKLOG", 16)
DEFAULT_POOL_CAPACITY = _env_int("TINYHTTPD_POOL_CAPACITY", 128)
DEFAULT_SOCKET_TIMEOUT = _env_int("TINYHTTPD_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("TINYHTTPD_SHUTDOWN_GRACE_SECONDS", 0)
DEFAULT_CONFIRM_SHUTDOWN = _env_bool("TINYHTTPD_CONFIRM_SHUTDOWN", True)

MAX_REQUEST_BYTES = 10240
MAX_HEADERS = 256
RECV_CHUNK_SIZE = 4096
ACCEPT_POLL_SECONDS = 0.5
LINE_TERMINATOR = b"\n"

SHUTDOWN_QUESTION = "Are you sure to shutdown the server? [y/N] "
LOG_FORMATS = ("console", "text", "json")


@dataclass
class ServerConfig:
    """Runtime settings shared by the acceptor, workers and shutdown path."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    backlog: int = DEFAULT_BACKLOG
    pool_capacity: int = DEFAULT_POOL_CAPACITY
    socket_timeout: int = DEFAULT_SOCKET_TIMEOUT
    shutdown_grace_seconds: int = DEFAULT_SHUTDOWN_GRACE_SECONDS
    confirm_shutdown: bool = DEFAULT_CONFIRM_SHUTDOWN
    max_request_bytes: int = MAX_REQUEST_BYTES

    @property
    def connection_timeout(self) -> Optional[float]:
        """Per-connection socket timeout, None when connections block forever."""
        return float(self.socket_timeout) if self.socket_timeout > 0 else None

    @property
    def join_timeout(self) -> Optional[float]:
        """Shutdown grace period, None when teardown waits for every worker."""
        if self.shutdown_grace_seconds > 0:
            return float(self.shutdown_grace_seconds)
        return None


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Minimal one-shot HTTP server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--backlog",
        type=_positive_int,
        default=DEFAULT_BACKLOG,
        help="Length of the pending connection queue",
    )
    parser.add_argument(
        "--pool-capacity",
        type=_positive_int,
        default=DEFAULT_POOL_CAPACITY,
        help="Number of worker slots tracked by the pool",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for each connection (0 blocks forever)",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Seconds to wait for workers on shutdown (0 waits forever)",
    )
    parser.add_argument(
        "--confirm-shutdown",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_CONFIRM_SHUTDOWN,
        help="Ask the operator before shutting down on SIGINT",
    )
    default_log_level = os.getenv("TINYHTTPD_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("TINYHTTPD_LOG_DESTINATION", "stdout")
    default_format = os.getenv("TINYHTTPD_LOG_FORMAT", "console").lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_format,
        choices=LOG_FORMATS,
        type=str.lower,
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments into a ServerConfig."""
    return ServerConfig(
        host=args.host,
        port=args.port,
        backlog=args.backlog,
        pool_capacity=args.pool_capacity,
        socket_timeout=max(0, args.socket_timeout),
        shutdown_grace_seconds=max(0, args.shutdown_grace_seconds),
        confirm_shutdown=args.confirm_shutdown,
    )
