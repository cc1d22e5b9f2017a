"""Minimal HTTP server answering every request with a fixed greeting."""

import logging
import sys
from typing import Optional

from tinyhttpd.bootstrap.config import build_config, parse_cli_args
from tinyhttpd.bootstrap.diagnostics import DiagnosticsSink
from tinyhttpd.bootstrap.logging_setup import configure_logging
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter
from tinyhttpd.transport.accept_loop import run_server

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("tinyhttpd.server"), {})


def main(argv: Optional[list[str]] = None) -> None:
    """Start the server and exit with the teardown status."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_format)
    config = build_config(args)

    SERVER_LOGGER.info(
        "Starting HTTP server",
        extra={
            "event": "server_starting",
            "host": config.host,
            "port": config.port,
            "backlog": config.backlog,
            "pool_capacity": config.pool_capacity,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
            "log_destination": args.log_destination,
            "log_level": args.log_level,
        },
    )
    sys.exit(run_server(config, DiagnosticsSink()))


if __name__ == "__main__":
    main()
