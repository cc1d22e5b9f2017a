"""Context object shared by the acceptor, the workers and the shutdown path."""

import socket
from dataclasses import dataclass, field
from typing import Optional

from tinyhttpd.bootstrap.config import ServerConfig
from tinyhttpd.bootstrap.diagnostics import DiagnosticsSink
from tinyhttpd.lifecycle.state import ServerLifecycle
from tinyhttpd.transport.worker_pool import WorkerPool


@dataclass
class ServerContext:
    """Process-wide server state, passed explicitly instead of kept in globals."""

    config: ServerConfig
    sink: DiagnosticsSink
    pool: WorkerPool
    lifecycle: ServerLifecycle = field(default_factory=ServerLifecycle)
    listener: Optional[socket.socket] = None
