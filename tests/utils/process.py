"""Launch the server entrypoint in a subprocess for integration tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Generator, TypedDict

from tests.utils.http import wait_for_port

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    host: str
    port: int
    process: subprocess.Popen[str]
    log_file: Path


def launch_server(
    host: str,
    port: int,
    log_file: Path,
    extra_args: list[str] | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    """Run main.py with stdin attached so tests can answer the shutdown prompt."""
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--host",
        host,
        "--port",
        str(port),
        "--log-destination",
        str(log_file),
        "--log-format",
        "json",
    ]
    if extra_args:
        args.extend(extra_args)

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            # If startup failed, print stdout/stderr to help debug
            process.kill()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        try:
            yield {
                "host": host,
                "port": port,
                "process": process,
                "log_file": log_file,
            }
        finally:
            if process.poll() is None:
                process.kill()
            process.wait(timeout=5)
