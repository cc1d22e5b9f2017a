"""Severity-leveled diagnostics sink with a fatal exit hook and an operator prompt."""

import logging
import sys
from typing import Callable, Optional, TextIO

from tinyhttpd.bootstrap.logging_setup import (
    OUTPUT_LOCK,
    QUESTION_BADGE,
    console_timestamp,
    render_badge,
)
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter

DIAGNOSTICS_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("tinyhttpd.diagnostics"), {}
)

FATAL_EXIT_STATUS = 1

ExitCallback = Callable[[], int]


class DiagnosticsSink:
    """Thread-safe front for the project loggers.

    ``fatal`` logs at CRITICAL, then runs the registered exit callback and
    exits with its status unless the callback returns 0. ``question`` writes a
    prompt and blocks for one line of operator input while holding the shared
    output lock, so no log record lands between the prompt and its answer.
    """

    def __init__(
        self,
        logger: Optional[CorrelationLoggerAdapter] = None,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        self._logger = logger if logger is not None else DIAGNOSTICS_LOGGER
        self._input_stream = input_stream
        self._output_stream = output_stream
        self._exit_callback: Optional[ExitCallback] = None

    def set_exit_callback(self, callback: Optional[ExitCallback]) -> None:
        """Register the teardown routine invoked by ``fatal``."""
        self._exit_callback = callback

    def fatal(
        self,
        message: str,
        *args,
        logger: Optional[CorrelationLoggerAdapter] = None,
        **kwargs,
    ) -> None:
        """Log an unrecoverable error, run the exit callback and exit."""
        (logger or self._logger).critical(message, *args, **kwargs)
        if self._exit_callback is None:
            status = FATAL_EXIT_STATUS
        else:
            status = self._exit_callback()
        if status != 0:
            sys.exit(status)

    def error(self, message: str, *args, **kwargs) -> None:
        self._logger.error(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._logger.warning(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self._logger.info(message, *args, **kwargs)

    def question(self, prompt: str) -> str:
        """Ask the operator a question and return the trimmed answer.

        An exhausted input stream yields an empty answer.
        """
        output = self._output_stream if self._output_stream is not None else sys.stdout
        source = self._input_stream if self._input_stream is not None else sys.stdin
        with OUTPUT_LOCK:
            output.write(render_badge(QUESTION_BADGE, console_timestamp(), prompt))
            output.flush()
            answer = source.readline()
        answer = answer.strip()
        self._logger.debug(
            "Operator answered prompt",
            extra={"event": "prompt_answered", "answer": answer},
        )
        return answer
