"""Bounded ring of worker thread slots, one thread per accepted connection."""

import logging
import socket
import threading
import time
from typing import Callable, Optional

from tinyhttpd.bootstrap.config import DEFAULT_POOL_CAPACITY
from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter

POOL_LOGGER = CorrelationLoggerAdapter(logging.getLogger("tinyhttpd.transport.pool"), {})

ConnectionHandler = Callable[[socket.socket, tuple[str, int]], None]


class WorkerPool:
    """Fixed-capacity ring of worker handles.

    A slot is only handed out again once its previous worker has finished, and
    that worker is joined before the slot is overwritten. When every slot is
    busy, ``reserve_slot`` blocks, which in turn stops the acceptor from
    taking more connections.
    """

    def __init__(
        self, handler: ConnectionHandler, capacity: int = DEFAULT_POOL_CAPACITY
    ) -> None:
        if capacity <= 0:
            raise ValueError("Pool capacity must be positive")
        self._handler = handler
        self._capacity = capacity
        self._slots: list[Optional[threading.Thread]] = [None] * capacity
        self._busy: set[int] = set()
        self._cursor = 0
        self._condition = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    def active_count(self) -> int:
        """Return the number of slots whose worker is still running."""
        with self._condition:
            return len(self._busy)

    def _find_free_slot(self) -> Optional[int]:
        for offset in range(self._capacity):
            index = (self._cursor + offset) % self._capacity
            if index not in self._busy:
                return index
        return None

    def reserve_slot(self, timeout: Optional[float] = None) -> Optional[int]:
        """Return the next free slot, advancing the ring cursor past it.

        Blocks while every slot is busy. Returns None if timeout elapses first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            while True:
                slot = self._find_free_slot()
                if slot is not None:
                    self._cursor = (slot + 1) % self._capacity
                    return slot
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._condition.wait(remaining)

    def _run(self, slot: int, connection: socket.socket, address: tuple[str, int]) -> None:
        try:
            self._handler(connection, address)
        finally:
            with self._condition:
                self._busy.discard(slot)
                self._condition.notify_all()

    def spawn(
        self, slot: int, connection: socket.socket, address: tuple[str, int]
    ) -> Optional[threading.Thread]:
        """Start a worker for connection in slot and return its thread.

        On failure to start a thread the connection is closed and None is
        returned.
        """
        with self._condition:
            if slot in self._busy:
                raise RuntimeError(f"Worker slot {slot} is still busy")
            previous = self._slots[slot]
            self._busy.add(slot)

        if previous is not None:
            # finished already, joining only reaps the handle
            previous.join()

        connection_id = connection.fileno()
        thread = threading.Thread(
            target=self._run,
            args=(slot, connection, address),
            name=f"worker-{slot}-conn-{connection_id}",
            daemon=True,
        )
        with self._condition:
            self._slots[slot] = thread
        POOL_LOGGER.info(
            "[%s] has been connected to Connection %s",
            thread.name,
            connection_id,
            extra={
                "event": "worker_spawned",
                "slot": slot,
                "worker": thread.name,
                "connection_id": connection_id,
            },
        )
        try:
            thread.start()
        except RuntimeError as error:
            with self._condition:
                self._slots[slot] = None
                self._busy.discard(slot)
                self._condition.notify_all()
            connection.close()
            POOL_LOGGER.error(
                "Failed to start the worker while connecting to Connection %s",
                connection_id,
                extra={
                    "event": "spawn_failed",
                    "slot": slot,
                    "connection_id": connection_id,
                    "error_type": type(error).__name__,
                },
            )
            return None
        return thread

    def join_all(self, timeout: Optional[float] = None) -> bool:
        """Join every recorded worker, sweeping slots 0..N-1 in order.

        Returns False when some worker was still running at the deadline.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            recorded = list(enumerate(self._slots))

        all_joined = True
        for slot, worker in recorded:
            if worker is None:
                continue
            POOL_LOGGER.info(
                "Join the worker %s",
                worker.name,
                extra={"event": "worker_join", "slot": slot, "worker": worker.name},
            )
            remaining = None
            if deadline is not None:
                remaining = max(0.0, deadline - time.monotonic())
            worker.join(remaining)
            if worker.is_alive():
                all_joined = False
                POOL_LOGGER.error(
                    "Unable to join worker %s",
                    worker.name,
                    extra={"event": "worker_join_failed", "slot": slot, "worker": worker.name},
                )
        return all_joined
