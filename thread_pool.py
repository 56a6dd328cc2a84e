"""Bounded worker pool for accepted client sockets."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

ClientAddress = tuple[str, int]
ClientJob = tuple[object, ClientAddress]
ClientHandler = Callable[[object, ClientAddress], None]


class ThreadPool:
    """Fixed-size set of worker threads fed from a bounded queue."""

    def __init__(self, worker_count: int, queue_size: int, handler: ClientHandler) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._worker_count = worker_count
        self._queue: queue.Queue[ClientJob | None] = queue.Queue(maxsize=queue_size)
        self._threads: list[threading.Thread] = []
        self._stopping = threading.Event()
        # Queued plus in-flight clients.
        self._pending_jobs = 0
        self._idle = threading.Condition()

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> None:
        for index in range(self._worker_count):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"client-hints-worker-{index}",
                daemon=True,
            )
            self._threads.append(worker)
            worker.start()

    def submit(self, client_socket: object, address: ClientAddress) -> bool:
        """Queue a client; False means the pool is stopping or the queue is full."""
        if self._stopping.is_set():
            return False
        with self._idle:
            self._pending_jobs += 1
        try:
            self._queue.put_nowait((client_socket, address))
        except queue.Full:
            self._finish_job()
            return False
        return True

    def wait_for_drain(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        with self._idle:
            while self._pending_jobs:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._idle.wait(timeout=min(remaining, 0.1))
        return True

    def shutdown(self, *, graceful: bool = False, timeout: float = 1.0) -> None:
        if self._stopping.is_set():
            return
        if graceful and not self.wait_for_drain(timeout):
            logger.warning("Worker pool did not drain within %.1fs", timeout)

        self._stopping.set()
        for _ in self._threads:
            self._queue.put(None)
        for thread in self._threads:
            thread.join(timeout=1.0)

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            client_socket, address = item
            try:
                self._handler(client_socket, address)
            except Exception:
                logger.exception("Unhandled error while serving %s:%s", *address)
            finally:
                self._finish_job()

    def _finish_job(self) -> None:
        with self._idle:
            self._pending_jobs -= 1
            self._idle.notify_all()
