"""
Fixed size thread pool used for checksum and copy work.

One instance is created at program start and passed to every component
that needs parallelism.
"""

import os
import time
from queue import Empty, Queue
from threading import Event, Lock, Thread
from types import TracebackType
from typing import Callable, Optional, Type

from loguru import logger

from dztool.utils.constants import JOIN_POLL_INTERVAL

Task = Callable[[], None]


class WorkPool:
    """
    Fixed number of worker threads consuming zero-argument tasks from
    a shared queue.

    join() waits on a counter of outstanding tasks instead of draining the
    queue, so tasks submitted while another thread is already joining are
    still waited on as long as they arrive before the counter reaches zero.

    The pool never rethrows task errors. Callers that care about failures
    capture them inside the task.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        poll_interval: float = JOIN_POLL_INTERVAL,
    ) -> None:
        """
        :param workers: Number of worker threads, defaults to the host core count
        :type workers: Optional[int]
        :param poll_interval: Seconds join() sleeps between checks of the outstanding counter
        :type poll_interval: float
        """
        if workers is None:
            workers = os.cpu_count() or 1
        if workers < 1:
            raise ValueError(f"WorkPool needs at least one worker, got {workers}")

        self.poll_interval = poll_interval
        self._queue: Queue[Task] = Queue()
        self._lock = Lock()
        self._outstanding = 0
        self._stop_event = Event()
        self._threads: list[Thread] = []

        for index in range(workers):
            thread = Thread(
                target=self._worker_loop, name=f"WorkPool-{index}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

        logger.debug(f"WorkPool started with {workers} worker(s)")

    @property
    def size(self) -> int:
        return len(self._threads)

    @property
    def outstanding(self) -> int:
        with self._lock:
            return self._outstanding

    def submit(self, task: Task) -> None:
        """
        Queue a unit of work.

        :param task: Callable taking no arguments
        :type task: Task
        """
        if self._stop_event.is_set():
            raise RuntimeError("Cannot submit to a WorkPool that has been shut down")
        with self._lock:
            self._outstanding += 1
        self._queue.put(task)

    def join(self) -> None:
        """
        Block until every submitted task has finished.
        """
        while True:
            with self._lock:
                if self._outstanding == 0:
                    return
            time.sleep(self.poll_interval)

    def shutdown(self) -> None:
        """
        Stop all workers and wait for their threads to exit.

        Tasks still waiting in the queue are dropped. Tasks already running
        finish first.
        """
        if self._stop_event.is_set():
            return
        self._stop_event.set()

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                break
            dropped += 1
            self._task_done()
        if dropped:
            logger.warning(f"WorkPool shut down with {dropped} pending task(s) dropped")

        for thread in self._threads:
            thread.join()
        logger.debug("WorkPool stopped")

    def _task_done(self) -> None:
        with self._lock:
            self._outstanding -= 1

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                task = self._queue.get(timeout=self.poll_interval)
            except Empty:
                continue
            try:
                task()
            except Exception as e:
                logger.error(f"Unhandled error in WorkPool task: {e}")
            finally:
                self._task_done()

    def __enter__(self) -> "WorkPool":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.shutdown()
