"""Bounded FIFO of pending tasks with an in-flight correlation index."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass

from distributed_calculator.orchestrator.models import Task

DEFAULT_CAPACITY = 100
ENQUEUE_WAKE_SECONDS = 0.1


@dataclass(slots=True)
class InFlightTask:
    """Correlation entry for a task that has been queued and not yet reported."""

    task: Task
    dispatched_at: float | None = None


class TaskQueue:
    """FIFO channel workers poll from, plus the task id → task correlation index.

    The FIFO itself is thread-safe. The correlation index is not: the dispatch
    engine serializes ``track``/``release``/``mark_dispatched``/``expired``
    under its own lock together with expression store updates.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Task queue capacity must be > 0.")
        self.capacity = capacity
        self._pending: queue.Queue[Task] = queue.Queue(maxsize=capacity)
        self._in_flight: dict[int, InFlightTask] = {}
        self._closed = threading.Event()

    def enqueue(self, task: Task) -> bool:
        """Append ``task``, blocking while the queue is full.

        Returns False without enqueueing if the queue is closed before room frees up.
        """

        while not self._closed.is_set():
            try:
                self._pending.put(task, timeout=ENQUEUE_WAKE_SECONDS)
            except queue.Full:
                continue
            return True
        return False

    def offer(self, task: Task) -> bool:
        """Append ``task`` without blocking; return False if the queue is full."""

        try:
            self._pending.put_nowait(task)
        except queue.Full:
            return False
        return True

    def try_dequeue(self) -> Task | None:
        """Pop the oldest task, or return None immediately when empty."""

        try:
            return self._pending.get_nowait()
        except queue.Empty:
            return None

    def queued_count(self) -> int:
        return self._pending.qsize()

    def close(self) -> None:
        """Wake blocked ``enqueue`` calls; later calls return False immediately."""

        self._closed.set()

    # ---- correlation index ----

    def track(self, task: Task) -> None:
        if task.id in self._in_flight:
            raise ValueError(f"Task {task.id} is already in flight.")
        self._in_flight[task.id] = InFlightTask(task=task)

    def release(self, task_id: int) -> Task | None:
        """Remove ``task_id`` from the index; None if it was not in flight."""

        entry = self._in_flight.pop(task_id, None)
        return entry.task if entry is not None else None

    def mark_dispatched(self, task_id: int, *, now: float | None = None) -> None:
        entry = self._in_flight.get(task_id)
        if entry is not None:
            entry.dispatched_at = time.monotonic() if now is None else now

    def expired(self, *, lease_seconds: float, now: float | None = None) -> list[Task]:
        """Return dispatched tasks whose lease ran out, clearing their dispatch mark."""

        current = time.monotonic() if now is None else now
        expired: list[Task] = []
        for entry in self._in_flight.values():
            if entry.dispatched_at is None:
                continue
            if current - entry.dispatched_at < lease_seconds:
                continue
            entry.dispatched_at = None
            expired.append(entry.task)
        return expired

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, task_id: int) -> bool:
        return task_id in self._in_flight
