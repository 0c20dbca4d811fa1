"""Dispatch engine: expression intake, task polling and result reconciliation."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait

from distributed_calculator.orchestrator.decomposer import decompose
from distributed_calculator.orchestrator.models import (
    DecomposeError,
    DispatchStats,
    Expression,
    ExpressionNotFoundError,
    Task,
    TaskNotFoundError,
)
from distributed_calculator.orchestrator.store import ExpressionStore
from distributed_calculator.orchestrator.task_queue import DEFAULT_CAPACITY, TaskQueue
from distributed_calculator.orchestrator.timing import OperationTimingTable

logger = logging.getLogger(__name__)


class DispatchEngine:
    """Single source of truth for expressions and in-flight tasks.

    One lock guards the expression store, the id counter and the correlation
    index. Decomposition runs on a thread pool outside the lock. A task is
    tracked in the correlation index before it is enqueued, so no worker can
    receive a task whose result would be rejected. ``enqueue`` blocks while
    the queue is full; that wait happens on the pool thread without holding
    the lock, so polls and results keep flowing and drain the queue.

    Tracking and enqueueing are therefore not one atomic step. While intake
    waits on a full queue, the task id is already in the index, so a result
    posted for that id before any worker received the task is accepted and
    completes the expression. The queued copy is then skipped by
    ``poll_task`` because it is no longer in flight.
    """

    def __init__(
        self,
        *,
        timing: OperationTimingTable | None = None,
        queue_capacity: int = DEFAULT_CAPACITY,
        decompose_workers: int = 4,
        task_lease_seconds: float = 0.0,
    ) -> None:
        self.timing = timing or OperationTimingTable()
        self.task_lease_seconds = task_lease_seconds
        self._store = ExpressionStore()
        self._queue = TaskQueue(capacity=queue_capacity)
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=decompose_workers,
            thread_name_prefix="decompose",
        )
        self._pending_intake: set[Future[None]] = set()
        self._pending_lock = threading.Lock()

    def add_expression(self, source_text: str) -> int:
        """Store a pending expression and schedule its decomposition; returns its id."""

        with self._lock:
            expression = self._store.create(source_text)
        logger.info("Added expression id=%s text=%r", expression.id, source_text)

        future = self._executor.submit(self._process_expression, expression.id, source_text)
        with self._pending_lock:
            self._pending_intake.add(future)
        future.add_done_callback(self._forget_intake)
        return expression.id

    def list_expressions(self) -> list[Expression]:
        with self._lock:
            return self._store.snapshot()

    def get_expression(self, expression_id: int) -> Expression:
        with self._lock:
            expression = self._store.get(expression_id)
        if expression is None:
            raise ExpressionNotFoundError(expression_id)
        return expression

    def poll_task(self) -> Task | None:
        """Hand the oldest queued task to a worker; never blocks."""

        if self.task_lease_seconds > 0:
            self._reclaim_expired_leases()

        while True:
            task = self._queue.try_dequeue()
            if task is None:
                return None
            with self._lock:
                if not self._queue.is_in_flight(task.id):
                    # Resolved while re-queued after a lease expiry.
                    continue
                self._queue.mark_dispatched(task.id)
            logger.info(
                "Sent task id=%s %s %s %s to worker",
                task.id,
                task.operand_1,
                task.operator,
                task.operand_2,
            )
            return task

    def submit_result(self, task_id: int, result: float) -> None:
        """Accept a worker result, or raise ``TaskNotFoundError`` for unknown ids."""

        with self._lock:
            task = self._queue.release(task_id)
            if task is None:
                logger.warning("Task not found for id=%s", task_id)
                raise TaskNotFoundError(task_id)
            updated = self._store.complete(task.id, result)

        if updated is None:
            logger.warning("Result for task id=%s had no pending expression to update", task_id)
            return
        logger.info("Updated expression id=%s result=%s", task.id, result)

    def stats(self) -> DispatchStats:
        with self._lock:
            return DispatchStats(
                expressions_by_status=self._store.count_by_status(),
                queued_tasks=self._queue.queued_count(),
                in_flight_tasks=self._queue.in_flight_count(),
            )

    def join_pending(self, timeout: float | None = None) -> bool:
        """Wait for scheduled decompositions; True when none are left running."""

        with self._pending_lock:
            pending = set(self._pending_intake)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, *, wait_for_intake: bool = True) -> None:
        """Stop the intake pool.

        With ``wait_for_intake`` the call waits for every scheduled decomposition,
        including one blocked on a full queue. Without it, queued decompositions
        are cancelled and blocked ones give up their task, so the call returns
        promptly even when no worker is left to drain the queue.
        """

        if not wait_for_intake:
            self._queue.close()
        self._executor.shutdown(wait=True, cancel_futures=not wait_for_intake)

    def _process_expression(self, expression_id: int, source_text: str) -> None:
        try:
            task = decompose(expression_id, source_text, self.timing)
        except DecomposeError as error:
            with self._lock:
                self._store.fail(expression_id, error.failure)
            logger.warning(
                "Invalid expression id=%s text=%r: %s",
                expression_id,
                source_text,
                error,
            )
            return

        with self._lock:
            self._queue.track(task)
        if not self._queue.enqueue(task):
            with self._lock:
                self._queue.release(task.id)
            logger.warning("Dropped task id=%s: coordinator is shutting down", task.id)
            return
        logger.info(
            "Queued task id=%s operator=%s operation_time=%sms",
            task.id,
            task.operator,
            task.operation_time,
        )

    def _reclaim_expired_leases(self) -> None:
        now = time.monotonic()
        with self._lock:
            expired = self._queue.expired(lease_seconds=self.task_lease_seconds, now=now)
        for task in expired:
            if self._queue.offer(task):
                logger.warning("Lease expired for task id=%s; re-queued", task.id)
                continue
            # Queue is full; keep the lease expired so the next poll retries.
            with self._lock:
                self._queue.mark_dispatched(task.id, now=now - self.task_lease_seconds)

    def _forget_intake(self, future: Future[None]) -> None:
        with self._pending_lock:
            self._pending_intake.discard(future)
        error = future.exception() if not future.cancelled() else None
        if error is not None:
            logger.error("Expression intake failed", exc_info=error)
