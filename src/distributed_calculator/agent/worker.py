"""Worker agent: poll the coordinator, compute the task, report the result."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from distributed_calculator.http.client import CoordinatorClient, CoordinatorError
from distributed_calculator.orchestrator.models import Task

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AgentRunSummary:
    """Aggregate worker counters for CLI reporting."""

    processed: int = 0
    reported: int = 0
    rejected: int = 0
    lost: int = 0
    idle_polls: int = 0

    def add(self, other: AgentRunSummary) -> None:
        self.processed += other.processed
        self.reported += other.reported
        self.rejected += other.rejected
        self.lost += other.lost
        self.idle_polls += other.idle_polls


def compute(task: Task) -> float:
    """Evaluate one binary operation; division by zero and unknown operators yield 0."""

    if task.operator == "+":
        return task.operand_1 + task.operand_2
    if task.operator == "-":
        return task.operand_1 - task.operand_2
    if task.operator == "*":
        return task.operand_1 * task.operand_2
    if task.operator == "/":
        if task.operand_2 == 0:
            logger.warning("Division by zero in task id=%s", task.id)
            return 0.0
        return task.operand_1 / task.operand_2
    logger.warning("Unknown operation %r in task id=%s", task.operator, task.id)
    return 0.0


class AgentWorker:
    """One polling loop against the coordinator."""

    def __init__(
        self,
        *,
        client: CoordinatorClient,
        worker_id: str,
        poll_interval_seconds: float = 1.0,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.client = client
        self.worker_id = worker_id
        self.poll_interval_seconds = poll_interval_seconds
        self._stop = threading.Event()
        self._sleep = sleep or self._sleep_with_stop

    def run_once(self) -> AgentRunSummary:
        """Process at most one task; waits one poll interval when idle."""

        summary = AgentRunSummary()
        try:
            task = self.client.fetch_task()
        except CoordinatorError as error:
            logger.warning("Worker %s: error polling coordinator: %s", self.worker_id, error)
            task = None
        if task is None:
            summary.idle_polls = 1
            self._sleep(self.poll_interval_seconds)
            return summary

        summary.processed = 1
        logger.info(
            "Worker %s: computing %s %s %s (wait time: %sms)",
            self.worker_id,
            task.operand_1,
            task.operator,
            task.operand_2,
            task.operation_time,
        )
        self._sleep(task.operation_time / 1000)
        result = compute(task)

        try:
            outcome = self.client.send_result(task.id, result)
        except CoordinatorError as error:
            logger.error(
                "Worker %s: failed to send result for task %s: %s",
                self.worker_id,
                task.id,
                error,
            )
            summary.lost = 1
            self._sleep(self.poll_interval_seconds)
            return summary

        if outcome.accepted:
            logger.info("Worker %s: result for task %s sent: %s", self.worker_id, task.id, result)
            summary.reported = 1
        else:
            logger.warning(
                "Worker %s: result for task %s rejected with HTTP %s",
                self.worker_id,
                task.id,
                outcome.status_code,
            )
            summary.rejected = 1
        return summary

    def run_loop(self, *, max_tasks: int | None = None) -> AgentRunSummary:
        """Poll until stopped, or until ``max_tasks`` tasks were processed."""

        aggregate = AgentRunSummary()
        while not self._stop.is_set():
            if max_tasks is not None and aggregate.processed >= max_tasks:
                break
            aggregate.add(self.run_once())
        return aggregate

    def request_stop(self) -> None:
        self._stop.set()

    def _sleep_with_stop(self, seconds: float) -> None:
        self._stop.wait(timeout=max(0.0, seconds))


class AgentPool:
    """Runs ``computing_power`` workers in threads sharing one coordinator client."""

    def __init__(
        self,
        *,
        client: CoordinatorClient,
        computing_power: int,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        if computing_power <= 0:
            raise ValueError("computing_power must be a positive integer.")
        self.workers = [
            AgentWorker(
                client=client,
                worker_id=f"worker-{index + 1}",
                poll_interval_seconds=poll_interval_seconds,
            )
            for index in range(computing_power)
        ]

    def run(self, *, max_tasks_per_worker: int | None = None) -> AgentRunSummary:
        """Run all workers until a stop signal (or per-worker task caps) ends them."""

        summaries = [AgentRunSummary() for _ in self.workers]

        def _run(index: int) -> None:
            summaries[index] = self.workers[index].run_loop(max_tasks=max_tasks_per_worker)

        threads = [
            threading.Thread(target=_run, args=(index,), name=worker.worker_id, daemon=True)
            for index, worker in enumerate(self.workers)
        ]
        logger.info("Agent started with %s workers", len(threads))
        with self._signal_handlers():
            for thread in threads:
                thread.start()
            while any(thread.is_alive() for thread in threads):
                for thread in threads:
                    thread.join(timeout=0.2)

        aggregate = AgentRunSummary()
        for summary in summaries:
            aggregate.add(summary)
        return aggregate

    def request_stop(self) -> None:
        for worker in self.workers:
            worker.request_stop()

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            logger.info("Received %s, stopping workers", signal.Signals(signum).name)
            self.request_stop()

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
