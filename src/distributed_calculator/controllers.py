"""Controllers for CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import uvicorn

from distributed_calculator.agent.worker import AgentPool
from distributed_calculator.config import Settings
from distributed_calculator.http.client import CoordinatorClient
from distributed_calculator.http.server import create_app
from distributed_calculator.orchestrator.dispatcher import DispatchEngine
from distributed_calculator.orchestrator.timing import OperationTimingTable

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServeCommand:
    """CLI input for running the coordinator."""

    host: str | None
    port: int | None
    log_level: str | None = None


@dataclass(slots=True)
class AgentCommand:
    """CLI input for running worker agents."""

    orchestrator_url: str | None
    computing_power: int | None
    max_tasks_per_worker: int | None


@dataclass(slots=True)
class SubmitCommand:
    """CLI input for submitting an expression."""

    orchestrator_url: str | None
    expression: str


@dataclass(slots=True)
class ListExpressionsCommand:
    orchestrator_url: str | None


@dataclass(slots=True)
class InspectExpressionCommand:
    orchestrator_url: str | None
    expression_id: int


def build_engine(settings: Settings) -> DispatchEngine:
    return DispatchEngine(
        timing=OperationTimingTable(settings.timing),
        queue_capacity=settings.coordinator.queue_capacity,
        decompose_workers=settings.coordinator.decompose_workers,
        task_lease_seconds=settings.coordinator.task_lease_seconds,
    )


class CoordinatorCliController:
    """Runs the coordinator HTTP server."""

    def serve(self, command: ServeCommand) -> list[str]:
        settings = Settings.from_env()
        if command.host is not None:
            settings.coordinator.host = command.host
        if command.port is not None:
            settings.coordinator.port = command.port
        if command.log_level is not None:
            settings.log_level = command.log_level.upper()
        settings.validate_for_coordinator()

        engine = build_engine(settings)
        app = create_app(engine)
        logger.info(
            "Orchestrator starting on %s:%s",
            settings.coordinator.host,
            settings.coordinator.port,
        )
        uvicorn.run(
            app,
            host=settings.coordinator.host,
            port=settings.coordinator.port,
            log_level=settings.log_level.lower(),
        )
        stats = engine.stats()
        return [
            "Coordinator stopped: "
            f"expressions={stats.total_expressions} queued={stats.queued_tasks} "
            f"in_flight={stats.in_flight_tasks}",
        ]


class AgentCliController:
    """Runs worker agents and the small client-side commands."""

    def run_agent(self, command: AgentCommand) -> list[str]:
        settings = _agent_settings(command.orchestrator_url)
        if command.computing_power is not None:
            settings.agent.computing_power = command.computing_power
        settings.validate_for_agent()

        with _client(settings) as client:
            pool = AgentPool(
                client=client,
                computing_power=settings.agent.computing_power,
                poll_interval_seconds=settings.agent.poll_interval_seconds,
            )
            summary = pool.run(max_tasks_per_worker=command.max_tasks_per_worker)

        return [
            "Agent summary: "
            f"processed={summary.processed} reported={summary.reported} "
            f"rejected={summary.rejected} lost={summary.lost} "
            f"idle_polls={summary.idle_polls}",
        ]

    def submit(self, command: SubmitCommand) -> list[str]:
        settings = _agent_settings(command.orchestrator_url)
        with _client(settings) as client:
            expression_id = client.calculate(command.expression)
        return [f"Expression id: {expression_id}"]

    def list_expressions(self, command: ListExpressionsCommand) -> list[str]:
        settings = _agent_settings(command.orchestrator_url)
        with _client(settings) as client:
            expressions = client.list_expressions()

        expressions.sort(key=lambda item: int(item["id"]))
        lines = [f"Expressions: {len(expressions)}"]
        lines.extend(f"  {_format_expression(expression)}" for expression in expressions)
        return lines

    def inspect_expression(self, command: InspectExpressionCommand) -> list[str]:
        settings = _agent_settings(command.orchestrator_url)
        with _client(settings) as client:
            expression = client.get_expression(command.expression_id)
        if expression is None:
            return [f"Expression not found: {command.expression_id}"]
        return [_format_expression(expression)]


def _agent_settings(orchestrator_url: str | None) -> Settings:
    settings = Settings.from_env()
    if orchestrator_url is not None:
        settings.agent.orchestrator_url = orchestrator_url
    return settings


def _client(settings: Settings) -> CoordinatorClient:
    return CoordinatorClient(
        settings.agent.orchestrator_url,
        timeout_seconds=settings.agent.request_timeout_seconds,
    )


def _format_expression(expression: dict[str, object]) -> str:
    line = (
        f"{expression['id']} status={expression['status']} "
        f"result={expression['result']} text={expression['source_text']!r}"
    )
    if expression.get("error"):
        line += f" error={expression['error']}"
    return line
