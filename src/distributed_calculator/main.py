"""CLI entrypoint for distributed-calculator."""

import os
from collections.abc import Callable

import rich_click as click

from distributed_calculator import __version__
from distributed_calculator.controllers import (
    AgentCliController,
    AgentCommand,
    CoordinatorCliController,
    InspectExpressionCommand,
    ListExpressionsCommand,
    ServeCommand,
    SubmitCommand,
)
from distributed_calculator.http.client import CoordinatorError
from distributed_calculator.logging_setup import setup_logging

click.rich_click.USE_MARKDOWN = True
COORDINATOR_CONTROLLER = CoordinatorCliController()
AGENT_CONTROLLER = AgentCliController()

_orchestrator_url_option = click.option(
    "--orchestrator-url",
    default=None,
    help="Coordinator base URL (defaults to DISTRIBUTED_CALCULATOR_ORCHESTRATOR_URL).",
)


@click.group()
@click.version_option(version=__version__, prog_name="distributed-calculator")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=lambda: os.getenv("DISTRIBUTED_CALCULATOR_LOG_LEVEL", "INFO").upper(),
    show_default="INFO",
    help="Logging level for all components.",
)
def distributed_calculator(log_level: str) -> None:
    """Distributed arithmetic expression calculator."""

    setup_logging(log_level)


@distributed_calculator.command("serve")
@click.pass_context
@click.option("--host", default=None, help="Interface to bind (defaults to 0.0.0.0).")
@click.option(
    "--port",
    type=click.IntRange(min=1, max=65_535),
    default=None,
    help="Port to bind (defaults to 8080).",
)
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the coordinator HTTP server."""

    _emit_lines(
        COORDINATOR_CONTROLLER.serve(
            ServeCommand(host=host, port=port, log_level=ctx.find_root().params["log_level"]),
        ),
    )


@distributed_calculator.command("agent")
@_orchestrator_url_option
@click.option(
    "--computing-power",
    type=click.IntRange(min=1),
    default=None,
    help="Number of concurrent workers (defaults to COMPUTING_POWER or 3).",
)
@click.option(
    "--max-tasks",
    "max_tasks_per_worker",
    type=click.IntRange(min=1),
    default=None,
    help="Stop each worker after this many tasks (default: run until interrupted).",
)
def agent(
    orchestrator_url: str | None,
    computing_power: int | None,
    max_tasks_per_worker: int | None,
) -> None:
    """Run worker agents that poll the coordinator for tasks."""

    _emit_lines(
        AGENT_CONTROLLER.run_agent(
            AgentCommand(
                orchestrator_url=orchestrator_url,
                computing_power=computing_power,
                max_tasks_per_worker=max_tasks_per_worker,
            ),
        ),
    )


@distributed_calculator.command("submit")
@_orchestrator_url_option
@click.argument("expression")
def submit(orchestrator_url: str | None, expression: str) -> None:
    """Submit an expression such as `"2 * 3 + 4"`."""

    _emit_lines(
        _call_coordinator(
            lambda: AGENT_CONTROLLER.submit(
                SubmitCommand(orchestrator_url=orchestrator_url, expression=expression),
            ),
        ),
    )


@distributed_calculator.command("expressions")
@_orchestrator_url_option
def expressions(orchestrator_url: str | None) -> None:
    """List all expressions known to the coordinator."""

    _emit_lines(
        _call_coordinator(
            lambda: AGENT_CONTROLLER.list_expressions(
                ListExpressionsCommand(orchestrator_url=orchestrator_url),
            ),
        ),
    )


@distributed_calculator.command("expression")
@_orchestrator_url_option
@click.argument("expression_id", type=int)
def expression(orchestrator_url: str | None, expression_id: int) -> None:
    """Show one expression by id."""

    _emit_lines(
        _call_coordinator(
            lambda: AGENT_CONTROLLER.inspect_expression(
                InspectExpressionCommand(
                    orchestrator_url=orchestrator_url,
                    expression_id=expression_id,
                ),
            ),
        ),
    )


def _call_coordinator(action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except CoordinatorError as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    distributed_calculator()
