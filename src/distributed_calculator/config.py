"""Runtime configuration for the coordinator and worker agents."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

DEFAULT_ADDITION_MS = 2_000
DEFAULT_SUBTRACTION_MS = 2_000
DEFAULT_MULTIPLICATION_MS = 3_000
DEFAULT_DIVISION_MS = 3_000


@dataclass(slots=True)
class OperationTimingSettings:
    """Simulated cost per operator, in milliseconds."""

    addition_ms: int = DEFAULT_ADDITION_MS
    subtraction_ms: int = DEFAULT_SUBTRACTION_MS
    multiplication_ms: int = DEFAULT_MULTIPLICATION_MS
    division_ms: int = DEFAULT_DIVISION_MS

    @classmethod
    def from_env(cls) -> OperationTimingSettings:
        """Read operator timings; absent or malformed values fall back to defaults."""

        return cls(
            addition_ms=_env_ms("TIME_ADDITION_MS", DEFAULT_ADDITION_MS),
            subtraction_ms=_env_ms("TIME_SUBTRACTION_MS", DEFAULT_SUBTRACTION_MS),
            multiplication_ms=_env_ms("TIME_MULTIPLICATIONS_MS", DEFAULT_MULTIPLICATION_MS),
            division_ms=_env_ms("TIME_DIVISIONS_MS", DEFAULT_DIVISION_MS),
        )


@dataclass(slots=True)
class CoordinatorSettings:
    """HTTP coordinator settings."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    queue_capacity: int = 100
    decompose_workers: int = 4
    task_lease_seconds: float = 0.0


@dataclass(slots=True)
class AgentSettings:
    """Worker agent settings."""

    orchestrator_url: str = "http://localhost:8080"
    computing_power: int = 3
    poll_interval_seconds: float = 1.0
    request_timeout_seconds: float = 10.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by component."""

    timing: OperationTimingSettings = field(default_factory=OperationTimingSettings)
    coordinator: CoordinatorSettings = field(default_factory=CoordinatorSettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local development."""

        return cls(
            timing=OperationTimingSettings.from_env(),
            coordinator=CoordinatorSettings(
                host=os.getenv("DISTRIBUTED_CALCULATOR_HOST", "0.0.0.0"),  # noqa: S104
                port=int(os.getenv("DISTRIBUTED_CALCULATOR_PORT", "8080")),
                queue_capacity=int(os.getenv("DISTRIBUTED_CALCULATOR_QUEUE_CAPACITY", "100")),
                decompose_workers=int(
                    os.getenv("DISTRIBUTED_CALCULATOR_DECOMPOSE_WORKERS", "4"),
                ),
                task_lease_seconds=float(
                    os.getenv("DISTRIBUTED_CALCULATOR_TASK_LEASE_SECONDS", "0"),
                ),
            ),
            agent=AgentSettings(
                orchestrator_url=os.getenv(
                    "DISTRIBUTED_CALCULATOR_ORCHESTRATOR_URL",
                    "http://localhost:8080",
                ),
                computing_power=int(os.getenv("COMPUTING_POWER", "3")),
                poll_interval_seconds=float(
                    os.getenv("DISTRIBUTED_CALCULATOR_POLL_INTERVAL_SECONDS", "1.0"),
                ),
                request_timeout_seconds=float(
                    os.getenv("DISTRIBUTED_CALCULATOR_REQUEST_TIMEOUT_SECONDS", "10.0"),
                ),
            ),
            log_level=os.getenv("DISTRIBUTED_CALCULATOR_LOG_LEVEL", "INFO").upper(),
        )

    def validate_for_coordinator(self) -> None:
        """Raise configuration error if coordinator settings are out of range."""

        coordinator = self.coordinator
        if not 0 < coordinator.port < 65_536:
            raise ValueError("DISTRIBUTED_CALCULATOR_PORT must be in 1..65535.")
        if coordinator.queue_capacity <= 0:
            raise ValueError("DISTRIBUTED_CALCULATOR_QUEUE_CAPACITY must be > 0.")
        if coordinator.decompose_workers <= 0:
            raise ValueError("DISTRIBUTED_CALCULATOR_DECOMPOSE_WORKERS must be > 0.")
        if coordinator.task_lease_seconds < 0:
            raise ValueError("DISTRIBUTED_CALCULATOR_TASK_LEASE_SECONDS must be >= 0.")

    def validate_for_agent(self) -> None:
        """Raise configuration error if agent settings are out of range."""

        agent = self.agent
        parsed = urlparse(agent.orchestrator_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid orchestrator URL: "
                f"{agent.orchestrator_url!r}. Expected an absolute http:// or https:// URL.",
            )
        if agent.computing_power <= 0:
            raise ValueError("COMPUTING_POWER must be a positive integer.")
        if agent.poll_interval_seconds < 0:
            raise ValueError("DISTRIBUTED_CALCULATOR_POLL_INTERVAL_SECONDS must be >= 0.")
        if agent.request_timeout_seconds <= 0:
            raise ValueError("DISTRIBUTED_CALCULATOR_REQUEST_TIMEOUT_SECONDS must be > 0.")


def _env_ms(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < 0:
        return default
    return value
