"""Domain models for expression intake and task dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ExpressionStatus(str, Enum):
    """Expression lifecycle states. Both non-pending states are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not ExpressionStatus.PENDING


class DecomposeFailure(str, Enum):
    """Reasons an expression cannot be turned into a task."""

    MALFORMED = "malformed"
    BAD_OPERAND = "bad_operand"


@dataclass(slots=True)
class Expression:
    """Client-submitted expression and its resolution state."""

    id: int
    source_text: str
    status: ExpressionStatus = ExpressionStatus.PENDING
    result: float = 0.0
    error: DecomposeFailure | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "result": self.result,
            "source_text": self.source_text,
            "error": self.error.value if self.error is not None else None,
        }


@dataclass(slots=True)
class Task:
    """One binary operation destined for a worker."""

    id: int
    operand_1: float
    operand_2: float
    operator: str
    operation_time: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "operand_1": self.operand_1,
            "operand_2": self.operand_2,
            "operator": self.operator,
            "operation_time": self.operation_time,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Task:
        """Build a task from its wire representation."""

        return cls(
            id=int(payload["id"]),
            operand_1=float(payload["operand_1"]),
            operand_2=float(payload["operand_2"]),
            operator=str(payload["operator"]),
            operation_time=int(payload["operation_time"]),
        )


@dataclass(slots=True)
class DispatchStats:
    """Point-in-time counters for operators."""

    expressions_by_status: dict[ExpressionStatus, int] = field(default_factory=dict)
    queued_tasks: int = 0
    in_flight_tasks: int = 0

    @property
    def total_expressions(self) -> int:
        return sum(self.expressions_by_status.values())


class DispatchError(Exception):
    """Base class for dispatch engine errors."""


class DecomposeError(DispatchError):
    """Expression text cannot be reduced to one binary task."""

    def __init__(self, failure: DecomposeFailure, message: str) -> None:
        super().__init__(message)
        self.failure = failure


class TaskNotFoundError(DispatchError):
    """A result arrived for a task id that is not in flight."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class ExpressionNotFoundError(DispatchError):
    """Lookup by an unknown expression id."""

    def __init__(self, expression_id: int) -> None:
        super().__init__(f"Expression not found: {expression_id}")
        self.expression_id = expression_id
