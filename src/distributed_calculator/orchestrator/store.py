"""In-memory expression store."""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import UTC, datetime

from distributed_calculator.orchestrator.models import (
    DecomposeFailure,
    Expression,
    ExpressionStatus,
)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ExpressionStore:
    """Expression id → expression state, retained for the life of the process.

    Not synchronized on its own; the dispatch engine holds one lock across
    store and correlation index mutations. Reads return copies so callers
    never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._expressions: dict[int, Expression] = {}
        self._ids = itertools.count(1)

    def create(self, source_text: str) -> Expression:
        """Allocate the next id and store a pending expression."""

        now = utc_now()
        expression = Expression(
            id=next(self._ids),
            source_text=source_text,
            created_at=now,
            updated_at=now,
        )
        self._expressions[expression.id] = expression
        return replace(expression)

    def get(self, expression_id: int) -> Expression | None:
        expression = self._expressions.get(expression_id)
        return replace(expression) if expression is not None else None

    def snapshot(self) -> list[Expression]:
        return [replace(expression) for expression in self._expressions.values()]

    def complete(self, expression_id: int, result: float) -> Expression | None:
        """Move a pending expression to ``completed``; terminal ones are left as is."""

        expression = self._expressions.get(expression_id)
        if expression is None or expression.status.is_terminal:
            return None
        expression.status = ExpressionStatus.COMPLETED
        expression.result = result
        expression.updated_at = utc_now()
        return replace(expression)

    def fail(self, expression_id: int, failure: DecomposeFailure) -> Expression | None:
        """Move a pending expression to ``error``; terminal ones are left as is."""

        expression = self._expressions.get(expression_id)
        if expression is None or expression.status.is_terminal:
            return None
        expression.status = ExpressionStatus.ERROR
        expression.result = 0.0
        expression.error = failure
        expression.updated_at = utc_now()
        return replace(expression)

    def count_by_status(self) -> dict[ExpressionStatus, int]:
        counts = dict.fromkeys(ExpressionStatus, 0)
        for expression in self._expressions.values():
            counts[expression.status] += 1
        return counts

    def __len__(self) -> int:
        return len(self._expressions)
