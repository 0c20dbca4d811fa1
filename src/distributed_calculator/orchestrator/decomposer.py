"""Reduce a whitespace-tokenized expression to exactly one binary task.

Only the first multiplication or division (or, failing that, the leading
``a op b`` triple) is turned into a task. The rest of the expression is never
evaluated: this is a partial precedence rule, not an expression evaluator.
The selected operator is not validated here; an unrecognized symbol gets the
timing table's fallback duration and workers report 0 for it.
"""

from __future__ import annotations

import math
import re

from distributed_calculator.orchestrator.models import DecomposeError, DecomposeFailure, Task
from distributed_calculator.orchestrator.timing import OperationTimingTable

MIN_TOKENS = 3
PRIORITY_OPERATORS = ("*", "/")
# ASCII decimal with optional exponent; no digit separators, no Unicode digits.
OPERAND_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def decompose(
    expression_id: int,
    source_text: str,
    timing: OperationTimingTable,
) -> Task:
    """Build the single task for ``source_text`` or raise ``DecomposeError``."""

    tokens = source_text.split()
    if len(tokens) < MIN_TOKENS:
        raise DecomposeError(
            DecomposeFailure.MALFORMED,
            f"Expected at least 'operand operator operand', got {len(tokens)} token(s).",
        )
    if len(tokens) % 2 == 0:
        raise DecomposeError(
            DecomposeFailure.MALFORMED,
            "Operands and operators must alternate; expression has a dangling token.",
        )

    position = _select_operator_position(tokens)
    operator = tokens[position]
    return Task(
        id=expression_id,
        operand_1=_parse_operand(tokens[position - 1]),
        operand_2=_parse_operand(tokens[position + 1]),
        operator=operator,
        operation_time=timing.duration_for(operator),
    )


def _select_operator_position(tokens: list[str]) -> int:
    for position in range(1, len(tokens), 2):
        if tokens[position] in PRIORITY_OPERATORS:
            return position
    return 1


def _parse_operand(token: str) -> float:
    if OPERAND_PATTERN.fullmatch(token) is None:
        raise DecomposeError(
            DecomposeFailure.BAD_OPERAND,
            f"Operand is not a number: {token!r}",
        )
    value = float(token)
    if not math.isfinite(value):
        raise DecomposeError(
            DecomposeFailure.BAD_OPERAND,
            f"Operand must be finite: {token!r}",
        )
    return value
