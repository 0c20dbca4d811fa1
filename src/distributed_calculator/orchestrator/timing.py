"""Operator to simulated cost lookup."""

from __future__ import annotations

from distributed_calculator.config import OperationTimingSettings

UNKNOWN_OPERATOR_MS = 1_000


class OperationTimingTable:
    """Pure lookup of the configured duration for an operator symbol."""

    def __init__(self, settings: OperationTimingSettings | None = None) -> None:
        settings = settings or OperationTimingSettings()
        self._durations = {
            "+": settings.addition_ms,
            "-": settings.subtraction_ms,
            "*": settings.multiplication_ms,
            "/": settings.division_ms,
        }

    def duration_for(self, operator: str) -> int:
        """Return milliseconds a worker should spend on ``operator``. Never fails."""

        return self._durations.get(operator, UNKNOWN_OPERATOR_MS)
