from __future__ import annotations

import allure
import pytest

from distributed_calculator.config import OperationTimingSettings
from distributed_calculator.orchestrator.timing import UNKNOWN_OPERATOR_MS, OperationTimingTable

pytestmark = [
    allure.epic("Coordinator"),
    allure.feature("Operation Timing"),
]


@pytest.mark.parametrize(
    ("operator", "expected"),
    [("+", 2000), ("-", 2000), ("*", 3000), ("/", 3000), ("%", 1000), ("", 1000)],
)
def test_default_durations(operator: str, expected: int) -> None:
    assert OperationTimingTable().duration_for(operator) == expected


def test_configured_durations_come_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIME_ADDITION_MS", "100")
    monkeypatch.setenv("TIME_SUBTRACTION_MS", "200")
    monkeypatch.setenv("TIME_MULTIPLICATIONS_MS", "300")
    monkeypatch.setenv("TIME_DIVISIONS_MS", "400")

    table = OperationTimingTable(OperationTimingSettings.from_env())

    assert [table.duration_for(op) for op in "+-*/"] == [100, 200, 300, 400]
    assert table.duration_for("^") == UNKNOWN_OPERATOR_MS


@pytest.mark.parametrize("raw", ["", "  ", "abc", "1.5", "-10"])
def test_malformed_configuration_falls_back_to_default(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
) -> None:
    monkeypatch.setenv("TIME_MULTIPLICATIONS_MS", raw)

    table = OperationTimingTable(OperationTimingSettings.from_env())

    assert table.duration_for("*") == 3000
