from __future__ import annotations

import allure

from distributed_calculator.orchestrator.models import DecomposeFailure, ExpressionStatus
from distributed_calculator.orchestrator.store import ExpressionStore

pytestmark = [
    allure.epic("Coordinator"),
    allure.feature("Expression Store"),
]


def test_create_assigns_monotonic_ids_starting_at_one() -> None:
    store = ExpressionStore()

    ids = [store.create(f"{n} + 1").id for n in range(3)]

    assert ids == [1, 2, 3]
    assert len(store) == 3


def test_new_expression_is_pending_with_zero_result() -> None:
    store = ExpressionStore()
    expression = store.create("3 + 4")

    assert expression.status is ExpressionStatus.PENDING
    assert expression.result == 0.0
    assert expression.source_text == "3 + 4"
    assert expression.created_at is not None


def test_get_returns_copies() -> None:
    store = ExpressionStore()
    created = store.create("3 + 4")

    copy = store.get(created.id)
    copy.status = ExpressionStatus.COMPLETED

    assert store.get(created.id).status is ExpressionStatus.PENDING
    assert store.get(999) is None


def test_complete_and_fail_are_terminal() -> None:
    store = ExpressionStore()
    first = store.create("3 + 4")
    second = store.create("bad")

    assert store.complete(first.id, 7.0).result == 7.0
    assert store.fail(second.id, DecomposeFailure.MALFORMED).error is DecomposeFailure.MALFORMED

    assert store.complete(first.id, 99.0) is None
    assert store.complete(second.id, 1.0) is None
    assert store.fail(first.id, DecomposeFailure.BAD_OPERAND) is None
    assert store.get(first.id).result == 7.0
    assert store.get(second.id).status is ExpressionStatus.ERROR


def test_count_by_status_includes_every_status() -> None:
    store = ExpressionStore()
    store.create("1 + 1")
    done = store.create("2 + 2")
    store.complete(done.id, 4.0)

    assert store.count_by_status() == {
        ExpressionStatus.PENDING: 1,
        ExpressionStatus.COMPLETED: 1,
        ExpressionStatus.ERROR: 0,
    }
