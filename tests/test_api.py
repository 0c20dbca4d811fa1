"""Tests for the coordinator HTTP endpoints."""

from __future__ import annotations

import threading

import allure
import pytest
from fastapi.testclient import TestClient

from distributed_calculator.http.server import create_app
from distributed_calculator.orchestrator.dispatcher import DispatchEngine

pytestmark = [
    allure.epic("Coordinator"),
    allure.feature("HTTP API"),
]


def _calculate(api_client: TestClient, engine: DispatchEngine, expression: str) -> int:
    response = api_client.post("/api/v1/calculate", json={"expression": expression})
    assert response.status_code == 201
    assert engine.join_pending(timeout=5)
    return response.json()["id"]


def test_full_round_trip(api_client: TestClient, engine: DispatchEngine) -> None:
    expression_id = _calculate(api_client, engine, "3 + 4")

    response = api_client.get("/internal/task")
    assert response.status_code == 200
    assert response.json() == {
        "task": {
            "id": expression_id,
            "operand_1": 3.0,
            "operand_2": 4.0,
            "operator": "+",
            "operation_time": 2000,
        },
    }

    response = api_client.post("/internal/task", json={"id": expression_id, "result": 7})
    assert response.status_code == 200
    assert response.json() == {"status": "success"}

    response = api_client.get(f"/api/v1/expressions/{expression_id}")
    assert response.status_code == 200
    expression = response.json()["expression"]
    assert expression["status"] == "completed"
    assert expression["result"] == 7.0
    assert expression["source_text"] == "3 + 4"
    assert expression["error"] is None


def test_poll_empty_queue_returns_404_message(api_client: TestClient) -> None:
    response = api_client.get("/internal/task")

    assert response.status_code == 404
    assert response.json() == {"message": "No tasks available"}


def test_invalid_expression_is_reported_through_status(
    api_client: TestClient,
    engine: DispatchEngine,
) -> None:
    expression_id = _calculate(api_client, engine, "only-one-token")

    expression = api_client.get(f"/api/v1/expressions/{expression_id}").json()["expression"]

    assert expression["status"] == "error"
    assert expression["error"] == "malformed"
    assert api_client.get("/internal/task").status_code == 404


@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": {}},
        {"json": {"expression": ""}},
        {"json": {"expression": "   "}},
        {"json": {"expression": 5}},
        {"json": ["3 + 4"]},
        {"content": b"{not json", "headers": {"content-type": "application/json"}},
    ],
)
def test_calculate_rejects_empty_or_malformed_body(
    api_client: TestClient,
    engine: DispatchEngine,
    kwargs: dict,
) -> None:
    response = api_client.post("/api/v1/calculate", **kwargs)

    assert response.status_code == 400
    assert "message" in response.json()
    assert engine.list_expressions() == []


def test_list_expressions(api_client: TestClient, engine: DispatchEngine) -> None:
    assert api_client.get("/api/v1/expressions").json() == {"expressions": []}
    first = _calculate(api_client, engine, "1 + 2")
    second = _calculate(api_client, engine, "2 * 3")

    response = api_client.get("/api/v1/expressions")

    assert response.status_code == 200
    ids = sorted(item["id"] for item in response.json()["expressions"])
    assert ids == [first, second]


def test_get_expression_unknown_and_non_integer_ids(api_client: TestClient) -> None:
    assert api_client.get("/api/v1/expressions/12345").status_code == 404
    assert api_client.get("/api/v1/expressions/abc").status_code == 400


def test_submit_result_for_unknown_task_returns_404(api_client: TestClient) -> None:
    response = api_client.post("/internal/task", json={"id": 77, "result": 1.0})

    assert response.status_code == 404
    assert response.json() == {"message": "Task not found: 77"}


def test_submit_result_twice_returns_404_second_time(
    api_client: TestClient,
    engine: DispatchEngine,
) -> None:
    expression_id = _calculate(api_client, engine, "2 * 5")
    api_client.get("/internal/task")

    first = api_client.post("/internal/task", json={"id": expression_id, "result": 10})
    second = api_client.post("/internal/task", json={"id": expression_id, "result": 11})

    assert (first.status_code, second.status_code) == (200, 404)
    expression = api_client.get(f"/api/v1/expressions/{expression_id}").json()["expression"]
    assert expression["result"] == 10.0


@pytest.mark.parametrize(
    "payload",
    [{}, {"id": 1}, {"result": 1.0}, {"id": "one", "result": 1.0}, {"id": 1, "result": "x"}],
)
def test_submit_result_rejects_malformed_body(api_client: TestClient, payload: dict) -> None:
    assert api_client.post("/internal/task", json=payload).status_code == 400


def test_cors_preflight_is_allowed(api_client: TestClient) -> None:
    response = api_client.options(
        "/api/v1/calculate",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_app_shutdown_does_not_wait_for_intake_blocked_on_full_queue() -> None:
    engine = DispatchEngine(queue_capacity=1, decompose_workers=1)
    finished = threading.Event()

    def _serve() -> None:
        with TestClient(create_app(engine)) as client:
            for expression in ("1 + 1", "2 + 2"):
                response = client.post("/api/v1/calculate", json={"expression": expression})
                assert response.status_code == 201
            assert not engine.join_pending(timeout=0.2)
        finished.set()

    server = threading.Thread(target=_serve, daemon=True)
    server.start()

    assert finished.wait(timeout=5)
