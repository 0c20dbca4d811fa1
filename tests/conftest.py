"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from distributed_calculator.config import OperationTimingSettings
from distributed_calculator.http.server import create_app
from distributed_calculator.orchestrator.dispatcher import DispatchEngine
from distributed_calculator.orchestrator.timing import OperationTimingTable


@pytest.fixture()
def engine() -> Iterator[DispatchEngine]:
    dispatch_engine = DispatchEngine(decompose_workers=2)
    yield dispatch_engine
    dispatch_engine.close(wait_for_intake=False)


@pytest.fixture()
def instant_engine() -> Iterator[DispatchEngine]:
    """Engine whose tasks carry zero simulated cost."""

    dispatch_engine = DispatchEngine(
        timing=OperationTimingTable(
            OperationTimingSettings(
                addition_ms=0,
                subtraction_ms=0,
                multiplication_ms=0,
                division_ms=0,
            ),
        ),
        decompose_workers=2,
    )
    yield dispatch_engine
    dispatch_engine.close(wait_for_intake=False)


@pytest.fixture()
def api_client(engine: DispatchEngine) -> TestClient:
    return TestClient(create_app(engine))


@pytest.fixture()
def coordinator_transport(instant_engine: DispatchEngine) -> httpx.MockTransport:
    """httpx transport that serves requests from an in-process coordinator app."""

    test_client = TestClient(create_app(instant_engine))

    def _handler(request: httpx.Request) -> httpx.Response:
        response = test_client.request(
            request.method,
            request.url.path,
            content=request.content,
            headers={"content-type": request.headers.get("content-type", "application/json")},
        )
        return httpx.Response(
            status_code=response.status_code,
            content=response.content,
            headers={"content-type": response.headers.get("content-type", "")},
        )

    return httpx.MockTransport(_handler)
