"""HTTP client for the coordinator endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from distributed_calculator.orchestrator.models import Task

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class CoordinatorError(Exception):
    """The coordinator could not be reached or answered unexpectedly."""


@dataclass(slots=True)
class SubmitResult:
    """Outcome of reporting a task result."""

    task_id: int
    accepted: bool
    status_code: int


class CoordinatorClient:
    """Thin httpx wrapper used by worker agents and the CLI."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0)),
            transport=transport,
        )

    # ---- worker protocol ----

    def fetch_task(self) -> Task | None:
        """Poll for one task; None when the queue is empty."""

        response = self._request("GET", "/internal/task")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code != httpx.codes.OK:
            raise CoordinatorError(f"Unexpected status polling task: HTTP {response.status_code}")
        try:
            return Task.from_payload(response.json()["task"])
        except (ValueError, KeyError, TypeError) as error:
            raise CoordinatorError(f"Malformed task payload: {error}") from error

    def send_result(self, task_id: int, result: float) -> SubmitResult:
        response = self._request("POST", "/internal/task", json={"id": task_id, "result": result})
        return SubmitResult(
            task_id=task_id,
            accepted=response.status_code == httpx.codes.OK,
            status_code=response.status_code,
        )

    # ---- client API ----

    def calculate(self, expression: str) -> int:
        response = self._request("POST", "/api/v1/calculate", json={"expression": expression})
        payload = self._expect(response, httpx.codes.CREATED)
        return int(payload["id"])

    def list_expressions(self) -> list[dict[str, Any]]:
        response = self._request("GET", "/api/v1/expressions")
        payload = self._expect(response, httpx.codes.OK)
        return list(payload.get("expressions") or [])

    def get_expression(self, expression_id: int) -> dict[str, Any] | None:
        response = self._request("GET", f"/api/v1/expressions/{expression_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        return dict(self._expect(response, httpx.codes.OK)["expression"])

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> CoordinatorClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as error:
            logger.debug("%s %s failed: %s", method, url, error)
            raise CoordinatorError(f"{method} {url} failed: {error}") from error

    @staticmethod
    def _expect(response: httpx.Response, expected: int) -> dict[str, Any]:
        if response.status_code != expected:
            raise CoordinatorError(
                f"{response.request.method} {response.request.url.path} "
                f"returned HTTP {response.status_code}: {response.text}",
            )
        try:
            payload = response.json()
        except ValueError as error:
            raise CoordinatorError(f"Malformed JSON from coordinator: {error}") from error
        if not isinstance(payload, dict):
            raise CoordinatorError("Expected JSON object from coordinator.")
        return payload
