"""FastAPI application exposing the client and worker endpoints."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, FiniteFloat, field_validator

from distributed_calculator import __version__
from distributed_calculator.orchestrator.dispatcher import DispatchEngine
from distributed_calculator.orchestrator.models import (
    ExpressionNotFoundError,
    TaskNotFoundError,
)

logger = logging.getLogger(__name__)

NO_TASKS_MESSAGE = "No tasks available"


class CalculateRequest(BaseModel):
    expression: str

    @field_validator("expression")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("expression must not be empty")
        return value


class TaskResultRequest(BaseModel):
    id: int
    result: FiniteFloat


def create_app(engine: DispatchEngine) -> FastAPI:
    """Build the coordinator app around ``engine``; the app closes it on shutdown."""

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        engine.close(wait_for_intake=False)

    app = FastAPI(
        title="Distributed Calculator",
        description="Coordinator for distributed arithmetic expression evaluation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    _install_error_handlers(app)
    app.include_router(_public_router(engine))
    app.include_router(_internal_router(engine))
    return app


def _public_router(engine: DispatchEngine) -> APIRouter:
    router = APIRouter(prefix="/api/v1")

    @router.post("/calculate", status_code=status.HTTP_201_CREATED)
    def calculate(request: CalculateRequest) -> dict[str, int]:
        return {"id": engine.add_expression(request.expression)}

    @router.get("/expressions")
    def list_expressions() -> dict[str, list[dict[str, Any]]]:
        return {
            "expressions": [expression.to_payload() for expression in engine.list_expressions()],
        }

    @router.get("/expressions/{expression_id}")
    def get_expression(expression_id: int) -> dict[str, dict[str, Any]]:
        return {"expression": engine.get_expression(expression_id).to_payload()}

    return router


def _internal_router(engine: DispatchEngine) -> APIRouter:
    router = APIRouter(prefix="/internal")

    @router.get("/task", response_model=None)
    def get_task() -> dict[str, dict[str, Any]] | JSONResponse:
        task = engine.poll_task()
        if task is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"message": NO_TASKS_MESSAGE},
            )
        return {"task": task.to_payload()}

    @router.post("/task")
    def post_task_result(request: TaskResultRequest) -> dict[str, str]:
        engine.submit_result(request.id, request.result)
        return {"status": "success"}

    return router


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_error(_: Request, error: RequestValidationError) -> JSONResponse:
        logger.info("Rejected request: %s", error.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid request"},
        )

    @app.exception_handler(ExpressionNotFoundError)
    async def _expression_not_found(_: Request, error: ExpressionNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": str(error)},
        )

    @app.exception_handler(TaskNotFoundError)
    async def _task_not_found(_: Request, error: TaskNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": str(error)},
        )
