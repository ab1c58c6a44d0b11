"""
Engine exception handlers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tally.exceptions import (
    BudgetClosedError,
    RecomputeFailedError,
    RecomputeInProgressError,
    RecordNotFoundError,
)

logger = logging.getLogger(__name__)


async def handle_recompute_failed(request: Request, exc: RecomputeFailedError) -> JSONResponse:
    logger.error("Recompute failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{exc.operation} failed, no partial state guaranteed",
            "retry_allowed": True,
        },
    )


async def handle_recompute_in_progress(request: Request, exc: RecomputeInProgressError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "retry_allowed": True},
    )


async def handle_record_not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def handle_budget_closed(request: Request, exc: BudgetClosedError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "retry_allowed": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RecomputeFailedError, handle_recompute_failed)
    app.add_exception_handler(RecomputeInProgressError, handle_recompute_in_progress)
    app.add_exception_handler(BudgetClosedError, handle_budget_closed)
    app.add_exception_handler(RecordNotFoundError, handle_record_not_found)
