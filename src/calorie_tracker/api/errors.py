"""Conversion of service errors into JSON responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from calorie_tracker.adapters.backend_client import BackendError
from calorie_tracker.services.foods import FoodValidationError
from calorie_tracker.services.meals import DuplicateEntryError, UnknownEntryError

_logger = logging.getLogger(__name__)


def backend_error_status(exc: BackendError) -> int:
    """HTTP status to report for a backend failure."""
    if exc.status_code is None or exc.status_code < status.HTTP_400_BAD_REQUEST:
        return status.HTTP_502_BAD_GATEWAY
    return exc.status_code


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers so service errors reach clients as JSON."""

    @app.exception_handler(BackendError)
    async def handle_backend_error(request: Request, exc: BackendError) -> JSONResponse:
        _logger.warning(
            "Backend error on %s %s (status=%s): %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(
            status_code=backend_error_status(exc),
            content={"status": "error", "message": exc.message},
        )

    @app.exception_handler(FoodValidationError)
    async def handle_food_validation(
        request: Request, exc: FoodValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": str(exc), "errors": exc.errors},
        )

    @app.exception_handler(DuplicateEntryError)
    async def handle_duplicate(
        request: Request, exc: DuplicateEntryError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"status": "error", "message": str(exc)},
        )

    @app.exception_handler(UnknownEntryError)
    async def handle_unknown_entry(
        request: Request, exc: UnknownEntryError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status": "error", "message": str(exc)},
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"status": "error", "message": str(exc)},
        )
