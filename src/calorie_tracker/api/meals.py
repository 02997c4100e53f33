"""Meal tracker page endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from calorie_tracker.adapters.backend_client import BackendError
from calorie_tracker.api.dependencies import require_session
from calorie_tracker.api.errors import backend_error_status
from calorie_tracker.api.models import (  # noqa: TC001
    EntryRef,
    MealEntryRequest,
    MoveEntryRequest,
)
from calorie_tracker.domain.meals import FoodRef

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer
    from calorie_tracker.services.meals import MealLogReconciler

_logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/meals", tags=["meals"], dependencies=[Depends(require_session)]
)


@router.get("")
async def meal_log(
    request: Request, day: date | None = Query(default=None, alias="date")
) -> dict[str, object]:
    """Load the meal log for a day, defaulting to today."""
    container: AppContainer = request.app.state.container
    await container.meal_log.load_for_date(day or date.today())
    return _log_view(container.meal_log)


@router.post("/entries", status_code=status.HTTP_201_CREATED, response_model=None)
async def add_entry(
    body: MealEntryRequest, request: Request
) -> dict[str, object] | JSONResponse:
    """Log a food; a failed save keeps the entry marked as failed."""
    container: AppContainer = request.app.state.container
    meal_log = container.meal_log
    entry = meal_log.stage_entry(
        body.meal_type,
        FoodRef(food_id=str(body.food_id), name=body.name),
        body.quantity_grams,
        body.calories,
    )
    return await _persist(meal_log, entry.meal_type, entry.composite_id, retry=False)


@router.post("/entries/retry", response_model=None)
async def retry_entry(
    body: EntryRef, request: Request
) -> dict[str, object] | JSONResponse:
    """Re-submit an entry whose save failed."""
    container: AppContainer = request.app.state.container
    return await _persist(
        container.meal_log, body.meal_type, body.composite_id, retry=True
    )


@router.delete("/entries/{meal_type}/{composite_id}")
async def remove_entry(
    meal_type: str, composite_id: str, request: Request
) -> dict[str, object]:
    """Remove a logged entry."""
    container: AppContainer = request.app.state.container
    await container.meal_log.remove_entry(meal_type, composite_id)
    return _log_view(container.meal_log)


@router.post("/entries/move")
async def move_entry(body: MoveEntryRequest, request: Request) -> dict[str, object]:
    """Move an entry to another meal type."""
    container: AppContainer = request.app.state.container
    meal_log = container.meal_log
    entry = await meal_log.move_entry(
        body.source_type, body.composite_id, body.target_type
    )
    return {"entry": entry, **_log_view(meal_log)}


async def _persist(
    meal_log: MealLogReconciler, meal_type: str, composite_id: str, *, retry: bool
) -> dict[str, object] | JSONResponse:
    save = meal_log.retry_entry if retry else meal_log.persist_entry
    try:
        saved = await save(meal_type, composite_id)
    except BackendError as exc:
        _logger.warning("Meal entry %s was not saved: %s", composite_id, exc.message)
        failed = meal_log.find_entry(meal_type, composite_id)
        return JSONResponse(
            status_code=backend_error_status(exc),
            content=jsonable_encoder(
                {"status": "error", "message": exc.message, "entry": failed}
            ),
        )
    return {"entry": saved, **_log_view(meal_log)}


def _log_view(meal_log: MealLogReconciler) -> dict[str, object]:
    return {
        "date": meal_log.log_date,
        "buckets": meal_log.buckets,
        "calories": meal_log.bucket_calories(),
        "total_calories": meal_log.total_calories(),
    }
