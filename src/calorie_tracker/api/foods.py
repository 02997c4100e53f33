"""Food database page endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Request, status

from calorie_tracker.api.dependencies import require_session
from calorie_tracker.services.foods import ALL_CATEGORIES

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer

router = APIRouter(tags=["foods"], dependencies=[Depends(require_session)])


@router.get("/foods")
async def browse_foods(
    request: Request,
    query: str = "",
    category: str = ALL_CATEGORIES,
    page: int = 1,
    limit: int | None = None,
) -> dict[str, object]:
    """Return one page of foods with the category filter options."""
    container: AppContainer = request.app.state.container
    catalog = container.food_catalog
    result = await catalog.browse(query, category, page, limit)
    if result is None:
        result = catalog.snapshot()
    return {"page": result, "total_pages": result.total_pages}


@router.post("/foods", status_code=status.HTTP_201_CREATED)
async def create_food(
    request: Request, form: dict[str, Any] = Body(...)
) -> dict[str, object]:
    """Validate and create a food, returning it with the refreshed list."""
    container: AppContainer = request.app.state.container
    catalog = container.food_catalog
    food = await catalog.create_food(form)
    return {"food": food, "page": catalog.snapshot()}


@router.get("/locales")
async def list_locales(request: Request) -> dict[str, object]:
    """Return the locales a food can belong to."""
    container: AppContainer = request.app.state.container
    return {"locales": await container.food_catalog.list_locales()}
