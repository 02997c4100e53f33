"""Dashboard page endpoint."""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from calorie_tracker.api.dependencies import require_session
from calorie_tracker.domain.models import DEFAULT_DAILY_CALORIE_GOAL

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer
    from calorie_tracker.domain.nutrition import NutritionOverview

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", dependencies=[Depends(require_session)])
async def dashboard(request: Request, day: date | None = None) -> dict[str, object]:
    """Return today's progress with the weekly and monthly series."""
    container: AppContainer = request.app.state.container
    nutrition = container.nutrition
    overview = await nutrition.refresh(day)
    if overview is None and nutrition.error is None:
        overview = nutrition.overview
    if overview is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=nutrition.error or "Failed to load nutrition data",
        )
    user = container.session_store.user
    profile_goal = user.daily_calorie_goal if user else None
    return summarize(overview, profile_goal)


def summarize(
    overview: NutritionOverview, profile_goal: int | None = None
) -> dict[str, object]:
    """Flatten a nutrition overview into the dashboard view.

    The goal comes from the daily summary, then the profile, then the default.
    """
    daily = overview.daily
    consumed = round(daily.calories, 1)
    goal = daily.goal or profile_goal or DEFAULT_DAILY_CALORIE_GOAL
    return {
        "date": daily.day,
        "goal": goal,
        "consumed": consumed,
        "remaining": round(max(goal - consumed, 0.0), 1),
        "percent": round(min(consumed / goal * 100, 100.0), 1),
        "macros": {"protein": daily.protein, "carbs": daily.carbs, "fat": daily.fat},
        "weekly": overview.weekly,
        "monthly": overview.monthly,
    }
