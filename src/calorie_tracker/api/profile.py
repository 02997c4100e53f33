"""Profile page endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from calorie_tracker.api.dependencies import require_session
from calorie_tracker.api.models import ProfileUpdateRequest  # noqa: TC001

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", dependencies=[Depends(require_session)])
async def get_profile(request: Request) -> dict[str, object]:
    """Return the signed-in user's profile."""
    container: AppContainer = request.app.state.container
    return {"user": container.session_store.user}


@router.put("", dependencies=[Depends(require_session)])
async def update_profile(
    body: ProfileUpdateRequest, request: Request
) -> dict[str, object]:
    """Apply a partial profile update."""
    container: AppContainer = request.app.state.container
    session = container.session_store
    if not await session.update_profile(body.changes()):
        if not session.is_authenticated:
            container.meal_log.reset_all()
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail=session.error
            )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=session.error
        )
    return {"user": session.user}
