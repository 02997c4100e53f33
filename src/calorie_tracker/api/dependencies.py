"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, Request, status

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer


async def require_session(request: Request) -> None:
    """Reject page requests until a verified user is loaded."""
    container: AppContainer = request.app.state.container
    session = container.session_store
    if session.loading:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session is still loading",
        )
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
