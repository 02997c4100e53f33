"""Login, signup and logout endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from calorie_tracker.api.models import LoginRequest, SignupRequest  # noqa: TC001

if TYPE_CHECKING:
    from calorie_tracker.containers import AppContainer

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginRequest, request: Request) -> dict[str, object]:
    """Log in and return the verified profile."""
    container: AppContainer = request.app.state.container
    session = container.session_store
    if not await session.login(body.identifier, body.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=session.error or "Login failed",
        )
    return {"user": session.user}


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, request: Request) -> dict[str, object]:
    """Create an account and sign in."""
    container: AppContainer = request.app.state.container
    session = container.session_store
    if not await session.register(body.to_profile()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=session.error or "Registration failed",
        )
    return {"user": session.user}


@router.post("/logout")
async def logout(request: Request) -> dict[str, str]:
    """Log out and forget all per-user state."""
    container: AppContainer = request.app.state.container
    await container.logout()
    return {"status": "ok"}
