"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from calorie_tracker.api.auth import router as auth_router
from calorie_tracker.api.dashboard import router as dashboard_router
from calorie_tracker.api.errors import register_error_handlers
from calorie_tracker.api.foods import router as foods_router
from calorie_tracker.api.meals import router as meals_router
from calorie_tracker.api.profile import router as profile_router
from calorie_tracker.app_logging import configure_logging
from calorie_tracker.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.session_store.initialize()
        session = state_container.session_store
        if session.user is not None and session.is_authenticated:
            logger.info("Restored session for %s", session.user.username)
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(dashboard_router)
    app.include_router(meals_router)
    app.include_router(foods_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def session_state(request: Request) -> dict[str, object]:
        """Report whether a user is signed in without requiring one."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store
        return {
            "authenticated": session.is_authenticated,
            "loading": session.loading,
            "error": session.error,
            "user": session.user,
        }

    return app
