"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from calorie_tracker.adapters.backend_client import BackendClient, HttpxBackendClient
from calorie_tracker.adapters.token_store import FileTokenStore, TokenStore
from calorie_tracker.config import (
    Settings,
    parse_unauthorized_policy,
    resolve_api_base_url,
)
from calorie_tracker.services.foods import FoodCatalogService
from calorie_tracker.services.meals import MealLogReconciler
from calorie_tracker.services.nutrition import NutritionAggregator
from calorie_tracker.services.session import SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    token_store: TokenStore
    backend_client: BackendClient
    session_store: SessionStore
    meal_log: MealLogReconciler
    food_catalog: FoodCatalogService
    nutrition: NutritionAggregator
    close_resources: Callable[[], Awaitable[None]]

    async def logout(self) -> None:
        """End the session and drop every piece of per-user state."""
        await self.session_store.logout()
        self.meal_log.reset_all()
        self.food_catalog.cancel_search()
        self.nutrition.overview = None


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    token_store = FileTokenStore.create(
        resolved_settings.token_file, resolved_settings.token_storage_key
    )
    backend_client = HttpxBackendClient.create(
        base_url=resolve_api_base_url(resolved_settings),
        token_store=token_store,
        timeout=resolved_settings.request_timeout_seconds,
    )
    session_store = SessionStore(client=backend_client, token_store=token_store)
    meal_log = MealLogReconciler(client=backend_client)
    food_catalog = FoodCatalogService(
        client=backend_client,
        page_size=resolved_settings.foods_page_size,
        debounce_seconds=resolved_settings.search_debounce_seconds,
    )
    nutrition = NutritionAggregator(client=backend_client)

    if parse_unauthorized_policy(resolved_settings.unauthorized_policy) == "logout":

        def handle_unauthorized() -> None:
            session_store.force_logout()
            meal_log.reset_all()

        backend_client.unauthorized_handler = handle_unauthorized

    async def close_resources() -> None:
        food_catalog.cancel_search()
        await backend_client.close()

    return AppContainer(
        settings=resolved_settings,
        token_store=token_store,
        backend_client=backend_client,
        session_store=session_store,
        meal_log=meal_log,
        food_catalog=food_catalog,
        nutrition=nutrition,
        close_resources=close_resources,
    )
