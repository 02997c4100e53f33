"""Shared test fixtures."""

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

import pytest

from calorie_tracker.adapters.backend_client import BackendClient, BackendError, Payload
from calorie_tracker.adapters.token_store import TokenStore
from calorie_tracker.config import Settings
from calorie_tracker.containers import AppContainer
from calorie_tracker.services.foods import FoodCatalogService
from calorie_tracker.services.meals import MealLogReconciler
from calorie_tracker.services.nutrition import NutritionAggregator
from calorie_tracker.services.session import SessionStore

PROFILE = {
    "user_id": 7,
    "username": "alice",
    "email": "alice@example.com",
    "last_name": "Liddell",
}


@dataclass
class InMemoryTokenStore(TokenStore):
    """Token store that keeps the token in memory."""

    token: str | None = None

    def get(self) -> str | None:
        return self.token

    def set(self, token: str) -> None:
        self.token = token

    def clear(self) -> None:
        self.token = None


@dataclass
class FakeBackendClient(BackendClient):
    """Fake backend that records calls and serves canned payloads.

    ``responses`` maps a method name to a payload or to a callable that
    builds one from the call arguments. ``failures`` maps a method name to
    the error it raises. ``gates`` hold a call until the event is set.
    """

    profile: dict[str, object] = field(default_factory=lambda: dict(PROFILE))
    responses: dict[str, object] = field(default_factory=dict)
    failures: dict[str, BackendError] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)
    foods: list[dict[str, object]] = field(default_factory=list)
    _meal_ids: itertools.count = field(default_factory=lambda: itertools.count(100))

    def calls_to(self, name: str) -> list[tuple[object, ...]]:
        """Arguments of every recorded call to ``name``."""
        return [args for called, args in self.calls if called == name]

    async def login(self, identifier: str, password: str) -> Payload:
        return await self._call("login", identifier, password)

    async def register(self, profile: Payload) -> Payload:
        return await self._call("register", profile)

    async def logout(self) -> None:
        await self._call("logout")

    async def get_profile(self) -> Payload:
        return await self._call("get_profile")

    async def update_profile(self, changes: Payload) -> Payload:
        return await self._call("update_profile", changes)

    async def get_daily_nutrition(self, day: date) -> Payload:
        return await self._call("get_daily_nutrition", day)

    async def get_weekly_nutrition(self, start: date, end: date) -> Payload:
        return await self._call("get_weekly_nutrition", start, end)

    async def get_monthly_nutrition(self, month: int, year: int) -> Payload:
        return await self._call("get_monthly_nutrition", month, year)

    async def list_foods(self, params: Payload) -> Payload:
        return await self._call("list_foods", params)

    async def search_foods(self, params: Payload) -> Payload:
        return await self._call("search_foods", params)

    async def create_food(self, food: Payload) -> Payload:
        return await self._call("create_food", food)

    async def list_locales(self) -> Payload | list[object]:
        return await self._call("list_locales")

    async def list_meals(self, start: date, end: date) -> Payload | list[object]:
        return await self._call("list_meals", start, end)

    async def create_meal(self, meal: Payload) -> Payload:
        return await self._call("create_meal", meal)

    async def delete_meal_food(self, meal_id: str, food_id: str) -> None:
        await self._call("delete_meal_food", meal_id, food_id)

    async def _call(self, name: str, *args: object):  # type: ignore[no-untyped-def]
        self.calls.append((name, args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get(name)
        if failure is not None:
            raise failure
        response = self.responses.get(name)
        if response is None:
            response = self._default(name)
        if callable(response):
            return response(*args)
        return response

    def _default(self, name: str) -> object | Callable[..., object]:
        defaults: dict[str, object] = {
            "login": {"data": {"token": "token-123"}},
            "register": {"data": {"token": "token-123"}},
            "get_profile": lambda: {"data": dict(self.profile)},
            "update_profile": self._apply_profile_changes,
            "get_daily_nutrition": {},
            "get_weekly_nutrition": {"summary": []},
            "get_monthly_nutrition": {"summary": []},
            "list_foods": lambda params: self._food_listing(params),
            "search_foods": lambda params: self._food_listing(params),
            "create_food": self._create_food,
            "list_locales": {"data": {"locales": []}},
            "list_meals": [],
            "create_meal": lambda meal: {"data": {"meal_id": next(self._meal_ids)}},
        }
        return defaults.get(name, {})

    def _apply_profile_changes(self, changes: Payload) -> Payload:
        self.profile.update(changes)
        return {"data": dict(self.profile)}

    def _food_listing(self, params: Payload) -> Payload:
        return {"data": {"foods": list(self.foods), "totalCount": len(self.foods)}}

    def _create_food(self, food: Payload) -> Payload:
        created = {**food, "food_id": 900 + len(self.foods)}
        self.foods.append(created)
        return {"data": created}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        api_base_url="http://backend.test/api",
        environment="test",
        token_file=str(tmp_path / "token.json"),
        search_debounce_seconds=0.01,
    )


@pytest.fixture
def backend() -> FakeBackendClient:
    return FakeBackendClient()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def container(
    settings: Settings,
    backend: FakeBackendClient,
    token_store: InMemoryTokenStore,
) -> AppContainer:
    session_store = SessionStore(client=backend, token_store=token_store)
    meal_log = MealLogReconciler(client=backend)
    food_catalog = FoodCatalogService(
        client=backend,
        page_size=settings.foods_page_size,
        debounce_seconds=settings.search_debounce_seconds,
    )
    nutrition = NutritionAggregator(client=backend)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        token_store=token_store,
        backend_client=backend,
        session_store=session_store,
        meal_log=meal_log,
        food_catalog=food_catalog,
        nutrition=nutrition,
        close_resources=close_resources,
    )
