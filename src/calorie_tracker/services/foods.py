"""Food catalog browsing, debounced search and food creation."""

import asyncio
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import ValidationError

from calorie_tracker.adapters.backend_client import BackendClient, BackendError
from calorie_tracker.domain.foods import FoodItem, FoodPage, Locale
from calorie_tracker.domain.payloads import parse_food, parse_food_list, parse_locales
from calorie_tracker.services.debounce import Debouncer

_logger = logging.getLogger(__name__)

_HTTP_NOT_FOUND = 404

ALL_CATEGORIES = "All"
_REQUIRED_TEXT_FIELDS = ("name", "category")
_REQUIRED_NUMBER_FIELDS = ("calories", "proteins", "carbs", "fats")


class FoodValidationError(ValueError):
    """Raised when a food form is incomplete or holds non-numeric values."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        details = "; ".join(f"{name}: {message}" for name, message in errors.items())
        super().__init__(f"Invalid food: {details}")


@dataclass
class FoodCatalogService:
    """Current page of the food catalog and the filters that produced it."""

    client: BackendClient
    page_size: int = 20
    debounce_seconds: float = 0.5
    foods: list[FoodItem] = field(default_factory=list)
    total_count: int = 0
    query: str = ""
    category: str = ALL_CATEGORIES
    page: int = 1
    locales: list[Locale] = field(default_factory=list)
    error: str | None = None
    loading: bool = False
    _generation: int = field(default=0, repr=False)
    _debouncer: Debouncer[str, FoodPage | None] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._debouncer = Debouncer(self.debounce_seconds, self._debounced_search)

    def categories(self) -> list[str]:
        """Categories seen on the current page, behind the "All" wildcard."""
        seen = dict.fromkeys(food.category for food in self.foods if food.category)
        seen.pop(ALL_CATEGORIES, None)
        return [ALL_CATEGORIES, *seen]

    def snapshot(self) -> FoodPage:
        """Return the current page as an immutable value."""
        return FoodPage(
            foods=list(self.foods),
            total_count=self.total_count,
            page=self.page,
            limit=self.page_size,
            query=self.query,
            category=self.category,
            categories=self.categories(),
        )

    async def browse(
        self,
        search_text: str = "",
        category: str = ALL_CATEGORIES,
        page: int = 1,
        page_size: int | None = None,
    ) -> FoodPage | None:
        """Fetch one page of foods; returns ``None`` if a newer browse won."""
        limit = page_size or self.page_size
        query = search_text.strip()
        params: dict[str, object] = {
            "page": max(page, 1),
            "limit": limit,
            "sort": "name",
            "order": "ASC",
        }
        if query:
            params["query"] = query
        if category and category != ALL_CATEGORIES:
            params["category"] = category

        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            if query:
                payload = await self.client.search_foods(params)
            else:
                payload = await self.client.list_foods(params)
        except BackendError as exc:
            if exc.status_code != _HTTP_NOT_FOUND:
                if generation == self._generation:
                    self.error = "Failed to load foods"
                raise
            payload = {}
        finally:
            if generation == self._generation:
                self.loading = False
        if generation != self._generation:
            _logger.info("Dropping stale food listing for %r", query)
            return None

        self.foods, self.total_count = parse_food_list(payload)
        self.query = query
        self.category = category or ALL_CATEGORIES
        self.page = max(page, 1)
        self.page_size = limit
        self.error = None
        return self.snapshot()

    def submit_search(self, search_text: str) -> "asyncio.Task[FoodPage | None]":
        """Schedule a debounced search, cancelling any earlier one."""
        return self._debouncer.submit(search_text)

    async def wait_for_search(self) -> FoodPage | None:
        """Wait for the pending debounced search, if any."""
        return await self._debouncer.wait()

    def cancel_search(self) -> None:
        """Drop the pending debounced search."""
        self._debouncer.cancel()

    async def create_food(self, form: Mapping[str, object]) -> FoodItem:
        """Validate and submit a new food, then prepend it to the page."""
        payload = validate_food_form(form)
        response = await self.client.create_food(payload)
        try:
            food = parse_food(response)
        except ValidationError as exc:
            raise BackendError(
                None, {"message": "Backend response did not include the new food"}
            ) from exc
        self.foods.insert(0, food)
        self.total_count += 1
        _logger.info("Created food %s (%s)", food.name, food.food_id)
        return food

    async def list_locales(self) -> list[Locale]:
        """Fetch the locales a food can be associated with."""
        try:
            payload = await self.client.list_locales()
        except BackendError as exc:
            if exc.status_code != _HTTP_NOT_FOUND:
                raise
            payload = []
        self.locales = parse_locales(payload)
        return self.locales

    async def _debounced_search(self, search_text: str) -> FoodPage | None:
        try:
            return await self.browse(search_text, self.category, 1)
        except BackendError as exc:
            _logger.warning("Food search for %r failed: %s", search_text, exc.message)
            return None


def validate_food_form(form: Mapping[str, object]) -> dict[str, object]:
    """Check a food form and build the create request body.

    Raises ``FoodValidationError`` listing every invalid field.
    """
    errors: dict[str, str] = {}
    payload: dict[str, object] = {}
    for name in _REQUIRED_TEXT_FIELDS:
        value = str(form.get(name) or "").strip()
        if not value:
            errors[name] = "is required"
        payload[name] = value
    for name in _REQUIRED_NUMBER_FIELDS:
        raw = form.get(name)
        if raw is None or str(raw).strip() == "":
            errors[name] = "is required"
            continue
        number = _parse_float(raw)
        if number is None:
            errors[name] = "must be a number"
        elif number < 0:
            errors[name] = "cannot be negative"
        else:
            payload[name] = number

    serving_size = form.get("serving_size")
    if serving_size not in (None, ""):
        number = _parse_float(serving_size)
        if number is None or number <= 0:
            errors["serving_size"] = "must be a positive number"
        else:
            payload["serving_size"] = number

    locale_id = form.get("locale_id", form.get("location_id"))
    payload["location_id"] = None
    if locale_id not in (None, ""):
        number = _parse_float(locale_id)
        if number is None or not number.is_integer():
            errors["locale_id"] = "must be a whole number"
        else:
            payload["location_id"] = int(number)

    if errors:
        raise FoodValidationError(errors)
    payload["is_public"] = bool(form.get("is_public", True))
    return payload


def _parse_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None
