"""Pydantic models that normalize loosely shaped backend payloads."""

import logging
import math
from datetime import date, timedelta
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
)

from calorie_tracker.domain.foods import FoodItem, Locale
from calorie_tracker.domain.meals import (
    DEFAULT_MEAL_TYPE,
    MEAL_TYPES,
    STATUS_CONFIRMED,
    MealEntry,
)
from calorie_tracker.domain.models import (
    DEFAULT_DAILY_CALORIE_GOAL,
    MacroGoals,
    UserProfile,
)
from calorie_tracker.domain.nutrition import DailyNutrition, MonthlyPoint, WeeklyPoint

_logger = logging.getLogger(__name__)

_MEAL_TYPE_ALIASES = {"snacks": "snack"}


def _to_float(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _optional_float(value: object) -> float | None:
    if value is None or value == "":
        return None
    return _to_float(value)


def _to_id(value: object) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _list_or_empty(value: object) -> object:
    return value if isinstance(value, list) else []


def _to_text(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return ""


def _optional_text(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _dict_or_none(value: object) -> object:
    return value if isinstance(value, dict) else None


LenientFloat = Annotated[float, BeforeValidator(_to_float)]
OptionalFloat = Annotated[float | None, BeforeValidator(_optional_float)]
EntityId = Annotated[str, BeforeValidator(_to_id)]
OptionalEntityId = Annotated[str | None, BeforeValidator(_to_id)]
FoodName = Annotated[str, BeforeValidator(lambda value: value or "Unknown Food")]
CategoryName = Annotated[str, BeforeValidator(lambda value: value or "Uncategorized")]
Text = Annotated[str, BeforeValidator(_to_text)]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]


class _LenientModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MealFoodLink(_LenientModel):
    """Join row between a meal and a food."""

    food_id: OptionalEntityId = None
    serving_qty: LenientFloat = Field(
        default=0.0, validation_alias=AliasChoices("serving_qty", "serving_size")
    )


class MealFoodPayload(_LenientModel):
    """A food nested inside a meal payload."""

    food_id: EntityId = Field(validation_alias=AliasChoices("food_id", "foodId", "id"))
    name: FoodName = "Unknown Food"
    calories: LenientFloat = 0.0
    quantity: LenientFloat = Field(
        default=0.0,
        validation_alias=AliasChoices("serving_qty", "quantity", "serving_size"),
    )
    link: MealFoodLink | None = Field(
        default=None, validation_alias=AliasChoices("MealFood", "meal_food")
    )


class MealPayload(_LenientModel):
    """A meal as returned by ``GET /meals`` in any of its known shapes."""

    meal_id: EntityId = Field(validation_alias=AliasChoices("meal_id", "mealId", "id"))
    meal_type: str | None = Field(
        default=None, validation_alias=AliasChoices("meal_type", "type")
    )
    foods: Annotated[list[MealFoodPayload], BeforeValidator(_list_or_empty)] = Field(
        default_factory=list,
        validation_alias=AliasChoices("foods", "food_items", "Foods"),
    )
    links: Annotated[list[MealFoodLink], BeforeValidator(_list_or_empty)] = Field(
        default_factory=list, validation_alias=AliasChoices("MealFood", "meal_foods")
    )

    def quantity_for(self, food: MealFoodPayload) -> float:
        """Resolve the logged quantity, preferring the meal-food join row."""
        if food.link is not None and food.link.serving_qty:
            return food.link.serving_qty
        for link in self.links:
            if link.food_id == food.food_id and link.serving_qty:
                return link.serving_qty
        return food.quantity


class ProfilePayload(_LenientModel):
    """User profile payload."""

    user_id: Text = Field(
        default="", validation_alias=AliasChoices("user_id", "userId", "id")
    )
    username: Text = ""
    email: Text = ""
    first_name: OptionalText = None
    last_name: OptionalText = None
    daily_calorie_goal: OptionalFloat = Field(
        default=None,
        validation_alias=AliasChoices(
            "daily_calorie_target", "daily_calorie_goal", "dailyCalorieGoal"
        ),
    )
    protein_goal: OptionalFloat = Field(
        default=None, validation_alias=AliasChoices("protein_goal", "proteinGoal")
    )
    carbs_goal: OptionalFloat = Field(
        default=None, validation_alias=AliasChoices("carbs_goal", "carbsGoal")
    )
    fat_goal: OptionalFloat = Field(
        default=None, validation_alias=AliasChoices("fat_goal", "fatGoal")
    )
    profile: Annotated[dict[str, Any] | None, BeforeValidator(_dict_or_none)] = None

    def to_domain(self) -> UserProfile:
        """Build the domain profile, filling the default calorie goal."""
        goal = self.daily_calorie_goal
        if not goal and self.profile:
            goal = _optional_float(self.profile.get("dailyCalorieGoal"))
        return UserProfile(
            user_id=self.user_id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            daily_calorie_goal=int(goal) if goal else DEFAULT_DAILY_CALORIE_GOAL,
            macro_goals=MacroGoals(
                protein_g=self.protein_goal,
                carbs_g=self.carbs_goal,
                fat_g=self.fat_goal,
            ),
        )


class FoodPayload(_LenientModel):
    """Catalog food payload."""

    food_id: EntityId = Field(validation_alias=AliasChoices("food_id", "foodId", "id"))
    name: FoodName = "Unknown Food"
    category: CategoryName = "Uncategorized"
    calories: LenientFloat = 0.0
    proteins: LenientFloat = Field(
        default=0.0, validation_alias=AliasChoices("proteins", "protein")
    )
    carbs: LenientFloat = 0.0
    fats: LenientFloat = Field(
        default=0.0, validation_alias=AliasChoices("fats", "fat")
    )
    locale: Any = Field(
        default=None, validation_alias=AliasChoices("locale", "region", "Locale")
    )
    description: str | None = None
    serving_size: OptionalFloat = None
    serving_unit: str | None = None

    def to_domain(self) -> FoodItem:
        """Build the catalog food."""
        return FoodItem(
            food_id=self.food_id,
            name=self.name,
            category=self.category,
            calories=self.calories,
            proteins=self.proteins,
            carbs=self.carbs,
            fats=self.fats,
            locale=_locale_label(self.locale),
            description=self.description,
            serving_size=self.serving_size,
            serving_unit=self.serving_unit,
        )


def unwrap_data(payload: object) -> object:
    """Strip the ``{"status", "message", "data"}`` envelope when present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def normalize_meal_type(raw: object) -> str:
    """Map a backend meal type onto a known bucket; unknown types become lunch."""
    if not isinstance(raw, str):
        return DEFAULT_MEAL_TYPE
    cleaned = raw.strip().lower()
    cleaned = _MEAL_TYPE_ALIASES.get(cleaned, cleaned)
    if cleaned in MEAL_TYPES:
        return cleaned
    return DEFAULT_MEAL_TYPE


def empty_buckets() -> dict[str, list[MealEntry]]:
    """Return one empty bucket per meal type."""
    return {meal_type: [] for meal_type in MEAL_TYPES}


def normalize_meals(payload: object) -> dict[str, list[MealEntry]]:
    """Convert a meals listing into de-duplicated, confirmed bucket entries."""
    buckets = empty_buckets()
    seen: dict[str, set[tuple[str, float, float]]] = {
        meal_type: set() for meal_type in MEAL_TYPES
    }
    for raw_meal in _meal_list(payload):
        try:
            meal = MealPayload.model_validate(raw_meal)
        except ValidationError as exc:
            _logger.warning("Skipping malformed meal payload: %s", exc)
            continue
        meal_type = normalize_meal_type(meal.meal_type)
        for food in meal.foods:
            entry = MealEntry(
                composite_id=f"{meal.meal_id}_{food.food_id}",
                meal_id=meal.meal_id,
                food_id=food.food_id,
                name=food.name,
                calories=food.calories,
                quantity_grams=meal.quantity_for(food),
                meal_type=meal_type,
                server_saved=True,
                status=STATUS_CONFIRMED,
            )
            if entry.dedupe_key in seen[meal_type]:
                continue
            seen[meal_type].add(entry.dedupe_key)
            buckets[meal_type].append(entry)
    return buckets


def parse_profile(payload: object) -> UserProfile:
    """Parse a profile response, accepting either the envelope or the bare user."""
    data = unwrap_data(payload)
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        data = data["user"]
    if not isinstance(data, dict):
        data = {}
    return ProfilePayload.model_validate(data).to_domain()


def parse_food(payload: object) -> FoodItem:
    """Parse a single food, unwrapping the envelope."""
    data = unwrap_data(payload)
    if not isinstance(data, dict):
        data = {}
    return FoodPayload.model_validate(data).to_domain()


def parse_food_list(payload: object) -> tuple[list[FoodItem], int]:
    """Parse a food listing; malformed lists or rows yield nothing."""
    data = unwrap_data(payload)
    raw_foods: object = None
    total: object = None
    if isinstance(data, dict):
        raw_foods = data.get("foods")
        total = data.get("totalCount", data.get("total_count"))
    elif isinstance(data, list):
        raw_foods = data
    if not isinstance(raw_foods, list):
        return [], 0
    foods: list[FoodItem] = []
    for raw in raw_foods:
        try:
            foods.append(FoodPayload.model_validate(raw).to_domain())
        except ValidationError as exc:
            _logger.warning("Skipping malformed food payload: %s", exc)
    count = int(_to_float(total)) if total is not None else len(foods)
    return foods, count


def parse_locales(payload: object) -> list[Locale]:
    """Parse the locale listing in either its wrapped or bare shape."""
    data = unwrap_data(payload)
    raw_locales = data.get("locales") if isinstance(data, dict) else data
    if not isinstance(raw_locales, list):
        return []
    locales = []
    for raw in raw_locales:
        if not isinstance(raw, dict):
            continue
        raw_id = raw.get("location_id", raw.get("locale_id", raw.get("id")))
        name = raw.get("name") or raw.get("country") or raw.get("code") or ""
        locales.append(
            Locale(
                locale_id=int(_to_float(raw_id)) if raw_id is not None else None,
                name=str(name),
                code=raw.get("code", raw.get("language_code")),
                region=raw.get("region"),
            )
        )
    return locales


def parse_daily(payload: object, day: date) -> DailyNutrition:
    """Normalize the daily summary with zero defaults."""
    data = unwrap_data(payload)
    values = data if isinstance(data, dict) else {}
    calories = values.get("calories", values.get("total_calories"))
    goal = _to_float(values.get("daily_calorie_goal", values.get("daily_goal")))
    return DailyNutrition(
        day=day,
        calories=_to_float(calories),
        protein=_to_float(values.get("protein")),
        carbs=_to_float(values.get("carbs")),
        fat=_to_float(values.get("fat")),
        goal=int(goal) if goal > 0 else None,
    )


def parse_weekly(payload: object, week_start: date) -> list[WeeklyPoint]:
    """Spread the weekly summary over seven days starting at ``week_start``."""
    by_day: dict[date, float] = {}
    for row in _summary_rows(payload):
        try:
            day = date.fromisoformat(str(row.get("date"))[:10])
        except ValueError:
            continue
        by_day[day] = by_day.get(day, 0.0) + _to_float(row.get("total_calories"))
    days = [week_start + timedelta(days=offset) for offset in range(7)]
    return [WeeklyPoint(day=day, calories=by_day.get(day, 0.0)) for day in days]


def parse_monthly(payload: object) -> list[MonthlyPoint]:
    """Normalize the monthly per-week summary, ordered by week."""
    points = []
    for row in _summary_rows(payload):
        week = row.get("week_number")
        if week is None:
            continue
        points.append(
            MonthlyPoint(
                week_number=int(_to_float(week)),
                calories=_to_float(row.get("total_calories")),
            )
        )
    return sorted(points, key=lambda point: point.week_number)


def _summary_rows(payload: object) -> list[dict[str, object]]:
    data = unwrap_data(payload)
    rows = data.get("summary") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


def _meal_list(payload: object) -> list[object]:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get("meals"), list):
        return payload["meals"]
    data = payload.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("meals"), list):
        return data["meals"]
    return []


def _locale_label(value: object) -> str | None:
    if isinstance(value, dict):
        for key in ("name", "country", "region"):
            label = value.get(key)
            if label:
                return str(label)
        return None
    if value:
        return str(value)
    return None
