"""Domain models for the meal log."""

from dataclasses import dataclass

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
DEFAULT_MEAL_TYPE = "lunch"

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class FoodRef:
    """Reference to the catalog food being logged."""

    food_id: str
    name: str


@dataclass(frozen=True)
class MealEntry:
    """A logged food within a meal-type bucket."""

    composite_id: str
    meal_id: str | None
    food_id: str
    name: str
    calories: float
    quantity_grams: float
    meal_type: str
    server_saved: bool = False
    status: str = STATUS_PENDING

    @property
    def dedupe_key(self) -> tuple[str, float, float]:
        """Entries sharing this key are duplicates within a bucket."""
        return (self.food_id, self.calories, self.quantity_grams)

    @property
    def portion_calories(self) -> float:
        """Calories for the logged quantity; calories are per 100 g."""
        return self.calories * self.quantity_grams / 100.0


def split_composite_id(composite_id: str) -> tuple[str, str]:
    """Split ``"{meal_id}_{food_id}"`` into its parts."""
    meal_id, separator, food_id = composite_id.partition("_")
    if not separator or not meal_id or not food_id:
        raise ValueError(f"Malformed entry id: {composite_id}")
    return meal_id, food_id
