"""Domain models for the food catalog."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Locale:
    """A region a food is associated with."""

    locale_id: int | None
    name: str
    code: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class FoodItem:
    """Catalog food record with per-100g macros."""

    food_id: str
    name: str
    category: str
    calories: float
    proteins: float
    carbs: float
    fats: float
    locale: str | None = None
    description: str | None = None
    serving_size: float | None = None
    serving_unit: str | None = None


@dataclass(frozen=True)
class FoodPage:
    """One page of catalog results."""

    foods: list[FoodItem]
    total_count: int
    page: int
    limit: int
    query: str = ""
    category: str = "All"
    categories: list[str] = field(default_factory=lambda: ["All"])

    @property
    def total_pages(self) -> int:
        """Number of pages for the current filter."""
        if self.limit <= 0:
            return 0
        return -(-self.total_count // self.limit)
