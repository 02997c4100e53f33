"""Nutrition summary domain models."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DailyNutrition:
    """Totals for one day alongside the calorie goal the backend reported."""

    day: date
    calories: float
    protein: float
    carbs: float
    fat: float
    goal: int | None


@dataclass(frozen=True)
class WeeklyPoint:
    """Calories consumed on one day of the week."""

    day: date
    calories: float


@dataclass(frozen=True)
class MonthlyPoint:
    """Calories consumed during one week of the month."""

    week_number: int
    calories: float


@dataclass(frozen=True)
class NutritionOverview:
    """Daily, weekly and monthly summaries fetched together."""

    daily: DailyNutrition
    weekly: list[WeeklyPoint]
    monthly: list[MonthlyPoint]
