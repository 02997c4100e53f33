"""Domain models for the signed-in user."""

from dataclasses import dataclass

DEFAULT_DAILY_CALORIE_GOAL = 2000


@dataclass(frozen=True)
class MacroGoals:
    """Daily macronutrient targets in grams."""

    protein_g: float | None
    carbs_g: float | None
    fat_g: float | None


@dataclass(frozen=True)
class UserProfile:
    """Represents the authenticated user's profile."""

    user_id: str
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    daily_calorie_goal: int
    macro_goals: MacroGoals
