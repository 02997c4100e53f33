"""Pydantic models for page requests."""

import re

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8

_CALORIE_TARGET_ALIASES = AliasChoices(
    "daily_calorie_goal", "daily_calorie_target", "dailyCalorieTarget"
)

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(r'[!@#$%^&*(),.?":{}|<>]'), "a special character"),
)


class LoginRequest(BaseModel):
    """Login form payload."""

    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices("identifier", "emailOrUsername", "email"),
    )
    password: str = Field(min_length=1)


class SignupRequest(BaseModel):
    """Signup form payload."""

    username: str
    email: str
    password: str
    confirm_password: str = Field(
        validation_alias=AliasChoices("confirm_password", "confirmPassword")
    )
    first_name: str | None = None
    last_name: str | None = None
    daily_calorie_goal: int | None = Field(
        default=None,
        gt=0,
        validation_alias=_CALORIE_TARGET_ALIASES,
        serialization_alias="daily_calorie_target",
    )

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < MIN_USERNAME_LENGTH:
            raise ValueError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters"
            )
        return value

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("Email address is invalid")
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        missing = [
            label for pattern, label in _PASSWORD_RULES if not pattern.search(value)
        ]
        if missing:
            raise ValueError(f"Password must contain {', '.join(missing)}")
        return value

    @model_validator(mode="after")
    def _check_confirmation(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

    def to_profile(self) -> dict[str, object]:
        """Build the registration body sent to the backend."""
        return self.model_dump(
            exclude={"confirm_password"}, exclude_none=True, by_alias=True
        )


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    username: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    daily_calorie_goal: int | None = Field(
        default=None,
        gt=0,
        validation_alias=_CALORIE_TARGET_ALIASES,
        serialization_alias="daily_calorie_target",
    )
    protein_goal: float | None = Field(default=None, ge=0)
    carbs_goal: float | None = Field(default=None, ge=0)
    fat_goal: float | None = Field(default=None, ge=0)

    def changes(self) -> dict[str, object]:
        """Return only the fields that were provided."""
        return self.model_dump(exclude_none=True, by_alias=True)


class MealEntryRequest(BaseModel):
    """A food to log under a meal type."""

    meal_type: str
    food_id: str | int
    name: str
    quantity_grams: float = Field(gt=0)
    calories: float = Field(ge=0)


class EntryRef(BaseModel):
    """Address of one logged entry."""

    meal_type: str
    composite_id: str


class MoveEntryRequest(BaseModel):
    """Move an entry between meal types."""

    source_type: str
    composite_id: str
    target_type: str
