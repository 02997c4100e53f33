"""Meal log bookkeeping with optimistic entries."""

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from uuid import uuid4

from calorie_tracker.adapters.backend_client import BackendClient, BackendError
from calorie_tracker.domain.meals import (
    MEAL_TYPES,
    STATUS_CONFIRMED,
    STATUS_FAILED,
    STATUS_PENDING,
    FoodRef,
    MealEntry,
    split_composite_id,
)
from calorie_tracker.domain.payloads import empty_buckets, normalize_meals, unwrap_data

_logger = logging.getLogger(__name__)

_HTTP_NOT_FOUND = 404


class DuplicateEntryError(ValueError):
    """Raised when a bucket already holds the same food, calories and quantity."""


class UnknownEntryError(LookupError):
    """Raised when an entry id is not present in the given bucket."""


@dataclass
class MealLogReconciler:
    """Keeps per-meal-type buckets for one day in step with the backend.

    Entries are staged locally before the save request is issued, so readers
    see them immediately. A successful save re-keys the entry to
    ``"{meal_id}_{food_id}"``; a failed save leaves it in the bucket marked
    ``failed`` until it is retried or removed.
    """

    client: BackendClient
    log_date: date = field(default_factory=date.today)
    buckets: dict[str, list[MealEntry]] = field(default_factory=empty_buckets)
    _generation: int = field(default=0, repr=False)

    def entries(self, meal_type: str) -> list[MealEntry]:
        """Return a copy of one bucket."""
        return list(self.buckets[_check_meal_type(meal_type)])

    def find_entry(self, meal_type: str, composite_id: str) -> MealEntry | None:
        """Return the entry with the given id, if present."""
        for entry in self.buckets[_check_meal_type(meal_type)]:
            if entry.composite_id == composite_id:
                return entry
        return None

    def stage_entry(
        self,
        meal_type: str,
        food: FoodRef,
        quantity_grams: float,
        calories: float,
    ) -> MealEntry:
        """Add a pending entry to the bucket without contacting the backend."""
        meal_type = _check_meal_type(meal_type)
        if quantity_grams <= 0:
            raise ValueError("Quantity must be greater than zero")
        if calories < 0:
            raise ValueError("Calories cannot be negative")
        entry = MealEntry(
            composite_id=f"temp-{uuid4().hex[:12]}_{food.food_id}",
            meal_id=None,
            food_id=str(food.food_id),
            name=food.name,
            calories=float(calories),
            quantity_grams=float(quantity_grams),
            meal_type=meal_type,
        )
        self._ensure_unique(meal_type, entry)
        self.buckets[meal_type].append(entry)
        return entry

    async def add_entry(
        self,
        meal_type: str,
        food: FoodRef,
        quantity_grams: float,
        calories: float,
    ) -> MealEntry:
        """Stage an entry, then save it to the backend."""
        entry = self.stage_entry(meal_type, food, quantity_grams, calories)
        return await self.persist_entry(entry.meal_type, entry.composite_id)

    async def persist_entry(self, meal_type: str, composite_id: str) -> MealEntry:
        """Save an unsaved entry and promote it to its server id.

        Raises ``BackendError`` after marking the entry ``failed``.
        """
        entry = self._require(meal_type, composite_id)
        if entry.server_saved:
            return entry
        try:
            response = await self.client.create_meal(
                _meal_request(entry, self.log_date, composite_id)
            )
            meal_id = _extract_meal_id(response)
        except BackendError:
            _logger.warning("Saving %s to %s failed", entry.name, entry.meal_type)
            failed = replace(entry, status=STATUS_FAILED)
            self._swap(entry.meal_type, composite_id, failed)
            raise

        confirmed = replace(
            entry,
            composite_id=f"{meal_id}_{entry.food_id}",
            meal_id=meal_id,
            server_saved=True,
            status=STATUS_CONFIRMED,
        )
        if not self._swap(entry.meal_type, composite_id, confirmed):
            _logger.info("Entry %s was dropped before its save completed", composite_id)
        return confirmed

    async def retry_entry(self, meal_type: str, composite_id: str) -> MealEntry:
        """Re-submit an entry whose save failed."""
        entry = self._require(meal_type, composite_id)
        if entry.server_saved:
            return entry
        pending = replace(entry, status=STATUS_PENDING)
        self._swap(entry.meal_type, composite_id, pending)
        return await self.persist_entry(entry.meal_type, composite_id)

    async def remove_entry(self, meal_type: str, composite_id: str) -> None:
        """Remove an entry; saved entries are deleted on the backend first."""
        entry = self._require(meal_type, composite_id)
        if not entry.server_saved:
            self._discard(entry.meal_type, composite_id)
            return
        meal_id, food_id = split_composite_id(composite_id)
        await self.client.delete_meal_food(meal_id, food_id)
        self._discard(entry.meal_type, composite_id)

    async def move_entry(
        self, source_type: str, composite_id: str, target_type: str
    ) -> MealEntry:
        """Move an entry to another meal type.

        Saved entries are logged again under the target type and then deleted
        from their original meal.
        """
        entry = self._require(source_type, composite_id)
        target_type = _check_meal_type(target_type)
        if target_type == entry.meal_type:
            return entry
        moved = replace(entry, meal_type=target_type)
        self._ensure_unique(target_type, moved)
        if not entry.server_saved:
            self._discard(entry.meal_type, composite_id)
            self.buckets[target_type].append(moved)
            return moved

        response = await self.client.create_meal(
            _meal_request(moved, self.log_date, composite_id)
        )
        meal_id = _extract_meal_id(response)
        moved = replace(
            moved,
            composite_id=f"{meal_id}_{entry.food_id}",
            meal_id=meal_id,
        )
        self.buckets[target_type].append(moved)
        old_meal_id, food_id = split_composite_id(composite_id)
        await self.client.delete_meal_food(old_meal_id, food_id)
        self._discard(entry.meal_type, composite_id)
        return moved

    async def load_for_date(self, day: date) -> bool:
        """Replace the buckets with the backend's meals for ``day``.

        Unsaved entries survive a reload of the same day. Returns ``False``
        when a newer load or reset superseded this one.
        """
        self._generation += 1
        generation = self._generation
        try:
            payload = await self.client.list_meals(day, day)
        except BackendError as exc:
            if exc.status_code != _HTTP_NOT_FOUND:
                raise
            payload = []
        if generation != self._generation:
            _logger.info("Dropping stale meal listing for %s", day.isoformat())
            return False

        buckets = normalize_meals(payload)
        if day == self.log_date:
            for meal_type, bucket in self.buckets.items():
                keys = {entry.dedupe_key for entry in buckets[meal_type]}
                for entry in bucket:
                    if not entry.server_saved and entry.dedupe_key not in keys:
                        buckets[meal_type].append(entry)
        self.log_date = day
        self.buckets = buckets
        return True

    def total_calories(self) -> float:
        """Total calories across all buckets, rounded to one decimal."""
        total = sum(
            entry.portion_calories
            for bucket in self.buckets.values()
            for entry in bucket
        )
        return round(total, 1)

    def bucket_calories(self) -> dict[str, float]:
        """Calories per meal type, rounded to one decimal."""
        return {
            meal_type: round(sum(entry.portion_calories for entry in bucket), 1)
            for meal_type, bucket in self.buckets.items()
        }

    def reset_all(self) -> None:
        """Empty every bucket without touching the backend."""
        self._generation += 1
        self.buckets = empty_buckets()

    def _require(self, meal_type: str, composite_id: str) -> MealEntry:
        entry = self.find_entry(meal_type, composite_id)
        if entry is None:
            raise UnknownEntryError(f"No entry {composite_id} in {meal_type}")
        return entry

    def _ensure_unique(self, meal_type: str, entry: MealEntry) -> None:
        for existing in self.buckets[meal_type]:
            if existing.dedupe_key == entry.dedupe_key:
                raise DuplicateEntryError(
                    f"{entry.name} ({entry.quantity_grams:g} g) is already logged "
                    f"for {meal_type}"
                )

    def _swap(self, meal_type: str, composite_id: str, entry: MealEntry) -> bool:
        bucket = self.buckets[meal_type]
        for index, existing in enumerate(bucket):
            if existing.composite_id == composite_id:
                bucket[index] = entry
                return True
        return False

    def _discard(self, meal_type: str, composite_id: str) -> None:
        self.buckets[meal_type] = [
            entry
            for entry in self.buckets[meal_type]
            if entry.composite_id != composite_id
        ]


def _check_meal_type(meal_type: str) -> str:
    if meal_type not in MEAL_TYPES:
        raise ValueError(f"Unknown meal type: {meal_type}")
    return meal_type


def _meal_request(
    entry: MealEntry, log_date: date, client_entry_id: str
) -> dict[str, object]:
    return {
        "type": entry.meal_type,
        "log_date": log_date.isoformat(),
        "foods": [
            {
                "food_id": entry.food_id,
                "name": entry.name,
                "serving_qty": entry.quantity_grams,
                "serving_unit": "g",
                "calories": entry.calories,
            }
        ],
        "metadata": {"client_entry_id": client_entry_id},
    }


def _extract_meal_id(payload: object) -> str:
    data = unwrap_data(payload)
    if isinstance(data, dict):
        meal_id = data.get("meal_id", data.get("id"))
        if meal_id is not None and meal_id != "":
            return str(meal_id)
    raise BackendError(None, {"message": "Backend response did not include a meal id"})
