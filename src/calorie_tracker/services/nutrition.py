"""Dashboard nutrition summaries."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from calorie_tracker.adapters.backend_client import BackendClient, BackendError
from calorie_tracker.domain.nutrition import NutritionOverview
from calorie_tracker.domain.payloads import parse_daily, parse_monthly, parse_weekly

_logger = logging.getLogger(__name__)

NUTRITION_ERROR_MESSAGE = "Failed to load nutrition data"


def week_bounds(day: date) -> tuple[date, date]:
    """Return the Sunday-to-Saturday week containing ``day``."""
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


@dataclass
class NutritionAggregator:
    """Fetches daily, weekly and monthly summaries together.

    The three requests run concurrently and succeed or fail as one.
    """

    client: BackendClient
    overview: NutritionOverview | None = None
    error: str | None = None
    loading: bool = False
    _generation: int = field(default=0, repr=False)

    async def refresh(self, today: date | None = None) -> NutritionOverview | None:
        """Reload all summaries; returns ``None`` on failure or when superseded."""
        today = today or date.today()
        week_start, week_end = week_bounds(today)
        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            daily, weekly, monthly = await asyncio.gather(
                self.client.get_daily_nutrition(today),
                self.client.get_weekly_nutrition(week_start, week_end),
                self.client.get_monthly_nutrition(today.month, today.year),
            )
        except BackendError as exc:
            if generation == self._generation:
                _logger.warning(
                    "Nutrition refresh failed (status=%s): %s",
                    exc.status_code,
                    exc.message,
                )
                self.error = NUTRITION_ERROR_MESSAGE
                self.loading = False
            return None
        if generation != self._generation:
            return None

        self.overview = NutritionOverview(
            daily=parse_daily(daily, today),
            weekly=parse_weekly(weekly, week_start),
            monthly=parse_monthly(monthly),
        )
        self.error = None
        self.loading = False
        return self.overview
