"""Calorie tracker backend REST client."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Protocol

import httpx

from calorie_tracker.adapters.token_store import TokenStore

_logger = logging.getLogger(__name__)

Payload = dict[str, object]


class BackendError(Exception):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(self, status_code: int | None, payload: Payload | None = None):
        self.status_code = status_code
        self.payload: Payload = payload or {}
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Human-readable message taken from the backend payload when present."""
        value = self.payload.get("message")
        if isinstance(value, str) and value:
            return value
        if self.status_code is None:
            return "Backend is unreachable"
        return f"Backend request failed with status {self.status_code}"


class BackendClient(Protocol):
    """Interface for the calorie tracker backend API."""

    async def login(self, identifier: str, password: str) -> Payload:
        """Authenticate and return the raw login payload."""

    async def register(self, profile: Payload) -> Payload:
        """Create an account and return the raw payload."""

    async def logout(self) -> None:
        """Invalidate the current token on the server."""

    async def get_profile(self) -> Payload:
        """Return the authenticated user's profile payload."""

    async def update_profile(self, changes: Payload) -> Payload:
        """Update the authenticated user's profile."""

    async def get_daily_nutrition(self, day: date) -> Payload:
        """Return the daily nutrition summary payload."""

    async def get_weekly_nutrition(self, start: date, end: date) -> Payload:
        """Return the weekly nutrition summary payload."""

    async def get_monthly_nutrition(self, month: int, year: int) -> Payload:
        """Return the monthly nutrition summary payload."""

    async def list_foods(self, params: Payload) -> Payload:
        """List catalog foods."""

    async def search_foods(self, params: Payload) -> Payload:
        """Search catalog foods."""

    async def create_food(self, food: Payload) -> Payload:
        """Create a catalog food."""

    async def list_locales(self) -> Payload | list[object]:
        """List food locales."""

    async def list_meals(self, start: date, end: date) -> Payload | list[object]:
        """List meals with nested foods for a date range."""

    async def create_meal(self, meal: Payload) -> Payload:
        """Log a meal and return the payload with the new meal id."""

    async def delete_meal_food(self, meal_id: str, food_id: str) -> None:
        """Remove a single food from a logged meal."""


@dataclass
class HttpxBackendClient(BackendClient):
    """HTTPX-backed backend client with auth and 401 hooks."""

    base_url: str
    token_store: TokenStore
    http_client: httpx.AsyncClient
    timeout: float = 15.0
    unauthorized_handler: Callable[[], None] | None = None

    def __post_init__(self) -> None:
        hooks = self.http_client.event_hooks
        self.http_client.event_hooks = {
            "request": [*hooks.get("request", []), self._attach_token],
            "response": [*hooks.get("response", []), self._handle_unauthorized],
        }

    @classmethod
    def create(
        cls, base_url: str, token_store: TokenStore, timeout: float = 15.0
    ) -> "HttpxBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token_store=token_store,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def login(self, identifier: str, password: str) -> Payload:
        """Authenticate with an email or username."""
        return await self._request(
            "POST",
            "/auth/login",
            json={"emailOrUsername": identifier, "password": password},
        )

    async def register(self, profile: Payload) -> Payload:
        """Register a new account."""
        return await self._request("POST", "/auth/register", json=profile)

    async def logout(self) -> None:
        """Invalidate the token server-side."""
        await self._request("POST", "/auth/logout")

    async def get_profile(self) -> Payload:
        """Fetch the current profile."""
        return await self._request("GET", "/auth/profile")

    async def update_profile(self, changes: Payload) -> Payload:
        """Update the current profile."""
        return await self._request("PUT", "/auth/profile", json=changes)

    async def get_daily_nutrition(self, day: date) -> Payload:
        """Fetch the summary for a single day."""
        return await self._request(
            "GET", "/nutrition/daily", params={"date": day.isoformat()}
        )

    async def get_weekly_nutrition(self, start: date, end: date) -> Payload:
        """Fetch per-day totals for a week."""
        return await self._request(
            "GET",
            "/nutrition/weekly",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )

    async def get_monthly_nutrition(self, month: int, year: int) -> Payload:
        """Fetch per-week totals for a month."""
        return await self._request(
            "GET", "/nutrition/monthly", params={"month": month, "year": year}
        )

    async def list_foods(self, params: Payload) -> Payload:
        """List foods with paging and filters."""
        return await self._request("GET", "/foods", params=params)

    async def search_foods(self, params: Payload) -> Payload:
        """Search foods with paging and filters."""
        return await self._request("GET", "/foods/search", params=params)

    async def create_food(self, food: Payload) -> Payload:
        """Create a food."""
        return await self._request("POST", "/foods", json=food)

    async def list_locales(self) -> Payload | list[object]:
        """List locales."""
        return await self._request("GET", "/locales")

    async def list_meals(self, start: date, end: date) -> Payload | list[object]:
        """List meals logged between two dates, inclusive."""
        return await self._request(
            "GET",
            "/meals",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )

    async def create_meal(self, meal: Payload) -> Payload:
        """Log a meal."""
        return await self._request("POST", "/meals", json=meal)

    async def delete_meal_food(self, meal_id: str, food_id: str) -> None:
        """Delete one food from a meal."""
        await self._request("DELETE", f"/meals/{meal_id}/foods/{food_id}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Payload | None = None,
        json: object | None = None,
    ) -> Payload:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except httpx.HTTPError as exc:
            _logger.warning("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(None, {"message": str(exc) or None}) from exc
        if response.is_error:
            raise BackendError(response.status_code, _error_payload(response))
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(
                response.status_code, {"message": "Malformed JSON response"}
            ) from exc

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self.token_store.get()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _handle_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return
        _logger.info("Backend returned 401 for %s", response.request.url.path)
        if self.unauthorized_handler is not None:
            self.unauthorized_handler()


def _error_payload(response: httpx.Response) -> Payload:
    try:
        payload = response.json()
    except ValueError:
        return {"message": response.text or None}
    if isinstance(payload, dict):
        return payload
    return {"message": None, "detail": payload}
