"""Tests for the companion FastAPI app."""

import httpx
from fastapi.testclient import TestClient

from calorie_tracker.adapters.backend_client import BackendError, HttpxBackendClient
from calorie_tracker.api.app import create_app
from calorie_tracker.services.foods import FoodCatalogService
from tests.conftest import FakeBackendClient, InMemoryTokenStore

SIGNUP = {
    "username": "bob",
    "email": "bob@example.com",
    "password": "Str0ng!pass",
    "confirm_password": "Str0ng!pass",
}


def _logged_in_client(container) -> TestClient:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))
    response = client.post(
        "/auth/login", json={"emailOrUsername": "alice", "password": "Secret1!"}
    )
    assert response.status_code == 200
    return client


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_login_then_dashboard_defaults_goal(
    container, backend: FakeBackendClient, token_store: InMemoryTokenStore
) -> None:
    backend.responses["get_daily_nutrition"] = {"calories": 500}
    client = TestClient(create_app(container))

    login = client.post(
        "/auth/login", json={"emailOrUsername": "alice", "password": "Secret1!"}
    )

    assert login.status_code == 200
    assert login.json()["user"]["username"] == "alice"
    assert token_store.get() == "token-123"
    assert backend.calls_to("get_profile") == [()]

    dashboard = client.get("/dashboard", params={"day": "2024-03-06"})

    assert dashboard.status_code == 200
    data = dashboard.json()
    assert data["goal"] == 2000
    assert data["consumed"] == 500
    assert data["remaining"] == 1500
    assert data["percent"] == 25.0
    assert len(data["weekly"]) == 7
    assert data["weekly"][0]["day"] == "2024-03-03"


def test_login_failure_returns_message(container, backend: FakeBackendClient) -> None:
    backend.failures["login"] = BackendError(401, {"message": "Invalid credentials"})
    client = TestClient(create_app(container))

    response = client.post("/auth/login", json={"identifier": "alice", "password": "x"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_pages_require_session(container) -> None:
    client = TestClient(create_app(container))

    for path in ("/dashboard", "/profile", "/meals", "/foods", "/locales"):
        assert client.get(path).status_code == 401


def test_pages_wait_for_session_loading(container) -> None:
    container.session_store.loading = True
    client = TestClient(create_app(container))

    response = client.get("/profile")

    assert response.status_code == 503


def test_session_endpoint_reports_state(container) -> None:
    client = _logged_in_client(container)

    response = client.get("/session")

    assert response.json()["authenticated"] is True
    assert response.json()["user"]["email"] == "alice@example.com"


def test_lifespan_restores_persisted_session(
    container, backend: FakeBackendClient, token_store: InMemoryTokenStore
) -> None:
    token_store.set("persisted")

    with TestClient(create_app(container)) as client:
        response = client.get("/profile")

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "alice"


def test_signup_validates_password_rules(container, backend: FakeBackendClient) -> None:
    client = TestClient(create_app(container))

    weak = client.post("/auth/signup", json={**SIGNUP, "password": "weakpass"})
    mismatch = client.post(
        "/auth/signup", json={**SIGNUP, "confirm_password": "Other1!pass"}
    )
    short_name = client.post("/auth/signup", json={**SIGNUP, "username": "bo"})

    assert weak.status_code == 422
    assert mismatch.status_code == 422
    assert short_name.status_code == 422
    assert backend.calls_to("register") == []


def test_signup_registers_and_signs_in(container, backend: FakeBackendClient) -> None:
    client = TestClient(create_app(container))

    response = client.post("/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    (profile,) = backend.calls_to("register")[0]
    assert profile == {
        "username": "bob",
        "email": "bob@example.com",
        "password": "Str0ng!pass",
    }
    assert container.session_store.is_authenticated


def test_update_profile(container, backend: FakeBackendClient) -> None:
    client = _logged_in_client(container)

    response = client.put("/profile", json={"daily_calorie_goal": 1900})

    assert response.status_code == 200
    assert response.json()["user"]["daily_calorie_goal"] == 1900
    assert backend.calls_to("update_profile") == [({"daily_calorie_target": 1900},)]


def test_update_profile_expired_session(container, backend: FakeBackendClient) -> None:
    client = _logged_in_client(container)
    backend.failures["update_profile"] = BackendError(401)

    response = client.put("/profile", json={"username": "al"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Your session has expired. Please log in again."
    assert client.get("/profile").status_code == 401


def test_meal_entry_flow(container, backend: FakeBackendClient) -> None:
    client = _logged_in_client(container)

    created = client.post(
        "/meals/entries",
        json={
            "meal_type": "breakfast",
            "food_id": 10,
            "name": "Apple",
            "quantity_grams": 150,
            "calories": 52,
        },
    )

    assert created.status_code == 201
    body = created.json()
    assert body["entry"]["composite_id"] == "100_10"
    assert body["entry"]["server_saved"] is True
    assert body["total_calories"] == 78.0

    moved = client.post(
        "/meals/entries/move",
        json={
            "source_type": "breakfast",
            "composite_id": "100_10",
            "target_type": "snack",
        },
    )
    assert moved.status_code == 200
    assert moved.json()["entry"]["composite_id"] == "101_10"

    deleted = client.delete("/meals/entries/snack/101_10")

    assert deleted.status_code == 200
    assert deleted.json()["total_calories"] == 0.0
    assert backend.calls_to("delete_meal_food") == [("100", "10"), ("101", "10")]


def test_failed_meal_entry_can_be_retried(
    container, backend: FakeBackendClient
) -> None:
    client = _logged_in_client(container)
    backend.failures["create_meal"] = BackendError(None)
    entry = {
        "meal_type": "lunch",
        "food_id": "11",
        "name": "Bread",
        "quantity_grams": 80,
        "calories": 265,
    }

    failed = client.post("/meals/entries", json=entry)

    assert failed.status_code == 502
    assert failed.json()["entry"]["status"] == "failed"
    composite_id = failed.json()["entry"]["composite_id"]

    backend.failures.clear()
    retried = client.post(
        "/meals/entries/retry",
        json={"meal_type": "lunch", "composite_id": composite_id},
    )

    assert retried.status_code == 200
    assert retried.json()["entry"]["status"] == "confirmed"


def test_meal_entry_errors_are_json(container) -> None:
    client = _logged_in_client(container)
    entry = {
        "meal_type": "lunch",
        "food_id": "11",
        "name": "Bread",
        "quantity_grams": 80,
        "calories": 265,
    }

    assert client.post("/meals/entries", json=entry).status_code == 201
    duplicate = client.post("/meals/entries", json=entry)
    unknown_type = client.post("/meals/entries", json={**entry, "meal_type": "brunch"})
    missing = client.delete("/meals/entries/lunch/999_1")

    assert duplicate.status_code == 409
    assert unknown_type.status_code == 400
    assert unknown_type.json()["message"] == "Unknown meal type: brunch"
    assert missing.status_code == 404


def test_meal_log_for_date(container, backend: FakeBackendClient) -> None:
    backend.responses["list_meals"] = {
        "data": [
            {
                "meal_id": 1,
                "type": "brunch",
                "foods": [
                    {"food_id": 4, "name": "Eggs", "calories": 155, "quantity": 100}
                ],
            }
        ]
    }
    client = _logged_in_client(container)

    response = client.get("/meals", params={"date": "2024-03-06"})

    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-03-06"
    assert data["buckets"]["lunch"][0]["name"] == "Eggs"
    assert data["calories"]["lunch"] == 155.0


def test_logout_resets_meal_log(container, token_store: InMemoryTokenStore) -> None:
    client = _logged_in_client(container)
    client.post(
        "/meals/entries",
        json={
            "meal_type": "dinner",
            "food_id": 3,
            "name": "Soup",
            "quantity_grams": 300,
            "calories": 40,
        },
    )

    response = client.post("/auth/logout")

    assert response.status_code == 200
    assert token_store.get() is None
    assert all(bucket == [] for bucket in container.meal_log.buckets.values())
    assert client.get("/meals").status_code == 401


def test_food_pages(container, backend: FakeBackendClient) -> None:
    backend.foods.append(
        {"food_id": 1, "name": "Apple", "category": "Fruits", "calories": 52}
    )
    backend.responses["list_locales"] = {"data": {"locales": [{"id": 1, "name": "US"}]}}
    client = _logged_in_client(container)

    listing = client.get("/foods", params={"limit": 10})
    created = client.post(
        "/foods",
        json={
            "name": "Kefir",
            "category": "Dairy",
            "calories": "41",
            "proteins": "3.3",
            "carbs": "4.5",
            "fats": "1",
        },
    )
    invalid = client.post("/foods", json={"name": "Kefir"})
    locales = client.get("/locales")

    assert listing.status_code == 200
    assert listing.json()["page"]["categories"] == ["All", "Fruits"]
    assert listing.json()["total_pages"] == 1
    assert created.status_code == 201
    assert created.json()["page"]["foods"][0]["name"] == "Kefir"
    assert invalid.status_code == 400
    assert "calories" in invalid.json()["errors"]
    assert locales.json()["locales"][0]["name"] == "US"


def test_backend_errors_become_json(container, backend: FakeBackendClient) -> None:
    client = _logged_in_client(container)
    backend.failures["list_foods"] = BackendError(500, {"message": "Database down"})

    response = client.get("/foods")

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Database down"}


def test_dashboard_failure_returns_bad_gateway(
    container, backend: FakeBackendClient
) -> None:
    client = _logged_in_client(container)
    backend.failures["get_weekly_nutrition"] = BackendError(None)

    response = client.get("/dashboard")

    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to load nutrition data"


def test_lifespan_tolerates_null_profile_fields(
    container, backend: FakeBackendClient, token_store: InMemoryTokenStore
) -> None:
    backend.profile["username"] = None
    token_store.set("persisted")

    with TestClient(create_app(container)) as client:
        response = client.get("/profile")

    assert response.status_code == 200
    assert response.json()["user"]["username"] == ""
    assert token_store.get() == "persisted"


def test_signup_sends_backend_field_names(
    container, backend: FakeBackendClient
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/auth/signup",
        json={**SIGNUP, "first_name": "Bob", "daily_calorie_goal": 1800},
    )

    assert response.status_code == 201
    (profile,) = backend.calls_to("register")[0]
    assert profile["first_name"] == "Bob"
    assert profile["daily_calorie_target"] == 1800
    assert "daily_calorie_goal" not in profile


def test_update_profile_sends_first_name(
    container, backend: FakeBackendClient
) -> None:
    client = _logged_in_client(container)

    response = client.put(
        "/profile", json={"first_name": "Alice", "daily_calorie_target": 2100}
    )

    assert response.status_code == 200
    assert response.json()["user"]["first_name"] == "Alice"
    assert response.json()["user"]["daily_calorie_goal"] == 2100
    assert backend.calls_to("update_profile") == [
        ({"first_name": "Alice", "daily_calorie_target": 2100},)
    ]


def test_signup_rejects_special_characters_the_backend_refuses(
    container, backend: FakeBackendClient
) -> None:
    client = TestClient(create_app(container))

    underscore = client.post(
        "/auth/signup",
        json={**SIGNUP, "password": "Str0ng_pass", "confirm_password": "Str0ng_pass"},
    )
    accepted = client.post(
        "/auth/signup",
        json={**SIGNUP, "password": "Str0ng?pass", "confirm_password": "Str0ng?pass"},
    )

    assert underscore.status_code == 422
    assert accepted.status_code == 201
    assert len(backend.calls_to("register")) == 1


def test_dashboard_falls_back_to_profile_goal(
    container, backend: FakeBackendClient
) -> None:
    backend.profile["daily_calorie_target"] = 2500
    backend.responses["get_daily_nutrition"] = {"calories": 500}
    client = _logged_in_client(container)

    response = client.get("/dashboard", params={"day": "2024-03-06"})

    assert response.status_code == 200
    data = response.json()
    assert data["goal"] == 2500
    assert data["remaining"] == 2000
    assert data["percent"] == 20.0


def test_dashboard_prefers_summary_goal(container, backend: FakeBackendClient) -> None:
    backend.profile["daily_calorie_target"] = 2500
    backend.responses["get_daily_nutrition"] = {"calories": 500, "daily_goal": 1000}
    client = _logged_in_client(container)

    response = client.get("/dashboard", params={"day": "2024-03-06"})

    assert response.json()["goal"] == 1000
    assert response.json()["percent"] == 50.0


def test_malformed_backend_success_is_bad_gateway(container) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    container.food_catalog = FoodCatalogService(
        client=HttpxBackendClient(
            base_url="http://backend.test/api",
            token_store=container.token_store,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
    )
    client = _logged_in_client(container)

    response = client.get("/foods")

    assert response.status_code == 502
    assert response.json() == {
        "status": "error",
        "message": "Malformed JSON response",
    }
