"""Session store for the signed-in user."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from calorie_tracker.adapters.backend_client import BackendClient, BackendError
from calorie_tracker.adapters.token_store import TokenStore
from calorie_tracker.domain.models import MacroGoals, UserProfile
from calorie_tracker.domain.payloads import parse_profile, unwrap_data

_logger = logging.getLogger(__name__)

_HTTP_BAD_REQUEST = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_CONFLICT = 409
_TOKEN_REJECTED = {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."


@dataclass
class SessionStore:
    """Holds the current user and token and mirrors the backend's auth state.

    Public operations never raise; failures are recorded in ``error`` and
    reported through the boolean return value.
    """

    client: BackendClient
    token_store: TokenStore
    user: UserProfile | None = None
    loading: bool = False
    error: str | None = None

    @property
    def token(self) -> str | None:
        """Return the persisted token, if any."""
        return self.token_store.get()

    @property
    def is_authenticated(self) -> bool:
        """Whether a verified user is loaded."""
        return self.user is not None and self.token is not None

    @property
    def macro_goals(self) -> MacroGoals | None:
        """Macro targets of the current user."""
        return self.user.macro_goals if self.user else None

    def clear_error(self) -> None:
        """Forget the last recorded error."""
        self.error = None

    async def initialize(self) -> None:
        """Verify a persisted token against the profile endpoint."""
        if self.token is None:
            self.loading = False
            return
        self.loading = True
        try:
            await self._load_profile()
        except BackendError as exc:
            _logger.warning("Profile verification failed (status=%s)", exc.status_code)
            self.error = "Failed to load user profile"
            if exc.status_code in _TOKEN_REJECTED:
                self._clear_local()
        except ValidationError as exc:
            _logger.warning("Profile payload was malformed: %s", exc)
            self.error = "Failed to load user profile"
            self._clear_local()
        finally:
            self.loading = False

    async def login(self, identifier: str, password: str) -> bool:
        """Log in with an email or username."""
        self.loading = True
        self.error = None
        token_stored = False
        try:
            payload = await self.client.login(identifier, password)
            token = _extract_token(payload)
            if token is None:
                self.error = "Login failed"
                return False
            self.token_store.set(token)
            token_stored = True
            await self._load_profile()
            return True
        except BackendError as exc:
            _logger.warning("Login failed: %s", exc.message)
            self.error = _message_or(exc, "Login failed")
            if token_stored:
                self._clear_local()
            return False
        except ValidationError as exc:
            _logger.warning("Profile payload after login was malformed: %s", exc)
            self.error = "Login failed"
            self._clear_local()
            return False
        finally:
            self.loading = False

    async def register(self, profile: dict[str, object]) -> bool:
        """Create an account, adopting a returned token or falling back to login."""
        self.loading = True
        self.error = None
        try:
            payload = await self.client.register(profile)
        except BackendError as exc:
            _logger.warning("Registration failed: %s", exc.message)
            self.error = _message_or(exc, "Registration failed")
            self.loading = False
            return False

        token = _extract_token(payload)
        if token is None:
            identifier = str(profile.get("email") or profile.get("username") or "")
            return await self.login(identifier, str(profile.get("password") or ""))

        self.token_store.set(token)
        try:
            data = unwrap_data(payload)
            if isinstance(data, dict) and isinstance(data.get("user"), dict):
                self.user = parse_profile(data["user"])
            else:
                await self._load_profile()
            return True
        except BackendError as exc:
            _logger.warning("Profile fetch after registration failed: %s", exc.message)
            self.error = _message_or(exc, "Registration failed")
            self._clear_local()
            return False
        except ValidationError as exc:
            _logger.warning("Profile payload after registration was malformed: %s", exc)
            self.error = "Registration failed"
            self._clear_local()
            return False
        finally:
            self.loading = False

    async def logout(self) -> None:
        """Invalidate the token server-side when possible, then clear local state."""
        if self.token is not None:
            try:
                await self.client.logout()
            except BackendError as exc:
                _logger.warning("Server logout failed: %s", exc.message)
        self._clear_local()

    def force_logout(self) -> None:
        """Clear local session state without contacting the backend."""
        if self.user is not None or self.token is not None:
            _logger.info("Forcing local logout")
        self._clear_local()

    async def update_profile(self, changes: dict[str, object]) -> bool:
        """Update profile fields; a 401 logs the user out."""
        self.loading = True
        self.error = None
        try:
            payload = await self.client.update_profile(changes)
            self.user = parse_profile(payload)
            return True
        except BackendError as exc:
            _logger.warning(
                "Profile update failed (status=%s): %s", exc.status_code, exc.message
            )
            if exc.status_code == _HTTP_UNAUTHORIZED:
                await self.logout()
                self.error = SESSION_EXPIRED_MESSAGE
            elif exc.status_code == _HTTP_BAD_REQUEST:
                self.error = "Invalid profile data. Please check your inputs."
            elif exc.status_code == _HTTP_CONFLICT:
                self.error = "Username or email already exists."
            else:
                self.error = "Failed to update profile. Please try again."
            return False
        except ValidationError as exc:
            _logger.warning("Updated profile payload was malformed: %s", exc)
            self.error = "Failed to update profile. Please try again."
            return False
        finally:
            self.loading = False

    async def _load_profile(self) -> None:
        payload = await self.client.get_profile()
        self.user = parse_profile(payload)

    def _clear_local(self) -> None:
        self.token_store.clear()
        self.user = None


def _extract_token(payload: object) -> str | None:
    data = unwrap_data(payload)
    if isinstance(data, dict):
        token = data.get("token")
        if isinstance(token, str) and token:
            return token
    return None


def _message_or(exc: BackendError, fallback: str) -> str:
    value = exc.payload.get("message")
    if isinstance(value, str) and value:
        return value
    return fallback
