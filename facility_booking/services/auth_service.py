"""Admin token authentication and the booking manage capability."""

from __future__ import annotations

import secrets
from threading import Lock
from typing import Optional

from facility_booking.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class AuthService:
    """Exchanges the admin token for a bearer session.

    Only the most recent login holds a valid session. With no ADMIN_TOKEN
    configured auth is disabled and every caller may manage bookings.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._session_token: str | None = None
        self._session_lock = Lock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def _expected_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def login(self, provided_admin_token: str) -> str:
        expected = self._expected_token()
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        session_token = secrets.token_urlsafe(32)
        with self._session_lock:
            self._session_token = session_token
        return session_token

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        with self._session_lock:
            session_token = self._session_token
        if session_token is None:
            raise InvalidAdminTokenError("No active session. Login first.")
        if not secrets.compare_digest(bearer_token, session_token):
            raise InvalidAdminTokenError("Invalid bearer token")

    def can_manage(self, bearer_token: Optional[str]) -> bool:
        """Translate an optional bearer token into the manage capability."""
        if not self.auth_enabled:
            return True
        if bearer_token is None:
            return False
        try:
            self.validate_bearer_token(bearer_token)
        except InvalidAdminTokenError:
            return False
        return True
