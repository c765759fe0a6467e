"""Type definitions for appliance authentication."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..exceptions import ParseError


class AuthState(Enum):
    """Lifecycle of the exporter's access to the appliance."""

    UNREGISTERED = "unregistered"
    """No application token stored."""

    REGISTERING = "registering"
    """Registration request in flight."""

    AWAITING_AUTHORIZATION = "awaiting_authorization"
    """Token received, waiting for front-panel confirmation."""

    REGISTERED = "registered"
    """Token granted, no session open."""

    LOGGING_IN = "logging_in"
    """Challenge/response login in progress."""

    SESSION_OPEN = "session_open"
    """A session token is available."""

    REVOKED_OR_DENIED = "revoked_or_denied"
    """Registration denied or application token revoked. Terminal."""


class AuthorizationStatus(str, Enum):
    """Status reported while polling a registration."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    TIMEOUT = "timeout"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def parse(cls, value: Any) -> AuthorizationStatus:
        """Parse a status string.

        Raises:
            ParseError: If the value is not a known status.
        """
        try:
            return cls(value)
        except ValueError as err:
            raise ParseError("Unknown authorization status", field="status", raw_value=repr(value)) from err


@dataclass(frozen=True)
class RegistrationRequest:
    """Identity the exporter registers under."""

    app_id: str
    app_name: str
    app_version: str
    device_name: str

    def to_payload(self) -> dict[str, str]:
        return {
            "app_id": self.app_id,
            "app_name": self.app_name,
            "app_version": self.app_version,
            "device_name": self.device_name,
        }


@dataclass(frozen=True)
class RegistrationResult:
    """Answer to a registration request."""

    app_token: str
    track_id: int


@dataclass(frozen=True)
class Challenge:
    """Login challenge. Single use."""

    value: str
    password_salt: str | None = None
    logged_in: bool = False

    @classmethod
    def from_json(cls, data: Any) -> Challenge:
        if not isinstance(data, dict) or not isinstance(data.get("challenge"), str):
            raise ParseError("Login response has no challenge", field="challenge", raw_value=repr(data))
        return cls(
            value=data["challenge"],
            password_salt=data.get("password_salt"),
            logged_in=bool(data.get("logged_in", False)),
        )


@dataclass(frozen=True)
class Permissions:
    """Permission flags granted to the session."""

    flags: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> Permissions:
        if not isinstance(data, dict):
            return cls()
        return cls({str(name): bool(value) for name, value in data.items()})

    def granted(self) -> list[str]:
        """Names of the permissions set to true, sorted."""
        return sorted(name for name, value in self.flags.items() if value)

    def __contains__(self, name: object) -> bool:
        return bool(self.flags.get(name))  # type: ignore[arg-type]


@dataclass(frozen=True)
class SessionInfo:
    """An open session."""

    token: str
    permissions: Permissions
    opened_at: float


@dataclass(frozen=True)
class SessionDiagnostic:
    """Snapshot of the authentication state for the diagnostic command."""

    state: AuthState
    registered: bool
    session_token: str | None = None
    permissions: Permissions | None = None
    opened_at: float | None = None
