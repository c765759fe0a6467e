"""Appliance registration and session handling."""

from .authenticator import Authenticator, compute_password
from .types import (
    AuthorizationStatus,
    AuthState,
    Challenge,
    Permissions,
    RegistrationRequest,
    RegistrationResult,
    SessionDiagnostic,
    SessionInfo,
)

__all__ = [
    "Authenticator",
    "AuthorizationStatus",
    "AuthState",
    "Challenge",
    "Permissions",
    "RegistrationRequest",
    "RegistrationResult",
    "SessionDiagnostic",
    "SessionInfo",
    "compute_password",
]
