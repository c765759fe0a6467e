"""Exceptions raised while talking to the Freebox appliance.

Each failure kind the refresh loop and the command line need to tell apart
gets its own class. Context (url, status, error_code) is carried on the
exception so log lines stay informative without re-parsing messages.
"""

from __future__ import annotations


class ApplianceError(Exception):
    """Base class for errors raised by the appliance client."""

    def __init__(self, message: str | None = None, url: str | None = None):
        self.url = url
        super().__init__(message or self.__class__.__doc__)

    def __str__(self) -> str:
        base = super().__str__()
        if self.url:
            return f"{base} | url={self.url}"
        return base


class CertificateError(ApplianceError):
    """The appliance certificate could not be validated against the trust anchor."""


class TransportError(ApplianceError):
    """Network failure: connection refused, timeout or TLS handshake error."""


class ApiResponseError(ApplianceError):
    """The appliance answered with an error envelope or an unexpected body."""

    def __init__(
        self,
        message: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, url)

    def __str__(self) -> str:
        parts = [Exception.__str__(self)]
        if self.error_code:
            parts.append(f"error_code={self.error_code}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class AuthenticationRejected(ApplianceError):
    """The appliance refused the session or application token (HTTP 403)."""

    def __init__(
        self,
        message: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, url)

    def __str__(self) -> str:
        parts = [Exception.__str__(self)]
        if self.error_code:
            parts.append(f"error_code={self.error_code}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class RegistrationError(ApplianceError):
    """Registration request failed or returned a malformed response."""


class RegistrationCancelled(RegistrationError):
    """The operator cancelled registration before the appliance answered."""


class AuthorizationDenied(ApplianceError):
    """The registration was denied on the appliance front panel."""

    def __init__(self, message: str | None = None, status: str | None = None):
        self.status = status
        super().__init__(message)


class AuthorizationTimeout(ApplianceError):
    """Nobody confirmed the registration on the appliance in time."""


class NotRegisteredError(ApplianceError):
    """No application token is stored; run the register command first."""


class ParseError(ApplianceError):
    """A response body does not have the expected shape."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        raw_value: str | None = None,
    ):
        self.field = field
        self.raw_value = raw_value
        super().__init__(message)

    def __str__(self) -> str:
        parts = [Exception.__str__(self)]
        if self.field:
            parts.append(f"field={self.field}")
        if self.raw_value is not None:
            parts.append(f"raw={self.raw_value[:80]!r}")
        return " | ".join(parts)


class ConfigurationError(Exception):
    """The configuration file is missing, unreadable or invalid."""
