"""HTTP transport for the appliance JSON API.

Every API reply is wrapped in the same envelope::

    {"success": bool, "result": ..., "msg": str, "error_code": str, "uid": str}

``ApplianceTransport`` sends the request, unwraps the envelope and maps
failures onto the exception hierarchy in ``exceptions``. It holds no
authentication state: callers pass the session token explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from ..const import API_VERSION_PREFIX, AUTH_HEADER, DEFAULT_TIMEOUT, SESSION_REJECTED_CODES
from .exceptions import (
    ApiResponseError,
    AuthenticationRejected,
    CertificateError,
    TransportError,
)
from .ssl_adapter import is_certificate_error

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiResponse:
    """Decoded API envelope."""

    success: bool
    result: Any = None
    msg: str | None = None
    error_code: str | None = None
    uid: str | None = None

    @classmethod
    def from_json(cls, data: Any, url: str | None = None, status_code: int | None = None) -> ApiResponse:
        """Build an ApiResponse from a decoded JSON body.

        Raises:
            ApiResponseError: If the body is not an envelope.
        """
        if not isinstance(data, dict) or "success" not in data:
            raise ApiResponseError("Response is not an API envelope", url=url, status_code=status_code)
        return cls(
            success=bool(data.get("success")),
            result=data.get("result"),
            msg=data.get("msg"),
            error_code=data.get("error_code"),
            uid=data.get("uid"),
        )


class ApplianceTransport:
    """Sends requests to the appliance API and unwraps replies."""

    def __init__(
        self,
        api_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the transport.

        Args:
            api_url: API root, e.g. ``https://mafreebox.freebox.fr/api/``.
            session: Session carrying the TLS configuration (pinned adapter).
            timeout: Per-request timeout in seconds.
        """
        self.api_url = api_url
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def api_url(self) -> str:
        return self._api_url

    @api_url.setter
    def api_url(self, value: str) -> None:
        self._api_url = value if value.endswith("/") else f"{value}/"

    def url_for(self, path: str) -> str:
        """Absolute URL of a versioned API path such as ``lan/config/``."""
        return f"{self._api_url}{API_VERSION_PREFIX}{path.lstrip('/')}"

    def get(self, path: str, session_token: str | None = None) -> Any:
        """GET a versioned API path and return the envelope ``result``."""
        return self.request("GET", path, session_token=session_token).result

    def post(self, path: str, payload: dict[str, Any] | None = None, session_token: str | None = None) -> Any:
        """POST JSON to a versioned API path and return the envelope ``result``."""
        return self.request("POST", path, payload=payload, session_token=session_token).result

    def request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        session_token: str | None = None,
    ) -> ApiResponse:
        """Send a request to the versioned API and decode the envelope.

        Raises:
            AuthenticationRejected: A session error_code, or HTTP 403 without one.
            ApiResponseError: Error envelope (including a 403 for a missing
                permission) or malformed body.
            CertificateError: The appliance certificate was rejected.
            TransportError: Network failure or timeout.
        """
        url = self.url_for(path)
        headers = {AUTH_HEADER: session_token} if session_token else {}
        response = self._send(method, url, json=payload, headers=headers)
        status = response.status_code

        try:
            body = response.json()
        except ValueError as err:
            if status == 403:
                raise AuthenticationRejected("Access forbidden", url=url, status_code=status) from err
            raise ApiResponseError("Response is not valid JSON", url=url, status_code=status) from err

        envelope = ApiResponse.from_json(body, url=url, status_code=status)
        session_rejected = envelope.error_code in SESSION_REJECTED_CODES
        # a 403 with another code (insufficient_rights...) leaves the session valid
        if session_rejected or (status == 403 and not envelope.error_code):
            raise AuthenticationRejected(
                envelope.msg or "Access forbidden",
                url=url,
                status_code=status,
                error_code=envelope.error_code,
            )
        if not envelope.success or status == 403:
            raise ApiResponseError(
                envelope.msg or "Request was not successful",
                url=url,
                status_code=status,
                error_code=envelope.error_code,
            )
        _LOGGER.debug("%s %s -> %s", method, url, status)
        return envelope

    def get_json(self, url: str) -> Any:
        """GET an absolute URL returning plain (non enveloped) JSON.

        Used for ``/api_version`` discovery.
        """
        response = self._send("GET", url)
        if response.status_code != 200:
            raise ApiResponseError("Unexpected HTTP status", url=url, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as err:
            raise ApiResponseError("Response is not valid JSON", url=url, status_code=200) from err

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.SSLError as err:
            if is_certificate_error(err):
                raise CertificateError(f"Appliance certificate rejected: {err}", url=url) from err
            raise TransportError(f"TLS handshake failed: {err}", url=url) from err
        except requests.exceptions.Timeout as err:
            raise TransportError(f"Request timed out after {self.timeout}s", url=url) from err
        except requests.exceptions.ConnectionError as err:
            raise TransportError(f"Connection failed: {err}", url=url) from err
        except requests.exceptions.RequestException as err:
            raise TransportError(f"Request failed: {err}", url=url) from err
