"""API endpoint discovery.

In router mode the appliance advertises where its API lives through
``GET /api_version``. In bridge mode the vendor hostname is used directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..const import API_VERSION_PATH, DEFAULT_HTTPS_PORT, STATIC_API_BASE
from .exceptions import ParseError
from .transport import ApplianceTransport

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiVersion:
    """Fields of the ``/api_version`` document the exporter relies on."""

    api_base_url: str
    api_domain: str
    https_port: int
    https_available: bool
    api_version: str | None = None
    device_name: str | None = None
    box_model_name: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> ApiVersion:
        if not isinstance(data, dict):
            raise ParseError("api_version is not an object", raw_value=repr(data))
        try:
            base = data["api_base_url"]
            domain = data["api_domain"]
            port = int(data["https_port"])
        except KeyError as err:
            raise ParseError("Missing field in api_version", field=str(err.args[0]), raw_value=repr(data)) from err
        except (TypeError, ValueError) as err:
            raise ParseError("Invalid https_port", field="https_port", raw_value=repr(data.get("https_port"))) from err
        return cls(
            api_base_url=str(base),
            api_domain=str(domain),
            https_port=port,
            https_available=bool(data.get("https_available", True)),
            api_version=data.get("api_version"),
            device_name=data.get("device_name"),
            box_model_name=data.get("box_model_name"),
        )

    @property
    def api_url(self) -> str:
        """``https://{api_domain}:{https_port}{api_base_url}``."""
        base = self.api_base_url if self.api_base_url.endswith("/") else f"{self.api_base_url}/"
        return f"https://{self.api_domain}:{self.https_port}{base}"

    def resolve_url(self, host: str) -> str:
        """API root to use.

        The advertised HTTPS endpoint, or plain HTTP on ``host`` when the
        appliance has remote HTTPS access disabled.
        """
        if self.https_available:
            return self.api_url
        _LOGGER.warning("HTTPS is disabled on the appliance, falling back to plain HTTP on %s", host)
        base = self.api_base_url if self.api_base_url.endswith("/") else f"{self.api_base_url}/"
        return f"http://{host}{base}"


def static_api_url(host: str, port: int = DEFAULT_HTTPS_PORT) -> str:
    """API root for bridge mode, served by the vendor hostname."""
    if port == DEFAULT_HTTPS_PORT:
        return f"https://{host}{STATIC_API_BASE}"
    return f"https://{host}:{port}{STATIC_API_BASE}"


def discover_api(transport: ApplianceTransport, host: str, port: int = DEFAULT_HTTPS_PORT) -> ApiVersion:
    """Fetch ``/api_version`` from ``host`` and return the advertised endpoint.

    Raises:
        TransportError: If the appliance is unreachable.
        CertificateError: If its certificate is rejected.
        ParseError: If the document lacks the endpoint fields.
    """
    url = f"https://{host}:{port}{API_VERSION_PATH}"
    info = ApiVersion.from_json(transport.get_json(url))
    _LOGGER.info(
        "Discovered API %s on %s (%s)",
        info.api_version or "unknown version",
        info.api_url,
        info.box_model_name or "unknown model",
    )
    return info
