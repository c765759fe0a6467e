"""Wiring of the exporter components.

``ExporterContext`` owns one instance of each long-lived component and is
passed explicitly to the commands; nothing is kept in module globals.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field

from prometheus_client import CollectorRegistry

from .config import Configuration
from .const import APP_ID, APP_NAME, APP_VERSION, DEFAULT_HTTPS_PORT, LAN_CONFIG_PATH
from .core.auth import Authenticator, RegistrationRequest
from .core.cache import MetricCache
from .core.categories import ApplianceMode
from .core.credentials import CredentialStore, write_private_file
from .core.discovery import discover_api, static_api_url
from .core.exceptions import ApplianceError
from .core.refresh import RefreshEngine
from .core.ssl_adapter import (
    certificate_fingerprint,
    create_pinned_session,
    fetch_appliance_certificate,
    pinned_certificate_path,
    resolve_trust_anchor,
)
from .core.transport import ApplianceTransport
from .metrics import CacheCollector
from .parsers import parse_appliance_mode
from .server import MetricsServer

_LOGGER = logging.getLogger(__name__)


def registration_request() -> RegistrationRequest:
    """Identity registered on the appliance; the device name is the host name."""
    return RegistrationRequest(
        app_id=APP_ID,
        app_name=APP_NAME,
        app_version=APP_VERSION,
        device_name=socket.gethostname(),
    )


def pin_appliance_certificate(configuration: Configuration, host: str, port: int = DEFAULT_HTTPS_PORT) -> bool:
    """Capture the certificate of ``host:port`` into the pinned trust anchor.

    Does nothing when a CA file is configured. Certificates already pinned
    are kept; a new one is appended.

    Returns:
        True if a certificate was added.
    """
    if configuration.api.ca_file is not None:
        return False
    path = pinned_certificate_path(configuration.core.data_directory)
    existing = path.read_text(encoding="ascii") if path.exists() else ""
    pem = fetch_appliance_certificate(host, port, timeout=configuration.api.timeout)
    if pem.strip() in existing:
        return False
    write_private_file(path, existing + pem)
    _LOGGER.warning(
        "Pinned certificate of %s:%s (SHA-256 %s); check it matches the appliance",
        host,
        port,
        certificate_fingerprint(pem),
    )
    return True


@dataclass
class ExporterContext:
    """Components shared by the exporter commands."""

    configuration: Configuration
    store: CredentialStore
    transport: ApplianceTransport
    authenticator: Authenticator
    cache: MetricCache = field(default_factory=MetricCache)
    engine: RefreshEngine | None = None
    server: MetricsServer | None = None

    @classmethod
    def create(cls, configuration: Configuration) -> ExporterContext:
        """Build the context.

        Raises:
            CertificateError: If no trust anchor is available.
        """
        transport = ApplianceTransport(
            static_api_url(configuration.api.host),
            session=cls._pinned_session(configuration),
            timeout=configuration.api.timeout,
        )
        store = CredentialStore(configuration.core.data_directory)
        return cls(
            configuration=configuration,
            store=store,
            transport=transport,
            authenticator=Authenticator(transport, store),
        )

    @staticmethod
    def _pinned_session(configuration: Configuration):
        ca_data = resolve_trust_anchor(configuration.api.ca_file, configuration.core.data_directory)
        return create_pinned_session(ca_data, configuration.api.tls_hostname)

    def reload_trust_anchor(self) -> None:
        """Rebuild the HTTPS session after the trust anchor changed."""
        self.transport.session = self._pinned_session(self.configuration)

    def resolve_api_url(self, pin_new_endpoint: bool = False) -> str:
        """Point the transport at the API root for the configured mode.

        Router mode asks the appliance through ``/api_version``; bridge mode
        uses the vendor hostname directly.

        Args:
            pin_new_endpoint: Pin the certificate of the discovered endpoint
                when it differs from the configured host (registration only).
        """
        api = self.configuration.api
        if api.mode is ApplianceMode.BRIDGE:
            url = static_api_url(api.host)
        else:
            info = discover_api(self.transport, api.host)
            url = info.resolve_url(api.host)
            new_endpoint = (info.api_domain, info.https_port) != (api.host, DEFAULT_HTTPS_PORT)
            if pin_new_endpoint and info.https_available and new_endpoint:
                if pin_appliance_certificate(self.configuration, info.api_domain, info.https_port):
                    self.reload_trust_anchor()
        self.transport.api_url = url
        _LOGGER.info("Using API root %s", url)
        return url

    def detect_mode(self) -> ApplianceMode:
        """Ask the appliance for its current mode, falling back to the configured one."""
        try:
            return parse_appliance_mode(self.authenticator.get(LAN_CONFIG_PATH))
        except ApplianceError as err:
            _LOGGER.warning("Cannot read appliance mode, assuming %s: %s", self.configuration.api.mode.value, err)
            return self.configuration.api.mode

    def build_engine(self, mode: ApplianceMode) -> RefreshEngine:
        self.engine = RefreshEngine(
            authenticator=self.authenticator,
            transport=self.transport,
            cache=self.cache,
            categories=self.configuration.metrics.enabled,
            refresh_interval=self.configuration.api.refresh,
            mode=mode,
        )
        return self.engine

    def build_server(self, port: int | None = None) -> MetricsServer:
        registry = CollectorRegistry(auto_describe=False)
        registry.register(CacheCollector(self.cache, self.configuration.metrics.prefix))
        self.server = MetricsServer(registry, port if port is not None else self.configuration.core.port)
        return self.server

    def shutdown(self) -> None:
        """Stop the refresh loop, then the HTTP server."""
        if self.engine is not None:
            self.engine.stop()
        if self.server is not None:
            self.server.stop()
        self.transport.session.close()
