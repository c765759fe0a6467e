"""HTTP endpoint serving ``/metrics``."""

from __future__ import annotations

import logging
import threading
from wsgiref.simple_server import WSGIServer

from prometheus_client import CollectorRegistry, start_http_server

_LOGGER = logging.getLogger(__name__)

METRICS_PATH = "/metrics"


class MetricsServer:
    """prometheus_client HTTP server exposing a registry, with a clean stop."""

    def __init__(self, registry: CollectorRegistry, port: int, host: str = "0.0.0.0"):
        self._registry = registry
        self._host = host
        self._port = port
        self._server: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        """Bound port (useful when started with port 0)."""
        if self._server is not None:
            return int(self._server.server_address[1])
        return self._port

    @property
    def url(self) -> str:
        host = "127.0.0.1" if self._host in ("0.0.0.0", "") else self._host
        return f"http://{host}:{self.port}{METRICS_PATH}"

    def start(self) -> None:
        """Bind the port and serve in a background thread.

        Raises:
            OSError: If the port cannot be bound.
        """
        self._server, self._thread = start_http_server(self._port, addr=self._host, registry=self._registry)
        _LOGGER.info("Serving metrics on %s:%s%s", self._host, self.port, METRICS_PATH)

    def stop(self) -> None:
        """Stop accepting requests and release the port."""
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        _LOGGER.info("Metrics server stopped")
