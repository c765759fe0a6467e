"""Prometheus exporter for Freebox router telemetry."""

from .const import VERSION

__version__ = VERSION
