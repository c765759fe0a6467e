"""Metric categories and appliance operating modes."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class MetricCategory(str, Enum):
    """Groups of telemetry fetched and cached together."""

    CONNECTION = "connection"
    SYSTEM = "system"
    LAN = "lan"
    LAN_BROWSER = "lan_browser"
    SWITCH = "switch"
    WIFI = "wifi"
    DHCP = "dhcp"


class ApplianceMode(str, Enum):
    """Network mode reported by ``lan/config``."""

    ROUTER = "router"
    BRIDGE = "bridge"


# Categories the appliance cannot serve while bridged
BRIDGE_SUPPRESSED = frozenset(
    {
        MetricCategory.LAN,
        MetricCategory.LAN_BROWSER,
        MetricCategory.SWITCH,
        MetricCategory.WIFI,
        MetricCategory.DHCP,
    }
)


def active_categories(enabled: Iterable[MetricCategory], mode: ApplianceMode) -> list[MetricCategory]:
    """Enabled categories that apply in ``mode``, in declaration order."""
    enabled = set(enabled)
    return [
        category
        for category in MetricCategory
        if category in enabled and not (mode is ApplianceMode.BRIDGE and category in BRIDGE_SUPPRESSED)
    ]
