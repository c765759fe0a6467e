"""Category parsers.

``CATEGORY_FETCHERS`` maps every MetricCategory to the function fetching
and parsing it. The payload type is the matching ``*Payload`` dataclass.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Union

from ..core.categories import MetricCategory
from .base import Fetch
from .connection import ConnectionPayload, fetch_connection
from .dhcp import DhcpPayload, fetch_dhcp
from .lan import LanPayload, fetch_lan, parse_appliance_mode
from .lan_browser import LanBrowserPayload, fetch_lan_browser
from .switch import SwitchPayload, fetch_switch
from .system import SystemPayload, fetch_system
from .wifi import WifiPayload, fetch_wifi

CategoryPayload = Union[
    ConnectionPayload,
    SystemPayload,
    LanPayload,
    LanBrowserPayload,
    SwitchPayload,
    WifiPayload,
    DhcpPayload,
]

CATEGORY_FETCHERS: dict[MetricCategory, Callable[[Fetch], CategoryPayload]] = {
    MetricCategory.CONNECTION: fetch_connection,
    MetricCategory.SYSTEM: fetch_system,
    MetricCategory.LAN: fetch_lan,
    MetricCategory.LAN_BROWSER: fetch_lan_browser,
    MetricCategory.SWITCH: fetch_switch,
    MetricCategory.WIFI: fetch_wifi,
    MetricCategory.DHCP: fetch_dhcp,
}

__all__ = [
    "CATEGORY_FETCHERS",
    "CategoryPayload",
    "ConnectionPayload",
    "DhcpPayload",
    "Fetch",
    "LanBrowserPayload",
    "LanPayload",
    "SwitchPayload",
    "SystemPayload",
    "WifiPayload",
    "parse_appliance_mode",
]
