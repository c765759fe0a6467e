"""LAN category: network mode and local naming."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..const import LAN_CONFIG_PATH
from ..core.categories import ApplianceMode, MetricCategory
from ..core.exceptions import ParseError
from .base import Fetch, as_mapping, optional, require


@dataclass(frozen=True)
class LanPayload:
    category: ClassVar[MetricCategory] = MetricCategory.LAN

    mode: ApplianceMode
    ip: str | None = None
    name: str | None = None
    name_dns: str | None = None
    name_mdns: str | None = None
    name_netbios: str | None = None


def parse_appliance_mode(raw: Any) -> ApplianceMode:
    """Read the ``mode`` field of ``lan/config``.

    Raises:
        ParseError: If the mode is missing or unknown.
    """
    value = require(as_mapping(raw, "lan/config"), "mode", str)
    try:
        return ApplianceMode(value)
    except ValueError as err:
        raise ParseError("Unknown network mode", field="mode", raw_value=value) from err


def parse_lan(raw: Any) -> LanPayload:
    data = as_mapping(raw, "lan/config")
    return LanPayload(
        mode=parse_appliance_mode(data),
        ip=optional(data, "ip", str),
        name=optional(data, "name", str),
        name_dns=optional(data, "name_dns", str),
        name_mdns=optional(data, "name_mdns", str),
        name_netbios=optional(data, "name_netbios", str),
    )


def fetch_lan(get: Fetch) -> LanPayload:
    return parse_lan(get(LAN_CONFIG_PATH))
