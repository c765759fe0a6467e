"""LAN browser category: interfaces and the hosts seen on them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from .base import Fetch, as_list, as_mapping, optional, require

INTERFACES_PATH = "lan/browser/interfaces/"


@dataclass(frozen=True)
class LanHost:
    id: str
    primary_name: str | None = None
    host_type: str | None = None
    vendor_name: str | None = None
    mac: str | None = None
    active: bool = False
    reachable: bool = False
    persistent: bool = False
    last_activity: int | None = None
    last_time_reachable: int | None = None
    ipv4: tuple[str, ...] = ()
    ipv6: tuple[str, ...] = ()


@dataclass(frozen=True)
class LanInterface:
    name: str
    host_count: int
    hosts: tuple[LanHost, ...] = ()


@dataclass(frozen=True)
class LanBrowserPayload:
    category: ClassVar[MetricCategory] = MetricCategory.LAN_BROWSER

    interfaces: tuple[LanInterface, ...]


def parse_interfaces(raw: Any) -> list[tuple[str, int]]:
    """Return ``(name, host_count)`` for each interface."""
    interfaces = []
    for item in as_list(raw, "lan/browser/interfaces"):
        item = as_mapping(item, "interfaces")
        interfaces.append((require(item, "name", str), optional(item, "host_count", int, 0)))
    return interfaces


def parse_host(raw: Any) -> LanHost:
    data = as_mapping(raw, "host")
    l2ident = data.get("l2ident") if isinstance(data.get("l2ident"), dict) else {}

    ipv4: list[str] = []
    ipv6: list[str] = []
    for connectivity in as_list(data.get("l3connectivities"), "l3connectivities"):
        connectivity = as_mapping(connectivity, "l3connectivities")
        address = optional(connectivity, "addr", str)
        if not address or not connectivity.get("active", True):
            continue
        if connectivity.get("af") == "ipv6":
            ipv6.append(address)
        else:
            ipv4.append(address)

    return LanHost(
        id=require(data, "id", str),
        primary_name=optional(data, "primary_name", str),
        host_type=optional(data, "host_type", str),
        vendor_name=optional(data, "vendor_name", str) or None,
        mac=optional(l2ident, "id", str),
        active=optional(data, "active", bool, False),
        reachable=optional(data, "reachable", bool, False),
        persistent=optional(data, "persistent", bool, False),
        last_activity=optional(data, "last_activity", int),
        last_time_reachable=optional(data, "last_time_reachable", int),
        ipv4=tuple(ipv4),
        ipv6=tuple(ipv6),
    )


def fetch_lan_browser(get: Fetch) -> LanBrowserPayload:
    """Fetch interfaces, then the hosts of every non-empty interface."""
    interfaces = []
    for name, host_count in parse_interfaces(get(INTERFACES_PATH)):
        hosts: tuple[LanHost, ...] = ()
        if host_count > 0:
            hosts = tuple(parse_host(h) for h in as_list(get(f"lan/browser/{name}/"), name))
        interfaces.append(LanInterface(name=name, host_count=host_count, hosts=hosts))
    return LanBrowserPayload(interfaces=tuple(interfaces))
