"""DHCP category: static and dynamic leases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from .base import Fetch, as_list, as_mapping, optional, require

STATIC_LEASES_PATH = "dhcp/static_lease/"
DYNAMIC_LEASES_PATH = "dhcp/dynamic_lease/"


@dataclass(frozen=True)
class DhcpLease:
    mac: str
    ip: str
    hostname: str | None = None
    is_static: bool = False
    assign_time: int | None = None
    refresh_time: int | None = None
    lease_remaining: int | None = None


@dataclass(frozen=True)
class DhcpPayload:
    category: ClassVar[MetricCategory] = MetricCategory.DHCP

    static_leases: tuple[DhcpLease, ...] = ()
    dynamic_leases: tuple[DhcpLease, ...] = ()


def parse_lease(raw: Any, is_static: bool) -> DhcpLease:
    data = as_mapping(raw, "lease")
    return DhcpLease(
        mac=require(data, "mac", str),
        ip=require(data, "ip", str),
        hostname=optional(data, "hostname", str) or None,
        is_static=optional(data, "is_static", bool, is_static),
        assign_time=optional(data, "assign_time", int),
        refresh_time=optional(data, "refresh_time", int),
        lease_remaining=optional(data, "lease_remaining", int),
    )


def fetch_dhcp(get: Fetch) -> DhcpPayload:
    static = tuple(parse_lease(item, True) for item in as_list(get(STATIC_LEASES_PATH), "static_lease"))
    dynamic = tuple(parse_lease(item, False) for item in as_list(get(DYNAMIC_LEASES_PATH), "dynamic_lease"))
    return DhcpPayload(static_leases=static, dynamic_leases=dynamic)
