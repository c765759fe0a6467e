"""Switch category: port link state and per-port counters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from .base import Fetch, as_list, as_mapping, numeric_fields, optional, require

SWITCH_STATUS_PATH = "switch/status/"


@dataclass(frozen=True)
class SwitchPort:
    id: int
    link: str | None = None
    speed: str | None = None
    duplex: str | None = None
    mode: str | None = None
    mac_count: int = 0
    counters: dict[str, float] = field(default_factory=dict)

    @property
    def link_up(self) -> bool:
        return self.link == "up"


@dataclass(frozen=True)
class SwitchPayload:
    category: ClassVar[MetricCategory] = MetricCategory.SWITCH

    ports: tuple[SwitchPort, ...]


def parse_port_status(raw: Any) -> SwitchPort:
    data = as_mapping(raw, "switch/status")
    return SwitchPort(
        id=require(data, "id", int),
        link=optional(data, "link", str),
        speed=optional(data, "speed", str),
        duplex=optional(data, "duplex", str),
        mode=optional(data, "mode", str),
        mac_count=len(as_list(data.get("mac_list"), "mac_list")),
    )


def parse_port_stats(raw: Any) -> dict[str, float]:
    """Numeric counters of ``switch/port/{id}/stats`` keyed by field name."""
    return numeric_fields(as_mapping(raw, "switch/port/stats"))


def fetch_switch(get: Fetch) -> SwitchPayload:
    ports = []
    for item in as_list(get(SWITCH_STATUS_PATH), "switch/status"):
        port = parse_port_status(item)
        counters = parse_port_stats(get(f"switch/port/{port.id}/stats/"))
        ports.append(
            SwitchPort(
                id=port.id,
                link=port.link,
                speed=port.speed,
                duplex=port.duplex,
                mode=port.mode,
                mac_count=port.mac_count,
                counters=counters,
            )
        )
    return SwitchPayload(ports=tuple(ports))
