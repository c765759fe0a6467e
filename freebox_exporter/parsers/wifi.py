"""Wi-Fi category: access points, channel usage and associated stations."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from .base import Fetch, as_list, as_mapping, optional, require

WIFI_CONFIG_PATH = "wifi/config/"
ACCESS_POINTS_PATH = "wifi/ap/"

# Number of most recent survey samples averaged per access point
SURVEY_SAMPLES = 10


@dataclass(frozen=True)
class ChannelSurvey:
    """Channel usage of an access point, in percent of airtime."""

    busy_percent: int = 0
    tx_percent: int = 0
    rx_percent: int = 0
    rx_bss_percent: int = 0


@dataclass(frozen=True)
class Station:
    mac: str
    hostname: str | None = None
    vendor_name: str | None = None
    state: str | None = None
    signal: int | None = None
    inactive: int | None = None
    rx_bytes: int | None = None
    tx_bytes: int | None = None
    rx_rate: int | None = None
    tx_rate: int | None = None


@dataclass(frozen=True)
class AccessPoint:
    id: int
    name: str
    band: str | None = None
    state: str | None = None
    channel: int | None = None
    channel_width: str | None = None
    survey: ChannelSurvey | None = None
    stations: tuple[Station, ...] = ()


@dataclass(frozen=True)
class WifiPayload:
    category: ClassVar[MetricCategory] = MetricCategory.WIFI

    enabled: bool
    power_saving: bool | None = None
    mac_filter_state: str | None = None
    access_points: tuple[AccessPoint, ...] = ()


def parse_station(raw: Any) -> Station:
    data = as_mapping(raw, "station")
    host = data.get("host") if isinstance(data.get("host"), dict) else {}
    return Station(
        mac=require(data, "mac", str),
        hostname=optional(host, "primary_name", str) or optional(data, "hostname", str),
        vendor_name=optional(host, "vendor_name", str) or None,
        state=optional(data, "state", str),
        signal=optional(data, "signal", int),
        inactive=optional(data, "inactive", int),
        rx_bytes=optional(data, "rx_bytes", int),
        tx_bytes=optional(data, "tx_bytes", int),
        rx_rate=optional(data, "rx_rate", int),
        tx_rate=optional(data, "tx_rate", int),
    )


def parse_access_point(raw: Any) -> AccessPoint:
    data = as_mapping(raw, "wifi/ap")
    config = data.get("config") if isinstance(data.get("config"), dict) else {}
    status = data.get("status") if isinstance(data.get("status"), dict) else {}
    return AccessPoint(
        id=require(data, "id", int),
        name=optional(data, "name", str, str(data.get("id"))),
        band=optional(config, "band", str),
        state=optional(status, "state", str),
        channel=optional(status, "primary_channel", int),
        channel_width=optional(status, "channel_width", str),
    )


def parse_channel_survey(raw: Any) -> ChannelSurvey:
    """Average the most recent channel survey samples.

    Missing percentages count as 0. An empty history gives an all-zero
    survey; averages are truncated to whole percents.
    """
    samples = [as_mapping(item, "channel_survey_history") for item in as_list(raw, "channel_survey_history")]
    if not samples:
        return ChannelSurvey()
    samples.sort(key=lambda s: optional(s, "timestamp", int, 0))
    recent = samples[-SURVEY_SAMPLES:]

    def average(key: str) -> int:
        return sum(optional(s, key, int, 0) for s in recent) // len(recent)

    return ChannelSurvey(
        busy_percent=average("busy_percent"),
        tx_percent=average("tx_percent"),
        rx_percent=average("rx_percent"),
        rx_bss_percent=average("rx_bss_percent"),
    )


def channel_survey_path(ap_id: int, since: int) -> str:
    return f"wifi/ap/{ap_id}/channel_survey_history/{since}"


def fetch_wifi(get: Fetch, clock: Callable[[], float] = time.time) -> WifiPayload:
    """Fetch Wi-Fi state. Access points are only listed when Wi-Fi is on."""
    config = as_mapping(get(WIFI_CONFIG_PATH), "wifi/config")
    enabled = require(config, "enabled", bool)
    power_saving = optional(config, "power_saving", bool)
    mac_filter_state = optional(config, "mac_filter_state", str)
    if not enabled:
        return WifiPayload(enabled=False, power_saving=power_saving, mac_filter_state=mac_filter_state)

    access_points = []
    for item in as_list(get(ACCESS_POINTS_PATH), "wifi/ap"):
        ap = parse_access_point(item)
        survey = parse_channel_survey(get(channel_survey_path(ap.id, int(clock()))))
        stations = tuple(parse_station(s) for s in as_list(get(f"wifi/ap/{ap.id}/stations/"), "stations"))
        access_points.append(
            AccessPoint(
                id=ap.id,
                name=ap.name,
                band=ap.band,
                state=ap.state,
                channel=ap.channel,
                channel_width=ap.channel_width,
                survey=survey,
                stations=stations,
            )
        )
    return WifiPayload(
        enabled=True,
        power_saving=power_saving,
        mac_filter_state=mac_filter_state,
        access_points=tuple(access_points),
    )
