"""Prometheus rendering of the metric cache.

``CacheCollector`` is registered in a prometheus_client registry and turns
the cache snapshot into metric families at scrape time. It never talks to
the appliance: scrapes only ever read what the refresh loop published.

Metric names are ``<prefix>_<category>_<field>``. String fields are
exposed as ``*_info`` gauges with value 1 and the strings as labels.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from .core.cache import CacheEntry, MetricCache
from .core.categories import MetricCategory
from .parsers import (
    ConnectionPayload,
    DhcpPayload,
    LanBrowserPayload,
    LanPayload,
    SwitchPayload,
    SystemPayload,
    WifiPayload,
)

_LOGGER = logging.getLogger(__name__)


def _label(value: object) -> str:
    return "" if value is None else str(value)


class _Families:
    """Collects gauge families by name while a category is rendered."""

    def __init__(self, prefix: str, category: MetricCategory):
        self._base = f"{prefix}_{category.value}"
        self._families: dict[str, GaugeMetricFamily] = {}

    def add(self, field: str, documentation: str, value: float | None, **labels: object) -> None:
        if value is None:
            return
        name = f"{self._base}_{field}"
        family = self._families.get(name)
        if family is None:
            family = GaugeMetricFamily(name, documentation, labels=list(labels))
            self._families[name] = family
        family.add_metric([_label(v) for v in labels.values()], float(value))

    def flag(self, field: str, documentation: str, value: bool | None, **labels: object) -> None:
        if value is not None:
            self.add(field, documentation, 1.0 if value else 0.0, **labels)

    def info(self, field: str, documentation: str, **labels: object) -> None:
        self.add(field, documentation, 1.0, **labels)

    def __iter__(self) -> Iterator[GaugeMetricFamily]:
        return iter(self._families.values())


def render_connection(payload: ConnectionPayload, families: _Families) -> None:
    status = payload.status
    families.info(
        "info",
        "WAN connection information",
        state=status.state,
        type=status.type,
        media=status.media,
        ipv4=status.ipv4,
        ipv6=status.ipv6,
    )
    families.flag("up", "1 if the WAN connection is up", status.state == "up")
    families.add("rate_down_bytes", "Current download rate in bytes/s", status.rate_down)
    families.add("rate_up_bytes", "Current upload rate in bytes/s", status.rate_up)
    families.add("bandwidth_down_bits", "Available download bandwidth in bits/s", status.bandwidth_down)
    families.add("bandwidth_up_bits", "Available upload bandwidth in bits/s", status.bandwidth_up)
    families.add("bytes_down_total", "Bytes received since the connection came up", status.bytes_down)
    families.add("bytes_up_total", "Bytes sent since the connection came up", status.bytes_up)

    config = payload.configuration
    families.flag("ping_enabled", "1 if the WAN answers ping", config.ping)
    families.flag("remote_access_enabled", "1 if remote access is enabled", config.remote_access)
    families.add("remote_access_port", "Remote access port", config.remote_access_port)
    families.flag("api_remote_access_enabled", "1 if the API is reachable remotely", config.api_remote_access)
    families.flag("allow_token_request", "1 if new applications may register", config.allow_token_request)
    families.flag("wol_enabled", "1 if wake-on-LAN from the WAN is enabled", config.wol)
    families.flag("adblock_enabled", "1 if ad blocking is enabled", config.adblock)
    families.flag("secure_pass_enabled", "1 if the admin password is considered secure", config.is_secure_pass)

    families.flag("ipv6_enabled", "1 if IPv6 is enabled", payload.ipv6.ipv6_enabled)
    for delegation in payload.ipv6.delegations:
        families.info("ipv6_delegation_info", "IPv6 prefix delegation", prefix=delegation.prefix, next_hop=delegation.next_hop)

    if payload.ftth is not None:
        ftth = payload.ftth
        families.flag("ftth_sfp_present", "1 if an SFP module is present", ftth.sfp_present)
        families.flag("ftth_sfp_alim_ok", "1 if the SFP power supply is ok", ftth.sfp_alim_ok)
        families.flag("ftth_sfp_has_signal", "1 if the SFP receives a signal", ftth.sfp_has_signal)
        families.flag("ftth_link", "1 if the fibre link is up", ftth.link)
        if ftth.sfp_has_power_report:
            families.add("ftth_sfp_pwr_rx_dbm", "SFP receive power in dBm", _centi(ftth.sfp_pwr_rx))
            families.add("ftth_sfp_pwr_tx_dbm", "SFP transmit power in dBm", _centi(ftth.sfp_pwr_tx))


def _centi(value: int | None) -> float | None:
    return None if value is None else value / 100.0


def render_system(payload: SystemPayload, families: _Families) -> None:
    families.info(
        "info",
        "Appliance information",
        firmware_version=payload.firmware_version,
        mac=payload.mac,
        serial=payload.serial,
        board_name=payload.board_name,
        box_flavor=payload.box_flavor,
        model=payload.model_name,
        disk_status=payload.disk_status,
    )
    families.add("uptime_seconds", "Appliance uptime in seconds", payload.uptime_seconds)
    families.flag("box_authenticated", "1 if the box is authenticated on the operator network", payload.box_authenticated)
    for sensor in payload.temperatures:
        families.add("temperature_celsius", "Temperature sensor reading", sensor.value, sensor=sensor.id, name=sensor.name)
    for fan in payload.fans:
        families.add("fan_rpm", "Fan speed in RPM", fan.value, fan=fan.id, name=fan.name)


def render_lan(payload: LanPayload, families: _Families) -> None:
    families.info(
        "info",
        "LAN configuration",
        mode=payload.mode.value,
        ip=payload.ip,
        name=payload.name,
        name_dns=payload.name_dns,
        name_mdns=payload.name_mdns,
        name_netbios=payload.name_netbios,
    )


def render_lan_browser(payload: LanBrowserPayload, families: _Families) -> None:
    for interface in payload.interfaces:
        families.add("interface_hosts", "Hosts known on the interface", interface.host_count, interface=interface.name)
        for host in interface.hosts:
            labels = {
                "interface": interface.name,
                "id": host.id,
                "name": host.primary_name,
                "mac": host.mac,
                "vendor": host.vendor_name,
                "host_type": host.host_type,
            }
            families.flag("host_active", "1 if the host is active", host.active, **labels)
            families.flag("host_reachable", "1 if the host is reachable", host.reachable, **labels)
            families.flag("host_persistent", "1 if the host is remembered", host.persistent, **labels)
            families.add("host_last_activity_timestamp_seconds", "Last activity of the host", host.last_activity, **labels)
            families.add(
                "host_last_reachable_timestamp_seconds", "Last time the host was reachable", host.last_time_reachable, **labels
            )
            for address in host.ipv4 + host.ipv6:
                families.add("host_address_info", "Active L3 address of a host", 1.0, id=host.id, address=address)


def render_switch(payload: SwitchPayload, families: _Families) -> None:
    for port in payload.ports:
        labels = {"port": port.id}
        families.flag("port_link_up", "1 if the port link is up", port.link_up, **labels)
        families.info("port_info", "Switch port information", port=port.id, speed=port.speed, duplex=port.duplex, mode=port.mode)
        families.add("port_mac_count", "MAC addresses learned on the port", port.mac_count, **labels)
        for counter, value in sorted(port.counters.items()):
            families.add(f"port_{counter}", f"Switch port counter {counter}", value, **labels)


def render_wifi(payload: WifiPayload, families: _Families) -> None:
    families.flag("enabled", "1 if Wi-Fi is enabled", payload.enabled)
    families.flag("power_saving", "1 if Wi-Fi power saving is enabled", payload.power_saving)
    for ap in payload.access_points:
        ap_labels = {"ap": ap.id, "ap_name": ap.name, "band": ap.band}
        families.flag("ap_active", "1 if the access point is active", ap.state == "active" if ap.state else None, **ap_labels)
        families.add("ap_channel", "Primary channel of the access point", ap.channel, **ap_labels)
        families.add("ap_stations", "Stations associated with the access point", len(ap.stations), **ap_labels)
        if ap.survey is not None:
            families.add("busy_percent", "Channel busy time in percent", ap.survey.busy_percent, **ap_labels)
            families.add("tx_percent", "Channel time spent transmitting in percent", ap.survey.tx_percent, **ap_labels)
            families.add("rx_percent", "Channel time spent receiving in percent", ap.survey.rx_percent, **ap_labels)
            families.add(
                "rx_bss_percent",
                "Channel time spent receiving from the access point's own BSS in percent",
                ap.survey.rx_bss_percent,
                **ap_labels,
            )
        for station in ap.stations:
            labels = {**ap_labels, "mac": station.mac, "hostname": station.hostname, "vendor": station.vendor_name}
            families.add("station_signal_dbm", "Station signal strength in dBm", station.signal, **labels)
            families.add("station_inactive_seconds", "Seconds since the station was last active", station.inactive, **labels)
            families.add("station_rx_bytes_total", "Bytes received from the station", station.rx_bytes, **labels)
            families.add("station_tx_bytes_total", "Bytes sent to the station", station.tx_bytes, **labels)
            families.add("station_rx_rate_bytes", "Current receive rate from the station", station.rx_rate, **labels)
            families.add("station_tx_rate_bytes", "Current transmit rate to the station", station.tx_rate, **labels)


def render_dhcp(payload: DhcpPayload, families: _Families) -> None:
    families.add("static_leases", "Number of static leases", len(payload.static_leases))
    families.add("dynamic_leases", "Number of dynamic leases", len(payload.dynamic_leases))
    for lease in payload.static_leases + payload.dynamic_leases:
        labels = {"mac": lease.mac, "ip": lease.ip, "hostname": lease.hostname, "static": str(lease.is_static).lower()}
        families.info("lease_info", "DHCP lease", **labels)
        families.add("lease_remaining_seconds", "Seconds before the lease expires", lease.lease_remaining, **labels)


RENDERERS: dict[MetricCategory, Callable[..., None]] = {
    MetricCategory.CONNECTION: render_connection,
    MetricCategory.SYSTEM: render_system,
    MetricCategory.LAN: render_lan,
    MetricCategory.LAN_BROWSER: render_lan_browser,
    MetricCategory.SWITCH: render_switch,
    MetricCategory.WIFI: render_wifi,
    MetricCategory.DHCP: render_dhcp,
}


class CacheCollector(Collector):
    """Exposes the cache snapshot as Prometheus metrics."""

    def __init__(self, cache: MetricCache, prefix: str):
        self._cache = cache
        self._prefix = prefix

    def describe(self) -> list[Metric]:
        # Metric names depend on cached data, so nothing is described up front
        return []

    def collect(self) -> Iterator[Metric]:
        snapshot = self._cache.snapshot()
        if not snapshot:
            return

        up = GaugeMetricFamily(
            f"{self._prefix}_exporter_category_up",
            "1 if the last refresh of the category succeeded",
            labels=["category"],
        )
        last_fetch = GaugeMetricFamily(
            f"{self._prefix}_exporter_category_last_fetch_timestamp_seconds",
            "Time of the last refresh attempt of the category",
            labels=["category"],
        )
        last_success = GaugeMetricFamily(
            f"{self._prefix}_exporter_category_last_success_timestamp_seconds",
            "Time of the last successful refresh of the category",
            labels=["category"],
        )
        rendered: list[Metric] = []
        for category, entry in sorted(snapshot.items(), key=lambda item: item[0].value):
            up.add_metric([category.value], 1.0 if entry.up else 0.0)
            if entry.last_fetch is not None:
                last_fetch.add_metric([category.value], entry.last_fetch)
            if entry.last_success is not None:
                last_success.add_metric([category.value], entry.last_success)
            rendered.extend(self._render(category, entry))

        yield up
        yield last_fetch
        yield last_success
        yield from rendered

    def _render(self, category: MetricCategory, entry: CacheEntry) -> list[Metric]:
        if not entry.has_value:
            return []
        families = _Families(self._prefix, category)
        try:
            RENDERERS[category](entry.value, families)
        except Exception:
            _LOGGER.exception("Cannot render %s metrics", category.value)
            return []
        return list(families)
