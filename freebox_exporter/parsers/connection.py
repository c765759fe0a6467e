"""Connection category: WAN status, configuration, IPv6 and FTTH optics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from ..core.exceptions import ApiResponseError
from .base import Fetch, as_list, as_mapping, optional, require

_LOGGER = logging.getLogger(__name__)

CONNECTION_PATH = "connection/"
CONNECTION_CONFIG_PATH = "connection/config/"
IPV6_CONFIG_PATH = "connection/ipv6/config/"
FTTH_PATH = "connection/ftth/"


@dataclass(frozen=True)
class ConnectionStatus:
    state: str
    type: str | None = None
    media: str | None = None
    ipv4: str | None = None
    ipv6: str | None = None
    rate_down: int | None = None
    rate_up: int | None = None
    bandwidth_down: int | None = None
    bandwidth_up: int | None = None
    bytes_down: int | None = None
    bytes_up: int | None = None


@dataclass(frozen=True)
class ConnectionConfiguration:
    ping: bool | None = None
    is_secure_pass: bool | None = None
    remote_access: bool | None = None
    remote_access_port: int | None = None
    api_remote_access: bool | None = None
    allow_token_request: bool | None = None
    wol: bool | None = None
    adblock: bool | None = None


@dataclass(frozen=True)
class Ipv6Delegation:
    prefix: str
    next_hop: str | None = None


@dataclass(frozen=True)
class Ipv6Configuration:
    ipv6_enabled: bool
    delegations: tuple[Ipv6Delegation, ...] = ()


@dataclass(frozen=True)
class FtthStatus:
    sfp_present: bool | None = None
    sfp_alim_ok: bool | None = None
    sfp_has_power_report: bool | None = None
    sfp_has_signal: bool | None = None
    link: bool | None = None
    sfp_pwr_rx: int | None = None
    sfp_pwr_tx: int | None = None
    sfp_model: str | None = None
    sfp_vendor: str | None = None


@dataclass(frozen=True)
class ConnectionPayload:
    category: ClassVar[MetricCategory] = MetricCategory.CONNECTION

    status: ConnectionStatus
    configuration: ConnectionConfiguration
    ipv6: Ipv6Configuration
    ftth: FtthStatus | None = None


def parse_connection_status(raw: Any) -> ConnectionStatus:
    data = as_mapping(raw, "connection")
    return ConnectionStatus(
        state=require(data, "state", str),
        type=optional(data, "type", str),
        media=optional(data, "media", str),
        ipv4=optional(data, "ipv4", str),
        ipv6=optional(data, "ipv6", str),
        rate_down=optional(data, "rate_down", int),
        rate_up=optional(data, "rate_up", int),
        bandwidth_down=optional(data, "bandwidth_down", int),
        bandwidth_up=optional(data, "bandwidth_up", int),
        bytes_down=optional(data, "bytes_down", int),
        bytes_up=optional(data, "bytes_up", int),
    )


def parse_connection_configuration(raw: Any) -> ConnectionConfiguration:
    data = as_mapping(raw, "connection/config")
    return ConnectionConfiguration(
        ping=optional(data, "ping", bool),
        is_secure_pass=optional(data, "is_secure_pass", bool),
        remote_access=optional(data, "remote_access", bool),
        remote_access_port=optional(data, "remote_access_port", int),
        api_remote_access=optional(data, "api_remote_access", bool),
        allow_token_request=optional(data, "allow_token_request", bool),
        wol=optional(data, "wol", bool),
        adblock=optional(data, "adblock", bool),
    )


def parse_ipv6_configuration(raw: Any) -> Ipv6Configuration:
    data = as_mapping(raw, "connection/ipv6/config")
    delegations = tuple(
        Ipv6Delegation(
            prefix=require(item, "prefix", str),
            next_hop=optional(item, "next_hop", str) or None,
        )
        for item in (as_mapping(d, "delegations") for d in as_list(data.get("delegations"), "delegations"))
    )
    return Ipv6Configuration(ipv6_enabled=require(data, "ipv6_enabled", bool), delegations=delegations)


def parse_ftth_status(raw: Any) -> FtthStatus:
    data = as_mapping(raw, "connection/ftth")
    return FtthStatus(
        sfp_present=optional(data, "sfp_present", bool),
        sfp_alim_ok=optional(data, "sfp_alim_ok", bool),
        sfp_has_power_report=optional(data, "sfp_has_power_report", bool),
        sfp_has_signal=optional(data, "sfp_has_signal", bool),
        link=optional(data, "link", bool),
        sfp_pwr_rx=optional(data, "sfp_pwr_rx", int),
        sfp_pwr_tx=optional(data, "sfp_pwr_tx", int),
        sfp_model=optional(data, "sfp_model", str),
        sfp_vendor=optional(data, "sfp_vendor", str),
    )


def fetch_connection(get: Fetch) -> ConnectionPayload:
    """Fetch the connection category.

    ``connection/ftth`` only exists on fibre boxes; if the appliance answers
    with an error envelope the section is left out.
    """
    status = parse_connection_status(get(CONNECTION_PATH))
    configuration = parse_connection_configuration(get(CONNECTION_CONFIG_PATH))
    ipv6 = parse_ipv6_configuration(get(IPV6_CONFIG_PATH))

    ftth = None
    try:
        ftth = parse_ftth_status(get(FTTH_PATH))
    except ApiResponseError as err:
        _LOGGER.debug("No FTTH status available: %s", err)

    return ConnectionPayload(status=status, configuration=configuration, ipv6=ipv6, ftth=ftth)
