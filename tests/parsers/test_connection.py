"""Tests for the connection category parser."""

from __future__ import annotations

import pytest

from freebox_exporter.core.exceptions import AuthenticationRejected, ParseError
from freebox_exporter.parsers.connection import fetch_connection, parse_connection_status

CONNECTION = {
    "type": "ethernet",
    "rate_down": 7120,
    "bytes_up": 2134823432,
    "ipv4_port_range": [0, 65535],
    "rate_up": 1456,
    "bandwidth_up": 700000000,
    "ipv6": "2a01:e0a:1:2::1",
    "bandwidth_down": 1000000000,
    "media": "ftth",
    "state": "up",
    "bytes_down": 98123721347,
    "ipv4": "82.64.1.2",
}

CONNECTION_CONFIG = {
    "ping": True,
    "is_secure_pass": False,
    "remote_access_port": 40123,
    "remote_access": False,
    "api_remote_access": True,
    "wol": False,
    "adblock": False,
    "allow_token_request": True,
    "remote_access_ip": "82.64.1.2",
}

IPV6_CONFIG = {
    "ipv6_enabled": True,
    "delegations": [
        {"prefix": "2a01:e0a:1:2::/64", "next_hop": ""},
        {"prefix": "2a01:e0a:1:3::/64", "next_hop": "fe80::1"},
    ],
}

FTTH = {
    "sfp_has_power_report": True,
    "sfp_has_signal": True,
    "sfp_model": "F-MDCONU3A",
    "sfp_vendor": "FREEBOX",
    "sfp_pwr_tx": 242,
    "sfp_pwr_rx": -1835,
    "link": True,
    "sfp_alim_ok": True,
    "sfp_serial": "FBX123456",
    "sfp_present": True,
}


def _responses(**overrides):
    responses = {
        "connection/": CONNECTION,
        "connection/config/": CONNECTION_CONFIG,
        "connection/ipv6/config/": IPV6_CONFIG,
        "connection/ftth/": FTTH,
    }
    responses.update(overrides)
    return responses


class TestConnection:
    """Connection category."""

    def test_full_payload(self, fake_get):
        payload = fetch_connection(fake_get(_responses()))

        assert payload.status.state == "up"
        assert payload.status.media == "ftth"
        assert payload.status.rate_down == 7120
        assert payload.status.bandwidth_down == 1000000000
        assert payload.configuration.remote_access_port == 40123
        assert payload.configuration.api_remote_access is True
        assert payload.ipv6.ipv6_enabled
        assert [d.prefix for d in payload.ipv6.delegations] == ["2a01:e0a:1:2::/64", "2a01:e0a:1:3::/64"]
        assert payload.ipv6.delegations[0].next_hop is None
        assert payload.ftth.sfp_pwr_rx == -1835
        assert payload.ftth.sfp_vendor == "FREEBOX"

    def test_ftth_missing_on_dsl_box(self, fake_get):
        responses = _responses()
        del responses["connection/ftth/"]

        payload = fetch_connection(fake_get(responses))

        assert payload.ftth is None
        assert payload.status.state == "up"

    def test_rejection_during_ftth_propagates(self, fake_get):
        responses = _responses(**{"connection/ftth/": AuthenticationRejected("expired", status_code=403)})
        with pytest.raises(AuthenticationRejected):
            fetch_connection(fake_get(responses))

    def test_missing_state(self):
        status = dict(CONNECTION)
        del status["state"]
        with pytest.raises(ParseError) as excinfo:
            parse_connection_status(status)
        assert excinfo.value.field == "state"

    def test_wrong_type(self):
        with pytest.raises(ParseError) as excinfo:
            parse_connection_status({**CONNECTION, "rate_down": "fast"})
        assert excinfo.value.field == "rate_down"

    def test_boolean_is_not_a_counter(self):
        with pytest.raises(ParseError):
            parse_connection_status({**CONNECTION, "bytes_down": True})

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            parse_connection_status(["up"])
