"""Tests for the system category parser."""

from __future__ import annotations

import pytest

from freebox_exporter.core.exceptions import ParseError
from freebox_exporter.parsers.system import fetch_system, parse_system

SYSTEM_V4 = {
    "mac": "F4:CA:E5:00:11:22",
    "box_flavor": "full",
    "temp_cpub": 58,
    "disk_status": "active",
    "box_authenticated": True,
    "board_name": "fbxgw2r",
    "fan_rpm": 1866,
    "temp_sw": 52,
    "uptime": "3 jours 2 heures",
    "uptime_val": 266521,
    "user_main_storage": "Disque dur",
    "temp_cpum": 64,
    "serial": "808000F012345678",
    "firmware_version": "4.7.4",
}

SYSTEM_V8 = {
    "firmware_version": "4.8.2",
    "mac": "34:27:92:00:11:22",
    "serial": "839000F012345678",
    "uptime_val": 1234,
    "board_name": "fbxgw8r",
    "box_authenticated": True,
    "disk_status": "not_detected",
    "model_info": {"pretty_name": "Freebox Pop", "name": "fbxgw8-r1"},
    "sensors": [
        {"id": "temp_t1", "name": "Température 1", "value": 47},
        {"id": "temp_cpu_cp_master", "name": "Température CPU", "value": 61},
    ],
    "fans": [{"id": "fan0_speed", "name": "Ventilateur 1", "value": 2170}],
}


class TestSystem:
    """System category."""

    def test_flat_temperatures(self):
        payload = parse_system(SYSTEM_V4)

        assert payload.firmware_version == "4.7.4"
        assert payload.uptime_seconds == 266521
        assert {t.id: t.value for t in payload.temperatures} == {
            "temp_cpub": 58.0,
            "temp_cpum": 64.0,
            "temp_sw": 52.0,
        }
        assert [(f.id, f.value) for f in payload.fans] == [("fan_rpm", 1866.0)]

    def test_sensor_arrays(self, fake_get):
        payload = fetch_system(fake_get({"system/": SYSTEM_V8}))

        assert payload.model_name == "Freebox Pop"
        assert [t.id for t in payload.temperatures] == ["temp_t1", "temp_cpu_cp_master"]
        assert payload.fans[0].name == "Ventilateur 1"
        assert payload.fans[0].value == 2170.0

    def test_missing_firmware_version(self):
        system = dict(SYSTEM_V4)
        del system["firmware_version"]
        with pytest.raises(ParseError):
            parse_system(system)
