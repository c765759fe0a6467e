"""System category: firmware, uptime, temperatures and fans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..core.categories import MetricCategory
from .base import Fetch, as_list, as_mapping, optional, require

SYSTEM_PATH = "system/"


@dataclass(frozen=True)
class Sensor:
    id: str
    name: str
    value: float


@dataclass(frozen=True)
class SystemPayload:
    category: ClassVar[MetricCategory] = MetricCategory.SYSTEM

    firmware_version: str
    mac: str | None = None
    serial: str | None = None
    board_name: str | None = None
    box_flavor: str | None = None
    model_name: str | None = None
    box_authenticated: bool | None = None
    disk_status: str | None = None
    user_main_storage: str | None = None
    uptime_seconds: int | None = None
    temperatures: tuple[Sensor, ...] = field(default_factory=tuple)
    fans: tuple[Sensor, ...] = field(default_factory=tuple)


def _sensors(data: Any, context: str) -> tuple[Sensor, ...]:
    sensors = []
    for item in as_list(data, context):
        item = as_mapping(item, context)
        value = optional(item, "value", float)
        if value is None:
            continue
        sensor_id = require(item, "id", str)
        sensors.append(Sensor(id=sensor_id, name=optional(item, "name", str, sensor_id), value=value))
    return tuple(sensors)


def parse_system(raw: Any) -> SystemPayload:
    """Parse ``system/``.

    Older firmwares report flat ``temp_*`` and ``fan_rpm`` fields; newer ones
    report ``sensors`` and ``fans`` arrays. Both shapes are accepted.
    """
    data = as_mapping(raw, "system")

    temperatures = _sensors(data.get("sensors"), "sensors")
    if not temperatures:
        temperatures = tuple(
            Sensor(id=key, name=key[len("temp_") :], value=float(value))
            for key, value in sorted(data.items())
            if key.startswith("temp_") and isinstance(value, (int, float)) and not isinstance(value, bool)
        )

    fans = _sensors(data.get("fans"), "fans")
    if not fans and optional(data, "fan_rpm", int) is not None:
        fans = (Sensor(id="fan_rpm", name="fan", value=float(data["fan_rpm"])),)

    model_info = data.get("model_info")
    model_name = optional(data, "box_model_name", str)
    if isinstance(model_info, dict):
        model_name = optional(model_info, "pretty_name", str, model_name)

    return SystemPayload(
        firmware_version=require(data, "firmware_version", str),
        mac=optional(data, "mac", str),
        serial=optional(data, "serial", str),
        board_name=optional(data, "board_name", str),
        box_flavor=optional(data, "box_flavor", str),
        model_name=model_name,
        box_authenticated=optional(data, "box_authenticated", bool),
        disk_status=optional(data, "disk_status", str),
        user_main_storage=optional(data, "user_main_storage", str),
        uptime_seconds=optional(data, "uptime_val", int),
        temperatures=temperatures,
        fans=fans,
    )


def fetch_system(get: Fetch) -> SystemPayload:
    return parse_system(get(SYSTEM_PATH))
