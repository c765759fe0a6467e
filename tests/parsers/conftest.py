"""Fixtures for category parser tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from freebox_exporter.core.exceptions import ApiResponseError


@pytest.fixture
def fake_get() -> Callable[[dict[str, Any]], Callable[[str], Any]]:
    """Build a Fetch answering from a ``{path: result}`` map.

    A value that is an exception instance is raised instead of returned;
    unknown paths raise ApiResponseError like the appliance would.
    """

    def build(responses: dict[str, Any]) -> Callable[[str], Any]:
        calls: list[str] = []

        def get(path: str) -> Any:
            calls.append(path)
            if path not in responses:
                raise ApiResponseError("No such endpoint", url=path, status_code=404, error_code="invalid_request")
            value = responses[path]
            if isinstance(value, Exception):
                raise value
            return value

        get.calls = calls  # type: ignore[attr-defined]
        return get

    return build
