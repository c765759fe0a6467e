"""Dry run: capture raw appliance responses for troubleshooting.

Every enabled category is fetched once through the normal parsers while the
raw JSON of each call is recorded. Secrets and identifiers are redacted
before anything is written, so the output can be attached to a bug report.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .const import REDACTED
from .core.auth import Authenticator
from .core.categories import MetricCategory
from .core.exceptions import ApplianceError
from .parsers import CATEGORY_FETCHERS

_LOGGER = logging.getLogger(__name__)

# Keys whose values are secrets or unique identifiers
SENSITIVE_KEYS = frozenset(
    {
        "app_token",
        "challenge",
        "key",
        "password",
        "password_salt",
        "serial",
        "session_token",
        "wpa_key",
    }
)

_MAC_RE = re.compile(r"\b([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}\b")
_IPV4_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")


def _redact_string(value: str) -> str:
    value = _MAC_RE.sub("XX:XX:XX:XX:XX:XX", value)
    return _IPV4_RE.sub("***IP***", value)


def redact(value: Any) -> Any:
    """Return a copy of decoded JSON with secrets and addresses masked."""
    if isinstance(value, dict):
        return {k: REDACTED if k in SENSITIVE_KEYS else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    if isinstance(value, str):
        return _redact_string(value)
    return value


class _RecordingFetch:
    """Authenticated GET that keeps every response it returns."""

    def __init__(self, authenticator: Authenticator):
        self._authenticator = authenticator
        self.responses: dict[str, Any] = {}

    def __call__(self, path: str) -> Any:
        result = self._authenticator.get(path)
        self.responses[path] = result
        return result


def dry_run(
    authenticator: Authenticator,
    categories: Iterable[MetricCategory],
    output: Path | str,
) -> dict[str, Any]:
    """Fetch each category once and write the redacted responses as JSON.

    A failing category is recorded with its error; the others still run.

    Returns:
        The document written to ``output``.

    Raises:
        OSError: If ``output`` cannot be written.
    """
    output = Path(output)
    if output.is_dir():
        raise IsADirectoryError(f"{output} is a directory")
    if not output.parent.is_dir():
        raise FileNotFoundError(f"Directory {output.parent} does not exist")

    document: dict[str, Any] = {"generated_at": time.time(), "categories": {}}
    for category in categories:
        recorder = _RecordingFetch(authenticator)
        error = None
        try:
            CATEGORY_FETCHERS[category](recorder)
        except ApplianceError as err:
            error = str(err)
            _LOGGER.warning("Dry run of %s failed: %s", category.value, err)
        document["categories"][category.value] = {
            "parsed": error is None,
            "error": error,
            "responses": redact(recorder.responses),
        }

    output.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
    _LOGGER.info("Dry run written to %s", output)
    return document
