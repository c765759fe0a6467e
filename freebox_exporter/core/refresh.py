"""Periodic refresh of every enabled metric category.

One background thread starts a cycle every refresh interval (start to
start), or right after the previous one when a cycle overruns it. Within a
cycle categories are fetched one after the other, so there is never more
than one cycle (and one request) in flight.

Session rejection is handled per cycle: the first rejection invalidates
the session and re-authenticates once; every category seeing a rejection
is retried once with whatever session is then current. If the login
itself fails, the remaining categories of the cycle fail with that error
instead of hammering the appliance with further logins.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..const import LAN_CONFIG_PATH, MIN_REFRESH_INTERVAL
from ..parsers import CATEGORY_FETCHERS, CategoryPayload, parse_appliance_mode
from ..parsers.base import Fetch
from .auth import Authenticator
from .cache import CacheEntry, MetricCache
from .categories import ApplianceMode, MetricCategory, active_categories
from .exceptions import ApplianceError, AuthenticationRejected, CertificateError
from .transport import ApplianceTransport

_LOGGER = logging.getLogger(__name__)


@dataclass
class CycleState:
    """Authentication bookkeeping for a single refresh cycle."""

    reauthenticated: bool = False
    auth_failure: Exception | None = None


@dataclass
class CycleReport:
    """Outcome of one refresh cycle."""

    mode: ApplianceMode
    succeeded: list[MetricCategory] = field(default_factory=list)
    failed: dict[MetricCategory, str] = field(default_factory=dict)
    reauthenticated: bool = False
    duration: float = 0.0


class RefreshEngine:
    """Fetches enabled categories on a timer and publishes them to the cache."""

    def __init__(
        self,
        authenticator: Authenticator,
        transport: ApplianceTransport,
        cache: MetricCache,
        categories: Iterable[MetricCategory],
        refresh_interval: float,
        mode: ApplianceMode = ApplianceMode.ROUTER,
        fetchers: Mapping[MetricCategory, Callable[[Fetch], CategoryPayload]] | None = None,
    ):
        self._authenticator = authenticator
        self._transport = transport
        self._cache = cache
        self._enabled = frozenset(categories)
        self._fetchers = fetchers if fetchers is not None else CATEGORY_FETCHERS
        self._mode = mode

        if refresh_interval < MIN_REFRESH_INTERVAL:
            _LOGGER.warning(
                "Refresh interval %ss is below the %ss minimum, using %ss",
                refresh_interval,
                MIN_REFRESH_INTERVAL,
                MIN_REFRESH_INTERVAL,
            )
            refresh_interval = MIN_REFRESH_INTERVAL
        self._interval = float(refresh_interval)

        self._cycle_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: CycleReport | None = None

    @property
    def mode(self) -> ApplianceMode:
        return self._mode

    @property
    def refresh_interval(self) -> float:
        return self._interval

    def active_categories(self) -> list[MetricCategory]:
        return active_categories(self._enabled, self._mode)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def run_cycle(self) -> CycleReport:
        """Refresh every active category once, then re-detect the mode."""
        with self._cycle_lock:
            started = time.monotonic()
            state = CycleState()
            report = CycleReport(mode=self._mode)

            for category in self.active_categories():
                if self._stop.is_set():
                    _LOGGER.debug("Stop requested, skipping the rest of the cycle")
                    break
                entry = self._refresh_category(category, state)
                if entry.last_error is None:
                    report.succeeded.append(category)
                else:
                    report.failed[category] = entry.last_error

            if not self._stop.is_set():
                self._mode = self._detect_mode(state, report)
            report.mode = self._mode
            report.reauthenticated = state.reauthenticated
            report.duration = time.monotonic() - started
            self.last_report = report
            _LOGGER.debug(
                "Refresh cycle done in %.2fs: %d ok, %d failed",
                report.duration,
                len(report.succeeded),
                len(report.failed),
            )
            return report

    def _refresh_category(self, category: MetricCategory, state: CycleState) -> CacheEntry:
        try:
            payload = self._fetch_with_retry(category, state)
        except CertificateError as err:
            _LOGGER.error("Certificate validation failed while refreshing %s: %s", category.value, err)
            return self._cache.publish_failure(category, err)
        except ApplianceError as err:
            _LOGGER.warning("Refreshing %s failed: %s", category.value, err)
            return self._cache.publish_failure(category, err)
        except Exception as err:
            _LOGGER.exception("Unexpected error while refreshing %s", category.value)
            return self._cache.publish_failure(category, err)
        return self._cache.publish_success(category, payload)

    def _fetch_with_retry(self, category: MetricCategory, state: CycleState) -> CategoryPayload:
        fetcher = self._fetchers[category]
        token = self._session_token(state)
        try:
            return fetcher(self._getter(token))
        except AuthenticationRejected:
            if not state.reauthenticated:
                state.reauthenticated = True
                _LOGGER.info("Session rejected while refreshing %s, re-authenticating", category.value)
                self._authenticator.invalidate_session(token)
            token = self._session_token(state)
            return fetcher(self._getter(token))

    def _session_token(self, state: CycleState) -> str:
        if state.auth_failure is not None:
            raise state.auth_failure
        try:
            return self._authenticator.ensure_session()
        except ApplianceError as err:
            state.auth_failure = err
            raise

    def _getter(self, token: str) -> Fetch:
        def get(path: str) -> Any:
            return self._transport.get(path, session_token=token)

        return get

    def _detect_mode(self, state: CycleState, report: CycleReport) -> ApplianceMode:
        """Re-read the network mode, keeping the previous one on failure."""
        mode = self._mode
        if MetricCategory.LAN in report.succeeded:
            entry = self._cache.get(MetricCategory.LAN)
            mode = entry.value.mode  # type: ignore[union-attr]
        elif state.auth_failure is None:
            token = None
            try:
                token = self._session_token(state)
                mode = parse_appliance_mode(self._transport.get(LAN_CONFIG_PATH, session_token=token))
            except AuthenticationRejected as err:
                self._authenticator.invalidate_session(token)
                _LOGGER.debug("Mode probe rejected, keeping %s: %s", mode.value, err)
            except ApplianceError as err:
                _LOGGER.debug("Mode probe failed, keeping %s: %s", mode.value, err)

        if mode is not self._mode:
            _LOGGER.info("Appliance switched from %s to %s mode", self._mode.value, mode.value)
        return mode

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background refresh thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="refresh-engine", daemon=True)
        self._thread.start()
        _LOGGER.info(
            "Refreshing %s every %ss",
            ", ".join(c.value for c in self.active_categories()) or "nothing",
            self._interval,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop once the category being refreshed has been published.

        Categories the cycle has not reached yet keep their previous values.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except Exception:
                _LOGGER.exception("Unexpected error in refresh cycle")
            delay = max(0.0, self._interval - (time.monotonic() - started))
            if self._stop.wait(delay):
                break
        _LOGGER.debug("Refresh loop stopped")
