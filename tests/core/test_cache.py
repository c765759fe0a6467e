"""Tests for the metric cache."""

from __future__ import annotations

import threading

from freebox_exporter.core.cache import NEVER_FETCHED, MetricCache
from freebox_exporter.core.categories import MetricCategory


class TestMetricCache:
    """Publishing and reading category entries."""

    def test_never_fetched(self):
        cache = MetricCache()
        assert cache.get(MetricCategory.WIFI) is NEVER_FETCHED
        assert not NEVER_FETCHED
        assert cache.snapshot() == {}

    def test_success_sets_value_and_timestamps(self):
        cache = MetricCache()
        entry = cache.publish_success(MetricCategory.SYSTEM, "v1", timestamp=10.0)

        assert entry.value == "v1"
        assert entry.last_fetch == 10.0
        assert entry.last_success == 10.0
        assert entry.last_error is None
        assert entry.up

    def test_failure_before_success_has_no_value(self):
        cache = MetricCache()
        entry = cache.publish_failure(MetricCategory.SYSTEM, "boom", timestamp=5.0)

        assert entry.value is None
        assert not entry.has_value
        assert entry.last_error == "boom"
        assert entry.last_fetch == 5.0

    def test_failure_keeps_last_successful_value(self):
        cache = MetricCache()
        cache.publish_success(MetricCategory.SYSTEM, "v1", timestamp=10.0)
        entry = cache.publish_failure(MetricCategory.SYSTEM, RuntimeError("down"), timestamp=15.0)

        assert entry.value == "v1"
        assert entry.last_success == 10.0
        assert entry.last_fetch == 15.0
        assert entry.last_error == "down"
        assert not entry.up

    def test_success_after_failure_clears_error(self):
        cache = MetricCache()
        cache.publish_failure(MetricCategory.SYSTEM, "down", timestamp=1.0)
        entry = cache.publish_success(MetricCategory.SYSTEM, "v2", timestamp=2.0)
        assert entry.last_error is None
        assert entry.value == "v2"

    def test_alternating_results_keep_latest_success(self):
        """The cached value always comes from the most recent success."""
        cache = MetricCache()
        outcomes = [("ok", 1), ("fail", 2), ("ok", 3), ("fail", 4), ("fail", 5), ("ok", 6), ("fail", 7)]
        last_ok = None
        for kind, n in outcomes:
            if kind == "ok":
                cache.publish_success(MetricCategory.DHCP, n, timestamp=float(n))
                last_ok = n
            else:
                cache.publish_failure(MetricCategory.DHCP, f"error {n}", timestamp=float(n))
            entry = cache.get(MetricCategory.DHCP)
            assert entry.value == last_ok
            assert entry.last_fetch == float(n)
            if last_ok is not None:
                assert entry.last_success == float(last_ok)

    def test_snapshot_is_a_copy(self):
        cache = MetricCache()
        cache.publish_success(MetricCategory.LAN, "a")
        snapshot = cache.snapshot()
        cache.publish_success(MetricCategory.WIFI, "b")
        assert list(snapshot) == [MetricCategory.LAN]

    def test_entries_are_consistent_under_concurrency(self):
        """Readers never see a value paired with another write's timestamp."""
        cache = MetricCache()
        stop = threading.Event()
        torn = []

        def writer():
            n = 0
            while not stop.is_set():
                n += 1
                cache.publish_success(MetricCategory.SYSTEM, n, timestamp=float(n))

        def reader():
            while not stop.is_set():
                entry = cache.get(MetricCategory.SYSTEM)
                if entry and float(entry.value) != entry.last_success:
                    torn.append(entry)

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        stop.wait(0.2)
        stop.set()
        for thread in threads:
            thread.join(5)

        assert torn == []
