"""
Unit tests for the active connection registry.
"""

import threading

from staticserver.core.registry import ActiveConnectionSet


class TestActiveConnectionSet:
    """Tests for ActiveConnectionSet class."""

    def test_first_add_is_new(self):
        registry = ActiveConnectionSet()
        assert registry.add("10.0.0.5") is True
        assert registry.add("10.0.0.5") is False
        assert registry.contains("10.0.0.5")

    def test_remove_waits_for_last_connection(self):
        registry = ActiveConnectionSet()
        registry.add("10.0.0.5")
        registry.add("10.0.0.5")

        registry.remove("10.0.0.5")
        assert registry.contains("10.0.0.5")

        registry.remove("10.0.0.5")
        assert not registry.contains("10.0.0.5")
        assert registry.add("10.0.0.5") is True

    def test_remove_unknown_is_ignored(self):
        registry = ActiveConnectionSet()
        registry.remove("192.168.1.1")
        assert not registry.contains("192.168.1.1")
        assert registry.add("192.168.1.1") is True

    def test_contains_does_not_register(self):
        registry = ActiveConnectionSet()
        assert not registry.contains("10.0.0.9")
        assert registry.add("10.0.0.9") is True

    def test_distinct_clients(self):
        registry = ActiveConnectionSet()
        assert registry.add("10.0.0.1") is True
        assert registry.add("10.0.0.2") is True

        registry.remove("10.0.0.1")
        assert not registry.contains("10.0.0.1")
        assert registry.contains("10.0.0.2")

    def test_concurrent_add_remove(self):
        """Balanced add/remove from many threads leaves the set empty."""
        registry = ActiveConnectionSet()
        start = threading.Barrier(8)

        def worker(ip):
            start.wait()
            for _ in range(500):
                registry.add(ip)
                registry.remove(ip)
            registry.add(ip)

        threads = [threading.Thread(target=worker, args=(f"10.0.0.{i % 2}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registry.contains("10.0.0.0")
        assert registry.contains("10.0.0.1")
        for _ in range(3):
            registry.remove("10.0.0.0")
            registry.remove("10.0.0.1")
        assert registry.contains("10.0.0.0")
        assert registry.contains("10.0.0.1")

        registry.remove("10.0.0.0")
        registry.remove("10.0.0.1")
        assert not registry.contains("10.0.0.0")
        assert not registry.contains("10.0.0.1")
