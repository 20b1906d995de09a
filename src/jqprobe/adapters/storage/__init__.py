"""Storage adapters implementing core ports."""

from jqprobe.adapters.storage.in_memory import InMemoryMetricsRegistry

__all__ = ["InMemoryMetricsRegistry"]
