"""In-memory metrics registry."""

import threading
from collections.abc import Iterable

from jqprobe.core.encoding.prometheus import encode_series
from jqprobe.core.errors import MetricKindConflictError
from jqprobe.core.models import COUNTER, GAUGE, MetricSeries


class InMemoryMetricsRegistry:
    """In-memory implementation of MetricsRegistryPort.

    Holds the latest value of every series keyed by identity. All access is
    serialized by a lock, so probes running in different threads or tasks
    can write concurrently. A series keeps the kind of its first write.

    Args:
        expose_metadata: Emit ``# TYPE`` lines when rendering.
    """

    def __init__(self, expose_metadata: bool = False) -> None:
        self._series: dict[str, MetricSeries] = {}
        self._lock = threading.Lock()
        self.expose_metadata = expose_metadata

    def _check_kind(self, write: MetricSeries) -> None:
        existing = self._series.get(write.identity)
        if existing is not None and existing.kind != write.kind:
            raise MetricKindConflictError(write.identity, existing.kind, write.kind)

    def set_counter(self, identity: str, value: int) -> None:
        """Set the counter series ``identity`` to ``value``."""
        self.apply([MetricSeries(identity=identity, kind=COUNTER, value=value)])

    def set_gauge(self, identity: str, value: float) -> None:
        """Set the gauge series ``identity`` to ``value``."""
        self.apply([MetricSeries(identity=identity, kind=GAUGE, value=value)])

    def apply(self, writes: Iterable[MetricSeries]) -> None:
        """Apply writes in order, or none of them if any conflicts.

        Raises:
            MetricKindConflictError: A write targets an existing series of the
                other kind, or two writes in the batch disagree on a kind.
        """
        batch = list(writes)
        with self._lock:
            kinds: dict[str, str] = {}
            for write in batch:
                self._check_kind(write)
                first = kinds.setdefault(write.identity, write.kind)
                if first != write.kind:
                    raise MetricKindConflictError(write.identity, first, write.kind)
            for write in batch:
                self._series[write.identity] = write

    def series(self) -> list[MetricSeries]:
        """Return a snapshot of every series, ordered by identity."""
        with self._lock:
            return sorted(self._series.values(), key=lambda s: s.identity)

    def render_text(self) -> str:
        """Render every series in Prometheus text exposition format."""
        return encode_series(self.series(), expose_metadata=self.expose_metadata)

    def clear(self) -> None:
        """Drop every series."""
        with self._lock:
            self._series.clear()
