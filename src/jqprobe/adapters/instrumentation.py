"""Exporter self-metrics, served on /metrics.

These live in prometheus_client's default registry next to its process and
platform collectors. Probe output never includes them.
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

PROBES_TOTAL = Counter(
    "jqprobe_probes_total",
    "Probes handled, by module and outcome.",
    ["module", "outcome"],
)

PROBE_DURATION = Histogram(
    "jqprobe_probe_duration_seconds",
    "Time spent serving a probe, retrieval included.",
    ["module"],
)


def observe_probe(module: str, outcome: str, duration: float) -> None:
    """Record one finished probe."""
    PROBES_TOTAL.labels(module=module, outcome=outcome).inc()
    PROBE_DURATION.labels(module=module).observe(duration)


def render_self_metrics() -> tuple[bytes, str]:
    """Return the default registry rendering and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST
