"""Prometheus text format encoder for registry series."""

from collections.abc import Iterable

from jqprobe.core.coercion import format_float
from jqprobe.core.models import COUNTER, MetricSeries


def _format_value(series: MetricSeries) -> str:
    if series.kind == COUNTER:
        return str(int(series.value))
    return format_float(float(series.value))


def _series_key(identity: str) -> str:
    """Drop an empty label set so ``up{}`` renders as ``up``."""
    if identity.endswith("{}"):
        return identity[:-2]
    return identity


def encode_series(
    series: Iterable[MetricSeries], expose_metadata: bool = False
) -> str:
    """Encode series to Prometheus text exposition format.

    Args:
        series: Series to render.
        expose_metadata: Group series by metric family and precede each
            family with a ``# TYPE`` line.

    Returns:
        Text with one ``identity value`` line per series, sorted by identity.
        Empty string if there are no series.
    """
    if expose_metadata:
        ordered = sorted(series, key=lambda s: (s.family, s.identity))
    else:
        ordered = sorted(series, key=lambda s: s.identity)

    lines: list[str] = []
    current_family: str | None = None
    for item in ordered:
        if expose_metadata and item.family != current_family:
            current_family = item.family
            lines.append(f"# TYPE {item.family} {item.kind}")
        lines.append(f"{_series_key(item.identity)} {_format_value(item)}")

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
