"""Core domain models for probe configuration and metric series."""

from dataclasses import dataclass, field

COUNTER = "counter"
GAUGE = "gauge"

# Queries are jq programs kept as plain strings until evaluated.
Query = str


@dataclass(frozen=True)
class MetricDefinition:
    """A single metric declared inside a module.

    Attributes:
        name: Query producing the metric name (a bare identifier is used literally).
        value: Query producing the sample value.
        value_type: Declared metric kind ("counter" or "gauge").
        labels: Label name to query mapping.
        query: Optional selection query narrowing the document before fan-out.
    """

    name: Query
    value: Query
    value_type: str
    labels: dict[str, Query] = field(default_factory=dict)
    query: Query = ""


@dataclass(frozen=True)
class Module:
    """A named bundle of retrieval parameters and metric definitions.

    Attributes:
        name: Module name as referenced by the ``module`` probe parameter.
        metrics: Metric definitions in declaration order.
        body: Optional request body template.
        headers: Headers sent with the retrieval request.
    """

    name: str
    metrics: tuple[MetricDefinition, ...] = ()
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Config:
    """Parsed exporter configuration."""

    modules: dict[str, Module] = field(default_factory=dict)


@dataclass(frozen=True)
class MetricSeries:
    """Current value of one series held by the registry.

    Attributes:
        identity: Canonical ``name{labels}`` key.
        kind: Metric kind ("counter" or "gauge").
        value: Last value written.
    """

    identity: str
    kind: str
    value: int | float

    @property
    def family(self) -> str:
        """Metric name without the label set."""
        return self.identity.split("{", 1)[0]
