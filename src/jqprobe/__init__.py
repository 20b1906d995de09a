"""jqprobe: a probe exporter turning JSON documents into Prometheus metrics.

Example:
    ```python
    from jqprobe import (
        HttpRetriever,
        InMemoryMetricsRegistry,
        JqEngine,
        ProbeService,
        QueryProcessPool,
        create_asgi_app,
        load_config,
    )

    service = ProbeService(
        load_config("config.yaml"),
        HttpRetriever(),
        InMemoryMetricsRegistry(),
        JqEngine(),
        runner=QueryProcessPool(JqEngine()),
    )
    app = create_asgi_app(service)
    ```
"""

from jqprobe.adapters.config import load_config, parse_config
from jqprobe.adapters.frameworks.asgi import create_asgi_app
from jqprobe.adapters.query import JqEngine, QueryProcessPool
from jqprobe.adapters.retrieval import HttpRetriever
from jqprobe.adapters.storage import InMemoryMetricsRegistry
from jqprobe.core.coercion import as_counter_value, as_gauge_value, as_label_value
from jqprobe.core.errors import (
    CoercionError,
    ConfigError,
    EvaluationCancelledError,
    MetricKindConflictError,
    ProbeError,
    QueryCompileError,
    QueryError,
    QueryRuntimeError,
    RetrievalError,
    TemplateError,
    UnknownModuleError,
    UnsupportedKindError,
)
from jqprobe.core.labels import build_labels
from jqprobe.core.models import Config, MetricDefinition, MetricSeries, Module
from jqprobe.core.pipeline import MetricPipeline, fan_out
from jqprobe.core.probe import ProbeService
from jqprobe.core.query import QueryEvaluator, QueryHalted

__all__ = [
    "CoercionError",
    "Config",
    "ConfigError",
    "EvaluationCancelledError",
    "HttpRetriever",
    "InMemoryMetricsRegistry",
    "JqEngine",
    "MetricDefinition",
    "MetricKindConflictError",
    "MetricPipeline",
    "MetricSeries",
    "Module",
    "ProbeError",
    "ProbeService",
    "QueryCompileError",
    "QueryError",
    "QueryEvaluator",
    "QueryHalted",
    "QueryProcessPool",
    "QueryRuntimeError",
    "RetrievalError",
    "TemplateError",
    "UnknownModuleError",
    "UnsupportedKindError",
    "as_counter_value",
    "as_gauge_value",
    "as_label_value",
    "build_labels",
    "create_asgi_app",
    "fan_out",
    "load_config",
    "parse_config",
]
