"""Metric synthesis from a retrieved JSON document.

For every metric definition of a module the selection query narrows the
document, the result is fanned out element by element, and each element is
turned into one named, labeled sample written to a sink. The first failure
aborts the whole module.
"""

import logging
from typing import Any

from jqprobe.core.coercion import as_counter_value, as_gauge_value, as_label_value
from jqprobe.core.errors import ProbeError, UnsupportedKindError
from jqprobe.core.labels import build_labels
from jqprobe.core.models import COUNTER, GAUGE, MetricDefinition, Module
from jqprobe.core.ports import MetricsSinkPort, QueryEngine, QueryRunner
from jqprobe.core.query import QueryEvaluator

logger = logging.getLogger(__name__)


def fan_out(selection: Any) -> list[Any]:
    """Expand a selection result into the elements to emit metrics for.

    A list is iterated element-wise in order; anything else, None included,
    is a single element.
    """
    # @tra: Pipeline.FanOut.Sequence
    if isinstance(selection, list):
        return list(selection)
    # @tra: Pipeline.FanOut.Scalar
    return [selection]


def metric_identity(name: str, labels: str) -> str:
    """Compose the registry key for a metric name and canonical label string."""
    return f"{name}{{{labels}}}"


class MetricPipeline:
    """Evaluates module metric definitions against documents.

    The pipeline holds no per-request state; one instance may serve
    concurrent probes.
    """

    def __init__(self, engine: QueryEngine, runner: QueryRunner | None = None) -> None:
        self.evaluator = QueryEvaluator(engine, runner)

    async def process_module(
        self, module: Module, document: Any, sink: MetricsSinkPort
    ) -> None:
        """Write the samples of every metric in ``module`` to ``sink``.

        Args:
            module: Module whose metric definitions are evaluated in order.
            document: Retrieved JSON document.
            sink: Receiver of counter and gauge writes.

        Raises:
            ProbeError: The first failure of any definition; later definitions
                are not evaluated.
        """
        for definition in module.metrics:
            try:
                await self.process_definition(definition, document, sink)
            except ProbeError as exc:
                logger.error(
                    "metric evaluation failed: %s",
                    exc,
                    extra={
                        "probe_module": module.name,
                        "metric": definition.name,
                        "query": getattr(exc, "query", definition.value),
                    },
                )
                raise

    async def process_definition(
        self, definition: MetricDefinition, document: Any, sink: MetricsSinkPort
    ) -> None:
        """Run selection and fan-out for one definition."""
        # @tra: Pipeline.Selection.Optional
        if definition.query:
            selection = await self.evaluator.evaluate(definition.query, document)
        else:
            selection = document
        for element in fan_out(selection):
            await self.assemble_and_emit(definition, element, sink)

    async def assemble_and_emit(
        self, definition: MetricDefinition, value: Any, sink: MetricsSinkPort
    ) -> None:
        """Evaluate name, labels and value for one element and write the sample.

        Raises:
            QueryError: A label query does not compile or the value query fails.
            CoercionError: The value does not fit the declared kind.
            UnsupportedKindError: The declared kind is neither counter nor gauge.
        """
        name = await self.evaluator.evaluate(definition.name, value, fallback=True)
        labels = await build_labels(self.evaluator, definition.labels, value)
        identity = metric_identity(as_label_value(name), labels)

        # A bad value must not be replaced by the query text.
        result = await self.evaluator.evaluate(definition.value, value)

        if definition.value_type == COUNTER:
            sink.set_counter(identity, as_counter_value(result))
        elif definition.value_type == GAUGE:
            sink.set_gauge(identity, as_gauge_value(result))
        else:
            raise UnsupportedKindError(definition.value_type)
