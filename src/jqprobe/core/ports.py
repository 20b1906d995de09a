"""Port interfaces for the probe pipeline.

These protocols define the contracts that adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from jqprobe.core.models import MetricSeries


@runtime_checkable
class QueryEngine(Protocol):
    """Port for a filter-query language.

    Adapters compile query text into a program and run it against a JSON
    value, yielding zero or more results lazily.
    Examples: JqEngine.
    """

    def compile(self, query: str) -> Any:
        """Compile query text into a runnable program.

        Raises:
            QueryCompileError: If the text is not a valid program.
        """
        ...

    def run(self, program: Any, value: Any) -> Iterator[Any]:
        """Run a compiled program against a value.

        Yields:
            Each result emitted by the program, in order.

        Raises:
            QueryRuntimeError: On an evaluation fault.
            QueryHalted: If the program stops without a value.
        """
        ...


@runtime_checkable
class MetricsSinkPort(Protocol):
    """Port receiving absolute counter and gauge writes keyed by identity."""

    def set_counter(self, identity: str, value: int) -> None:
        """Set the counter series ``identity`` to ``value``."""
        ...

    def set_gauge(self, identity: str, value: float) -> None:
        """Set the gauge series ``identity`` to ``value``."""
        ...


@runtime_checkable
class MetricsRegistryPort(MetricsSinkPort, Protocol):
    """Port for the process-wide series store.

    Adapters implementing this protocol must be safe under concurrent writes.
    Examples: InMemoryMetricsRegistry.
    """

    def apply(self, writes: Iterable[MetricSeries]) -> None:
        """Apply a batch of writes atomically, or none of them."""
        ...

    def series(self) -> list[MetricSeries]:
        """Return a snapshot of every series, ordered by identity."""
        ...

    def render_text(self) -> str:
        """Render every series in Prometheus text exposition format."""
        ...


@runtime_checkable
class RetrieverPort(Protocol):
    """Port for fetching the JSON document a probe evaluates."""

    async def retrieve(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> Any:
        """Fetch ``target`` and return its parsed JSON body.

        Raises:
            RetrievalError: If the target cannot be fetched or is not JSON.
        """
        ...


@runtime_checkable
class QueryRunner(Protocol):
    """Port running a query to completion away from the event loop.

    Runners must stop the program when the awaiting task is cancelled.
    Examples: QueryProcessPool.
    """

    async def drain(self, query: str, value: Any) -> Any:
        """Compile and run ``query`` against ``value``, returning its last result.

        Raises:
            QueryRuntimeError: If the program fails.
        """
        ...
