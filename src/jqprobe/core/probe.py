"""Probe service: one request from module lookup to rendered metrics."""

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence

from jqprobe.core.errors import EvaluationCancelledError, UnknownModuleError
from jqprobe.core.models import COUNTER, GAUGE, Config, Module, MetricSeries
from jqprobe.core.pipeline import MetricPipeline
from jqprobe.core.ports import (
    MetricsRegistryPort,
    QueryEngine,
    QueryRunner,
    RetrieverPort,
)
from jqprobe.core.templating import render_body

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0


class StagedWrites:
    """Sink that records writes for a later all-or-nothing commit."""

    def __init__(self) -> None:
        self.writes: list[MetricSeries] = []

    def set_counter(self, identity: str, value: int) -> None:
        self.writes.append(MetricSeries(identity=identity, kind=COUNTER, value=value))

    def set_gauge(self, identity: str, value: float) -> None:
        self.writes.append(MetricSeries(identity=identity, kind=GAUGE, value=value))


class ProbeService:
    """Runs probes against configured modules.

    A probe fetches the target, evaluates every metric definition of the
    module and, only if all of them succeed, commits the samples to the
    registry and returns its rendering. A failed probe changes nothing.
    """

    def __init__(
        self,
        config: Config,
        retriever: RetrieverPort,
        registry: MetricsRegistryPort,
        engine: QueryEngine,
        timeout: float | None = DEFAULT_PROBE_TIMEOUT,
        runner: QueryRunner | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Parsed configuration holding the modules.
            retriever: Fetches target documents.
            registry: Process-wide series store.
            engine: Query language used by the pipeline.
            timeout: Seconds a probe may take, retrieval included. None
                disables the limit.
            runner: Executes queries; a process pool makes programs that
                never yield stoppable at the deadline. None runs them in
                threads of this process.
        """
        self.config = config
        self.registry = registry
        self._retriever = retriever
        self._pipeline = MetricPipeline(engine, runner)
        self._timeout = timeout

    def module(self, name: str) -> Module:
        """Look up a configured module.

        Raises:
            UnknownModuleError: No module has that name.
        """
        try:
            return self.config.modules[name]
        except KeyError:
            raise UnknownModuleError(name) from None

    async def probe(
        self,
        module_name: str,
        target: str,
        method: str = "GET",
        params: Mapping[str, Sequence[str]] | None = None,
    ) -> str:
        """Probe ``target`` with a module and return the registry rendering.

        Args:
            module_name: Configured module to evaluate.
            target: URL of the JSON document.
            method: HTTP method of the retrieval request.
            params: Probe query parameters, used by the body template.

        Raises:
            ProbeError: Any failure; the registry is left untouched.
        """
        module = self.module(module_name)
        body = render_body(module.body, params)
        staged = StagedWrites()
        start = time.perf_counter()
        logger.debug(
            "start probe",
            extra={"probe_module": module_name, "method": method, "target": target},
        )
        try:
            async with asyncio.timeout(self._timeout):
                document = await self._retriever.retrieve(
                    method, target, module.headers, body
                )
                await self._pipeline.process_module(module, document, staged)
        except TimeoutError as exc:
            raise EvaluationCancelledError(
                f"probe of {target} exceeded {self._timeout}s"
            ) from exc

        self.registry.apply(staged.writes)
        logger.debug(
            "probe done",
            extra={
                "probe_module": module_name,
                "target": target,
                "series": len(staged.writes),
                "duration_ms": (time.perf_counter() - start) * 1000,
            },
        )
        return self.registry.render_text()
