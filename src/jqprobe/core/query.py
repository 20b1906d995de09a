"""Query evaluation against JSON values.

A program may emit any number of results. The evaluator drains them and
keeps the last one, so ``.a, .b`` evaluates to ``.b``. A program that stops
without a value keeps whatever was emitted before it stopped.
"""

import asyncio
import logging
import threading
from typing import Any

from jqprobe.core.errors import QueryRuntimeError
from jqprobe.core.ports import QueryEngine, QueryRunner

logger = logging.getLogger(__name__)


class QueryHalted(Exception):
    """Signal from an engine that the program halted without a value."""


def drain(
    engine: QueryEngine,
    program: Any,
    value: Any,
    stop: threading.Event | None = None,
) -> Any:
    """Run ``program`` to completion and return its last result.

    Args:
        engine: Engine that compiled ``program``.
        program: Compiled program.
        value: JSON value the program runs against.
        stop: Checked between results; once set, the stream is abandoned.

    Raises:
        QueryRuntimeError: The program failed.
    """
    result = None
    try:
        for item in engine.run(program, value):
            if stop is not None and stop.is_set():
                break
            result = item
    except QueryHalted:
        pass
    return result


class QueryEvaluator:
    """Compiles and runs one query per call against a JSON value.

    Nothing is cached between calls; each evaluation compiles its query
    afresh.

    Without a runner, programs run in a worker thread of this process. A
    program that keeps emitting results stops at the caller's deadline, but
    one that computes forever without emitting holds the thread. Pass a
    ``QueryRunner`` such as ``QueryProcessPool`` to run programs in
    processes that are killed on cancellation.
    """

    def __init__(self, engine: QueryEngine, runner: QueryRunner | None = None) -> None:
        self._engine = engine
        self._runner = runner

    async def evaluate(self, query: str, value: Any, *, fallback: bool = False) -> Any:
        """Evaluate ``query`` against ``value`` and return its last result.

        Args:
            query: Query text.
            value: JSON value the program runs against.
            fallback: Return the query text itself instead of raising when the
                program fails at run time.

        Returns:
            The last emitted result, or None if nothing was emitted.

        Raises:
            QueryCompileError: The query does not parse. Never suppressed.
            QueryRuntimeError: The program failed and ``fallback`` is False.
        """
        program = self._engine.compile(query)
        try:
            if self._runner is not None:
                return await self._runner.drain(query, value)
            return await self._drain_in_thread(program, value)
        except QueryRuntimeError as exc:
            if not fallback:
                raise
            logger.debug(
                "query failed, using literal text",
                extra={"query": query, "error": str(exc)},
            )
            return query

    async def _drain_in_thread(self, program: Any, value: Any) -> Any:
        stop = threading.Event()
        try:
            return await asyncio.to_thread(drain, self._engine, program, value, stop)
        finally:
            # Tell an abandoned worker to stop at its next result.
            stop.set()
