"""Query execution in killable worker processes.

libjq does not return control to Python while a program computes towards
its next result, so a program like ``last(repeat(1))`` or ``def f: f; f``
cannot be interrupted from a thread. Each worker here is a separate process
that compiles and drains queries; when the awaiting task is cancelled or
its deadline passes, the worker is killed and replaced on next use.
"""

import asyncio
import logging
import multiprocessing
import os
import signal
from multiprocessing.connection import Connection
from typing import Any

from jqprobe.core.errors import QueryCompileError, QueryRuntimeError
from jqprobe.core.ports import QueryEngine
from jqprobe.core.query import drain

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = min(os.cpu_count() or 1, 4)

_RESULT = "result"
_RUNTIME_ERROR = "runtime"
_COMPILE_ERROR = "compile"


def _evaluate(engine: QueryEngine, query: str, value: Any) -> tuple[str, Any]:
    try:
        program = engine.compile(query)
        return _RESULT, drain(engine, program, value)
    except QueryCompileError as exc:
        return _COMPILE_ERROR, str(exc)
    except QueryRuntimeError as exc:
        return _RUNTIME_ERROR, str(exc)


def _serve(conn: Connection, engine: QueryEngine) -> None:
    """Worker loop: answer ``(query, value)`` requests until the pipe closes."""
    # Ctrl-C is the parent's to handle.
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    while True:
        try:
            query, value = conn.recv()
        except EOFError:
            return
        conn.send(_evaluate(engine, query, value))


class _Worker:
    def __init__(self, context: Any, engine: QueryEngine) -> None:
        self.conn, child_conn = context.Pipe()
        self.process = context.Process(
            target=_serve, args=(child_conn, engine), daemon=True
        )
        self.process.start()
        child_conn.close()

    async def request(self, query: str, value: Any) -> tuple[str, Any]:
        self.conn.send((query, value))
        return await asyncio.to_thread(self.conn.recv)

    def kill(self) -> None:
        # The process goes first so a pending recv sees EOF, not a closed handle.
        self.process.kill()
        self.process.join()
        self.conn.close()

    def stop(self) -> None:
        self.conn.close()
        self.process.join(timeout=1.0)
        if self.process.is_alive():
            self.process.kill()
            self.process.join()


class QueryProcessPool:
    """QueryRunner executing queries in a pool of worker processes.

    At most ``size`` queries run at once; further callers wait for a free
    worker. A worker whose caller is cancelled is killed, so a program that
    never finishes costs one process restart rather than a stuck thread.

    Args:
        engine: Picklable engine each worker compiles queries with.
        size: Number of worker processes.
        start_method: multiprocessing start method for the workers.
    """

    def __init__(
        self,
        engine: QueryEngine,
        size: int = DEFAULT_WORKERS,
        start_method: str = "spawn",
    ) -> None:
        if size < 1:
            raise ValueError("size must be at least 1")
        self.size = size
        self._engine = engine
        self._context = multiprocessing.get_context(start_method)
        self._idle: list[_Worker] = []
        self._slots = asyncio.Semaphore(size)

    def start(self) -> None:
        """Start every worker ahead of the first query."""
        while len(self._idle) < self.size:
            self._idle.append(_Worker(self._context, self._engine))

    def close(self) -> None:
        """Stop the idle workers. Busy workers die with this process."""
        while self._idle:
            self._idle.pop().stop()

    async def drain(self, query: str, value: Any) -> Any:
        """Compile and run ``query`` in a worker and return its last result.

        Raises:
            QueryCompileError: The query does not parse.
            QueryRuntimeError: The program failed or its worker died.
        """
        async with self._slots:
            worker = self._idle.pop() if self._idle else _Worker(
                self._context, self._engine
            )
            try:
                status, payload = await worker.request(query, value)
            except (EOFError, OSError) as exc:
                worker.kill()
                raise QueryRuntimeError(
                    query, f"query {query!r} failed: worker exited"
                ) from exc
            except BaseException:
                logger.debug("killing query worker", extra={"query": query})
                worker.kill()
                raise
            self._idle.append(worker)

        if status == _COMPILE_ERROR:
            raise QueryCompileError(query, payload)
        if status == _RUNTIME_ERROR:
            raise QueryRuntimeError(query, payload)
        return payload
