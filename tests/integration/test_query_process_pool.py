"""Integration tests for QueryProcessPool."""

import asyncio

import pytest

from jqprobe.adapters.query import JqEngine, QueryProcessPool
from jqprobe.core.errors import (
    EvaluationCancelledError,
    QueryCompileError,
    QueryRuntimeError,
)
from jqprobe.core.models import MetricDefinition, Module
from jqprobe.core.ports import QueryRunner
from jqprobe.core.query import QueryEvaluator

# Programs that compute forever without emitting a result.
NON_YIELDING = ["last(repeat(1))", "def f: f; f"]


@pytest.fixture
async def pool():
    """Provide a started one-worker pool, closed after the test."""
    pool = QueryProcessPool(JqEngine(), size=1)
    pool.start()
    yield pool
    pool.close()


class TestPort:
    """QueryProcessPool satisfies QueryRunner."""

    @pytest.mark.tier(2)
    def test_is_query_runner(self) -> None:
        assert isinstance(QueryProcessPool(JqEngine(), size=1), QueryRunner)

    @pytest.mark.tier(2)
    def test_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            QueryProcessPool(JqEngine(), size=0)


class TestDrain:
    """Results and failures cross the process boundary."""

    @pytest.mark.tier(2)
    async def test_returns_last_result(self, pool: QueryProcessPool) -> None:
        assert await pool.drain(".[]", [1, 2, 3]) == 3

    @pytest.mark.tier(2)
    async def test_no_result_is_none(self, pool: QueryProcessPool) -> None:
        assert await pool.drain("empty", {}) is None

    @pytest.mark.tier(2)
    async def test_runtime_error(self, pool: QueryProcessPool) -> None:
        with pytest.raises(QueryRuntimeError) as excinfo:
            await pool.drain(".a", 5)
        assert excinfo.value.query == ".a"

    @pytest.mark.tier(2)
    async def test_compile_error(self, pool: QueryProcessPool) -> None:
        with pytest.raises(QueryCompileError):
            await pool.drain(".a[", {})

    @pytest.mark.tier(2)
    async def test_halt_error_with_value(self, pool: QueryProcessPool) -> None:
        with pytest.raises(QueryRuntimeError):
            await pool.drain('1, ("x" | halt_error)', None)

    @pytest.mark.tier(2)
    async def test_worker_reused_after_error(self, pool: QueryProcessPool) -> None:
        with pytest.raises(QueryRuntimeError):
            await pool.drain(".a", 5)
        assert await pool.drain(".a", {"a": 1}) == 1


class TestCancellation:
    """Programs that never yield are stopped at the deadline."""

    @pytest.mark.tier(2)
    @pytest.mark.parametrize("query", NON_YIELDING)
    async def test_deadline_stops_program(
        self, pool: QueryProcessPool, query: str
    ) -> None:
        """The caller gets TimeoutError at the deadline."""
        loop = asyncio.get_running_loop()
        start = loop.time()

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.3):
                await pool.drain(query, None)

        assert loop.time() - start < 3.0

    @pytest.mark.tier(2)
    @pytest.mark.parametrize("query", NON_YIELDING)
    async def test_pool_answers_after_kill(
        self, pool: QueryProcessPool, query: str
    ) -> None:
        """The killed worker is replaced for the next query."""
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.3):
                await pool.drain(query, None)

        assert await pool.drain(".a", {"a": 7}) == 7

    @pytest.mark.tier(2)
    async def test_evaluator_with_pool(self, pool: QueryProcessPool) -> None:
        evaluator = QueryEvaluator(JqEngine(), pool)
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.3):
                await evaluator.evaluate("last(repeat(1))", None)

    @pytest.mark.tier(2)
    @pytest.mark.parametrize("query", NON_YIELDING)
    async def test_probe_deadline(
        self, pool: QueryProcessPool, make_service, query: str
    ) -> None:
        """A probe whose value never yields fails with EvaluationCancelledError."""
        module = Module(
            name="loop",
            metrics=(MetricDefinition(name="x", value=query, value_type="gauge"),),
        )
        service = make_service(module, document={}, timeout=0.3, runner=pool)

        with pytest.raises(EvaluationCancelledError):
            await service.probe("loop", "http://t")

        assert await pool.drain(".a", {"a": 1}) == 1
