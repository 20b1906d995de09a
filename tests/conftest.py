"""Shared test fixtures for all test modules."""

from typing import Any

import httpx
import pytest

from jqprobe.adapters.query import JqEngine
from jqprobe.adapters.storage.in_memory import InMemoryMetricsRegistry
from jqprobe.core.errors import RetrievalError
from jqprobe.core.models import Config, Module
from jqprobe.core.probe import ProbeService
from jqprobe.core.query import QueryEvaluator
from tests.helpers import FakeRetriever, RecordingSink


@pytest.fixture
def engine() -> JqEngine:
    """Provide the jq query engine."""
    return JqEngine()


@pytest.fixture
def evaluator(engine: JqEngine) -> QueryEvaluator:
    """Provide a query evaluator backed by jq."""
    return QueryEvaluator(engine)


@pytest.fixture
def registry() -> InMemoryMetricsRegistry:
    """Provide an empty metrics registry."""
    return InMemoryMetricsRegistry()


@pytest.fixture
def sink() -> RecordingSink:
    """Provide a sink recording writes."""
    return RecordingSink()


@pytest.fixture
def make_service(registry: InMemoryMetricsRegistry, engine: JqEngine):
    """Factory fixture for a ProbeService over a fake retriever.

    Usage:
        service = make_service(peers_module(), document=PEERS_DOCUMENT)
    """

    def _make(
        *modules: Module,
        document: Any = None,
        retriever: Any = None,
        timeout: float | None = 5.0,
        runner: Any = None,
    ) -> ProbeService:
        config = Config(modules={module.name: module for module in modules})
        return ProbeService(
            config,
            retriever or FakeRetriever(document),
            registry,
            engine,
            timeout=timeout,
            runner=runner,
        )

    return _make


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture.

    Returns a tuple of (send_func, responses_list) for recording ASGI messages.
    """

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(service)
            async with asgi_test_client(app) as client:
                response = await client.get("/probe?module=m&target=t")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client


@pytest.fixture
def failing_retriever() -> FakeRetriever:
    """Retriever that always fails."""
    return FakeRetriever(error=RetrievalError("connection refused"))
