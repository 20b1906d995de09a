"""Test doubles and sample data shared across test modules."""

import asyncio
from collections.abc import Mapping
from typing import Any

from jqprobe.core.models import MetricDefinition, Module

PEERS_DOCUMENT = {"peers": [{"name": "a", "rx": 10}, {"name": "b", "rx": 0}]}


class FakeRetriever:
    """RetrieverPort returning a fixed document and recording requests."""

    def __init__(
        self,
        document: Any = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.document = document
        self.error = error
        self.delay = delay
        self.requests: list[dict[str, Any]] = []

    async def retrieve(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> Any:
        self.requests.append(
            {"method": method, "target": target, "headers": headers, "body": body}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.document


class RecordingSink:
    """MetricsSinkPort recording every write in order."""

    def __init__(self) -> None:
        self.writes: list[tuple[str, str, int | float]] = []

    def set_counter(self, identity: str, value: int) -> None:
        self.writes.append(("counter", identity, value))

    def set_gauge(self, identity: str, value: float) -> None:
        self.writes.append(("gauge", identity, value))


def peers_module(value_type: str = "gauge", value: str = ".rx") -> Module:
    """Module with one metric fanned out over the peers document."""
    return Module(
        name="peers",
        metrics=(
            MetricDefinition(
                query=".peers",
                name="rx_bytes",
                labels={"machine": ".name"},
                value=value,
                value_type=value_type,
            ),
        ),
    )
