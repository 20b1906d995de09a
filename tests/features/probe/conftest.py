"""BDD step definitions for probe features."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from jqprobe.adapters.query import JqEngine
from jqprobe.adapters.storage import InMemoryMetricsRegistry
from jqprobe.core.errors import ProbeError
from jqprobe.core.models import Config, MetricDefinition, Module
from jqprobe.core.probe import ProbeService
from tests.helpers import FakeRetriever


@dataclass
class ProbeScenarioContext:
    """State shared between the steps of one scenario."""

    registry: InMemoryMetricsRegistry = field(default_factory=InMemoryMetricsRegistry)
    definitions: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    document: Any = None
    output: str | None = None
    error: ProbeError | None = None

    def last_definition(self) -> dict[str, Any]:
        return list(self.definitions.values())[-1][-1]

    def config(self) -> Config:
        return Config(
            modules={
                name: Module(
                    name=name,
                    metrics=tuple(MetricDefinition(**d) for d in definitions),
                )
                for name, definitions in self.definitions.items()
            }
        )


@pytest.fixture
def ctx() -> ProbeScenarioContext:
    """Fresh scenario context for each test."""
    return ProbeScenarioContext()


def _definition(name: str, kind: str, value: str, query: str = "") -> dict[str, Any]:
    return {"name": name, "value_type": kind, "value": value, "labels": {}, "query": query}


# === Given ===
@given("a fresh metrics registry")
def step_registry(ctx: ProbeScenarioContext) -> None:
    ctx.registry = InMemoryMetricsRegistry()


@given(
    parsers.parse(
        'a module "{module}" selecting "{query}" with metric "{name}" '
        'of type "{kind}" valued "{value}"'
    )
)
def step_module_with_selection(
    ctx: ProbeScenarioContext, module: str, query: str, name: str, kind: str, value: str
) -> None:
    ctx.definitions[module] = [_definition(name, kind, value, query)]


@given(
    parsers.parse(
        'a module "{module}" reporting metric "{name}" of type "{kind}" valued "{value}"'
    )
)
def step_module(
    ctx: ProbeScenarioContext, module: str, name: str, kind: str, value: str
) -> None:
    ctx.definitions[module] = [_definition(name, kind, value)]


@given(
    parsers.parse(
        'the module "{module}" also has metric "{name}" of type "{kind}" valued "{value}"'
    )
)
def step_another_metric(
    ctx: ProbeScenarioContext, module: str, name: str, kind: str, value: str
) -> None:
    ctx.definitions[module].append(_definition(name, kind, value))


@given(parsers.parse('the metric is labelled "{label}" by "{query}"'))
def step_label(ctx: ProbeScenarioContext, label: str, query: str) -> None:
    ctx.last_definition()["labels"][label] = query


@given(parsers.parse("the target returns '{document}'"))
def step_document(ctx: ProbeScenarioContext, document: str) -> None:
    ctx.document = json.loads(document)


# === When ===
@when(parsers.parse('the module "{module}" is probed'))
def step_probe(ctx: ProbeScenarioContext, module: str) -> None:
    service = ProbeService(
        ctx.config(), FakeRetriever(ctx.document), ctx.registry, JqEngine()
    )
    try:
        ctx.output = asyncio.run(service.probe(module, "http://target/status"))
    except ProbeError as exc:
        ctx.error = exc


# === Then ===
@then("the probe succeeds")
def step_succeeds(ctx: ProbeScenarioContext) -> None:
    assert ctx.error is None
    assert ctx.output is not None


@then(parsers.parse('the probe fails with "{error_type}"'))
def step_fails(ctx: ProbeScenarioContext, error_type: str) -> None:
    assert ctx.output is None
    assert type(ctx.error).__name__ == error_type


@then(parsers.parse("the output contains the line '{line}'"))
def step_output_line(ctx: ProbeScenarioContext, line: str) -> None:
    assert ctx.output is not None
    assert line in ctx.output.splitlines()


@then(parsers.parse("the registry holds {count:d} series"))
def step_series_count(ctx: ProbeScenarioContext, count: int) -> None:
    assert len(ctx.registry.series()) == count
