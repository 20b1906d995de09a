"""Example FastAPI application mounting the probe endpoints.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /probe?module=<name>&target=<url>   - probe a target, Prometheus text format
    /metrics                            - exporter self-metrics
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from jqprobe import (
    HttpRetriever,
    InMemoryMetricsRegistry,
    JqEngine,
    ProbeService,
    QueryProcessPool,
    load_config,
)
from jqprobe.adapters.frameworks.fastapi import create_probe_router
from jqprobe.adapters.logging import configure_logging

configure_logging("debug")

pool = QueryProcessPool(JqEngine(), size=2)

service = ProbeService(
    load_config(Path(__file__).with_name("config.yaml")),
    HttpRetriever(enable_file_transport=True),
    InMemoryMetricsRegistry(expose_metadata=True),
    JqEngine(),
    runner=pool,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Keep the query workers running while the app serves."""
    pool.start()
    yield
    pool.close()


app = FastAPI(title="jqprobe example", lifespan=lifespan)
app.add_middleware(GZipMiddleware, minimum_size=1024)
app.include_router(create_probe_router(service))
