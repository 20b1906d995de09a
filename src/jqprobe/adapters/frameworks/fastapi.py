"""FastAPI adapter for the probe endpoints."""

import time

from fastapi import APIRouter, Query, Request, Response

from jqprobe.adapters.frameworks.asgi import (
    PROMETHEUS_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    status_for_error,
)
from jqprobe.adapters.instrumentation import observe_probe, render_self_metrics
from jqprobe.core.errors import ProbeError, UnknownModuleError
from jqprobe.core.probe import ProbeService


def create_probe_router(service: ProbeService) -> APIRouter:
    """Create a FastAPI router with /probe and /metrics endpoints.

    Args:
        service: Probe service evaluating configured modules.

    Returns:
        APIRouter with /probe and /metrics endpoints configured.
    """
    router = APIRouter()

    @router.get("/probe")
    async def probe(
        request: Request,
        module: str = Query(default=""),
        target: str = Query(default=""),
        method: str = Query(default="GET"),
    ) -> Response:
        """Probe a target and return the registry in Prometheus text format."""
        if not module or not target:
            missing = "module" if not module else "target"
            return Response(
                content=f"missing {missing} parameter\n",
                status_code=400,
                media_type=TEXT_CONTENT_TYPE,
            )
        params: dict[str, list[str]] = {}
        for key, value in request.query_params.multi_items():
            params.setdefault(key, []).append(value)

        start = time.perf_counter()
        try:
            body = await service.probe(module, target, method=method, params=params)
        except ProbeError as exc:
            if not isinstance(exc, UnknownModuleError):
                observe_probe(module, "failure", time.perf_counter() - start)
            return Response(
                content=f"{exc}\n",
                status_code=status_for_error(exc),
                media_type=TEXT_CONTENT_TYPE,
            )
        observe_probe(module, "success", time.perf_counter() - start)
        return Response(content=body, media_type=PROMETHEUS_CONTENT_TYPE)

    @router.get("/metrics")
    async def metrics() -> Response:
        """Return the exporter's own metrics."""
        body, content_type = render_self_metrics()
        return Response(content=body, media_type=content_type)

    return router
