"""ASGI adapter serving the probe and self-metrics endpoints.

The app is framework-agnostic and runs under any ASGI server (uvicorn,
hypercorn, daphne) without further dependencies.
"""

import gzip
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from jqprobe.adapters.instrumentation import observe_probe, render_self_metrics
from jqprobe.core.errors import (
    CoercionError,
    EvaluationCancelledError,
    ProbeError,
    QueryError,
    RetrievalError,
    UnknownModuleError,
    UnsupportedKindError,
)
from jqprobe.core.probe import ProbeService

logger = logging.getLogger(__name__)

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

# Bodies shorter than this are sent uncompressed.
GZIP_MIN_SIZE = 1024

# Failures the metric pipeline has already logged with their query context.
_PIPELINE_ERRORS = (QueryError, CoercionError, UnsupportedKindError)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values.
        Returns empty dict if query_string is missing or empty.
    """
    # @tra: Adapter.ASGI.QueryParameter.Parser
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string)


def _first_param(params: dict[str, list[str]], name: str) -> str:
    """Return the first value of ``name``, or an empty string."""
    values = params.get(name) or [""]
    return values[0]


def status_for_error(exc: ProbeError) -> int:
    """Map a probe failure to an HTTP status code.

    - unknown module → 404
    - retrieval failure → 502
    - deadline exceeded → 504
    - anything else (queries, coercion, kinds, templates) → 500
    """
    if isinstance(exc, UnknownModuleError):
        return 404
    if isinstance(exc, RetrievalError):
        return 502
    if isinstance(exc, EvaluationCancelledError):
        return 504
    return 500


def _accepts_gzip(scope: Scope) -> bool:
    """Return True if the request's Accept-Encoding allows gzip."""
    for name, value in scope.get("headers", []):
        if name.lower() != b"accept-encoding":
            continue
        for item in value.decode("latin-1").split(","):
            coding, _, params = item.partition(";")
            if coding.strip().lower() not in ("gzip", "*"):
                continue
            quality = params.strip().lower().removeprefix("q=")
            try:
                if params.strip() and float(quality) == 0:
                    continue
            except ValueError:
                continue
            return True
    return False


async def _send_response(
    send: Send,
    status: int,
    content_type: str,
    body: str | bytes,
    compress: bool = False,
) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body; strings are UTF-8 encoded.
        compress: Gzip the body when it is at least ``GZIP_MIN_SIZE`` bytes.
    """
    if isinstance(body, str):
        body = body.encode()
    # @tra: Adapter.ASGI.SendResponse.Headers
    headers = [(b"content-type", content_type.encode())]
    # @tra: Adapter.ASGI.SendResponse.Gzip
    if compress and len(body) >= GZIP_MIN_SIZE:
        body = gzip.compress(body)
        headers.append((b"content-encoding", b"gzip"))
        headers.append((b"vary", b"accept-encoding"))
    await send({"type": "http.response.start", "status": status, "headers": headers})
    # @tra: Adapter.ASGI.SendResponse.Body
    await send({"type": "http.response.body", "body": body})


async def _handle_probe(service: ProbeService, scope: Scope, send: Send) -> None:
    """Run one probe described by the request's query parameters."""
    params = _parse_query_params(scope)
    module = _first_param(params, "module")
    target = _first_param(params, "target")
    # @tra: Adapter.ASGI.Probe.MissingParameter
    if not module:
        logger.warning("no module found in query")
        await _send_response(send, 400, TEXT_CONTENT_TYPE, "missing module parameter\n")
        return
    if not target:
        logger.warning("no target found in query", extra={"probe_module": module})
        await _send_response(send, 400, TEXT_CONTENT_TYPE, "missing target parameter\n")
        return
    method = _first_param(params, "method") or "GET"

    start = time.perf_counter()
    try:
        body = await service.probe(module, target, method=method, params=params)
    except UnknownModuleError as exc:
        logger.warning("no module found in config", extra={"probe_module": module})
        await _send_response(send, 404, TEXT_CONTENT_TYPE, f"{exc}\n")
        return
    except ProbeError as exc:
        # @tra: Adapter.ASGI.Probe.FailureStatus
        level = logging.DEBUG if isinstance(exc, _PIPELINE_ERRORS) else logging.ERROR
        logger.log(
            level,
            "probe failed: %s",
            exc,
            extra={
                "probe_module": module,
                "target": target,
                "error_type": type(exc).__name__,
            },
        )
        observe_probe(module, "failure", time.perf_counter() - start)
        await _send_response(send, status_for_error(exc), TEXT_CONTENT_TYPE, f"{exc}\n")
        return
    except Exception:
        logger.exception(
            "unexpected error serving probe", extra={"probe_module": module}
        )
        observe_probe(module, "failure", time.perf_counter() - start)
        await _send_response(send, 500, TEXT_CONTENT_TYPE, "Internal Server Error\n")
        return

    observe_probe(module, "success", time.perf_counter() - start)
    await _send_response(
        send, 200, PROMETHEUS_CONTENT_TYPE, body, compress=_accepts_gzip(scope)
    )


def create_asgi_app(service: ProbeService) -> ASGIApp:
    """Create an ASGI app with /probe and /metrics endpoints.

    Args:
        service: Probe service evaluating configured modules.

    Returns:
        ASGI application callable.
    """

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        if path not in ("/probe", "/metrics"):
            # @tra: Adapter.ASGI.RoutingUnknownPath
            await _send_response(send, 404, "text/plain", "Not Found")
            return
        if scope["method"] not in ("GET", "HEAD"):
            await _send_response(send, 405, "text/plain", "Method Not Allowed")
            return

        if path == "/probe":
            await _handle_probe(service, scope, send)
        else:
            body, content_type = render_self_metrics()
            await _send_response(
                send, 200, content_type, body, compress=_accepts_gzip(scope)
            )

    return app
