"""httpx-based retriever for probe targets.

Besides plain HTTP(S), two opt-in transports are supported:

- ``file://`` targets read a JSON file below a root directory.
- Unix sockets: a path segment ending in ``.sock`` that is not the last
  segment names a socket, so ``http:///run/app.sock/status`` requests
  ``/status`` over ``/run/app.sock``.
"""

import asyncio
import json
import logging
import posixpath
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import SplitResult, urlsplit, urlunsplit

import httpx

from jqprobe.core.errors import RetrievalError

logger = logging.getLogger(__name__)


def _split_socket_path(path: str) -> tuple[str, str] | None:
    """Split a URL path into a socket path and the request path behind it.

    Returns:
        ``(socket_path, request_path)``, or None if no segment before the last
        one ends in ``.sock``.
    """
    if ".sock" not in path:
        return None
    parts = path.split("/")
    for i, part in enumerate(parts[:-1]):
        if part.endswith(".sock"):
            request_path = posixpath.normpath("/" + "/".join(parts[i + 1 :]))
            return "/".join(parts[: i + 1]), request_path
    return None


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    for key, value in (headers or {}).items():
        if key.lower() == name:
            return value
    return None


def _decode_json(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        text = raw.decode("utf-8", errors="replace")
        raise RetrievalError(f"{text}: {exc}") from exc


class HttpRetriever:
    """RetrieverPort implementation over httpx.

    Args:
        enable_file_transport: Allow ``file://`` targets.
        enable_unix_socket_transport: Allow targets addressing a unix socket.
        file_root: Directory ``file://`` paths are resolved against.
        transport: Transport for plain HTTP requests (tests inject
            ``httpx.MockTransport``).
        timeout: httpx timeout for a single request. None waits indefinitely;
            the probe deadline still applies.
    """

    def __init__(
        self,
        *,
        enable_file_transport: bool = False,
        enable_unix_socket_transport: bool = False,
        file_root: str | Path = ".",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self.enable_file_transport = enable_file_transport
        self.enable_unix_socket_transport = enable_unix_socket_transport
        self.file_root = Path(file_root)
        self._transport = transport
        self._timeout = timeout

    async def retrieve(
        self,
        method: str,
        target: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> Any:
        """Fetch ``target`` and return its parsed JSON body.

        Raises:
            RetrievalError: The target is unreachable, uses a disabled
                transport or does not return JSON.
        """
        parts = urlsplit(target)
        if parts.scheme == "file":
            if not self.enable_file_transport:
                raise RetrievalError(f"{target}: file transport is disabled")
            raw = await asyncio.to_thread(self._read_file, parts)
            return _decode_json(raw)

        socket = None
        if self.enable_unix_socket_transport:
            socket = _split_socket_path(parts.path)
        if socket is not None:
            socket_path, request_path = socket
            # A Host header only names the host when the URL has none.
            host = parts.netloc or _header(headers, "host") or "localhost"
            url = urlunsplit((parts.scheme or "http", host, request_path, parts.query, ""))
            headers = {
                key: value
                for key, value in (headers or {}).items()
                if key.lower() != "host"
            }
            transport = httpx.AsyncHTTPTransport(uds=socket_path)
        else:
            url = target
            transport = self._transport

        async with httpx.AsyncClient(transport=transport, timeout=self._timeout) as client:
            raw = await self._send(client, method, url, headers, body)
        return _decode_json(raw)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        body: bytes | None,
    ) -> bytes:
        try:
            response = await client.request(
                method, url, headers=dict(headers or {}), content=body
            )
        except httpx.HTTPError as exc:
            raise RetrievalError(f"{method} {url}: {exc}") from exc
        if response.is_error:
            logger.debug(
                "target returned an error status",
                extra={"target": url, "status_code": response.status_code},
            )
        return response.content

    def _read_file(self, parts: SplitResult) -> bytes:
        # "file://a/b.json" and "file:///a/b.json" both name a/b.json under
        # the root; normpath at "/" keeps ".." from leaving it.
        joined = posixpath.join(parts.netloc, parts.path.lstrip("/"))
        relative = posixpath.normpath("/" + joined).lstrip("/")
        path = self.file_root / relative
        try:
            return path.read_bytes()
        except OSError as exc:
            raise RetrievalError(f"file://{relative}: {exc.strerror or exc}") from exc
