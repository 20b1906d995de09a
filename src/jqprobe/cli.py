"""Command line entry point."""

import argparse
import logging
import sys
from collections.abc import Sequence

import uvicorn

from jqprobe.adapters.config import load_config
from jqprobe.adapters.frameworks.asgi import create_asgi_app
from jqprobe.adapters.logging import configure_logging, parse_level
from jqprobe.adapters.query import JqEngine, QueryProcessPool
from jqprobe.adapters.query.process_pool import DEFAULT_WORKERS
from jqprobe.adapters.retrieval import HttpRetriever
from jqprobe.adapters.storage import InMemoryMetricsRegistry
from jqprobe.core.errors import ConfigError
from jqprobe.core.probe import DEFAULT_PROBE_TIMEOUT, ProbeService

logger = logging.getLogger(__name__)


def parse_addr(addr: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address; an empty host listens everywhere.

    Raises:
        ValueError: The port is missing or not a number.
    """
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {addr!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jqprobe",
        description="Probe JSON endpoints and expose jq-selected values as Prometheus metrics.",
    )
    parser.add_argument("--addr", default=":9999", help="listen addr")
    parser.add_argument("--config", default="config.yaml", help="config file path")
    parser.add_argument(
        "--expand-env",
        action="store_true",
        help="expand environment variable in config file",
    )
    parser.add_argument("--log-level", default="info", help="log level")
    parser.add_argument(
        "--expose-metadata",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="expose metric metadata",
    )
    parser.add_argument(
        "--enable-file-transport", action="store_true", help="enable file transport"
    )
    parser.add_argument(
        "--enable-unix-socket-transport",
        action="store_true",
        help="enable unix socket transport",
    )
    parser.add_argument(
        "--query-workers",
        type=int,
        default=DEFAULT_WORKERS,
        help="query worker processes; 0 runs queries in threads",
    )
    parser.add_argument(
        "--probe-timeout",
        type=float,
        default=DEFAULT_PROBE_TIMEOUT,
        help="seconds a probe may take, retrieval included",
    )
    return parser


def build_service(
    args: argparse.Namespace, runner: QueryProcessPool | None = None
) -> ProbeService:
    """Wire configuration, adapters and the probe service from parsed flags.

    Raises:
        ConfigError: The configuration cannot be loaded.
    """
    config = load_config(args.config, args.expand_env)
    retriever = HttpRetriever(
        enable_file_transport=args.enable_file_transport,
        enable_unix_socket_transport=args.enable_unix_socket_transport,
    )
    registry = InMemoryMetricsRegistry(expose_metadata=args.expose_metadata)
    return ProbeService(
        config,
        retriever,
        registry,
        JqEngine(),
        timeout=args.probe_timeout or None,
        runner=runner,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        pool = None
        if args.query_workers > 0:
            pool = QueryProcessPool(JqEngine(), size=args.query_workers)
        service = build_service(args, runner=pool)
        host, port = parse_addr(args.addr)
    except (ConfigError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    if pool is not None:
        pool.start()
    logger.info("listening", extra={"addr": args.addr})
    try:
        uvicorn.run(
            create_asgi_app(service),
            host=host,
            port=port,
            lifespan="off",
            log_config=None,
            log_level=parse_level(args.log_level),
        )
    finally:
        if pool is not None:
            pool.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
