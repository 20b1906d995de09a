"""Configuration loading from YAML or JSON files.

Example::

    modules:
      tailscale:
        headers:
          Accept: application/json
        metrics:
          - query: '.Peer | [.[]]'
            name: tailscale_status_peer_rx_bytes
            labels:
              machine_name: .HostName
            valueType: counter
            value: .RxBytes
"""

import json
import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from jqprobe.core.errors import ConfigError
from jqprobe.core.models import Config, MetricDefinition, Module

_LABEL_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_ENV_REFERENCE = re.compile(r"\$\{(\w+)\}|\$(\w+)")


def expand_env(text: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with environment values.

    Unset variables expand to an empty string.
    """
    return _ENV_REFERENCE.sub(
        lambda m: os.environ.get(m.group(1) or m.group(2), ""), text
    )


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}") from exc


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON: {exc}") from exc


_PARSERS: dict[str, Callable[[str], Any]] = {
    ".json": _parse_json,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


def _require_mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _parse_metric(raw: Any, where: str) -> MetricDefinition:
    data = _require_mapping(raw, where)
    labels = _require_mapping(data.get("labels"), f"{where}.labels")
    for label_name, label_query in labels.items():
        if not isinstance(label_name, str) or not _LABEL_NAME.fullmatch(label_name):
            raise ConfigError(f"{where}.labels: invalid label name {label_name!r}")
        _require_str(label_query, f"{where}.labels.{label_name}")
    return MetricDefinition(
        name=_require_str(data.get("name", ""), f"{where}.name"),
        value=_require_str(data.get("value", ""), f"{where}.value"),
        value_type=_require_str(data.get("valueType", ""), f"{where}.valueType"),
        labels=dict(labels),
        query=_require_str(data.get("query") or "", f"{where}.query"),
    )


def _parse_module(name: str, raw: Any) -> Module:
    where = f"modules.{name}"
    data = _require_mapping(raw, where)
    metrics = data.get("metrics") or []
    if not isinstance(metrics, list):
        raise ConfigError(f"{where}.metrics: expected a list")
    body = _require_mapping(data.get("body"), f"{where}.body")
    headers = _require_mapping(data.get("headers"), f"{where}.headers")
    return Module(
        name=name,
        metrics=tuple(
            _parse_metric(metric, f"{where}.metrics[{i}]")
            for i, metric in enumerate(metrics)
        ),
        body=_require_str(body.get("content") or "", f"{where}.body.content"),
        headers={str(k): _require_str(v, f"{where}.headers.{k}") for k, v in headers.items()},
    )


def parse_config(data: Any) -> Config:
    """Build a Config from already-decoded YAML or JSON data.

    Raises:
        ConfigError: The data does not have the expected shape.
    """
    root = _require_mapping(data, "config")
    modules = _require_mapping(root.get("modules"), "modules")
    return Config(
        modules={str(name): _parse_module(str(name), raw) for name, raw in modules.items()}
    )


def load_config(path: str | Path, expand_environment: bool = False) -> Config:
    """Load the configuration file at ``path``.

    Args:
        path: ``.json``, ``.yaml`` or ``.yml`` file.
        expand_environment: Substitute environment variables before parsing.

    Raises:
        ConfigError: The file is unreadable, has an unsupported extension or
            is malformed.
    """
    path = Path(path)
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ConfigError(f"unsupported file {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc.strerror or exc}") from exc
    if expand_environment:
        text = expand_env(text)
    return parse_config(parser(text))
