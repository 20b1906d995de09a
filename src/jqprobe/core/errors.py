"""Error hierarchy for probe evaluation.

Every failure raised while serving a probe derives from ProbeError so the
request layer can map it to a response with a single ``except`` clause.
"""

from typing import Any


class ProbeError(Exception):
    """Base class for all probe failures."""


class ConfigError(ProbeError):
    """The configuration file is unreadable or malformed."""


class UnknownModuleError(ProbeError):
    """A probe referenced a module that is not configured."""

    def __init__(self, module: str) -> None:
        super().__init__(f"module {module!r} is not configured")
        self.module = module


class RetrievalError(ProbeError):
    """The target could not be fetched or did not return JSON."""


class TemplateError(ProbeError):
    """The request body template could not be rendered."""


class QueryError(ProbeError):
    """Base class for query failures, carrying the offending query text."""

    def __init__(self, query: str, message: str) -> None:
        super().__init__(message)
        self.query = query


class QueryCompileError(QueryError):
    """The query is not a syntactically valid program."""


class QueryRuntimeError(QueryError):
    """The query failed while running against a value."""


class EvaluationCancelledError(ProbeError):
    """Evaluation was abandoned because its deadline elapsed."""


class CoercionError(ProbeError):
    """A query result could not be converted to the metric's numeric type."""

    def __init__(self, kind: str, value: Any) -> None:
        super().__init__(f"cannot use {value!r} as a {kind} value")
        self.kind = kind
        self.value = value


class UnsupportedKindError(ProbeError):
    """A metric declares a kind other than counter or gauge."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"valueType {kind} is not supported")
        self.kind = kind


class MetricKindConflictError(ProbeError):
    """A series identity was written with a kind different from its first write."""

    def __init__(self, identity: str, existing: str, requested: str) -> None:
        super().__init__(
            f"{identity} is registered as a {existing}, cannot write it as a {requested}"
        )
        self.identity = identity
        self.existing = existing
        self.requested = requested
