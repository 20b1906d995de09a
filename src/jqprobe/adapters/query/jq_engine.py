"""jq query engine adapter backed by the ``jq`` bindings to libjq."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import jq

from jqprobe.core.errors import QueryCompileError, QueryRuntimeError


@dataclass(frozen=True)
class JqProgram:
    """A compiled jq program together with its source text.

    ``error`` is set for queries that parsed but reference undefined
    functions or variables. libjq reports these at compile time; they are
    raised when the program is run instead, so callers that fall back to the
    literal query text can use bare identifiers such as ``rx_bytes`` as
    constants.
    """

    query: str
    program: Any = None
    error: str | None = None


# libjq ends the stream on halt_error like on halt. Only a null value is a
# plain halt; any other value is a fault of the program.
_PRELUDE = (
    "def halt_error: if . == null then halt else error end; "
    "def halt_error($code): halt_error;\n"
)


def _first_line(message: str) -> str:
    line = message.strip().splitlines()[0] if message.strip() else message
    return line.removeprefix("jq: error: ")


def _with_prelude(query: str) -> str:
    if not query.strip():
        return query
    return _PRELUDE + query


class JqEngine:
    """QueryEngine implementation for the jq language."""

    def compile(self, query: str) -> JqProgram:
        """Compile ``query``.

        Raises:
            QueryCompileError: The query has a syntax error.
        """
        try:
            return JqProgram(query, program=jq.compile(_with_prelude(query)))
        except ValueError as exc:
            message = str(exc)
            if "syntax error" in message:
                raise QueryCompileError(
                    query, f"cannot parse query {query!r}: {_first_line(message)}"
                ) from exc
            return JqProgram(query, error=_first_line(message))

    def run(self, program: JqProgram, value: Any) -> Iterator[Any]:
        """Yield every result of ``program`` applied to ``value``.

        Raises:
            QueryRuntimeError: The program failed during evaluation.
        """
        if program.error is not None:
            raise QueryRuntimeError(program.query, program.error)
        try:
            yield from program.program.input_value(value)
        except ValueError as exc:
            raise QueryRuntimeError(
                program.query, f"query {program.query!r} failed: {exc}"
            ) from exc
