"""Logging setup for the exporter.

Records are written to stderr as a single line: timestamp, level, source
location, message, then every attribute passed via ``extra=`` as
``key=value``.
"""

import logging
import sys

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(name: str) -> int:
    """Map a level name to a logging level. Unknown names map to INFO."""
    return LEVELS.get(name.lower(), logging.INFO)


def _quote(value: object) -> str:
    text = str(value)
    if not text or any(c in text for c in ' "=\n'):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
    return text


class KeyValueFormatter(logging.Formatter):
    """Formatter appending ``extra=`` attributes as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "time=%(asctime)s level=%(levelname)s "
                "source=%(filename)s:%(lineno)d msg=%(message)s"
            ),
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format the record and append its extra attributes."""
        record.message = record.getMessage()
        record.asctime = self.formatTime(record, self.datefmt)
        line = self._fmt % dict(record.__dict__, message=_quote(record.message))
        extras = [
            f"{key}={_quote(value)}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_")
        ]
        if extras:
            line = f"{line} {' '.join(extras)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "info") -> logging.Handler:
    """Install a stderr handler on the root logger at ``level``.

    Args:
        level: One of debug, info, warn, error (case-insensitive).

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(KeyValueFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(parse_level(level))
    return handler
