"""Label set construction for metric identities."""

from collections.abc import Mapping
from typing import Any

from jqprobe.core.coercion import as_label_value
from jqprobe.core.query import QueryEvaluator

_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n"})


def escape_label_value(value: str) -> str:
    """Escape a label value for the Prometheus text format."""
    return value.translate(_ESCAPES)


def format_label_pairs(labels: Mapping[str, str]) -> str:
    """Join already-evaluated labels into the canonical ``a="x",b="y"`` form.

    Pairs are sorted by their formatted text, so the same logical label set
    always produces the same string.
    """
    pairs = [f'{name}="{escape_label_value(value)}"' for name, value in labels.items()]
    return ",".join(sorted(pairs))


async def build_labels(
    evaluator: QueryEvaluator,
    labels: Mapping[str, str],
    value: Any,
) -> str:
    """Evaluate each label query against ``value`` and format the label set.

    Label queries fall back to their literal text on runtime failure, so a
    constant such as ``prod`` works as a label query. Compile errors propagate.

    Args:
        evaluator: Evaluator running the label queries.
        labels: Label name to query mapping.
        value: Element the queries run against.

    Returns:
        Canonical label string without surrounding braces.
    """
    evaluated: dict[str, str] = {}
    for name, query in labels.items():
        result = await evaluator.evaluate(query, value, fallback=True)
        evaluated[name] = as_label_value(result)
    return format_label_pairs(evaluated)
