"""Request body templating from probe query parameters."""

from collections.abc import Mapping, Sequence
from string import Template

from jqprobe.core.errors import TemplateError


class _Params(dict[str, str]):
    """Parameter mapping where missing names render empty."""

    def __missing__(self, key: str) -> str:
        return ""


def render_body(
    template: str, params: Mapping[str, Sequence[str]] | None = None
) -> bytes | None:
    """Render a request body template.

    ``$name`` and ``${name}`` are replaced with the first value of the probe
    query parameter ``name``; ``$$`` is a literal dollar sign.

    Args:
        template: Template text. Empty means the request has no body.
        params: Query parameters as returned by ``urllib.parse.parse_qs``.

    Returns:
        UTF-8 encoded body, or None when the template is empty.

    Raises:
        TemplateError: The template contains an invalid placeholder.
    """
    if not template:
        return None
    values = _Params(
        {name: found[0] for name, found in (params or {}).items() if found}
    )
    try:
        return Template(template).substitute(values).encode()
    except ValueError as exc:
        raise TemplateError(f"invalid body template: {exc}") from exc
