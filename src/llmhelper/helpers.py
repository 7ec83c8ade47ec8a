import string
from typing import Any

from llmhelper.llm.errors import ConfigurationError

_FORMATTER = string.Formatter()


def build_prompt(template: str, **params: Any) -> str:
    """Fill ``{name}`` placeholders in `template` from keyword arguments.

    Every occurrence of a placeholder is replaced, whitespace is preserved,
    and ``{{``/``}}`` produce literal braces.

    Example:
        >>> build_prompt("{x} + {x} = {y}", x=2, y=4)
        '2 + 2 = 4'
    """

    if template is None:
        raise ConfigurationError("template must be a string")

    parts = []
    for literal, field_name, format_spec, conversion in _FORMATTER.parse(template):
        parts.append(literal)
        if field_name is None:
            continue
        key = field_name.strip()
        if key not in params:
            raise ConfigurationError(f"No value supplied for placeholder {{{key}}}")
        value = params[key]
        if conversion:
            value = _FORMATTER.convert_field(value, conversion)
        parts.append(format(value, format_spec) if format_spec else str(value))
    return "".join(parts)
