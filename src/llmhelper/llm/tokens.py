"""Recover a provider's token ceiling from its error text.

Providers phrase the limit differently, e.g.

- "the valid range of max_tokens is [1, 8192]"
- "max_tokens must be between 1 and 8192"
- "maximum tokens: 8192"

Patterns are tried from most to least specific, so a precise bracketed range
wins over a generic trailing number elsewhere in the same message.
"""

from __future__ import annotations

import re
from typing import Optional

_MAX_TOKENS_PATTERNS = [
    re.compile(r"\[\d+,\s*(\d+)\]", re.IGNORECASE),  # [1, 8192]
    re.compile(r"between \d+ and (\d+)", re.IGNORECASE),  # between 1 and 8192
    re.compile(r"maximum.*?(\d+)", re.IGNORECASE),  # maximum tokens: 8192
    re.compile(r"max.*?is (\d+)", re.IGNORECASE),  # max is 8192
    re.compile(r"up to (\d+)", re.IGNORECASE),  # up to 8192
    re.compile(r"range.*?(\d+)$", re.IGNORECASE),  # range ... 8192
]

_MAX_TOKENS_FIELD = re.compile(r"max_tokens", re.IGNORECASE)


def mentions_max_tokens(text: Optional[str]) -> bool:
    return bool(text) and _MAX_TOKENS_FIELD.search(text) is not None


def parse_max_tokens(message: Optional[str]) -> Optional[int]:
    """Return the first positive ceiling found in `message`, else None."""

    if not message:
        return None

    for pattern in _MAX_TOKENS_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        try:
            value = int(match.group(1))
        except (TypeError, ValueError):
            continue
        if value > 0:
            return value

    return None
