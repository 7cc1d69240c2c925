"""Wildcard patterns for department-code matching.

``*`` matches zero or more characters; every other character is literal. A
pattern must consume the whole code (anchored at both ends) and matching is
case-sensitive.
"""

from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a wildcard pattern into an anchored regular expression."""

    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(body, re.DOTALL)


def matches(pattern: str, code: str) -> bool:
    return compile_pattern(pattern).fullmatch(code) is not None


__all__ = ["compile_pattern", "matches"]
