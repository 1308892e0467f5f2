from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a `pattern` keyword value.

    Raises `re.error` for patterns Python can not handle.
    """
    return re.compile(pattern)


def search(pattern: re.Pattern, value: str) -> bool:
    # JSON Schema patterns are not implicitly anchored
    return pattern.search(value) is not None
