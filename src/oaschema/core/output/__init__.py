from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from oaschema.config import TruncationConfig

TRUNCATED = "// Output truncated..."


def truncate_json(data: Any, *, config: TruncationConfig, max_lines: int | None = None) -> str:
    # Convert JSON to string with indentation
    indent = 4
    serialized = json.dumps(data, indent=indent, default=repr)
    if not config.enabled:
        return serialized

    max_lines = max_lines if max_lines is not None else config.max_lines
    lines = [
        line[: config.max_width - 3] + "..." if len(line) > config.max_width else line
        for line in serialized.split("\n")
    ]

    if len(lines) <= max_lines:
        return "\n".join(lines)

    truncated_lines = lines[: max_lines - 1]
    indentation = " " * indent
    truncated_lines.append(f"{indentation}{TRUNCATED}")
    truncated_lines.append(lines[-1])

    return "\n".join(truncated_lines)


def format_pointer(path: list[str | int] | tuple[str | int, ...]) -> str:
    """Render a sequence of steps as a JSON Pointer."""
    return "".join(f"/{escape_token(str(step))}" for step in path)


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")
