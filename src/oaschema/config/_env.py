from __future__ import annotations

import os
from string import Template
from typing import Any

from oaschema.config._error import ConfigError


def substitute(value: Any, option: str) -> Any:
    """Expand `${VAR}` placeholders in string option values."""
    if not isinstance(value, str):
        return value
    try:
        return Template(value).substitute(os.environ)
    except ValueError:
        raise ConfigError(f"Invalid placeholder in `{option}`: `{value}`") from None
    except KeyError as exc:
        raise ConfigError(f"Missing environment variable `{exc.args[0]}` in `{option}`") from None
