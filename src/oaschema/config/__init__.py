from __future__ import annotations

import enum
import os
import sys
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

from oaschema.config._diff_base import DiffBase
from oaschema.config._env import substitute
from oaschema.config._error import ConfigError
from oaschema.core import string_to_boolean

if sys.version_info < (3, 11):
    import tomli
else:
    import tomllib as tomli

__all__ = [
    "ValidationConfig",
    "ConfigError",
    "OutputConfig",
    "TruncationConfig",
    "DiscriminatorPolicy",
    "Direction",
    "CONFIG_FILE_NAME",
]

CONFIG_FILE_NAME = "oaschema.toml"
DEFAULT_MAX_DEPTH = 128


class DiscriminatorPolicy(str, enum.Enum):
    """What to do with a discriminator declared outside of a `oneOf` / `anyOf` / `allOf` context."""

    REJECT = "reject"
    IGNORE = "ignore"


class Direction(str, enum.Enum):
    """Which side of an API exchange the instance comes from.

    Read-only properties must not be sent in requests, write-only properties must not appear in responses.
    """

    REQUEST = "request"
    RESPONSE = "response"


def _flag(value: Any, name: str) -> bool:
    value = substitute(value, name)
    if isinstance(value, str):
        value = string_to_boolean(value)
    if not isinstance(value, bool):
        raise ConfigError(f"`{name}` must be a boolean, got {value!r}")
    return value


@dataclass(repr=False)
class TruncationConfig(DiffBase):
    """Rendering limits for definitions embedded into error messages."""

    enabled: bool
    max_lines: int
    max_width: int

    __slots__ = ("enabled", "max_lines", "max_width")

    def __init__(self, *, enabled: bool = True, max_lines: int = 10, max_width: int = 80) -> None:
        self.enabled = enabled
        self.max_lines = max_lines
        self.max_width = max_width

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TruncationConfig:
        return cls(
            enabled=data.get("enabled", True),
            max_lines=data.get("max-lines", 10),
            max_width=data.get("max-width", 80),
        )


@dataclass(repr=False)
class OutputConfig(DiffBase):
    truncation: TruncationConfig

    __slots__ = ("truncation",)

    def __init__(self, *, truncation: TruncationConfig | None = None) -> None:
        self.truncation = truncation or TruncationConfig()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputConfig:
        return cls(truncation=TruncationConfig.from_dict(data.get("truncation", {})))


@dataclass(repr=False)
class ValidationConfig(DiffBase):
    """Options shared by schema loading and validation."""

    # Whether `format` is asserted or only collected as an annotation
    format_assertion: bool
    # Whether a resolved discriminator decides the outcome of `oneOf` / `anyOf` on its own
    discriminator_shortcut: bool
    discriminator_policy: DiscriminatorPolicy
    # Stop `allOf` evaluation at the first failing branch
    fail_fast: bool
    max_depth: int
    direction: Direction | None
    # Honor Open API 3.0 `nullable`
    nullable: bool
    output: OutputConfig

    __slots__ = (
        "format_assertion",
        "discriminator_shortcut",
        "discriminator_policy",
        "fail_fast",
        "max_depth",
        "direction",
        "nullable",
        "output",
    )

    def __init__(
        self,
        *,
        format_assertion: bool = False,
        discriminator_shortcut: bool = True,
        discriminator_policy: DiscriminatorPolicy = DiscriminatorPolicy.REJECT,
        fail_fast: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
        direction: Direction | None = None,
        nullable: bool = True,
        output: OutputConfig | None = None,
    ) -> None:
        if max_depth < 1:
            raise ConfigError(f"`max-depth` must be at least 1, got {max_depth}")
        self.format_assertion = format_assertion
        self.discriminator_shortcut = discriminator_shortcut
        self.discriminator_policy = DiscriminatorPolicy(discriminator_policy)
        self.fail_fast = fail_fast
        self.max_depth = max_depth
        self.direction = Direction(direction) if direction is not None else None
        self.nullable = nullable
        self.output = output or OutputConfig()

    @classmethod
    def discover(cls) -> ValidationConfig:
        """Discover the configuration file.

        Search for 'oaschema.toml' in the current directory and then in each parent directory,
        stopping when a directory containing a '.git' folder is encountered or the filesystem root is reached.
        If a config file is found, load it; otherwise, return a default configuration.
        """
        current_dir = os.getcwd()
        config_file = None

        while True:
            candidate = os.path.join(current_dir, CONFIG_FILE_NAME)
            if os.path.isfile(candidate):
                config_file = candidate
                break

            git_dir = os.path.join(current_dir, ".git")
            if os.path.isdir(git_dir):
                break

            parent = os.path.dirname(current_dir)
            if parent == current_dir:
                break
            current_dir = parent

        if config_file:
            return cls.from_path(config_file)
        return cls()

    @classmethod
    def from_path(cls, path: PathLike | str) -> ValidationConfig:
        """Load configuration from a file path."""
        with open(Path(path), encoding="utf-8") as fd:
            return cls.from_str(fd.read())

    @classmethod
    def from_str(cls, data: str) -> ValidationConfig:
        """Parse configuration from a TOML string."""
        try:
            parsed = tomli.loads(data)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML: {exc}") from None
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls, data: dict) -> ValidationConfig:
        """Create a config instance from a dictionary."""
        from jsonschema.exceptions import ValidationError

        from oaschema.config._validator import get_validator

        try:
            get_validator().validate(data)
        except ValidationError as exc:
            raise ConfigError.from_validation_error(exc) from None
        direction = data.get("direction")
        return cls(
            format_assertion=_flag(data.get("format-assertion", False), "format-assertion"),
            discriminator_shortcut=_flag(data.get("discriminator-shortcut", True), "discriminator-shortcut"),
            discriminator_policy=DiscriminatorPolicy(data.get("discriminator-policy", "reject")),
            fail_fast=_flag(data.get("fail-fast", False), "fail-fast"),
            max_depth=data.get("max-depth", DEFAULT_MAX_DEPTH),
            direction=Direction(direction) if direction is not None else None,
            nullable=_flag(data.get("nullable", True), "nullable"),
            output=OutputConfig.from_dict(data.get("output", {})),
        )

    def override(self, **options: Any) -> ValidationConfig:
        """A copy of this config with the given options replacing the current values."""
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(options)
        return ValidationConfig(**values)
