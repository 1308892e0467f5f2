from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass


@dataclass
class DiffBase:
    def __repr__(self) -> str:
        """Show only the fields that differ from the default."""
        assert is_dataclass(self)
        default = self.__class__()
        diffs = []
        for field in fields(self):
            name = field.name
            if name.startswith("_"):
                continue
            current_value = getattr(self, name)
            default_value = getattr(default, name)
            if self._has_diff(current_value, default_value):
                diffs.append(f"{name}={current_value!r}")
        return f"{self.__class__.__name__}({', '.join(diffs)})"

    def _has_diff(self, value: object, default: object) -> bool:
        if is_dataclass(value):
            return repr(value) != repr(default)
        return value != default
