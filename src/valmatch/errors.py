from __future__ import annotations

from typing import Any


def _type_name(value_type: Any) -> str:
    if isinstance(value_type, type):
        return f"{value_type.__module__}.{value_type.__qualname__}"
    return str(value_type)


class ConfigurationError(ValueError):
    """A rule condition whose expected value cannot be compared to a candidate."""

    def __init__(self, message: str, *, expected_type: Any = None, actual_type: Any = None) -> None:
        super().__init__(message)
        self.expected_type = expected_type
        self.actual_type = actual_type

    @classmethod
    def no_conversion(cls, expected_type: type, actual_type: type) -> "ConfigurationError":
        return cls(
            f'no type conversion from type "{_type_name(expected_type)}" '
            f'to type "{_type_name(actual_type)}" for value comparison',
            expected_type=expected_type,
            actual_type=actual_type,
        )
