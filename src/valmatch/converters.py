from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import CompositeIdentifier
from .registry import ConverterRegistry, default_registry

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}


def _text(value: Any) -> str:
    return str(value).strip()


def to_int(value: Any) -> int:
    return int(_text(value))


def to_float(value: Any) -> float:
    return float(_text(value))


def to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(_text(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal literal '{value}'") from exc


def to_bool(value: Any) -> bool:
    s = _text(value).lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ValueError(f"Invalid boolean literal '{value}'")


def to_date(value: Any) -> date:
    s = _text(value)
    # GTFS service dates are written as YYYYMMDD
    if len(s) == 8 and s.isdigit():
        return datetime.strptime(s, "%Y%m%d").date()
    return date.fromisoformat(s)


def to_datetime(value: Any) -> datetime:
    return datetime.fromisoformat(_text(value))


def to_composite_identifier(value: Any) -> CompositeIdentifier:
    return CompositeIdentifier.parse(_text(value))


# Register default converters

def register_default_converters(registry: ConverterRegistry) -> None:
    registry.register(int, to_int, description="Integer literal")
    registry.register(float, to_float, description="Decimal literal as float")
    registry.register(Decimal, to_decimal, description="Exact decimal literal")
    registry.register(bool, to_bool, description="true/false, yes/no, 1/0 (case insensitive)")
    registry.register(date, to_date, description="ISO date or GTFS YYYYMMDD")
    registry.register(datetime, to_datetime, description="ISO timestamp")
    registry.register(
        CompositeIdentifier, to_composite_identifier, description="namespace_localid composite identifier"
    )


register_default_converters(default_registry)
