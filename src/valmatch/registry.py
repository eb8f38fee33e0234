from __future__ import annotations

from typing import Any, Callable, Hashable, Iterator, Optional, Protocol, Tuple

Converter = Callable[[Any], Any]

# (owner_type, property_name, target_type); None acts as a wildcard
_Key = Tuple[Optional[Hashable], Optional[str], type]


class ConverterResolver(Protocol):
    def resolve(self, owner_type: Any, property_name: str, target_type: type) -> Converter | None:
        ...


def _owner_candidates(owner_type: Any) -> Iterator[Hashable]:
    if isinstance(owner_type, type):
        yield from owner_type.__mro__
    elif owner_type is not None:
        yield owner_type


class ConverterRegistry:
    """Converters from an expected literal to a candidate's runtime type.

    Registrations can be scoped to an owner type and/or a property name.
    ``resolve`` prefers the most specific registration: owner and property,
    then property only, then the plain target type default.
    """

    def __init__(self) -> None:
        self._key_to_converter: dict[_Key, Converter] = {}
        self._key_to_description: dict[_Key, str] = {}

    def register(
        self,
        target_type: type,
        func: Converter,
        *,
        owner_type: Hashable | None = None,
        property_name: str | None = None,
        description: str | None = None,
    ) -> None:
        if not isinstance(target_type, type):
            raise TypeError(f"Target type must be a class, got {target_type!r}")
        if property_name is not None:
            property_name = property_name.strip()
            if not property_name:
                raise ValueError("Property name cannot be empty")
        if owner_type is not None and property_name is None:
            raise ValueError("Owner-scoped converters need a property name")
        key = (owner_type, property_name, target_type)
        self._key_to_converter[key] = func
        if description:
            self._key_to_description[key] = description

    def _lookup_keys(self, owner_type: Any, property_name: str | None, target_type: type) -> Iterator[_Key]:
        if property_name is not None:
            for owner in _owner_candidates(owner_type):
                yield (owner, property_name, target_type)
            yield (None, property_name, target_type)
        yield (None, None, target_type)

    def resolve(self, owner_type: Any, property_name: str | None, target_type: type) -> Converter | None:
        for key in self._lookup_keys(owner_type, property_name, target_type):
            converter = self._key_to_converter.get(key)
            if converter is not None:
                return converter
        return None

    def get(self, target_type: type) -> Converter:
        try:
            return self._key_to_converter[(None, None, target_type)]
        except KeyError as exc:
            available = ", ".join(t.__name__ for t in self.targets())
            raise KeyError(f"No converter for '{target_type.__name__}'. Available: {available}") from exc

    def describe(self, target_type: type) -> str | None:
        return self._key_to_description.get((None, None, target_type))

    def targets(self) -> list[type]:
        return sorted(
            {key[2] for key in self._key_to_converter if key[0] is None and key[1] is None},
            key=lambda t: t.__name__,
        )

    def __contains__(self, target_type: object) -> bool:
        return any(key[2] is target_type for key in self._key_to_converter)


# Default registry with built-in converters populated in converters.py
default_registry = ConverterRegistry()

