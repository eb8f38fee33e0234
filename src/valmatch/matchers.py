from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
import logging
import threading
from typing import Any, Dict, NamedTuple, Union

from .errors import ConfigurationError
from .models import CompositeIdentifier, IdentifiedEntity, Range
from .patterns import is_regex_marker, parse_range_marker, regex_matches
from .registry import ConverterResolver

logger = logging.getLogger(__name__)


class ValueMatcher(ABC):
    @abstractmethod
    def matches(self, owner_type: Any, property_name: str, actual_value: Any) -> bool:
        """Return True if ``actual_value``, read from ``property_name`` of an
        ``owner_type`` record, satisfies this matcher."""


class CandidateShape(Enum):
    SAME_FAMILY = "same_family"
    COMPOSITE_IDENTIFIER = "composite_identifier"
    NUMERIC = "numeric"
    IDENTIFIED_ENTITY = "identified_entity"
    CONVERTIBLE = "convertible"
    UNRECOGNIZED = "unrecognized"


def classify_candidate(expected_value: Any, actual_value: Any) -> CandidateShape:
    """Decide how a candidate compares against a non-null expected value.

    Only the candidate's runtime type matters, except for identified
    entities, which are recognized structurally by their ``id`` attribute.
    """
    actual_type = type(actual_value)
    if isinstance(expected_value, actual_type):
        return CandidateShape.SAME_FAMILY
    if not isinstance(expected_value, str):
        return CandidateShape.UNRECOGNIZED
    if issubclass(actual_type, CompositeIdentifier):
        return CandidateShape.COMPOSITE_IDENTIFIER
    if issubclass(actual_type, (float, int)) and not issubclass(actual_type, bool):
        return CandidateShape.NUMERIC
    if isinstance(actual_value, IdentifiedEntity):
        return CandidateShape.IDENTIFIED_ENTITY
    return CandidateShape.CONVERTIBLE


class Unresolved(Enum):
    UNRESOLVED = "unresolved"


UNRESOLVED = Unresolved.UNRESOLVED


class Resolved(NamedTuple):
    value: Any


Resolution = Union[Unresolved, Resolved]

_STRUCTURAL_SHAPES = (CandidateShape.IDENTIFIED_ENTITY, CandidateShape.CONVERTIBLE)


class DeferredValueMatcher(ValueMatcher):
    """Matches candidates against one configured expected value.

    The expected value is usually a literal from a rule file, so its type
    rarely equals the candidate's. The first time a registered converter is
    needed, its result is cached and every later call compares candidates
    against that converted value directly, whatever their type.
    """

    def __init__(self, resolver: ConverterResolver, expected_value: Any) -> None:
        self._resolver = resolver
        self._value = expected_value
        # Held while the resolver and converter run; converters must not call
        # back into the same matcher.
        self._lock = threading.Lock()
        self._resolution: Resolution = UNRESOLVED
        self._shapes: Dict[type, CandidateShape] = {}
        self._is_regex: bool | None = None
        self._range: Range | None = None
        self._range_parsed = False

    @property
    def expected_value(self) -> Any:
        return self._value

    @property
    def resolution(self) -> Resolution:
        return self._resolution

    def is_regex(self) -> bool:
        if self._is_regex is None:
            with self._lock:
                if self._is_regex is None:
                    self._is_regex = isinstance(self._value, str) and is_regex_marker(self._value)
        return self._is_regex

    def range(self) -> Range | None:
        if not self._range_parsed:
            with self._lock:
                if not self._range_parsed:
                    if isinstance(self._value, str):
                        self._range = parse_range_marker(self._value)
                    self._range_parsed = True
        return self._range

    def _shape(self, actual_value: Any) -> CandidateShape:
        actual_type = type(actual_value)
        shape = self._shapes.get(actual_type)
        if shape is None:
            shape = classify_candidate(self._value, actual_value)
            with self._lock:
                self._shapes.setdefault(actual_type, shape)
            logger.debug("Candidate type %s classified as %s for %r", actual_type.__name__, shape.value, self._value)
        if shape in _STRUCTURAL_SHAPES:
            # Instances of one class may differ in whether they carry an id
            if isinstance(actual_value, IdentifiedEntity):
                return CandidateShape.IDENTIFIED_ENTITY
            return CandidateShape.CONVERTIBLE
        return shape

    def matches(self, owner_type: Any, property_name: str, actual_value: Any) -> bool:
        if actual_value is None:
            return self._value is None
        if self._value is None:
            return False

        resolution = self._resolution
        if isinstance(resolution, Resolved):
            return actual_value == resolution.value

        shape = self._shape(actual_value)
        if shape is CandidateShape.SAME_FAMILY:
            if self.is_regex():
                return regex_matches(str(actual_value), self._value)
            return actual_value == self._value
        if shape is CandidateShape.COMPOSITE_IDENTIFIER:
            if self.is_regex():
                return regex_matches(actual_value.local_id, self._value)
            return actual_value.local_id == self._value
        if shape is CandidateShape.NUMERIC:
            value_range = self.range()
            if value_range is not None:
                return value_range.contains(actual_value)
            return self._convert_and_compare(owner_type, property_name, actual_value)
        if shape is CandidateShape.IDENTIFIED_ENTITY:
            return self._match_entity(actual_value)
        if shape is CandidateShape.CONVERTIBLE:
            return self._convert_and_compare(owner_type, property_name, actual_value)
        raise ConfigurationError.no_conversion(type(self._value), type(actual_value))

    def _match_entity(self, entity: IdentifiedEntity) -> bool:
        identifier = getattr(entity, "id", None)
        if identifier is None:
            return False
        if isinstance(identifier, CompositeIdentifier):
            return identifier.local_id == self._value
        if isinstance(identifier, str):
            return identifier == self._value
        raise ConfigurationError.no_conversion(type(self._value), type(entity))

    def _convert_and_compare(self, owner_type: Any, property_name: str, actual_value: Any) -> bool:
        actual_type = type(actual_value)
        with self._lock:
            resolution = self._resolution
            if isinstance(resolution, Unresolved):
                converter = self._resolver.resolve(owner_type, property_name, actual_type)
                if converter is None:
                    raise ConfigurationError.no_conversion(type(self._value), actual_type)
                try:
                    converted = converter(self._value)
                except (TypeError, ValueError) as exc:
                    raise ConfigurationError(
                        f"cannot convert {self._value!r} to type \"{actual_type.__name__}\" "
                        f"for property '{property_name}': {exc}",
                        expected_type=type(self._value),
                        actual_type=actual_type,
                    ) from exc
                resolution = Resolved(converted)
                self._resolution = resolution
                logger.debug(
                    "Resolved %r to %r (%s) for property '%s'",
                    self._value,
                    converted,
                    actual_type.__name__,
                    property_name,
                )
        return actual_value == resolution.value

    def __repr__(self) -> str:
        return f"DeferredValueMatcher({self.expected_value!r})"
