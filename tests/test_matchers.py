from __future__ import annotations

from datetime import date
import threading
import time
from typing import Any

import pytest

from valmatch import ConfigurationError, ConverterRegistry, default_registry
from valmatch.matchers import (
    CandidateShape,
    DeferredValueMatcher,
    Resolved,
    UNRESOLVED,
    classify_candidate,
)
from valmatch.models import CompositeIdentifier, Entity


class Stop:
    pass


class CountingResolver:
    def __init__(self, registry: ConverterRegistry) -> None:
        self.registry = registry
        self.calls = 0

    def resolve(self, owner_type: Any, property_name: str, target_type: type):
        self.calls += 1
        return self.registry.resolve(owner_type, property_name, target_type)


def matcher(expected: Any) -> DeferredValueMatcher:
    return DeferredValueMatcher(default_registry, expected)


def test_null_expected_matches_only_null():
    m = matcher(None)
    assert m.matches(Stop, "stop_name", None)
    assert not m.matches(Stop, "stop_name", "Degerloch")
    assert not m.matches(Stop, "location_type", 0)


def test_null_candidate_never_matches_non_null_expected():
    assert not matcher("Degerloch").matches(Stop, "stop_name", None)
    assert not matcher("m/.*/").matches(Stop, "stop_name", None)


def test_plain_string_equality():
    m = matcher("Degerloch")
    assert m.matches(Stop, "stop_name", "Degerloch")
    assert not m.matches(Stop, "stop_name", "degerloch")


def test_regex_marker_uses_full_match():
    m = matcher("m/^A.*/")
    assert m.matches(Stop, "stop_name", "ABC")
    assert not m.matches(Stop, "stop_name", "BAC")
    assert not m.matches(Stop, "stop_name", "xABC")


def test_regex_marker_scenario():
    m = matcher("m/Degerloch/")
    assert m.matches(Stop, "stop_name", "Degerloch")
    assert not m.matches(Stop, "stop_name", "Stuttgart")
    assert not m.matches(Stop, "stop_name", "Degerloch Gleis 1")


def test_invalid_regex_marker_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        matcher("m/(/").matches(Stop, "stop_name", "(")


def test_range_marker_is_inclusive():
    m = matcher("r/1.5/3.0/")
    assert m.matches(Stop, "stop_lat", 2.0)
    assert not m.matches(Stop, "stop_lat", 3.5)
    assert m.matches(Stop, "stop_lat", 3.0)
    assert m.matches(Stop, "stop_lat", 1.5)
    assert not m.matches(Stop, "stop_lat", 1.4)


def test_range_marker_scenario():
    m = matcher("r/0/100/")
    assert m.matches(Stop, "shape_dist_traveled", 99.999999)
    assert not m.matches(Stop, "shape_dist_traveled", 100.0001)


def test_range_marker_accepts_integer_candidates():
    m = matcher("r/0/100/")
    assert m.matches(Stop, "shape_dist_traveled", 100)
    assert not m.matches(Stop, "shape_dist_traveled", 101)
    assert m.resolution is UNRESOLVED


def test_range_is_parsed_once():
    m = matcher("r/1/2/")
    assert m.range() is m.range()
    assert m.range().min == 1.0 and m.range().max == 2.0


def test_composite_identifier_candidate_compares_local_id():
    candidate = CompositeIdentifier(namespace="1", local_id="42")
    assert matcher("42").matches(Stop, "parent_station", candidate)
    assert matcher("m/4.*/").matches(Stop, "parent_station", candidate)
    assert not matcher("43").matches(Stop, "parent_station", candidate)
    assert not matcher("1_42").matches(Stop, "parent_station", candidate)


def test_identified_entity_candidate():
    assert matcher("42").matches(Stop, "route", Entity(id="42"))
    assert matcher("42").matches(Stop, "route", Entity(id=CompositeIdentifier(namespace="VVS", local_id="42")))
    assert not matcher("43").matches(Stop, "route", Entity(id="42"))


def test_identified_entity_without_id_never_matches():
    m = matcher("42")
    assert not m.matches(Stop, "route", Entity())
    assert not m.matches(Stop, "route", Entity(id=None))


def test_identified_entity_does_not_apply_regex():
    entity = Entity(id=CompositeIdentifier(namespace="VVS", local_id="42"))
    assert not matcher("m/4.*/").matches(Stop, "route", entity)


def test_same_family_for_non_string_expected():
    m = matcher(CompositeIdentifier(namespace="1", local_id="42"))
    assert m.matches(Stop, "parent_station", CompositeIdentifier(namespace="1", local_id="42"))
    assert not m.matches(Stop, "parent_station", CompositeIdentifier(namespace="2", local_id="42"))


def test_converter_resolution_is_cached():
    resolver = CountingResolver(default_registry)
    m = DeferredValueMatcher(resolver, "3")
    assert m.matches(Stop, "location_type", 3)
    assert m.matches(Stop, "location_type", 3)
    assert not m.matches(Stop, "location_type", 2)
    assert resolver.calls == 1
    assert m.resolution == Resolved(3)


def test_converter_called_once():
    calls: list[Any] = []
    registry = ConverterRegistry()
    registry.register(int, lambda v: calls.append(v) or int(v))
    m = DeferredValueMatcher(registry, "7")
    for _ in range(5):
        assert m.matches(Stop, "wheelchair_boarding", 7)
    assert calls == ["7"]


def test_cached_resolution_is_trusted_for_later_candidate_types():
    m = matcher("1")
    assert m.matches(Stop, "location_type", 1)
    # The string "1" would match by equality, but the resolved int is used
    assert not m.matches(Stop, "location_type", "1")


def test_bool_and_date_converters():
    assert matcher("true").matches(Stop, "wheelchair_boarding", True)
    assert not matcher("no").matches(Stop, "wheelchair_boarding", True)
    assert matcher("20240101").matches(Stop, "start_date", date(2024, 1, 1))
    assert matcher("2024-01-02").matches(Stop, "start_date", date(2024, 1, 2))


def test_unregistered_conversion_raises():
    m = DeferredValueMatcher(ConverterRegistry(), "3")
    with pytest.raises(ConfigurationError) as info:
        m.matches(Stop, "location_type", 3)
    assert "builtins.str" in str(info.value)
    assert "builtins.int" in str(info.value)
    assert m.resolution is UNRESOLVED


def test_unknown_candidate_type_raises():
    with pytest.raises(ConfigurationError):
        matcher("x").matches(Stop, "stop_name", Stop())


def test_incompatible_non_string_expected_raises():
    with pytest.raises(ConfigurationError) as info:
        matcher(5).matches(Stop, "location_type", "5")
    assert info.value.expected_type is int
    assert info.value.actual_type is str


def test_failing_converter_raises_configuration_error():
    with pytest.raises(ConfigurationError) as info:
        matcher("abc").matches(Stop, "location_type", 3)
    assert isinstance(info.value.__cause__, ValueError)


def test_classify_candidate():
    assert classify_candidate("a", "b") is CandidateShape.SAME_FAMILY
    assert classify_candidate("a", CompositeIdentifier(namespace="1", local_id="a")) is CandidateShape.COMPOSITE_IDENTIFIER
    assert classify_candidate("a", 1.0) is CandidateShape.NUMERIC
    assert classify_candidate("a", True) is CandidateShape.CONVERTIBLE
    assert classify_candidate("a", Entity(id="a")) is CandidateShape.IDENTIFIED_ENTITY
    assert classify_candidate("a", date(2024, 1, 1)) is CandidateShape.CONVERTIBLE
    assert classify_candidate(1, "1") is CandidateShape.UNRECOGNIZED


class Platform:
    pass


def test_identified_entity_recognized_per_instance():
    with_id = Platform()
    with_id.id = "42"  # type: ignore[attr-defined]
    other = Platform()
    other.id = "43"  # type: ignore[attr-defined]

    m = matcher("42")
    assert m.matches(Stop, "parent_station", with_id)
    # Without an id the instance is no identified entity and has no converter
    with pytest.raises(ConfigurationError):
        m.matches(Stop, "parent_station", Platform())
    assert not m.matches(Stop, "parent_station", other)


def test_instance_with_id_after_instance_without():
    with_id = Platform()
    with_id.id = "42"  # type: ignore[attr-defined]

    m = matcher("42")
    with pytest.raises(ConfigurationError):
        m.matches(Stop, "parent_station", Platform())
    assert m.matches(Stop, "parent_station", with_id)


def test_shared_matcher_converts_once_across_threads():
    calls: list[Any] = []

    def slow_int(value: Any) -> int:
        time.sleep(0.05)
        calls.append(value)
        return int(value)

    registry = ConverterRegistry()
    registry.register(int, slow_int)
    m = DeferredValueMatcher(registry, "3")
    results: list[bool] = []
    results_lock = threading.Lock()

    def worker() -> None:
        outcome = m.matches(Stop, "location_type", 3)
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [True] * 8
    assert calls == ["3"]


def test_repr_shows_expected_value():
    assert repr(matcher("m/U.*/")) == "DeferredValueMatcher('m/U.*/')"
    assert matcher("7").expected_value == "7"
