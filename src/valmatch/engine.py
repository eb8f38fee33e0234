from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Tuple

from .matchers import DeferredValueMatcher, ValueMatcher
from .models import EngineResult, MatchRule, RuleResult, RuleSet
from .registry import ConverterResolver, default_registry

logger = logging.getLogger(__name__)

_MISSING = object()


def read_property(record: Any, path: str) -> Any:
    """Follow a dotted property path through mappings and objects.

    A missing segment or a ``None`` along the way yields ``None``.
    """
    value = record
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, _MISSING)
            if value is _MISSING:
                return None
    return value


class CompiledRule:
    def __init__(self, rule: MatchRule, conditions: List[Tuple[str, ValueMatcher]]) -> None:
        self.rule = rule
        self.conditions = conditions

    @property
    def name(self) -> str:
        return self.rule.name

    def owner_type(self, record: Any) -> Any:
        return self.rule.entity if self.rule.entity is not None else type(record)

    def matches(self, record: Any) -> bool:
        owner_type = self.owner_type(record)
        for path, matcher in self.conditions:
            property_name = path.rsplit(".", 1)[-1]
            if not matcher.matches(owner_type, property_name, read_property(record, path)):
                return False
        return True


class MatchingEngine:
    def __init__(
        self,
        resolver: ConverterResolver | None = None,
    ) -> None:
        self.resolver = resolver or default_registry

    def compile(self, rule: MatchRule) -> CompiledRule:
        # One matcher per condition, reused for every record of the pass
        conditions: List[Tuple[str, ValueMatcher]] = [
            (path, DeferredValueMatcher(self.resolver, expected)) for path, expected in rule.match.items()
        ]
        return CompiledRule(rule, conditions)

    def match(
        self,
        records: Iterable[Any],
        ruleset: RuleSet,
        *,
        id_field: str = "id",
    ) -> EngineResult:
        record_list = list(records)
        result = EngineResult()
        matched_any: set[str] = set()
        record_ids = [str(read_property(r, id_field)) for r in record_list]

        for rule in ruleset.rules:
            compiled = self.compile(rule)
            rule_result = RuleResult(rule_name=rule.name)
            for record_id, record in zip(record_ids, record_list):
                rule_result.evaluated += 1
                if compiled.matches(record):
                    rule_result.matched_ids.append(record_id)
                    matched_any.add(record_id)
            logger.info("Rule %s matched %d of %d records", compiled.name, rule_result.matched, rule_result.evaluated)
            result.results.append(rule_result)

        result.unmatched_ids = [rid for rid in record_ids if rid not in matched_any]
        return result
