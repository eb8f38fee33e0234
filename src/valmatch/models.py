from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml


ID_SEPARATOR = "_"


class Range(BaseModel):
    """Closed numeric interval; ``min <= max`` is not enforced."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class CompositeIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., description="Owning data source, e.g. the agency id")
    local_id: str = Field(..., description="Identifier within the namespace")

    @classmethod
    def parse(cls, text: str) -> "CompositeIdentifier":
        namespace, sep, local_id = text.partition(ID_SEPARATOR)
        if not sep:
            raise ValueError(f"Composite identifier '{text}' has no '{ID_SEPARATOR}' separator")
        return cls(namespace=namespace, local_id=local_id)

    def __str__(self) -> str:
        return f"{self.namespace}{ID_SEPARATOR}{self.local_id}"


Identifier = Union[str, CompositeIdentifier]


@runtime_checkable
class IdentifiedEntity(Protocol):
    id: Optional[Identifier]


class Entity(BaseModel):
    # Records carry arbitrary extra fields next to their identifier
    model_config = ConfigDict(extra="allow")

    id: Identifier | None = None


# Rule configuration

class MatchRule(BaseModel):
    name: str
    description: str | None = None
    entity: str | None = Field(
        default=None,
        description="Entity type name handed to converters as the owner type. Defaults to the record class.",
    )
    match: Dict[str, Any] = Field(..., description="Property path -> expected value")

    @field_validator("match")
    @classmethod
    def _validate_match_non_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("Rule must define at least one property condition")
        for path in v:
            if not path.strip():
                raise ValueError("Property path cannot be empty")
        return v


class RuleSet(BaseModel):
    rules: List[MatchRule]

    @field_validator("rules")
    @classmethod
    def _validate_rules(cls, v: List[MatchRule]) -> List[MatchRule]:
        if not v:
            raise ValueError("RuleSet must contain at least one rule")
        names = [r.name for r in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate rule names: {', '.join(duplicates)}")
        return v

    @classmethod
    def from_yaml(cls, yaml_text: str) -> "RuleSet":
        raw = yaml.safe_load(yaml_text)
        if not isinstance(raw, dict) or "rules" not in raw:
            raise ValueError("Rules YAML must be a mapping with a 'rules' key")
        return cls.model_validate(raw)

    @classmethod
    def from_yaml_file(cls, path: str) -> "RuleSet":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_yaml(f.read())


# Output models

class RuleResult(BaseModel):
    rule_name: str
    matched_ids: List[str] = Field(default_factory=list)
    evaluated: int = 0

    @property
    def matched(self) -> int:
        return len(self.matched_ids)


class EngineResult(BaseModel):
    results: List[RuleResult] = Field(default_factory=list)
    unmatched_ids: List[str] = Field(
        default_factory=list, description="Records not matched by any rule"
    )

    def for_rule(self, name: str) -> RuleResult:
        for result in self.results:
            if result.rule_name == name:
                return result
        available = ", ".join(r.rule_name for r in self.results)
        raise KeyError(f"Rule '{name}' not found. Available: {available}")
