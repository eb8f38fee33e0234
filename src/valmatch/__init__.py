from .engine import MatchingEngine
from .errors import ConfigurationError
from .matchers import CandidateShape, DeferredValueMatcher, ValueMatcher
from .models import (
    CompositeIdentifier,
    Entity,
    IdentifiedEntity,
    MatchRule,
    Range,
    RuleSet,
)
from .registry import ConverterRegistry, ConverterResolver, default_registry

# Ensure built-in converters are registered on package import
from . import converters as _converters  # noqa: F401

__all__ = [
    "MatchingEngine",
    "ConfigurationError",
    "CandidateShape",
    "DeferredValueMatcher",
    "ValueMatcher",
    "CompositeIdentifier",
    "Entity",
    "IdentifiedEntity",
    "MatchRule",
    "Range",
    "RuleSet",
    "ConverterRegistry",
    "ConverterResolver",
    "default_registry",
]
