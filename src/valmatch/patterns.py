"""String conventions embedded in expected values.

``m/<pattern>/`` marks a regular expression that must match the whole
candidate string, ``r/<min>/<max>/`` marks a closed numeric range.
"""
from __future__ import annotations

from functools import lru_cache
import re

from .errors import ConfigurationError
from .models import Range

REGEX_PREFIX = "m/"
MARKER_SUFFIX = "/"

_RANGE_MARKER = re.compile(r"r/(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)/")


def is_regex_marker(text: str) -> bool:
    return (
        len(text) >= len(REGEX_PREFIX) + len(MARKER_SUFFIX)
        and text.startswith(REGEX_PREFIX)
        and text.endswith(MARKER_SUFFIX)
    )


def regex_body(marker: str) -> str:
    return marker[len(REGEX_PREFIX):-len(MARKER_SUFFIX)]


@lru_cache(maxsize=256)
def _compile(body: str) -> re.Pattern[str]:
    try:
        return re.compile(body)
    except re.error as exc:
        raise ConfigurationError(f"Invalid regex marker 'm/{body}/': {exc}") from exc


def regex_matches(candidate: str, marker: str) -> bool:
    return _compile(regex_body(marker)).fullmatch(candidate) is not None


def parse_range_marker(text: str) -> Range | None:
    m = _RANGE_MARKER.fullmatch(text)
    if m is None:
        return None
    return Range(min=float(m.group(1)), max=float(m.group(2)))
