"""Glob matching for resource, action and application names.

Only ``*`` is special: it matches zero or more characters. Matching is
case-sensitive and exact otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache

from bastion.errors import ConfigurationError

logger = logging.getLogger(__name__)

WILDCARD = "*"
EXCLUDE_PREFIX = "-"


def matches(pattern: str, name: str) -> bool:
    """Check if ``name`` matches the glob ``pattern``."""
    if WILDCARD not in pattern:
        return pattern == name
    if pattern == WILDCARD:
        return True
    return _glob_match(pattern, name)


def _glob_match(pattern: str, name: str) -> bool:
    # Two-pointer scan, backtracking only to the most recent star.
    p = n = 0
    star = -1
    mark = 0
    while n < len(name):
        if p < len(pattern) and pattern[p] == WILDCARD:
            star = p
            mark = n
            p += 1
        elif p < len(pattern) and pattern[p] == name[n]:
            p += 1
            n += 1
        elif star >= 0:
            p = star + 1
            mark += 1
            n = mark
        else:
            return False
    while p < len(pattern) and pattern[p] == WILDCARD:
        p += 1
    return p == len(pattern)


def matches_any(patterns: Iterable[str], name: str) -> bool:
    return any(matches(pattern, name) for pattern in patterns)


def covers(granted: Iterable[str], requested: Iterable[str]) -> bool:
    """Check that every requested pattern is matched by some granted pattern.

    The requested pattern is matched literally, so ``feature/*`` is covered by
    ``feature/*`` or ``*`` but not by ``feature/read``.
    """
    granted = tuple(granted)
    requested = tuple(requested)
    if not requested:
        return False
    return all(matches_any(granted, pattern) for pattern in requested)


def validate_pattern(pattern: str) -> str:
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigurationError(f"Invalid pattern: {pattern!r}")
    if pattern == EXCLUDE_PREFIX:
        raise ConfigurationError("Exclusion pattern must name something after '-'")
    return pattern


@dataclass(frozen=True)
class PatternSet:
    """A set of globs with exclusions.

    A name matches when it matches any positive pattern and no negative one.
    """

    positive: frozenset[str] = field(default_factory=frozenset)
    negative: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def parse(cls, patterns: Iterable[str]) -> PatternSet:
        """Build a set from raw strings, where a leading ``-`` marks an exclusion."""
        positive: set[str] = set()
        negative: set[str] = set()
        for pattern in patterns:
            validate_pattern(pattern)
            if pattern.startswith(EXCLUDE_PREFIX):
                negative.add(validate_pattern(pattern[len(EXCLUDE_PREFIX) :]))
            else:
                positive.add(pattern)
        return cls(frozenset(positive), frozenset(negative))

    @classmethod
    def of(cls, *patterns: str) -> PatternSet:
        return cls.parse(patterns)

    def matches(self, name: str) -> bool:
        return matches_any(self.positive, name) and not matches_any(self.negative, name)

    def is_empty(self) -> bool:
        return not self.positive

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.matches(name)


class RestrictedIndices:
    """Predicate flagging system-internal index names."""

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = PatternSet.parse(patterns)
        self._is_restricted = lru_cache(maxsize=4096)(self._patterns.matches)

    def is_restricted(self, name: str) -> bool:
        return self._is_restricted(name)

    def __repr__(self) -> str:
        return f"RestrictedIndices({sorted(self._patterns.positive)!r})"
