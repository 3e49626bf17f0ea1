# Copyright (c) Syntropy Systems
"""Conformance matchers between baseline and current covariate values."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol, Union

from baseliner.models.covariate import TextValue, TimeWindowValue, is_not_set
from baseliner.models.declaration import REGION_KEY, TIME_OF_DAY_KEY
from baseliner.models.selection import MatchResult


class CovariateMatcher(Protocol):
    def match(
        self,
        baseline_value: TextValue | TimeWindowValue,
        test_value: TextValue | TimeWindowValue,
    ) -> MatchResult: ...


@dataclass(frozen=True)
class ExactStringMatcher:
    """Canonical string equality. NOT_SET on either side never conforms."""

    case_sensitive: bool = True

    def match(
        self,
        baseline_value: TextValue | TimeWindowValue,
        test_value: TextValue | TimeWindowValue,
    ) -> MatchResult:
        if is_not_set(baseline_value) or is_not_set(test_value):
            return MatchResult.DOES_NOT_CONFORM

        left = baseline_value.canonical()
        right = test_value.canonical()
        if not self.case_sensitive:
            left, right = left.casefold(), right.casefold()
        return MatchResult.CONFORMS if left == right else MatchResult.DOES_NOT_CONFORM


@dataclass(frozen=True)
class TimeWindowMatcher:
    """Conforms when the test time falls inside the baseline's window.

    Partitioned time-of-day values are plain labels and compare exactly.
    """

    def match(
        self,
        baseline_value: TextValue | TimeWindowValue,
        test_value: TextValue | TimeWindowValue,
    ) -> MatchResult:
        if isinstance(baseline_value, TimeWindowValue) and isinstance(
            test_value, TimeWindowValue
        ):
            if baseline_value.contains(test_value.start):
                return MatchResult.CONFORMS
            return MatchResult.DOES_NOT_CONFORM

        if isinstance(baseline_value, TextValue) and isinstance(test_value, TextValue):
            return ExactStringMatcher().match(baseline_value, test_value)

        return MatchResult.DOES_NOT_CONFORM


AnyMatcher = Union[ExactStringMatcher, TimeWindowMatcher, CovariateMatcher]

DEFAULT_MATCHER = ExactStringMatcher()


class MatcherRegistry:
    """Immutable key to matcher mapping with an exact-match default."""

    __slots__ = ("_default", "_matchers")

    def __init__(
        self,
        matchers: Mapping[str, AnyMatcher] | None = None,
        default: AnyMatcher = DEFAULT_MATCHER,
    ) -> None:
        self._matchers = MappingProxyType(dict(matchers or {}))
        self._default = default

    @classmethod
    def standard(cls) -> MatcherRegistry:
        """Region ignores case, time of day uses window containment."""
        return cls(
            {
                REGION_KEY: ExactStringMatcher(case_sensitive=False),
                TIME_OF_DAY_KEY: TimeWindowMatcher(),
            }
        )

    def with_matcher(self, key: str, matcher: AnyMatcher) -> MatcherRegistry:
        matchers = dict(self._matchers)
        matchers[key] = matcher
        return MatcherRegistry(matchers, self._default)

    def matcher_for(self, key: str) -> AnyMatcher:
        return self._matchers.get(key, self._default)

    def match(
        self,
        key: str,
        baseline_value: TextValue | TimeWindowValue,
        test_value: TextValue | TimeWindowValue,
    ) -> MatchResult:
        return self.matcher_for(key).match(baseline_value, test_value)
