# Copyright (c) Syntropy Systems
"""Covariate categories, values and resolved profiles."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator, Mapping
from datetime import time
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from typing_extensions import Annotated, TypeAlias, override

from .base import FrozenModel

if TYPE_CHECKING:
    from collections.abc import Iterable

_TIME_WINDOW_PATTERN = re.compile(r"^(\d{2}:\d{2})-(\d{2}:\d{2}) (\S+)$")


class CovariateCategory(str, Enum):
    """Classification of covariates by their matching semantics.

    CONFIGURATION is a hard gate: a mismatch disqualifies a baseline.
    Every other category is a soft match that only lowers the score.
    """

    TEMPORAL = "TEMPORAL"
    CONFIGURATION = "CONFIGURATION"
    EXTERNAL_DEPENDENCY = "EXTERNAL_DEPENDENCY"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    OPERATIONAL = "OPERATIONAL"
    DATA_STATE = "DATA_STATE"

    @property
    def is_hard_gate(self) -> bool:
        return self is CovariateCategory.CONFIGURATION


class TextValue(FrozenModel):
    """A covariate value that is a plain label."""

    kind: Literal["text"] = "text"
    value: str

    def canonical(self) -> str:
        return self.value

    @override
    def __eq__(self, other: object) -> bool:
        if isinstance(other, (TextValue, TimeWindowValue)):
            return self.canonical() == other.canonical()
        return NotImplemented

    @override
    def __hash__(self) -> int:
        return hash(self.canonical())

    @override
    def __str__(self) -> str:
        return self.canonical()


class TimeWindowValue(FrozenModel):
    """A wall-clock window in a named timezone.

    A window whose start equals its end is a single point in time. A window
    whose start is after its end wraps past midnight.
    """

    kind: Literal["time_window"] = "time_window"
    start: time
    end: time
    timezone: str

    @field_validator("start", "end")
    @classmethod
    def _truncate_to_minute(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            _ = ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"Unknown timezone: {value!r}"
            raise ValueError(msg) from e
        return value

    def canonical(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M} {self.timezone}"

    def contains(self, point: time) -> bool:
        """Return True if point falls in the window, bounds inclusive."""
        point = point.replace(second=0, microsecond=0, tzinfo=None)
        if self.start <= self.end:
            return self.start <= point <= self.end
        return point >= self.start or point <= self.end

    @classmethod
    def parse(cls, canonical: str) -> TimeWindowValue:
        """Parse a window from its canonical ``HH:MM-HH:MM zone`` form."""
        match = _TIME_WINDOW_PATTERN.match(canonical.strip())
        if match is None:
            msg = f"Invalid time window format: {canonical!r}"
            raise ValueError(msg)
        start, end, zone = match.groups()
        return cls(
            start=time.fromisoformat(start),
            end=time.fromisoformat(end),
            timezone=zone,
        )

    @override
    def __eq__(self, other: object) -> bool:
        if isinstance(other, (TextValue, TimeWindowValue)):
            return self.canonical() == other.canonical()
        return NotImplemented

    @override
    def __hash__(self) -> int:
        return hash(self.canonical())

    @override
    def __str__(self) -> str:
        return self.canonical()


CovariateValue: TypeAlias = Annotated[
    Union[TextValue, TimeWindowValue], Field(discriminator="kind")
]

# Sentinel for a covariate that could not be resolved. Never conforms.
NOT_SET = TextValue(value="not_set")


def is_not_set(value: TextValue | TimeWindowValue) -> bool:
    return value.canonical() == NOT_SET.value


def value_from_canonical(text: str) -> TextValue | TimeWindowValue:
    """Rebuild a covariate value from its stored canonical string."""
    if _TIME_WINDOW_PATTERN.match(text.strip()):
        try:
            return TimeWindowValue.parse(text)
        except ValueError:
            return TextValue(value=text)
    return TextValue(value=text)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class CovariateProfile(Mapping[str, Union[TextValue, TimeWindowValue]]):
    """Ordered, immutable mapping from covariate key to resolved value."""

    __slots__ = ("_values",)

    def __init__(
        self,
        entries: Iterable[tuple[str, TextValue | TimeWindowValue]]
        | Mapping[str, TextValue | TimeWindowValue] = (),
    ) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        values: dict[str, TextValue | TimeWindowValue] = {}
        for key, value in items:
            if key in values:
                msg = f"Duplicate covariate key in profile: {key!r}"
                raise ValueError(msg)
            values[key] = value
        self._values = MappingProxyType(values)

    @classmethod
    def empty(cls) -> CovariateProfile:
        return cls()

    @override
    def __getitem__(self, key: str) -> TextValue | TimeWindowValue:
        return self._values[key]

    @override
    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    @override
    def __len__(self) -> int:
        return len(self._values)

    @override
    def __eq__(self, other: object) -> bool:
        if isinstance(other, CovariateProfile):
            return list(self.canonical_items()) == list(other.canonical_items())
        return NotImplemented

    @override
    def __hash__(self) -> int:
        return hash(tuple(self.canonical_items()))

    @override
    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v}" for k, v in self.canonical_items())
        return f"CovariateProfile({body})"

    def canonical_items(self) -> Iterator[tuple[str, str]]:
        for key, value in self._values.items():
            yield key, value.canonical()

    def profile_hash(self) -> str:
        """Stable hash over every key and value, in order."""
        return _sha256("".join(f"{k}={v}\n" for k, v in self.canonical_items()))

    def value_hashes(self) -> list[str]:
        """One stable hash per entry, in declaration order."""
        return [_sha256(f"{k}={v}") for k, v in self.canonical_items()]
