# Copyright (c) Syntropy Systems
"""Validated covariate declarations.

Instances are built by ``baseliner.declaration`` which enforces the
partition invariants; the models here only describe the validated shape.
"""

from __future__ import annotations

from datetime import time
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import Field
from typing_extensions import Annotated, TypeAlias

from .base import FrozenModel
from .covariate import CovariateCategory

MINUTES_PER_DAY = 24 * 60

DAY_OF_WEEK_KEY = "day_of_week"
TIME_OF_DAY_KEY = "time_of_day"
REGION_KEY = "region"
TIMEZONE_KEY = "timezone"

REGION_REMAINDER_LABEL = "OTHER"


class Weekday(str, Enum):
    """Days of the week, in ``datetime.weekday()`` order."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def ordinal(self) -> int:
        return list(Weekday).index(self)

    @classmethod
    def from_index(cls, index: int) -> Weekday:
        return list(cls)[index]


WEEKEND = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})
WEEKDAYS = frozenset(Weekday) - WEEKEND


def derive_day_label(days: frozenset[Weekday]) -> str:
    """Label a set of days: WEEKEND, WEEKDAY, or the joined day names."""
    if days == WEEKEND:
        return "WEEKEND"
    if days == WEEKDAYS:
        return "WEEKDAY"
    return "_".join(day.value for day in sorted(days, key=lambda d: d.ordinal))


def format_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _gap_label(start: int, end: int) -> str:
    length = end - start
    if length > 0 and length % 60 == 0:
        return f"{format_minutes(start)}/{length // 60}h"
    return f"{format_minutes(start)}-{format_minutes(end)}"


class DayGroup(FrozenModel):
    """A set of days treated as one partition."""

    days: frozenset[Weekday]
    label: str

    def contains(self, day: Weekday) -> bool:
        return day in self.days


class TimePeriod(FrozenModel):
    """A half-open ``[start, start + duration)`` period within one day."""

    start: time
    duration_hours: int
    label: str

    @property
    def start_minutes(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_hours * 60

    def contains(self, point: time) -> bool:
        minutes = point.hour * 60 + point.minute
        return self.start_minutes <= minutes < self.end_minutes


class RegionGroup(FrozenModel):
    """A set of ISO country codes treated as one partition."""

    regions: frozenset[str]
    label: str

    def contains(self, region: str) -> bool:
        return region.strip().upper() in self.regions


class DayOfWeekSpec(FrozenModel):
    kind: Literal["day_of_week"] = "day_of_week"
    groups: tuple[DayGroup, ...] = ()
    category: CovariateCategory = CovariateCategory.TEMPORAL

    @property
    def key(self) -> str:
        return DAY_OF_WEEK_KEY

    @property
    def remainder(self) -> frozenset[Weekday]:
        declared: set[Weekday] = set()
        for group in self.groups:
            declared.update(group.days)
        return frozenset(Weekday) - declared

    @property
    def remainder_label(self) -> str:
        remainder = self.remainder
        return derive_day_label(remainder) if remainder else ""


class TimeOfDaySpec(FrozenModel):
    kind: Literal["time_of_day"] = "time_of_day"
    periods: tuple[TimePeriod, ...] = ()
    category: CovariateCategory = CovariateCategory.TEMPORAL

    @property
    def key(self) -> str:
        return TIME_OF_DAY_KEY

    @property
    def partitioned(self) -> bool:
        return bool(self.periods)

    def remainder_intervals(self) -> list[tuple[int, int]]:
        """Gaps not covered by any period, as minute offsets."""
        gaps: list[tuple[int, int]] = []
        cursor = 0
        for period in sorted(self.periods, key=lambda p: p.start_minutes):
            if cursor < period.start_minutes:
                gaps.append((cursor, period.start_minutes))
            cursor = period.end_minutes
        if cursor < MINUTES_PER_DAY:
            gaps.append((cursor, MINUTES_PER_DAY))
        return gaps

    @property
    def remainder_label(self) -> str:
        return ", ".join(_gap_label(s, e) for s, e in self.remainder_intervals())


class RegionSpec(FrozenModel):
    kind: Literal["region"] = "region"
    groups: tuple[RegionGroup, ...] = ()
    category: CovariateCategory = CovariateCategory.OPERATIONAL

    @property
    def key(self) -> str:
        return REGION_KEY

    @property
    def remainder_label(self) -> str:
        # Open domain: a remainder partition always exists.
        return REGION_REMAINDER_LABEL


class TimezoneSpec(FrozenModel):
    kind: Literal["timezone"] = "timezone"
    category: CovariateCategory = CovariateCategory.OPERATIONAL

    @property
    def key(self) -> str:
        return TIMEZONE_KEY


class CustomSpec(FrozenModel):
    kind: Literal["custom"] = "custom"
    name: str = Field(alias="key")
    category: CovariateCategory

    @property
    def key(self) -> str:
        return self.name


CovariateSpec: TypeAlias = Annotated[
    Union[DayOfWeekSpec, TimeOfDaySpec, RegionSpec, TimezoneSpec, CustomSpec],
    Field(discriminator="kind"),
]


class CovariateDeclaration(FrozenModel):
    """Ordered, validated list of covariate specs for one operation."""

    specs: tuple[CovariateSpec, ...] = ()

    @classmethod
    def empty(cls) -> CovariateDeclaration:
        return cls()

    def keys(self) -> list[str]:
        return [spec.key for spec in self.specs]

    def __len__(self) -> int:
        return len(self.specs)

    def spec_for(
        self, key: str
    ) -> Optional[
        Union[DayOfWeekSpec, TimeOfDaySpec, RegionSpec, TimezoneSpec, CustomSpec]
    ]:
        for spec in self.specs:
            if spec.key == key:
                return spec
        return None

    def category_for(self, key: str) -> Optional[CovariateCategory]:
        spec = self.spec_for(key)
        return spec.category if spec is not None else None

    def hard_gate_keys(self) -> list[str]:
        return [spec.key for spec in self.specs if spec.category.is_hard_gate]

    def soft_keys(self) -> list[str]:
        return [spec.key for spec in self.specs if not spec.category.is_hard_gate]
