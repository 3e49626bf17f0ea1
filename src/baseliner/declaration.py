# Copyright (c) Syntropy Systems
"""Covariate declaration validation.

Turns raw declaration input (Python mappings or a YAML data file) into a
validated ``CovariateDeclaration``. All partition rules are checked here,
once, at declaration-extraction time:

- day groups are non-empty and mutually exclusive
- time periods are ``HH:MM/Nh``, never cross midnight and never overlap
- region groups hold ISO 3166-1 alpha-2 codes, mutually exclusive
- covariate keys are unique across the declaration
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import time
from pathlib import Path
from typing import Optional, Union, cast

import yaml
from pydantic import Field, ValidationError

from baseliner.errors import DeclarationValidationError
from baseliner.models.base import BaselinerBaseModel
from baseliner.models.covariate import CovariateCategory
from baseliner.models.declaration import (
    MINUTES_PER_DAY,
    CovariateDeclaration,
    CustomSpec,
    DayGroup,
    DayOfWeekSpec,
    RegionGroup,
    RegionSpec,
    TimeOfDaySpec,
    TimePeriod,
    TimezoneSpec,
    Weekday,
    derive_day_label,
    format_minutes,
)
from baseliner.regions import is_country_code

logger = logging.getLogger(__name__)

TIME_PERIOD_PATTERN = re.compile(r"^(\d{2}):(\d{2})/(\d+)h$")

_DAY_ALIASES = {day.value[:3]: day for day in Weekday}


class RawDayGroup(BaselinerBaseModel):
    """Day group as written by the user."""

    days: list[str]
    label: Optional[str] = None


class RawRegionGroup(BaselinerBaseModel):
    """Region group as written by the user."""

    regions: list[str]
    label: Optional[str] = None


class RawTimePeriod(BaselinerBaseModel):
    """Time period given as start + duration instead of ``HH:MM/Nh``."""

    start: str
    hours: int
    label: Optional[str] = None


class RawCovariateSpec(BaselinerBaseModel):
    """One entry of a raw declaration."""

    kind: str
    key: Optional[str] = None
    category: Optional[str] = None
    groups: list[Union[RawDayGroup, RawRegionGroup, list[str]]] = Field(
        default_factory=list
    )
    periods: list[Union[str, RawTimePeriod]] = Field(default_factory=list)


RawDeclaration = Sequence[Union[Mapping[str, object], RawCovariateSpec]]


def parse_weekday(symbol: str) -> Weekday:
    """Parse a day name or three-letter abbreviation, case-insensitively."""
    text = symbol.strip().upper()
    if text in Weekday.__members__:
        return Weekday[text]
    if text in _DAY_ALIASES:
        return _DAY_ALIASES[text]
    msg = f"Unknown day of week: '{symbol}'"
    raise DeclarationValidationError(msg)


def extract_day_groups(
    groups: Sequence[RawDayGroup | Sequence[str]],
) -> tuple[DayGroup, ...]:
    """Validate day groups for non-emptiness and mutual exclusivity."""
    seen: set[Weekday] = set()
    result: list[DayGroup] = []

    for group in groups:
        raw = group if isinstance(group, RawDayGroup) else RawDayGroup(days=list(group))
        days = frozenset(parse_weekday(symbol) for symbol in raw.days)
        if not days:
            msg = "Day group must contain at least one day"
            raise DeclarationValidationError(msg)

        for day in sorted(days, key=lambda d: d.ordinal):
            if day in seen:
                msg = (
                    f"Day {day.value} appears in more than one day group "
                    "(mutual exclusivity violated)"
                )
                raise DeclarationValidationError(msg)
            seen.add(day)

        label = raw.label.strip() if raw.label and raw.label.strip() else None
        result.append(DayGroup(days=days, label=label or derive_day_label(days)))

    return tuple(result)


def parse_time_period(period: str | RawTimePeriod) -> TimePeriod:
    """Parse and range-check one ``HH:MM/Nh`` period."""
    if isinstance(period, RawTimePeriod):
        text = f"{period.start}/{period.hours}h"
        label = period.label
    else:
        text = period.strip()
        label = None

    match = TIME_PERIOD_PATTERN.match(text)
    if match is None:
        msg = (
            f"Invalid time period format: '{text}'. "
            "Expected 'HH:mm/Nh' (e.g. '08:00/2h')"
        )
        raise DeclarationValidationError(msg)

    hours, minutes, duration = (int(g) for g in match.groups())
    if hours > 23:
        msg = f"Invalid hour in time period '{text}': {hours} (must be 00-23)"
        raise DeclarationValidationError(msg)
    if minutes > 59:
        msg = f"Invalid minute in time period '{text}': {minutes} (must be 00-59)"
        raise DeclarationValidationError(msg)
    if duration <= 0:
        msg = f"Duration must be positive in time period '{text}'"
        raise DeclarationValidationError(msg)
    if hours * 60 + minutes + duration * 60 > MINUTES_PER_DAY:
        msg = (
            f"Time period '{text}' crosses midnight (start + duration exceeds "
            "24:00); declare it as two periods"
        )
        raise DeclarationValidationError(msg)

    return TimePeriod(
        start=time(hours, minutes),
        duration_hours=duration,
        label=label or text,
    )


def extract_time_periods(
    periods: Sequence[str | RawTimePeriod],
) -> tuple[TimePeriod, ...]:
    """Parse periods and reject any pair that overlaps."""
    result = tuple(parse_time_period(p) for p in periods)

    ordered = sorted(result, key=lambda p: p.start_minutes)
    for current, following in zip(ordered, ordered[1:]):
        if current.end_minutes > following.start_minutes:
            msg = (
                f"Time periods overlap: '{current.label}' "
                f"[{format_minutes(current.start_minutes)}, "
                f"{_format_end(current.end_minutes)}) and '{following.label}' "
                f"[{format_minutes(following.start_minutes)}, "
                f"{_format_end(following.end_minutes)})"
            )
            raise DeclarationValidationError(msg)

    return result


def _format_end(minutes: int) -> str:
    return "24:00" if minutes == MINUTES_PER_DAY else format_minutes(minutes)


def extract_region_groups(
    groups: Sequence[RawRegionGroup | Sequence[str]],
) -> tuple[RegionGroup, ...]:
    """Validate region codes and mutual exclusivity across groups."""
    seen: set[str] = set()
    result: list[RegionGroup] = []

    for group in groups:
        raw = (
            group
            if isinstance(group, RawRegionGroup)
            else RawRegionGroup(regions=list(group))
        )
        regions = frozenset(code.strip().upper() for code in raw.regions)
        if not regions:
            msg = "Region group must contain at least one region code"
            raise DeclarationValidationError(msg)

        for region in sorted(regions):
            if not is_country_code(region):
                msg = f"Invalid ISO 3166-1 alpha-2 country code: '{region}'"
                raise DeclarationValidationError(msg)
            if region in seen:
                msg = (
                    f"Region '{region}' appears in more than one region group "
                    "(mutual exclusivity violated)"
                )
                raise DeclarationValidationError(msg)
            seen.add(region)

        label = raw.label.strip() if raw.label and raw.label.strip() else None
        result.append(RegionGroup(regions=regions, label=label or "_".join(sorted(regions))))

    return tuple(result)


def _parse_category(value: str | None, key: str) -> CovariateCategory:
    if value is None:
        msg = f"Custom covariate '{key}' requires a category"
        raise DeclarationValidationError(msg)
    try:
        return CovariateCategory(value.strip().upper())
    except ValueError as e:
        valid = ", ".join(c.value for c in CovariateCategory)
        msg = f"Unknown category '{value}' for covariate '{key}' (expected one of {valid})"
        raise DeclarationValidationError(msg) from e


def _day_groups(raw: RawCovariateSpec) -> list[RawDayGroup | Sequence[str]]:
    groups: list[RawDayGroup | Sequence[str]] = []
    for group in raw.groups:
        if isinstance(group, RawRegionGroup):
            msg = "day_of_week groups take 'days', not 'regions'"
            raise DeclarationValidationError(msg)
        groups.append(group)
    return groups


def _region_groups(raw: RawCovariateSpec) -> list[RawRegionGroup | Sequence[str]]:
    groups: list[RawRegionGroup | Sequence[str]] = []
    for group in raw.groups:
        if isinstance(group, RawDayGroup):
            msg = "region groups take 'regions', not 'days'"
            raise DeclarationValidationError(msg)
        groups.append(group)
    return groups


def _with_category(
    spec: DayOfWeekSpec | TimeOfDaySpec | RegionSpec | TimezoneSpec,
    value: str | None,
) -> DayOfWeekSpec | TimeOfDaySpec | RegionSpec | TimezoneSpec:
    """Apply an explicit category over the kind's default."""
    if value is None:
        return spec
    return spec.model_copy(update={"category": _parse_category(value, spec.key)})


def _build_spec(
    raw: RawCovariateSpec,
) -> DayOfWeekSpec | TimeOfDaySpec | RegionSpec | TimezoneSpec | CustomSpec:
    kind = raw.kind.strip().lower()
    if kind == "day_of_week":
        groups = extract_day_groups(_day_groups(raw))
        if not groups:
            msg = "day_of_week requires at least one day group"
            raise DeclarationValidationError(msg)
        return _with_category(DayOfWeekSpec(groups=groups), raw.category)
    if kind == "time_of_day":
        return _with_category(
            TimeOfDaySpec(periods=extract_time_periods(raw.periods)), raw.category
        )
    if kind == "region":
        region_groups = extract_region_groups(_region_groups(raw))
        if not region_groups:
            msg = "region requires at least one region group"
            raise DeclarationValidationError(msg)
        return _with_category(RegionSpec(groups=region_groups), raw.category)
    if kind == "timezone":
        return _with_category(TimezoneSpec(), raw.category)
    if kind == "custom":
        key = (raw.key or "").strip()
        if not key:
            msg = "Custom covariate requires a non-empty key"
            raise DeclarationValidationError(msg)
        return CustomSpec(key=key, category=_parse_category(raw.category, key))

    msg = f"Unknown covariate kind: '{raw.kind}'"
    raise DeclarationValidationError(msg)


def build_declaration(raw_specs: RawDeclaration) -> CovariateDeclaration:
    """Validate raw covariate specs into a declaration, preserving order."""
    specs: list[DayOfWeekSpec | TimeOfDaySpec | RegionSpec | TimezoneSpec | CustomSpec] = []
    keys: set[str] = set()

    for index, entry in enumerate(raw_specs):
        try:
            raw = (
                entry
                if isinstance(entry, RawCovariateSpec)
                else RawCovariateSpec.model_validate(entry)
            )
        except ValidationError as e:
            msg = f"Malformed covariate entry #{index + 1}: {e}"
            raise DeclarationValidationError(msg) from e

        spec = _build_spec(raw)
        if spec.key in keys:
            msg = f"Covariate '{spec.key}' is declared more than once"
            raise DeclarationValidationError(msg)
        keys.add(spec.key)
        specs.append(spec)

    declaration = CovariateDeclaration(specs=tuple(specs))
    logger.debug("Validated covariate declaration: %s", declaration.keys())
    return declaration


def load_declaration(path: Path) -> CovariateDeclaration:
    """Load a declaration from a YAML file with a top-level ``covariates`` list."""
    with path.open() as f:
        data = yaml.safe_load(f) or {}

    if isinstance(data, dict):
        entries = cast("dict[str, object]", data).get("covariates", [])
    else:
        entries = data

    if not isinstance(entries, list):
        msg = f"'covariates' in {path} must be a list"
        raise DeclarationValidationError(msg)

    return build_declaration(cast("list[Mapping[str, object]]", entries))


class DeclarationBuilder:
    """Fluent programmatic registration of a covariate declaration.

    Example:
        declaration = (
            DeclarationBuilder()
            .day_of_week(["SATURDAY", "SUNDAY"])
            .custom("llm_model", CovariateCategory.CONFIGURATION)
            .build()
        )

    """

    def __init__(self) -> None:
        self._entries: list[RawCovariateSpec] = []

    def day_of_week(
        self, *groups: Sequence[str], labels: Sequence[Optional[str]] = ()
    ) -> DeclarationBuilder:
        raw_groups: list[RawDayGroup | RawRegionGroup | list[str]] = []
        for i, days in enumerate(groups):
            label = labels[i] if i < len(labels) else None
            raw_groups.append(RawDayGroup(days=list(days), label=label))
        self._entries.append(RawCovariateSpec(kind="day_of_week", groups=raw_groups))
        return self

    def time_of_day(self, *periods: str) -> DeclarationBuilder:
        self._entries.append(RawCovariateSpec(kind="time_of_day", periods=list(periods)))
        return self

    def region(
        self, *groups: Sequence[str], labels: Sequence[Optional[str]] = ()
    ) -> DeclarationBuilder:
        raw_groups: list[RawDayGroup | RawRegionGroup | list[str]] = []
        for i, regions in enumerate(groups):
            label = labels[i] if i < len(labels) else None
            raw_groups.append(RawRegionGroup(regions=list(regions), label=label))
        self._entries.append(RawCovariateSpec(kind="region", groups=raw_groups))
        return self

    def timezone(self) -> DeclarationBuilder:
        self._entries.append(RawCovariateSpec(kind="timezone"))
        return self

    def custom(
        self, key: str, category: CovariateCategory | str
    ) -> DeclarationBuilder:
        value = category.value if isinstance(category, CovariateCategory) else category
        self._entries.append(RawCovariateSpec(kind="custom", key=key, category=value))
        return self

    def build(self) -> CovariateDeclaration:
        return build_declaration(self._entries)
