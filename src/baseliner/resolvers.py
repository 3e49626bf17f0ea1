# Copyright (c) Syntropy Systems
"""Covariate resolution.

Each declared covariate has one resolver that maps the current execution
context to a concrete value. Resolution is total: anything that cannot be
resolved degrades to a remainder label or to NOT_SET, never to an error.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Optional, Protocol, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from baseliner.models.covariate import (
    NOT_SET,
    CovariateProfile,
    TextValue,
    TimeWindowValue,
)
from baseliner.models.declaration import (
    REGION_KEY,
    CovariateDeclaration,
    CustomSpec,
    DayOfWeekSpec,
    RegionSpec,
    TimeOfDaySpec,
    TimezoneSpec,
    Weekday,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "BASELINER_"
DEFAULT_TIMEZONE = "UTC"

_ENV_UNSAFE = re.compile(r"[^A-Z0-9]")


def env_var_name(key: str) -> str:
    """Environment variable consulted for a covariate key."""
    return ENV_PREFIX + _ENV_UNSAFE.sub("_", key.upper())


def detect_system_timezone(environ: Mapping[str, str] | None = None) -> str:
    """Best-effort IANA name of the host timezone.

    Checks ``TZ``, then the ``/etc/localtime`` symlink, then falls back to UTC.
    """
    env = os.environ if environ is None else environ
    candidate = env.get("TZ", "").lstrip(":")
    if candidate and _is_zone(candidate):
        return candidate

    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        marker = "zoneinfo/"
        if marker in target:
            name = target.split(marker, 1)[1]
            if _is_zone(name):
                return name

    return DEFAULT_TIMEZONE


def _is_zone(name: str) -> bool:
    try:
        _ = ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class ResolutionContext:
    """Everything a resolver may consult, captured once per resolve.

    Custom values are looked up in three tiers: explicit overrides, then
    ``BASELINER_<KEY>`` environment variables, then framework-supplied values.
    """

    now: datetime
    run_start: Optional[datetime] = None
    run_end: Optional[datetime] = None
    system_timezone: str = DEFAULT_TIMEZONE
    overrides: Mapping[str, str] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)
    framework_values: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def current(
        cls,
        *,
        run_start: Optional[datetime] = None,
        run_end: Optional[datetime] = None,
        system_timezone: Optional[str] = None,
        overrides: Optional[Mapping[str, str]] = None,
        framework_values: Optional[Mapping[str, str]] = None,
    ) -> ResolutionContext:
        """Context for "now" on this host, reading the process environment."""
        return cls(
            now=datetime.now(timezone.utc),
            run_start=run_start,
            run_end=run_end,
            system_timezone=system_timezone or detect_system_timezone(),
            overrides=MappingProxyType(dict(overrides or {})),
            environ=MappingProxyType(dict(os.environ)),
            framework_values=MappingProxyType(dict(framework_values or {})),
        )

    @property
    def has_run_interval(self) -> bool:
        return self.run_start is not None and self.run_end is not None

    @property
    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.system_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "Unknown system timezone %r, using %s",
                self.system_timezone,
                DEFAULT_TIMEZONE,
            )
            return ZoneInfo(DEFAULT_TIMEZONE)

    @property
    def zone_name(self) -> str:
        return str(self.zone.key)

    def reference_moment(self) -> datetime:
        """Local time used for partitioned temporal covariates."""
        moment = self.run_start if self.run_start is not None else self.now
        return _as_aware(moment).astimezone(self.zone)

    def lookup(self, key: str) -> Optional[str]:
        """First non-empty value for key across the lookup chain."""
        for value in (
            self.overrides.get(key),
            self.environ.get(env_var_name(key)),
            self.framework_values.get(key),
        ):
            if value is not None and str(value).strip():
                return str(value).strip()
        return None


class CovariateResolver(Protocol):
    def resolve(self, context: ResolutionContext) -> TextValue | TimeWindowValue: ...


@dataclass(frozen=True)
class DayOfWeekResolver:
    spec: DayOfWeekSpec

    def resolve(self, context: ResolutionContext) -> TextValue:
        day = Weekday.from_index(context.reference_moment().weekday())
        for group in self.spec.groups:
            if group.contains(day):
                return TextValue(value=group.label)
        return TextValue(value=self.spec.remainder_label)


@dataclass(frozen=True)
class TimeOfDayResolver:
    spec: TimeOfDaySpec

    def resolve(self, context: ResolutionContext) -> TextValue | TimeWindowValue:
        if not self.spec.partitioned:
            return self._window(context)

        point = context.reference_moment().time()
        for period in self.spec.periods:
            if period.contains(point):
                return TextValue(value=period.label)
        return TextValue(value=self.spec.remainder_label)

    def _window(self, context: ResolutionContext) -> TimeWindowValue:
        zone = context.zone
        if context.run_start is not None and context.run_end is not None:
            start = _as_aware(context.run_start).astimezone(zone).time()
            end = _as_aware(context.run_end).astimezone(zone).time()
        else:
            start = end = _as_aware(context.now).astimezone(zone).time()
        return TimeWindowValue(start=start, end=end, timezone=context.zone_name)


@dataclass(frozen=True)
class RegionResolver:
    spec: RegionSpec

    def resolve(self, context: ResolutionContext) -> TextValue:
        raw = context.lookup(REGION_KEY)
        if raw is None:
            return NOT_SET
        for group in self.spec.groups:
            if group.contains(raw):
                return TextValue(value=group.label)
        return TextValue(value=self.spec.remainder_label)


@dataclass(frozen=True)
class TimezoneResolver:
    def resolve(self, context: ResolutionContext) -> TextValue:
        return TextValue(value=context.zone_name)


@dataclass(frozen=True)
class CustomResolver:
    key: str

    def resolve(self, context: ResolutionContext) -> TextValue:
        value = context.lookup(self.key)
        if value is None:
            return NOT_SET
        return TextValue(value=value)


AnyResolver = Union[
    DayOfWeekResolver,
    TimeOfDayResolver,
    RegionResolver,
    TimezoneResolver,
    CustomResolver,
    CovariateResolver,
]


def resolver_for_spec(
    spec: DayOfWeekSpec | TimeOfDaySpec | RegionSpec | TimezoneSpec | CustomSpec,
) -> AnyResolver:
    if isinstance(spec, DayOfWeekSpec):
        return DayOfWeekResolver(spec)
    if isinstance(spec, TimeOfDaySpec):
        return TimeOfDayResolver(spec)
    if isinstance(spec, RegionSpec):
        return RegionResolver(spec)
    if isinstance(spec, TimezoneSpec):
        return TimezoneResolver()
    return CustomResolver(spec.key)


class ResolverRegistry:
    """Immutable key to resolver mapping, built once and passed around."""

    __slots__ = ("_resolvers",)

    def __init__(self, resolvers: Mapping[str, AnyResolver] | None = None) -> None:
        self._resolvers = MappingProxyType(dict(resolvers or {}))

    @classmethod
    def for_declaration(cls, declaration: CovariateDeclaration) -> ResolverRegistry:
        return cls({spec.key: resolver_for_spec(spec) for spec in declaration.specs})

    def with_resolver(self, key: str, resolver: AnyResolver) -> ResolverRegistry:
        """Copy of this registry with key bound to resolver."""
        resolvers = dict(self._resolvers)
        resolvers[key] = resolver
        return ResolverRegistry(resolvers)

    def resolver_for(self, key: str) -> AnyResolver:
        return self._resolvers.get(key) or CustomResolver(key)

    def __contains__(self, key: object) -> bool:
        return key in self._resolvers


def resolve_profile(
    declaration: CovariateDeclaration,
    context: ResolutionContext,
    registry: ResolverRegistry | None = None,
) -> CovariateProfile:
    """Resolve every declared covariate, in declaration order."""
    if registry is None:
        registry = ResolverRegistry.for_declaration(declaration)

    profile = CovariateProfile(
        (key, registry.resolver_for(key).resolve(context))
        for key in declaration.keys()
    )
    logger.debug("Resolved covariate profile: %r", profile)
    return profile
