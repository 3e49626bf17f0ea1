# Copyright (c) Syntropy Systems
"""Baseline validity windows and their evaluated status."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Union

from pydantic import Field, model_validator
from typing_extensions import Annotated, Self, TypeAlias

from .base import FrozenModel

NO_EXPIRATION = 0
EXPIRING_SOON_FRACTION = 0.25
EXPIRING_IMMINENTLY_FRACTION = 0.10


class NoExpiration(FrozenModel):
    kind: Literal["no_expiration"] = "no_expiration"


class Valid(FrozenModel):
    kind: Literal["valid"] = "valid"
    remaining: timedelta


class ExpiringSoon(FrozenModel):
    kind: Literal["expiring_soon"] = "expiring_soon"
    remaining: timedelta
    remaining_fraction: float


class ExpiringImminently(FrozenModel):
    kind: Literal["expiring_imminently"] = "expiring_imminently"
    remaining: timedelta
    remaining_fraction: float


class Expired(FrozenModel):
    kind: Literal["expired"] = "expired"
    expired_ago: timedelta


ExpirationStatus: TypeAlias = Annotated[
    Union[NoExpiration, Valid, ExpiringSoon, ExpiringImminently, Expired],
    Field(discriminator="kind"),
]


def requires_warning(
    status: NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired,
) -> bool:
    return isinstance(status, (ExpiringSoon, ExpiringImminently, Expired))


def is_expired(
    status: NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired,
) -> bool:
    return isinstance(status, Expired)


class ExpirationPolicy(FrozenModel):
    """Validity window of a baseline, counted from its end time."""

    expires_in_days: int = NO_EXPIRATION
    baseline_end_time: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_window(self) -> Self:
        if self.expires_in_days < 0:
            msg = f"expires_in_days must be non-negative, got: {self.expires_in_days}"
            raise ValueError(msg)
        if self.expires_in_days > 0 and self.baseline_end_time is None:
            msg = "baseline_end_time is required when expires_in_days > 0"
            raise ValueError(msg)
        return self

    @classmethod
    def none(cls) -> ExpirationPolicy:
        return cls()

    @property
    def has_expiration(self) -> bool:
        return self.expires_in_days > NO_EXPIRATION

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.expires_in_days)

    def expiration_time(self) -> Optional[datetime]:
        if not self.has_expiration or self.baseline_end_time is None:
            return None
        return _as_aware(self.baseline_end_time) + self.window

    def evaluate_at(
        self, now: datetime
    ) -> NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired:
        """Classify the baseline's staleness at ``now``."""
        expiration = self.expiration_time()
        if expiration is None:
            return NoExpiration()

        remaining = expiration - _as_aware(now)
        if remaining < timedelta(0):
            return Expired(expired_ago=-remaining)

        fraction = remaining / self.window
        if fraction <= EXPIRING_IMMINENTLY_FRACTION:
            return ExpiringImminently(remaining=remaining, remaining_fraction=fraction)
        if fraction <= EXPIRING_SOON_FRACTION:
            return ExpiringSoon(remaining=remaining, remaining_fraction=fraction)
        return Valid(remaining=remaining)


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
