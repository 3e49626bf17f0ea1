# Copyright (c) Syntropy Systems
"""Persisted baseline records and in-memory selection candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field, field_validator, model_validator
from typing_extensions import Self

from .base import BaselinerBaseModel
from .covariate import CovariateProfile, value_from_canonical
from .expiration import ExpirationPolicy


class BaselineRecord(BaselinerBaseModel):
    """Shape of a baseline file on disk."""

    operation: str
    footprint: str
    generated_at: datetime
    covariates: dict[str, str] = Field(default_factory=dict)
    samples: int = Field(ge=0)
    successes: int = Field(ge=0)
    expires_in_days: int = Field(default=0, ge=0)
    baseline_end_time: Optional[datetime] = None

    @field_validator("covariates", mode="before")
    @classmethod
    def _coerce_covariates(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @field_validator("generated_at", "baseline_end_time")
    @classmethod
    def _ensure_aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_counts(self) -> Self:
        if self.successes > self.samples:
            msg = f"successes ({self.successes}) exceed samples ({self.samples})"
            raise ValueError(msg)
        return self

    @property
    def profile(self) -> CovariateProfile:
        return CovariateProfile(
            (key, value_from_canonical(text)) for key, text in self.covariates.items()
        )

    @property
    def expiration(self) -> ExpirationPolicy:
        if self.expires_in_days == 0:
            return ExpirationPolicy.none()
        return ExpirationPolicy(
            expires_in_days=self.expires_in_days,
            baseline_end_time=self.baseline_end_time or self.generated_at,
        )

    def to_candidate(self, reference: str) -> BaselineCandidate:
        return BaselineCandidate(
            reference=reference,
            footprint=self.footprint,
            profile=self.profile,
            generated_at=self.generated_at,
            samples=self.samples,
            successes=self.successes,
            expiration=self.expiration,
        )


@dataclass(frozen=True)
class BaselineCandidate:
    """A baseline eligible for selection."""

    reference: str  # Storage reference, e.g. the baseline filename
    footprint: str
    profile: CovariateProfile
    generated_at: Optional[datetime] = None
    samples: int = 0
    successes: int = 0
    expiration: ExpirationPolicy = field(default_factory=ExpirationPolicy.none)

    @property
    def observed_rate(self) -> float:
        if self.samples == 0:
            return 0.0
        return self.successes / self.samples
