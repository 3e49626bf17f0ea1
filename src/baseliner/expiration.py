# Copyright (c) Syntropy Systems
"""Expiration evaluation for selected baselines."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from baseliner.models.baseline import BaselineCandidate
from baseliner.models.expiration import (
    Expired,
    ExpiringImminently,
    ExpiringSoon,
    NoExpiration,
    Valid,
    requires_warning,
)

logger = logging.getLogger(__name__)


def format_duration(duration: Optional[timedelta]) -> str:
    """Largest whole unit of a duration, e.g. "3 days" or "1 hour"."""
    if duration is None:
        return "unknown"

    seconds = int(abs(duration).total_seconds())
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = seconds // size
        if count > 0:
            return f"{count} {unit}{'' if count == 1 else 's'}"
    return "less than a minute"


def evaluate_expiration(
    baseline: BaselineCandidate, now: Optional[datetime] = None
) -> NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired:
    """Classify a baseline's staleness; ``now`` defaults to the current UTC time."""
    moment = now if now is not None else datetime.now(timezone.utc)
    status = baseline.expiration.evaluate_at(moment)
    if requires_warning(status):
        logger.warning(
            "Baseline %s: %s", baseline.reference, describe_status(status)
        )
    return status


def describe_status(
    status: NoExpiration | Valid | ExpiringSoon | ExpiringImminently | Expired,
) -> str:
    if isinstance(status, NoExpiration):
        return "no expiration"
    if isinstance(status, Valid):
        return f"valid, {format_duration(status.remaining)} remaining"
    if isinstance(status, ExpiringSoon):
        return f"expiring soon, {format_duration(status.remaining)} remaining"
    if isinstance(status, ExpiringImminently):
        return f"expiring imminently, {format_duration(status.remaining)} remaining"
    return f"expired {format_duration(status.expired_ago)} ago"
