# Copyright (c) Syntropy Systems
"""Baseline file naming.

Layout: ``{operation}-{footprint[:4]}[-{value_hash[:4]}]*.yaml``. The operation
name is sanitized so that ``-`` only ever separates the parts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from baseliner.models.covariate import CovariateProfile

HASH_PREFIX_LENGTH = 4
BASELINE_SUFFIXES = (".yaml", ".yml")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


def baseline_filename(
    operation: str,
    footprint: str,
    profile: CovariateProfile | None = None,
) -> str:
    parts = [sanitize_name(operation), footprint[:HASH_PREFIX_LENGTH]]
    if profile is not None:
        parts.extend(h[:HASH_PREFIX_LENGTH] for h in profile.value_hashes())
    return "-".join(parts) + ".yaml"


@dataclass(frozen=True)
class ParsedBaselineName:
    operation: str
    footprint_prefix: str
    covariate_hashes: tuple[str, ...] = ()

    @property
    def has_covariates(self) -> bool:
        return bool(self.covariate_hashes)


def parse_baseline_filename(filename: str) -> ParsedBaselineName:
    """Split a baseline filename back into its parts.

    Raises:
        ValueError: if the name lacks a footprint part.

    """
    stem = filename
    for suffix in BASELINE_SUFFIXES:
        if stem.endswith(suffix):
            stem = stem[: -len(suffix)]
            break

    parts = stem.split("-")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        msg = f"Invalid baseline filename format: {filename}"
        raise ValueError(msg)

    return ParsedBaselineName(
        operation=parts[0],
        footprint_prefix=parts[1],
        covariate_hashes=tuple(parts[2:]),
    )
