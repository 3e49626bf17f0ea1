# Copyright (c) Syntropy Systems
"""Footprint computation.

A footprint identifies *what* was measured: the operation, its functional
parameters and the set of covariate names it declares. Covariate values
never enter the footprint, so baselines measured under different conditions
share one footprint and compete in selection.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping

from baseliner.models.declaration import CovariateDeclaration


def compute_footprint(
    operation_id: str,
    parameters: Mapping[str, object] | None = None,
    covariates: CovariateDeclaration | Iterable[str] = (),
) -> str:
    """Hex SHA-256 over operation id, sorted parameters and covariate keys.

    Parameter order is irrelevant. Covariate order is significant.
    """
    keys = covariates.keys() if isinstance(covariates, CovariateDeclaration) else list(covariates)

    lines = [f"operation:{operation_id}"]
    lines.extend(
        f"param:{name}={value}" for name, value in sorted((parameters or {}).items())
    )
    lines.extend(f"covariate:{key}" for key in keys)

    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()
