"""
baseliner - Covariate-aware baseline selection.

Pick the baseline that matches today's conditions, and hold small
verification runs to a one-sided, sample-size-adjusted threshold.
"""

from baseliner.declaration import DeclarationBuilder, build_declaration, load_declaration
from baseliner.footprint import compute_footprint
from baseliner.repository import BaselineRepository
from baseliner.resolvers import ResolutionContext
from baseliner.selector import select_for_run
from baseliner.threshold import derive_threshold
from baseliner.verification import BaselineVerifier

__version__ = "0.1.0"
__all__ = [
    "BaselineRepository",
    "BaselineVerifier",
    "DeclarationBuilder",
    "ResolutionContext",
    "__version__",
    "build_declaration",
    "compute_footprint",
    "derive_threshold",
    "load_declaration",
    "select_for_run",
]
