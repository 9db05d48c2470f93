"""
Common utilities and configuration.
"""

# ============================================================================
# Configuration
# ============================================================================
from .config import (
    # Main config function
    default_cfg,

    # Numerical constants
    EPS_EIGEN,
    MIN_NORMAL_F64,
    MIN_NEIGHBORS,
    DEGENERACY_ULPS,
    WINDOW_STRIDE,
    MAX_GATHER,

    # Config dictionaries
    DEFAULT_CONFIG,
    EXPORT_CONFIG,
)

# ============================================================================
# Utilities
# ============================================================================
from .utils import (
    resolve_device,
    resolve_dtype,
    ensure_torch,
    as_numpy,
    safe_unit,
    is_invalid,
    clamp,
)


__all__ = [
    # Configuration
    "default_cfg",

    # Constants
    "EPS_EIGEN",
    "MIN_NORMAL_F64",
    "MIN_NEIGHBORS",
    "DEGENERACY_ULPS",
    "WINDOW_STRIDE",
    "MAX_GATHER",

    # Config dictionaries
    "DEFAULT_CONFIG",
    "EXPORT_CONFIG",

    # Utilities - Conversion
    "resolve_device",
    "resolve_dtype",
    "ensure_torch",
    "as_numpy",

    # Utilities - Math
    "safe_unit",
    "is_invalid",
    "clamp",
]
