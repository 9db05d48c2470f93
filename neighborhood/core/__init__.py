"""
Closed-form eigensolvers for symmetric 3x3 matrices.

Includes:
- Characteristic polynomial roots (cubic with quadratic fallback)
- Scalar reference eigen-decomposition (numpy)
- Batched eigen-decomposition (torch, any device)
"""

# ============================================================================
# Roots
# ============================================================================
from .roots import (
    characteristic_coefficients,
    sort3,
    compute_roots2,
    compute_roots,
)

# ============================================================================
# Eigen-decomposition (reference)
# ============================================================================
from .eigen import (
    EigenResult,
    Spectrum,
    classify_spectrum,
    unit_orthogonal,
    best_axis,
    matrix_scale,
    eigen33,
)

# ============================================================================
# Eigen-decomposition (batched)
# ============================================================================
from .batched import (
    batched_characteristic_coefficients,
    batched_compute_roots,
    batched_unit_orthogonal,
    batched_best_axis,
    batched_eigen33,
)


__all__ = [
    # Roots
    "characteristic_coefficients",
    "sort3",
    "compute_roots2",
    "compute_roots",

    # Reference
    "EigenResult",
    "Spectrum",
    "classify_spectrum",
    "unit_orthogonal",
    "best_axis",
    "matrix_scale",
    "eigen33",

    # Batched
    "batched_characteristic_coefficients",
    "batched_compute_roots",
    "batched_unit_orthogonal",
    "batched_best_axis",
    "batched_eigen33",
]
