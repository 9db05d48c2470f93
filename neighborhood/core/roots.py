"""Closed-form roots of the characteristic polynomial of a symmetric 3x3 matrix."""

import math
from typing import Tuple

import numpy as np
from ..utils.config import EPS_EIGEN

_INV3 = 1.0 / 3.0
_SQRT3 = math.sqrt(3.0)


def characteristic_coefficients(m: np.ndarray) -> Tuple[float, float, float]:
    """
    Invariants (c0, c1, c2) of  x^3 - c2*x^2 + c1*x - c0 = 0.

    Only the upper triangle of ``m`` is read.
    """
    a00, a01, a02 = float(m[0, 0]), float(m[0, 1]), float(m[0, 2])
    a11, a12, a22 = float(m[1, 1]), float(m[1, 2]), float(m[2, 2])

    c0 = (a00 * a11 * a22
          + 2.0 * a01 * a02 * a12
          - a00 * a12 * a12
          - a11 * a02 * a02
          - a22 * a01 * a01)
    c1 = (a00 * a11 - a01 * a01
          + a00 * a22 - a02 * a02
          + a11 * a22 - a12 * a12)
    c2 = a00 + a11 + a22
    return c0, c1, c2


def sort3(r0: float, r1: float, r2: float) -> Tuple[float, float, float]:
    """Ascending order through a fixed compare-and-swap network."""
    if r0 >= r1:
        r0, r1 = r1, r0
    if r1 >= r2:
        r1, r2 = r2, r1
        if r0 >= r1:
            r0, r1 = r1, r0
    return r0, r1, r2


def compute_roots2(b: float, c: float) -> np.ndarray:
    """Roots of x^2 - b*x + c = 0 together with the zero root."""
    d = b * b - 4.0 * c
    if d < 0.0:  # real-rooted by symmetry; rounding noise only
        d = 0.0
    sd = math.sqrt(d)
    return np.array(sort3(0.0, 0.5 * (b - sd), 0.5 * (b + sd)))


def compute_roots(m: np.ndarray) -> np.ndarray:
    """Eigenvalues of a symmetric 3x3 matrix, sorted ascending."""
    c0, c1, c2 = characteristic_coefficients(m)

    if abs(c0) < EPS_EIGEN:
        return compute_roots2(c2, c1)

    c2_over_3 = c2 * _INV3
    a_over_3 = (c1 - c2 * c2_over_3) * _INV3
    if a_over_3 > 0.0:
        a_over_3 = 0.0

    half_b = 0.5 * (c0 + c2_over_3 * (2.0 * c2_over_3 * c2_over_3 - c1))

    q = half_b * half_b + a_over_3 * a_over_3 * a_over_3
    if q > 0.0:
        q = 0.0

    rho = math.sqrt(-a_over_3)
    theta = math.atan2(math.sqrt(-q), half_b) * _INV3
    cos_theta = math.cos(theta)
    sin_theta = math.sin(theta)

    roots = sort3(
        c2_over_3 + 2.0 * rho * cos_theta,
        c2_over_3 - rho * (cos_theta + _SQRT3 * sin_theta),
        c2_over_3 - rho * (cos_theta - _SQRT3 * sin_theta),
    )

    # negative smallest root: recompute from the quadratic
    if roots[0] < 0.0:
        return compute_roots2(c2, c1)
    return np.array(roots)
