"""
Closed-form eigen-decomposition of symmetric 3x3 matrices.

The matrix is scaled into [-1, 1], its eigenvalues are taken from the
analytic roots of the characteristic cubic (see ``roots.py``), and the
eigenvectors are built from cross products of the rows of the shifted
matrix ``M - lambda*I``. For an eigenvalue lambda the shifted matrix is
singular along the eigenvector, so the cross product of any two of its rows
lies along that eigenvector; the longest of the three candidates is kept.

Repeated eigenvalues are dispatched to dedicated strategies:

    ALL_EQUAL   any orthonormal basis, the standard basis is returned
    LOW_PAIR    lambda0 == lambda1, the axis of lambda2 is unique
    HIGH_PAIR   lambda1 == lambda2, the axis of lambda0 is unique
    DISTINCT    three axes, the worst supported ones are re-orthogonalized

Eigenvectors are returned as ROWS: ``evecs[i]`` belongs to ``evals[i]``.
"""

import enum
from typing import Callable, Dict, NamedTuple, Tuple

import numpy as np
from ..utils.config import EPS_EIGEN, MIN_NORMAL_F64
from .roots import compute_roots


class EigenResult(NamedTuple):
    eigenvalues: np.ndarray   # (3,) ascending
    eigenvectors: np.ndarray  # (3, 3) rows are unit eigenvectors


class Spectrum(enum.Enum):
    ALL_EQUAL = "all_equal"
    LOW_PAIR = "low_pair"
    HIGH_PAIR = "high_pair"
    DISTINCT = "distinct"


def classify_spectrum(evals: np.ndarray, eps: float = EPS_EIGEN) -> Spectrum:
    """Classify ascending eigenvalues by which of them coincide."""
    if evals[2] - evals[0] <= eps:
        return Spectrum.ALL_EQUAL
    if evals[1] - evals[0] <= eps:
        return Spectrum.LOW_PAIR
    if evals[2] - evals[1] <= eps:
        return Spectrum.HIGH_PAIR
    return Spectrum.DISTINCT


def is_much_smaller_than(x: float, y: float) -> bool:
    return x * x <= EPS_EIGEN * EPS_EIGEN * y * y


def unit_orthogonal(src: np.ndarray) -> np.ndarray:
    """Any unit vector orthogonal to ``src``."""
    x, y, z = float(src[0]), float(src[1]), float(src[2])

    # unless x and y are both close to zero, (-y, x, 0) is far from colinear
    if not is_much_smaller_than(x, z) or not is_much_smaller_than(y, z):
        inv = 1.0 / np.sqrt(x * x + y * y)
        return np.array([-y * inv, x * inv, 0.0])

    # close to the z-axis, so cross with the x-axis instead
    inv = 1.0 / np.sqrt(z * z + y * y)
    return np.array([0.0, -z * inv, y * inv])


def best_axis(mat: np.ndarray, eigenvalue: float) -> Tuple[np.ndarray, float]:
    """
    Eigenvector of ``mat`` for ``eigenvalue`` from row cross products.

    Returns:
        axis: (3,) unit vector
        support: squared length of the winning cross product
    """
    tmp = mat - eigenvalue * np.eye(3)

    candidates = (
        np.cross(tmp[0], tmp[1]),
        np.cross(tmp[0], tmp[2]),
        np.cross(tmp[1], tmp[2]),
    )
    lengths = [float(np.dot(v, v)) for v in candidates]

    if lengths[0] >= lengths[1] and lengths[0] >= lengths[2]:
        k = 0
    elif lengths[1] >= lengths[0] and lengths[1] >= lengths[2]:
        k = 1
    else:
        k = 2
    return candidates[k] / np.sqrt(lengths[k]), lengths[k]


def _normalized(v: np.ndarray) -> np.ndarray:
    return v / np.sqrt(np.dot(v, v))


def _solve_all_equal(mat: np.ndarray, evals: np.ndarray) -> np.ndarray:
    return np.eye(3)


def _solve_low_pair(mat: np.ndarray, evals: np.ndarray) -> np.ndarray:
    evecs = np.zeros((3, 3))
    evecs[2], _ = best_axis(mat, evals[2])
    evecs[1] = unit_orthogonal(evecs[2])
    evecs[0] = np.cross(evecs[1], evecs[2])
    return evecs


def _solve_high_pair(mat: np.ndarray, evals: np.ndarray) -> np.ndarray:
    evecs = np.zeros((3, 3))
    evecs[0], _ = best_axis(mat, evals[0])
    evecs[1] = unit_orthogonal(evecs[0])
    evecs[2] = np.cross(evecs[0], evecs[1])
    return evecs


def _solve_distinct(mat: np.ndarray, evals: np.ndarray) -> np.ndarray:
    evecs = np.zeros((3, 3))
    support = [0.0, 0.0, 0.0]
    min_el = max_el = 2

    for i in (2, 1, 0):
        evecs[i], support[i] = best_axis(mat, evals[i])
        if i == 2:
            continue
        if support[i] <= support[min_el]:
            min_el = i
        if support[i] > support[max_el]:
            max_el = i

    mid_el = 3 - min_el - max_el
    evecs[min_el] = _normalized(np.cross(evecs[(min_el + 1) % 3], evecs[(min_el + 2) % 3]))
    evecs[mid_el] = _normalized(np.cross(evecs[(mid_el + 1) % 3], evecs[(mid_el + 2) % 3]))
    return evecs


_STRATEGIES: Dict[Spectrum, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    Spectrum.ALL_EQUAL: _solve_all_equal,
    Spectrum.LOW_PAIR: _solve_low_pair,
    Spectrum.HIGH_PAIR: _solve_high_pair,
    Spectrum.DISTINCT: _solve_distinct,
}


def matrix_scale(mat: np.ndarray) -> float:
    """Largest absolute entry, or 1 for a (numerically) zero matrix."""
    scale = float(np.max(np.abs(mat)))
    if scale <= MIN_NORMAL_F64:
        scale = 1.0
    return scale


def eigen33(mat) -> EigenResult:
    """
    Eigenvalues and eigenvectors of a symmetric 3x3 matrix.

    Args:
        mat: (3, 3) symmetric matrix

    Returns:
        EigenResult with ascending eigenvalues and row eigenvectors forming
        a right-handed orthonormal basis.
    """
    mat = np.asarray(mat, dtype=np.float64)
    scale = matrix_scale(mat)
    scaled = mat / scale

    evals = compute_roots(scaled)
    evecs = _STRATEGIES[classify_spectrum(evals)](scaled, evals)

    return EigenResult(evals * scale, evecs)
