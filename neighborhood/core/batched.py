"""Batched closed-form eigensolver for (B, 3, 3) symmetric tensors.

Same algorithm as ``eigen.py``; every spectrum case is evaluated for the
whole batch and the result is selected per matrix with ``torch.where``.
"""

import math
from typing import Tuple

import torch
from ..utils.config import DEGENERACY_ULPS, EPS_EIGEN
from ..utils.utils import safe_unit

_INV3 = 1.0 / 3.0
_SQRT3 = math.sqrt(3.0)


def gap_tolerance(dtype: torch.dtype) -> float:
    """EPS_EIGEN, widened to a few ulps when the dtype cannot resolve it."""
    return max(EPS_EIGEN, DEGENERACY_ULPS * torch.finfo(dtype).eps)


def _sort3(r0: torch.Tensor, r1: torch.Tensor, r2: torch.Tensor) -> torch.Tensor:
    """Compare-and-swap network, returns (B, 3) ascending."""
    lo, hi = torch.minimum(r0, r1), torch.maximum(r0, r1)
    mid, top = torch.minimum(hi, r2), torch.maximum(hi, r2)
    bottom, mid = torch.minimum(lo, mid), torch.maximum(lo, mid)
    return torch.stack([bottom, mid, top], dim=-1)


def batched_characteristic_coefficients(m: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    a00, a01, a02 = m[:, 0, 0], m[:, 0, 1], m[:, 0, 2]
    a11, a12, a22 = m[:, 1, 1], m[:, 1, 2], m[:, 2, 2]

    c0 = (a00 * a11 * a22 + 2.0 * a01 * a02 * a12
          - a00 * a12 * a12 - a11 * a02 * a02 - a22 * a01 * a01)
    c1 = (a00 * a11 - a01 * a01 + a00 * a22 - a02 * a02
          + a11 * a22 - a12 * a12)
    c2 = a00 + a11 + a22
    return c0, c1, c2


def _batched_roots2(b: torch.Tensor, c: torch.Tensor) -> torch.Tensor:
    d = torch.clamp(b * b - 4.0 * c, min=0.0)
    sd = torch.sqrt(d)
    return _sort3(torch.zeros_like(b), 0.5 * (b - sd), 0.5 * (b + sd))


def batched_compute_roots(m: torch.Tensor) -> torch.Tensor:
    """Eigenvalues of (B, 3, 3) symmetric matrices, (B, 3) ascending."""
    c0, c1, c2 = batched_characteristic_coefficients(m)
    quadratic = _batched_roots2(c2, c1)

    c2_over_3 = c2 * _INV3
    a_over_3 = torch.clamp((c1 - c2 * c2_over_3) * _INV3, max=0.0)
    half_b = 0.5 * (c0 + c2_over_3 * (2.0 * c2_over_3 * c2_over_3 - c1))
    q = torch.clamp(half_b * half_b + a_over_3 * a_over_3 * a_over_3, max=0.0)

    rho = torch.sqrt(-a_over_3)
    theta = torch.atan2(torch.sqrt(-q), half_b) * _INV3
    cos_theta, sin_theta = torch.cos(theta), torch.sin(theta)

    cubic = _sort3(
        c2_over_3 + 2.0 * rho * cos_theta,
        c2_over_3 - rho * (cos_theta + _SQRT3 * sin_theta),
        c2_over_3 - rho * (cos_theta - _SQRT3 * sin_theta),
    )

    use_quadratic = (torch.abs(c0) < EPS_EIGEN) | (cubic[:, 0] < 0.0)
    return torch.where(use_quadratic.unsqueeze(-1), quadratic, cubic)


def batched_unit_orthogonal(src: torch.Tensor) -> torch.Tensor:
    x, y, z = src[:, 0], src[:, 1], src[:, 2]
    prec_sqr = EPS_EIGEN * EPS_EIGEN
    off_z_axis = (x * x > prec_sqr * z * z) | (y * y > prec_sqr * z * z)

    zero = torch.zeros_like(x)
    perp_xy = safe_unit(torch.stack([-y, x, zero], dim=-1), x * x + y * y)
    perp_yz = safe_unit(torch.stack([zero, -z, y], dim=-1), z * z + y * y)
    return torch.where(off_z_axis.unsqueeze(-1), perp_xy, perp_yz)


def batched_best_axis(m: torch.Tensor, eigenvalue: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """Longest row cross product of ``m - eigenvalue*I``, normalized, and its squared length."""
    eye = torch.eye(3, device=m.device, dtype=m.dtype).unsqueeze(0)
    tmp = m - eigenvalue.view(-1, 1, 1) * eye

    candidates = torch.stack([
        torch.cross(tmp[:, 0], tmp[:, 1], dim=-1),
        torch.cross(tmp[:, 0], tmp[:, 2], dim=-1),
        torch.cross(tmp[:, 1], tmp[:, 2], dim=-1),
    ], dim=1)                                           # (B, 3, 3)
    lengths = (candidates * candidates).sum(dim=-1)     # (B, 3)

    # first maximum wins, as in the scalar path
    k = torch.argmax(lengths, dim=1)
    batch = torch.arange(m.shape[0], device=m.device)
    best, support = candidates[batch, k], lengths[batch, k]
    return safe_unit(best, support), support


def _reorthogonalize(evecs: torch.Tensor, el: torch.Tensor) -> torch.Tensor:
    batch = torch.arange(evecs.shape[0], device=evecs.device)
    a = evecs[batch, (el + 1) % 3]
    b = evecs[batch, (el + 2) % 3]
    v = torch.cross(a, b, dim=-1)
    evecs = evecs.clone()
    evecs[batch, el] = safe_unit(v, (v * v).sum(dim=-1))
    return evecs


def _batched_distinct(m: torch.Tensor, evals: torch.Tensor) -> torch.Tensor:
    v2, s2 = batched_best_axis(m, evals[:, 2])
    v1, s1 = batched_best_axis(m, evals[:, 1])
    v0, s0 = batched_best_axis(m, evals[:, 0])
    evecs = torch.stack([v0, v1, v2], dim=1)
    support = torch.stack([s0, s1, s2], dim=1)
    batch = torch.arange(m.shape[0], device=m.device)

    min_el = torch.full_like(batch, 2)
    max_el = torch.full_like(batch, 2)
    for i in (1, 0):
        s = support[:, i]
        min_el = torch.where(s <= support[batch, min_el], torch.full_like(min_el, i), min_el)
        max_el = torch.where(s > support[batch, max_el], torch.full_like(max_el, i), max_el)
    mid_el = 3 - min_el - max_el

    evecs = _reorthogonalize(evecs, min_el)
    return _reorthogonalize(evecs, mid_el)


def batched_eigen33(mats: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Batched eigen-decomposition of symmetric 3x3 matrices.

    Args:
        mats: (B, 3, 3) symmetric matrices

    Returns:
        evals: (B, 3) ascending eigenvalues
        evecs: (B, 3, 3) rows are the matching unit eigenvectors
    """
    B = mats.shape[0]
    tiny = torch.finfo(mats.dtype).tiny

    scale = torch.abs(mats).reshape(B, 9).amax(dim=1)
    scale = torch.where(scale <= tiny, torch.ones_like(scale), scale)
    m = mats / scale.view(-1, 1, 1)

    evals = batched_compute_roots(m)

    eps = gap_tolerance(m.dtype)
    all_equal = (evals[:, 2] - evals[:, 0]) <= eps
    low_pair = ~all_equal & ((evals[:, 1] - evals[:, 0]) <= eps)
    high_pair = ~all_equal & ~low_pair & ((evals[:, 2] - evals[:, 1]) <= eps)

    # low pair: unique axis for the largest eigenvalue
    u2, _ = batched_best_axis(m, evals[:, 2])
    u1 = batched_unit_orthogonal(u2)
    low = torch.stack([torch.cross(u1, u2, dim=-1), u1, u2], dim=1)

    # high pair: unique axis for the smallest eigenvalue
    w0, _ = batched_best_axis(m, evals[:, 0])
    w1 = batched_unit_orthogonal(w0)
    high = torch.stack([w0, w1, torch.cross(w0, w1, dim=-1)], dim=1)

    identity = torch.eye(3, device=m.device, dtype=m.dtype).expand(B, 3, 3)

    evecs = _batched_distinct(m, evals)
    evecs = torch.where(high_pair.view(-1, 1, 1), high, evecs)
    evecs = torch.where(low_pair.view(-1, 1, 1), low, evecs)
    evecs = torch.where(all_equal.view(-1, 1, 1), identity, evecs)

    return evals * scale.unsqueeze(-1), evecs
