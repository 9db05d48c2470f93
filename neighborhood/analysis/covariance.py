"""Centroid and covariance of explicit point sets."""

from typing import Optional, Tuple

import numpy as np
import torch

_UPPER = (np.array([0, 0, 0, 1, 1, 2]), np.array([0, 1, 2, 1, 2, 2]))


def _as_points(points) -> np.ndarray:
    pts = np.asarray(points, dtype=np.float64)
    return pts.reshape(-1, pts.shape[-1])[:, :3]


def compute_3d_centroid(points) -> np.ndarray:
    """Arithmetic mean of a (N, 3|4) point range."""
    pts = _as_points(points)
    return pts.sum(axis=0) / float(pts.shape[0])


def point_covariance(point: np.ndarray, centroid: np.ndarray) -> np.ndarray:
    """Upper-triangle outer product contribution of a single point, (6,)."""
    d = np.asarray(point, dtype=np.float64)[:3] - centroid
    return np.outer(d, d)[_UPPER]


def compute_covariance(points, centroid) -> np.ndarray:
    """
    Covariance C = 1/n * sum (p - c)(p - c)^T.

    Each point maps to its upper-triangle outer product; the contributions
    are reduced by addition (order independent), mirrored and divided by n.
    """
    pts = _as_points(points)
    d = pts - np.asarray(centroid, dtype=np.float64)
    upper = np.einsum('ni,nj->nij', d, d)[:, _UPPER[0], _UPPER[1]].sum(axis=0)

    cov = np.zeros((3, 3))
    cov[_UPPER] = upper
    cov[1, 0], cov[2, 0], cov[2, 1] = cov[0, 1], cov[0, 2], cov[1, 2]
    return cov / float(pts.shape[0])


def compute_centroid_and_covariance(points) -> Tuple[np.ndarray, np.ndarray]:
    centroid = compute_3d_centroid(points)
    return centroid, compute_covariance(points, centroid)


def batched_centroid_and_covariance(
    neighbors: torch.Tensor,
    mask: Optional[torch.Tensor] = None,
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """
    Centroid and covariance for padded neighbor sets.

    Args:
        neighbors: (B, K, 3) points, padding entries may hold anything
        mask: (B, K) bool, True where the entry is a real neighbor

    Returns:
        centroid: (B, 3)
        cov: (B, 3, 3)
        count: (B,) number of real neighbors (0 -> NaN centroid/cov)
    """
    if mask is None:
        mask = torch.ones(neighbors.shape[:2], dtype=torch.bool, device=neighbors.device)

    w = mask.to(neighbors.dtype).unsqueeze(-1)
    pts = torch.where(mask.unsqueeze(-1), neighbors, torch.zeros_like(neighbors))
    count = mask.sum(dim=1)
    n = count.to(neighbors.dtype)

    centroid = pts.sum(dim=1) / n.unsqueeze(-1)
    centered = (pts - centroid.unsqueeze(1)) * w
    cov = torch.einsum('nki,nkj->nij', centered, centered) / n.view(-1, 1, 1)
    return centroid, cov, count
