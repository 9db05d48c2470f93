"""Batched window moments and normal / curvature estimation on organized clouds."""

from typing import Dict, List, Optional, Tuple

import numpy as np
import torch
from ..core.batched import batched_eigen33
from ..core.eigen import eigen33
from ..utils.config import MAX_GATHER, MIN_NEIGHBORS, default_cfg
from ..utils.utils import as_numpy, ensure_torch, resolve_device, resolve_dtype
from .covariance import batched_centroid_and_covariance
from .organized import OrganizedCloud, OrganizedRadiusSearch


def batched_projected_bounds(
    queries: torch.Tensor,
    sqr_radius: float,
    width: int,
    height: int,
    focal_length: float,
) -> torch.Tensor:
    """
    Clamped search windows for (B, 3) queries, (B, 4) as (min_x, max_x, min_y, max_y).

    Same tangent-ray bounds as ``OrganizedRadiusSearch.projected_bounds``.
    """
    x, y, z = queries[:, 0], queries[:, 1], queries[:, 2]
    r_sqr = float(sqr_radius)
    z_sqr = z * z
    inside = z_sqr <= r_sqr

    sqrt_x = torch.sqrt(torch.clamp(x * x * r_sqr + z_sqr * r_sqr - r_sqr * r_sqr, min=0.0))
    sqrt_y = torch.sqrt(torch.clamp(y * y * r_sqr + z_sqr * r_sqr - r_sqr * r_sqr, min=0.0))
    norm = 1.0 / torch.where(inside, torch.ones_like(z_sqr), z_sqr - r_sqr)

    f = float(focal_length)
    bounds = torch.stack([
        torch.floor((x * z - sqrt_x) * norm * f + width / 2.0),
        torch.ceil((x * z + sqrt_x) * norm * f + width / 2.0),
        torch.floor((y * z - sqrt_y) * norm * f + height / 2.0),
        torch.ceil((y * z + sqrt_y) * norm * f + height / 2.0),
    ], dim=-1)

    full = torch.tensor([0.0, width - 1, 0.0, height - 1], device=queries.device, dtype=queries.dtype)
    bounds = torch.where(inside.unsqueeze(-1), full.expand_as(bounds), bounds)

    lo = torch.zeros(4, device=queries.device, dtype=queries.dtype)
    hi = torch.tensor([width - 1, width - 1, height - 1, height - 1], device=queries.device, dtype=queries.dtype)
    return torch.minimum(torch.maximum(bounds, lo), hi).long()


def _gather_groups(bounds: np.ndarray, chunk_size: int, max_gather: int) -> List[np.ndarray]:
    """
    Split queries into groups whose padded gather stays within ``max_gather``.

    Queries are ordered by the side of their window so that small windows are
    not padded to a large one. A group holds at most ``chunk_size`` queries and
    ``len(group) * win_h * win_w <= max_gather``; a single window larger than
    the budget forms a group of its own.
    """
    win_w = bounds[:, 1] - bounds[:, 0] + 1
    win_h = bounds[:, 3] - bounds[:, 2] + 1
    order = np.argsort(np.maximum(win_w, win_h), kind="stable")
    ws, hs = win_w[order].tolist(), win_h[order].tolist()

    groups = []
    start = 0
    n = len(order)
    while start < n:
        stop = start + 1
        max_w, max_h = ws[start], hs[start]
        while stop < n and stop - start < chunk_size:
            w, h = max(max_w, ws[stop]), max(max_h, hs[stop])
            if (stop - start + 1) * w * h > max_gather:
                break
            max_w, max_h = w, h
            stop += 1
        groups.append(order[start:stop])
        start = stop
    return groups


def _window_moments_chunk(
    points: torch.Tensor,
    queries: torch.Tensor,
    bounds: torch.Tensor,
    sqr_radius: float,
    width: int,
    height: int,
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    min_x, max_x, min_y, max_y = bounds.unbind(dim=-1)

    win_w = int((max_x - min_x).max().item()) + 1
    win_h = int((max_y - min_y).max().item()) + 1
    ox = torch.arange(win_w, device=points.device)
    oy = torch.arange(win_h, device=points.device)

    px = min_x.view(-1, 1, 1) + ox.view(1, 1, -1)     # (B, 1, w)
    py = min_y.view(-1, 1, 1) + oy.view(1, -1, 1)     # (B, h, 1)
    in_window = (px <= max_x.view(-1, 1, 1)) & (py <= max_y.view(-1, 1, 1))

    idx = torch.clamp(py, max=height - 1) * width + torch.clamp(px, max=width - 1)
    B = queries.shape[0]
    idx = idx.expand(B, win_h, win_w).reshape(B, -1)
    in_window = in_window.expand(B, win_h, win_w).reshape(B, -1)

    neigh = points[idx]                                # (B, K, 3)
    valid = ~torch.isnan(neigh).any(dim=-1)
    diff = torch.where(valid.unsqueeze(-1), neigh - queries.unsqueeze(1), torch.zeros_like(neigh))
    close = (diff * diff).sum(dim=-1) <= sqr_radius

    mask = in_window & valid & close
    return batched_centroid_and_covariance(neigh, mask)


def batched_window_moments(
    cloud: OrganizedCloud,
    queries,
    sqr_radius: float,
    chunk_size: int = 4096,
    device='cpu',
    dtype=torch.float32,
    max_gather: int = MAX_GATHER,
) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """
    Centroid, covariance and neighbor count for many queries at once.

    Each query gathers its projected window and keeps the valid points within
    the radius. Queries are processed in groups padded to the largest window
    of the group, with at most ``chunk_size`` queries and ``max_gather``
    gathered points per group (see ``_gather_groups``).

    Returns:
        centroid: (B, 3)
        cov: (B, 3, 3)
        count: (B,) long, 0 marks an undefined estimate
    """
    dtype = resolve_dtype(dtype)
    device = resolve_device(device)
    points = ensure_torch(cloud.points, device=device, dtype=dtype)
    queries = ensure_torch(queries, device=device, dtype=dtype).reshape(-1, 3)
    B = queries.shape[0]

    centroid = torch.full((B, 3), float("nan"), device=device, dtype=dtype)
    cov = torch.full((B, 3, 3), float("nan"), device=device, dtype=dtype)
    count = torch.zeros(B, device=device, dtype=torch.long)
    if B == 0:
        return centroid, cov, count

    bounds = batched_projected_bounds(
        queries, sqr_radius, cloud.width, cloud.height, cloud.focal_length
    )
    groups = _gather_groups(as_numpy(bounds), max(int(chunk_size), 1), int(max_gather))

    for group in groups:
        rows = torch.from_numpy(group).to(device)
        c, m, n = _window_moments_chunk(
            points, queries[rows], bounds[rows], sqr_radius, cloud.width, cloud.height
        )
        centroid[rows] = c
        cov[rows] = m
        count[rows] = n
    return centroid, cov, count


def compute_point_normal(cov, point, viewpoint=(0.0, 0.0, 0.0)) -> Tuple[np.ndarray, float]:
    """
    Normal and surface curvature from a neighborhood covariance.

    The normal is the eigenvector of the smallest eigenvalue, flipped to face
    ``viewpoint``; curvature is lambda0 / (lambda0 + lambda1 + lambda2).
    """
    evals, evecs = eigen33(cov)
    normal = evecs[0].copy()

    to_view = np.asarray(viewpoint, dtype=np.float64) - np.asarray(point, dtype=np.float64)[:3]
    if np.dot(normal, to_view) < 0.0:
        normal = -normal

    total = float(evals.sum())
    curvature = float(evals[0]) / total if total != 0.0 else 0.0
    return normal, curvature


def _reference_normals(cloud: OrganizedCloud, sqr_radius: float, viewpoint, cfg: Dict):
    search = OrganizedRadiusSearch(cloud, sqr_radius)
    normals = np.full((len(cloud), 3), np.nan)
    curvature = np.full(len(cloud), np.nan)
    sqrt_nn = float(cfg["sqrt_desired_nr_neighbors"])

    for idx in np.flatnonzero(cloud.valid_mask()):
        p = cloud.points[idx]
        cov, _, nnn = search.compute_covariance_online(p, sqrt_nn)
        if nnn < MIN_NEIGHBORS:
            continue
        normals[idx], curvature[idx] = compute_point_normal(cov, p, viewpoint)
    return normals, curvature


def _batched_normals(cloud: OrganizedCloud, sqr_radius: float, viewpoint, cfg: Dict):
    device = resolve_device(cfg["device"])
    dtype = resolve_dtype(cfg["dtype"])

    normals = np.full((len(cloud), 3), np.nan)
    curvature = np.full(len(cloud), np.nan)
    valid = np.flatnonzero(cloud.valid_mask())
    if valid.size == 0:
        return normals, curvature

    queries = ensure_torch(cloud.points[valid], device=device, dtype=dtype)
    _, cov, count = batched_window_moments(
        cloud, queries, sqr_radius, cfg["chunk_size"], device, dtype, cfg["max_gather"]
    )

    enough = count >= MIN_NEIGHBORS
    if not bool(enough.any()):
        return normals, curvature

    evals, evecs = batched_eigen33(cov[enough])
    n = evecs[:, 0]
    vp = torch.as_tensor(viewpoint, device=device, dtype=dtype)
    facing = ((vp - queries[enough]) * n).sum(dim=-1)
    n = torch.where((facing < 0.0).unsqueeze(-1), -n, n)

    total = evals.sum(dim=-1)
    curv = torch.where(total != 0.0, evals[:, 0] / torch.where(total != 0.0, total, torch.ones_like(total)),
                       torch.zeros_like(total))

    rows = valid[as_numpy(enough)]
    normals[rows] = as_numpy(n)
    curvature[rows] = as_numpy(curv)
    return normals, curvature


def estimate_normals_organized(
    cloud: OrganizedCloud,
    radius: Optional[float] = None,
    cfg: Optional[Dict] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-pixel normals and curvature of an organized cloud.

    Args:
        cloud: organized cloud
        radius: neighborhood radius (defaults to ``cfg["radius"]``)
        cfg: configuration, see ``default_cfg()``

    Returns:
        normals: (H*W, 3), NaN where the point is invalid or has fewer than
                 MIN_NEIGHBORS neighbors
        curvature: (H*W,), NaN at the same pixels
    """
    config = default_cfg()
    config.update(cfg or {})
    radius = float(config["radius"] if radius is None else radius)
    sqr_radius = radius * radius
    viewpoint = config["viewpoint"]

    backend = config["backend"]
    if backend == "reference":
        return _reference_normals(cloud, sqr_radius, viewpoint, config)
    if backend == "torch":
        return _batched_normals(cloud, sqr_radius, viewpoint, config)
    raise ValueError(f"Unknown backend: {backend}")
