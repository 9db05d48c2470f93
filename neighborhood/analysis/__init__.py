"""
Neighborhood analysis on point clouds.

Includes:
- Centroid / covariance of explicit point sets
- Projected-window radius search and online moments on organized clouds
- Batched window moments, normals and curvature
"""

# ============================================================================
# Covariance (explicit point sets)
# ============================================================================
from .covariance import (
    compute_3d_centroid,
    point_covariance,
    compute_covariance,
    compute_centroid_and_covariance,
    batched_centroid_and_covariance,
)

# ============================================================================
# Organized radius search
# ============================================================================
from .organized import (
    SearchWindow,
    OrganizedCloud,
    OrganizedRadiusSearch,
)

# ============================================================================
# Normals
# ============================================================================
from .normals import (
    batched_projected_bounds,
    batched_window_moments,
    compute_point_normal,
    estimate_normals_organized,
)


__all__ = [
    # Covariance
    "compute_3d_centroid",
    "point_covariance",
    "compute_covariance",
    "compute_centroid_and_covariance",
    "batched_centroid_and_covariance",

    # Organized
    "SearchWindow",
    "OrganizedCloud",
    "OrganizedRadiusSearch",

    # Normals
    "batched_projected_bounds",
    "batched_window_moments",
    "compute_point_normal",
    "estimate_normals_organized",
]
