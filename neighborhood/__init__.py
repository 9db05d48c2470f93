"""
neighborhood - Local Geometric Statistics for Organized Point Clouds

Centroid, covariance and closed-form 3x3 eigen-decomposition of the points
inside a sphere around every pixel of a depth-camera style point cloud,
feeding surface normal and curvature estimation.

Components:
    - Core: Cubic roots, scalar and batched eigen33
    - Analysis: Point-set covariance, projected-window radius search,
      online (Welford) moments, normals and curvature
    - IO: NPZ loading, PLY / NPZ / PNG export
    - Utils: Configuration and helper functions

Example:
    >>> from neighborhood import OrganizedCloud, OrganizedRadiusSearch, eigen33
    >>>
    >>> cloud = OrganizedCloud.from_depth(depth, focal_length=525.0)
    >>> search = OrganizedRadiusSearch(cloud, sqr_radius=0.05 ** 2)
    >>> cov, centroid, count = search.compute_covariance_online(query)
    >>> if count > 0:
    ...     evals, evecs = eigen33(cov)
    ...     normal = evecs[0]
"""

__version__ = "1.0.0"

# ============================================================================
# Core
# ============================================================================
from .core import (
    # Roots
    characteristic_coefficients,
    compute_roots2,
    compute_roots,

    # Reference eigen-decomposition
    EigenResult,
    Spectrum,
    classify_spectrum,
    unit_orthogonal,
    eigen33,

    # Batched eigen-decomposition
    batched_compute_roots,
    batched_eigen33,
)

# ============================================================================
# Analysis
# ============================================================================
from .analysis import (
    # Covariance
    compute_3d_centroid,
    compute_covariance,
    compute_centroid_and_covariance,
    batched_centroid_and_covariance,

    # Organized search
    SearchWindow,
    OrganizedCloud,
    OrganizedRadiusSearch,

    # Normals
    batched_window_moments,
    compute_point_normal,
    estimate_normals_organized,
)

# ============================================================================
# IO
# ============================================================================
from .io import (
    load_organized_npz,
    save_ply_xyz,
    save_normals_npz,
    save_curvature_png,
)

# ============================================================================
# Utils
# ============================================================================
from .utils import (
    default_cfg,
    EPS_EIGEN,
    MIN_NEIGHBORS,
    WINDOW_STRIDE,
    DEFAULT_CONFIG,
    EXPORT_CONFIG,
)


__all__ = [
    "__version__",

    # Core
    "characteristic_coefficients",
    "compute_roots2",
    "compute_roots",
    "EigenResult",
    "Spectrum",
    "classify_spectrum",
    "unit_orthogonal",
    "eigen33",
    "batched_compute_roots",
    "batched_eigen33",

    # Analysis
    "compute_3d_centroid",
    "compute_covariance",
    "compute_centroid_and_covariance",
    "batched_centroid_and_covariance",
    "SearchWindow",
    "OrganizedCloud",
    "OrganizedRadiusSearch",
    "batched_window_moments",
    "compute_point_normal",
    "estimate_normals_organized",

    # IO
    "load_organized_npz",
    "save_ply_xyz",
    "save_normals_npz",
    "save_curvature_png",

    # Utils
    "default_cfg",
    "EPS_EIGEN",
    "MIN_NEIGHBORS",
    "WINDOW_STRIDE",
    "DEFAULT_CONFIG",
    "EXPORT_CONFIG",
]
