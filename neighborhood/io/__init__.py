"""
Input/Output utilities for organized clouds and normal maps.

Includes:
- Organized cloud loading (NPZ: points or depth)
- Point cloud export (PLY, optionally with normals)
- Normal / curvature grid export (NPZ)
- Curvature visualization (PNG)
"""

from .export import (
    # Loading
    load_organized_npz,

    # Point cloud export
    save_ply_xyz,

    # Normal export
    save_normals_npz,

    # Visualization
    save_curvature_png,
    setup_matplotlib,
)

__all__ = [
    "load_organized_npz",
    "save_ply_xyz",
    "save_normals_npz",
    "save_curvature_png",
    "setup_matplotlib",
]
