"""File import/export utilities (NPZ, PLY, PNG)."""

import numpy as np
from pathlib import Path
from ..analysis.organized import OrganizedCloud
from ..utils.utils import as_numpy


def setup_matplotlib():
    """Setup matplotlib for non-interactive mode."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    return plt


def load_organized_npz(path, focal_length: float = None) -> OrganizedCloud:
    """
    Load an organized cloud from NPZ.

    The archive holds either ``points`` (H, W, 3|4) or ``depth`` (H, W),
    and optionally ``focal_length`` (overridden by the argument).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Cloud file not found: {path}")

    with np.load(path) as data:
        if focal_length is None:
            if "focal_length" not in data:
                raise ValueError(f"No focal_length in {path} and none given")
            focal_length = float(data["focal_length"])
        if "points" in data:
            return OrganizedCloud(data["points"], focal_length)
        if "depth" in data:
            return OrganizedCloud.from_depth(data["depth"], focal_length)
    raise ValueError(f"{path} holds neither 'points' nor 'depth'")


def save_ply_xyz(path: Path, xyz: np.ndarray, normals: np.ndarray = None):
    """Save point cloud (optionally with normals) in PLY format, skipping NaN rows."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    xyz = as_numpy(xyz).reshape(-1, 3)
    keep = ~np.isnan(xyz).any(axis=1)
    cols = [xyz]
    if normals is not None:
        normals = as_numpy(normals).reshape(-1, 3)
        keep &= ~np.isnan(normals).any(axis=1)
        cols.append(normals)
    data = np.concatenate(cols, axis=1)[keep]

    with path.open('w', encoding='utf-8') as f:
        f.write("ply\nformat ascii 1.0\n")
        f.write(f"element vertex {len(data)}\n")
        f.write("property float x\nproperty float y\nproperty float z\n")
        if normals is not None:
            f.write("property float nx\nproperty float ny\nproperty float nz\n")
        f.write("end_header\n")
        np.savetxt(f, data, fmt="%.6f")


def save_normals_npz(path: Path, normals: np.ndarray, curvature: np.ndarray, width: int, height: int):
    """Save per-pixel normals and curvature as (H, W, 3) / (H, W) grids."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    np.savez_compressed(
        path,
        normals=as_numpy(normals).reshape(height, width, 3).astype(np.float32),
        curvature=as_numpy(curvature).reshape(height, width).astype(np.float32),
    )


def save_curvature_png(path, curvature: np.ndarray, width: int, height: int, dpi=160):
    """Save curvature image; invalid pixels stay blank."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    img = as_numpy(curvature).reshape(height, width)
    plt = setup_matplotlib()

    fig, ax = plt.subplots(figsize=(6, 6 * height / max(width, 1)))
    im = ax.imshow(np.ma.masked_invalid(img), cmap="viridis", vmin=0.0, vmax=1.0 / 3.0)
    ax.set_title("Surface curvature")
    ax.set_axis_off()
    fig.colorbar(im, ax=ax, shrink=0.7)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
