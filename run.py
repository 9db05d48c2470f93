#!/usr/bin/env python3
"""
run.py - Organized point cloud normal and curvature estimation

Loads an organized cloud (NPZ with ``points`` or ``depth``), computes the
radius-neighborhood covariance of every valid pixel, decomposes it with the
closed-form eigensolver and exports normals and curvature.

Usage:
    python run.py -c config.yaml
    python run.py -c config.yaml --backend reference
    python run.py -c config.yaml --png

Config (YAML):
    cloud_path: data/frame_000.npz
    camera:
      focal_length: 525.0
    normals:
      radius: 0.03
      backend: torch
      device: cuda
    export:
      output_dir: output/normals

Relative paths are resolved against the directory of the config file.
"""

import argparse
import time
from pathlib import Path
from typing import Dict, Tuple

import numpy as np

from neighborhood import (
    default_cfg,
    estimate_normals_organized,
    load_organized_npz,
    save_ply_xyz,
    save_normals_npz,
    save_curvature_png,
)


# ============================================================================
# Configuration Loading
# ============================================================================
def load_config(config_path: str) -> Tuple[Dict, Path]:
    """Load configuration from YAML file."""
    import yaml

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    return cfg, config_path.parent


def validate_config(cfg: Dict) -> None:
    """Validate required configuration fields."""
    required = ["cloud_path"]
    for key in required:
        if key not in cfg:
            raise ValueError(f"Missing required config field: {key}")

    radius = (cfg.get("normals", {}) or {}).get("radius")
    if radius is not None and float(radius) <= 0.0:
        raise ValueError(f"normals.radius must be positive, got {radius}")


def resolve_path(path, base: Path) -> Path:
    """Relative paths in the config are taken from the config file directory."""
    path = Path(path)
    return path if path.is_absolute() else base / path


def build_normals_cfg(cfg: Dict) -> Dict:
    """Merge user settings over the defaults."""
    nc = default_cfg()
    nc.update(cfg.get("normals", {}) or {})
    nc["export"].update(cfg.get("export", {}) or {})
    return nc


# ============================================================================
# Main Function
# ============================================================================
def main():
    """Main entry point."""
    ap = argparse.ArgumentParser(description="Organized cloud normals + curvature")
    ap.add_argument("-c", "--config", type=str, required=True, help="Path to YAML config.")
    ap.add_argument("--backend", type=str, choices=["torch", "reference"], default=None)
    ap.add_argument("--radius", type=float, default=None)
    ap.add_argument("--png", action="store_true", help="Export curvature PNG.")
    ap.add_argument("--png-dpi", type=int, default=160)
    args = ap.parse_args()

    # Load configuration
    print("[Config] Loading configuration...")
    cfg, cfg_dir = load_config(args.config)
    validate_config(cfg)
    nc = build_normals_cfg(cfg)

    if args.backend is not None:
        nc["backend"] = args.backend
    if args.radius is not None:
        nc["radius"] = args.radius

    cloud_path = resolve_path(cfg["cloud_path"], cfg_dir)
    out_dir = resolve_path(nc["export"]["output_dir"], cfg_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    # Load cloud
    print(f"[Load] Reading organized cloud: {cloud_path}")
    focal_length = (cfg.get("camera", {}) or {}).get("focal_length")
    cloud = load_organized_npz(cloud_path, focal_length)
    n_valid = int(cloud.valid_mask().sum())
    print(f"  {cloud.width}x{cloud.height}, {n_valid} valid points, f={cloud.focal_length:.2f}")

    # Normals
    print(f"[Normals] backend={nc['backend']} radius={nc['radius']} device={nc['device']}")
    t0 = time.perf_counter()
    normals, curvature = estimate_normals_organized(cloud, nc["radius"], nc)
    dt = time.perf_counter() - t0

    n_est = int((~np.isnan(curvature)).sum())
    print(f"  {n_est}/{n_valid} normals estimated in {dt:.3f}s")
    if n_est > 0:
        print(f"  curvature: mean={np.nanmean(curvature):.4f} max={np.nanmax(curvature):.4f}")

    # Export
    stem = cloud_path.stem
    if nc["export"].get("ply", True):
        ply_path = out_dir / f"{stem}_normals.ply"
        save_ply_xyz(ply_path, cloud.points, normals)
        print(f"[Export] {ply_path}")
    if nc["export"].get("npz", True):
        npz_path = out_dir / f"{stem}_normals.npz"
        save_normals_npz(npz_path, normals, curvature, cloud.width, cloud.height)
        print(f"[Export] {npz_path}")
    if args.png:
        png_path = out_dir / f"{stem}_curvature.png"
        save_curvature_png(png_path, curvature, cloud.width, cloud.height, dpi=args.png_dpi)
        print(f"[Export] {png_path}")

    print("\n" + "=" * 70)
    print("Done.")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
