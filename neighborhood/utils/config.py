"""Configuration management for neighborhood statistics."""

from typing import Dict

import numpy as np

# Numerical constants
EPS_EIGEN = float(np.finfo(np.float32).eps)   # root / eigenvalue gap tolerance
MIN_NORMAL_F64 = float(np.finfo(np.float64).tiny)
MIN_NEIGHBORS = 3
DEGENERACY_ULPS = 4                           # floor on the gap tolerance in low precision
WINDOW_STRIDE = 1
MAX_GATHER = 1 << 20                          # padded window points per batched group

DEFAULT_CONFIG = {
    "radius": 0.05,
    "backend": "torch",        # "torch" (batched) or "reference" (per pixel)
    "device": "cpu",
    "dtype": "float32",
    "chunk_size": 4096,
    "max_gather": MAX_GATHER,
    "sqrt_desired_nr_neighbors": 8.0,
    "viewpoint": [0.0, 0.0, 0.0],
}

EXPORT_CONFIG = {
    "ply": True,
    "npz": True,
    "output_dir": "output/normals",
}


def default_cfg() -> Dict:
    """Default configuration for organized normal estimation."""
    config = DEFAULT_CONFIG.copy()
    config["viewpoint"] = list(DEFAULT_CONFIG["viewpoint"])
    config["export"] = EXPORT_CONFIG.copy()
    return config
