"""Common utility functions."""

import warnings

import numpy as np
import torch


_DTYPES = {
    "float32": torch.float32,
    "float64": torch.float64,
}


def resolve_device(device) -> torch.device:
    """Return the requested device, falling back to CPU when CUDA is missing."""
    device = torch.device(device)
    if device.type == "cuda" and not torch.cuda.is_available():
        warnings.warn("CUDA not available - fallback to CPU")
        return torch.device("cpu")
    return device


def resolve_dtype(dtype) -> torch.dtype:
    """Map a config string (or torch dtype) to a torch dtype."""
    if isinstance(dtype, torch.dtype):
        return dtype
    if dtype not in _DTYPES:
        raise ValueError(f"Unsupported dtype: {dtype}")
    return _DTYPES[dtype]


def ensure_torch(x, device='cpu', dtype=torch.float32):
    """Convert array-like to torch tensor on the given device/dtype."""
    device = resolve_device(device)
    if torch.is_tensor(x):
        if x.device == device and x.dtype == dtype:
            return x
        return x.to(device=device, dtype=dtype)
    arr = np.asarray(x)
    if not arr.flags.writeable:
        arr = arr.copy()
    return torch.from_numpy(arr).to(device=device, dtype=dtype)


def as_numpy(a):
    """Convert to numpy array."""
    if isinstance(a, torch.Tensor):
        return a.detach().cpu().numpy()
    return np.asarray(a)


def safe_unit(v: torch.Tensor, sq_len: torch.Tensor) -> torch.Tensor:
    """Divide by sqrt(sq_len) where it is positive, pass zeros through."""
    ok = sq_len > 0
    denom = torch.sqrt(torch.where(ok, sq_len, torch.ones_like(sq_len)))
    return torch.where(ok.unsqueeze(-1), v / denom.unsqueeze(-1), v)


def is_invalid(p) -> bool:
    """True when any coordinate of a point is NaN."""
    return bool(np.isnan(p[0]) or np.isnan(p[1]) or np.isnan(p[2]))


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))
