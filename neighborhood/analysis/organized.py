"""
Radius search and neighborhood moments on organized point clouds.

An organized cloud is a (height x width) grid of points from a centered
pinhole camera with focal length f: the point of pixel (u, v) lies on the
ray  x/z = (u - width/2)/f,  y/z = (v - height/2)/f.  Instead of a spatial
index, the neighbors of a query are found by projecting the query sphere
into the image, scanning the resulting pixel rectangle and re-checking each
candidate by exact 3-D distance.
"""

import math
from typing import NamedTuple, Tuple

import numpy as np
from ..utils.config import WINDOW_STRIDE
from ..utils.utils import clamp, is_invalid


class SearchWindow(NamedTuple):
    min_x: int
    max_x: int
    min_y: int
    max_y: int


class OrganizedCloud:
    """
    Read-only view of a row-major organized point buffer.

    Args:
        points: (height, width, C) or (height*width, C) with C in {3, 4};
                NaN coordinates mark invalid pixels
        width, height: grid size (inferred from a 3-D ``points`` array)
        focal_length: pinhole focal length in pixels
    """

    def __init__(self, points, focal_length: float, width: int = None, height: int = None):
        pts = np.asarray(points)
        if pts.ndim == 3:
            height = pts.shape[0] if height is None else height
            width = pts.shape[1] if width is None else width
            pts = pts.reshape(-1, pts.shape[-1])
        if pts.ndim != 2 or pts.shape[1] not in (3, 4):
            raise ValueError(f"Expected (N, 3) or (N, 4) points, got shape {pts.shape}")
        if width is None or height is None:
            raise ValueError("width and height are required for flat point buffers")
        if int(width) <= 0 or int(height) <= 0:
            raise ValueError(f"Invalid cloud size: {width}x{height}")
        if pts.shape[0] != int(width) * int(height):
            raise ValueError(f"Point count {pts.shape[0]} does not match {width}x{height}")
        if not float(focal_length) > 0.0:
            raise ValueError(f"Focal length must be positive, got {focal_length}")

        view = pts[:, :3].astype(np.float64, copy=False).view()
        view.flags.writeable = False
        self.points = view
        self.width = int(width)
        self.height = int(height)
        self.focal_length = float(focal_length)

    @classmethod
    def from_depth(cls, depth, focal_length: float) -> "OrganizedCloud":
        """Back-project an (H, W) depth image; non-positive depth becomes NaN."""
        depth = np.asarray(depth, dtype=np.float64)
        if depth.ndim != 2:
            raise ValueError(f"Expected (H, W) depth image, got shape {depth.shape}")
        H, W = depth.shape
        f = float(focal_length)

        u = np.arange(W, dtype=np.float64)[None, :] - W / 2.0
        v = np.arange(H, dtype=np.float64)[:, None] - H / 2.0
        z = np.where(np.isfinite(depth) & (depth > 0.0), depth, np.nan)
        points = np.stack([u * z / f, v * z / f, z], axis=-1)
        return cls(points, f)

    def __len__(self) -> int:
        return self.width * self.height

    def pixel_of(self, index: int) -> Tuple[int, int]:
        """(u, v) pixel coordinates of a flat index."""
        return index % self.width, index // self.width

    def valid_mask(self) -> np.ndarray:
        return ~np.isnan(self.points).any(axis=1)


class OrganizedRadiusSearch:
    """
    Sphere queries of fixed squared radius on one organized cloud.

    All methods are pure: the cloud is only read and every call keeps its
    accumulators local, so one instance may serve many threads.
    """

    def __init__(self, cloud: OrganizedCloud, sqr_radius: float):
        self.cloud = cloud
        self.sqr_radius = float(sqr_radius)

    @property
    def width(self) -> int:
        return self.cloud.width

    @property
    def height(self) -> int:
        return self.cloud.height

    def projected_bounds(self, query) -> SearchWindow:
        """
        Pixel rectangle that may contain the query sphere, not clamped.

        Per image axis the two rays through the camera center that are
        tangent to the sphere's circle in that axis' plane have slopes

            t = (a*z +- sqrt(a^2 r^2 + z^2 r^2 - r^4)) / (z^2 - r^2)

        with a the query's x (or y) coordinate and r^2 the squared radius.
        Bounds are rounded outward. If the camera lies inside the sphere
        (z^2 <= r^2) every pixel is a candidate.
        """
        x, y, z = float(query[0]), float(query[1]), float(query[2])
        r_sqr = self.sqr_radius
        z_sqr = z * z

        if z_sqr <= r_sqr:
            return SearchWindow(0, self.width - 1, 0, self.height - 1)

        r_quadr = r_sqr * r_sqr
        sqrt_term_x = math.sqrt(x * x * r_sqr + z_sqr * r_sqr - r_quadr)
        sqrt_term_y = math.sqrt(y * y * r_sqr + z_sqr * r_sqr - r_quadr)
        norm = 1.0 / (z_sqr - r_sqr)

        f = self.cloud.focal_length
        cx, cy = self.width / 2.0, self.height / 2.0
        return SearchWindow(
            int(math.floor((x * z - sqrt_term_x) * norm * f + cx)),
            int(math.ceil((x * z + sqrt_term_x) * norm * f + cx)),
            int(math.floor((y * z - sqrt_term_y) * norm * f + cy)),
            int(math.ceil((y * z + sqrt_term_y) * norm * f + cy)),
        )

    def get_projected_radius_search_box(self, query) -> SearchWindow:
        """Projected search rectangle clamped into the image."""
        b = self.projected_bounds(query)
        w, h = self.width - 1, self.height - 1
        return SearchWindow(clamp(b.min_x, 0, w), clamp(b.max_x, 0, w),
                            clamp(b.min_y, 0, h), clamp(b.max_y, 0, h))

    def _accepted(self, query: np.ndarray, stride: int = WINDOW_STRIDE):
        """Yield (index, point) of valid window points within the radius, row-major."""
        bounds = self.get_projected_radius_search_box(query)
        points = self.cloud.points
        width = self.width

        for y in range(bounds.min_y, bounds.max_y + 1, stride):
            for x in range(bounds.min_x, bounds.max_x + 1, stride):
                idx = y * width + x
                p = points[idx]
                if is_invalid(p):
                    continue
                d = p - query
                if float(np.dot(d, d)) <= self.sqr_radius:
                    yield idx, p

    def radius_search(self, query, max_nn: int) -> np.ndarray:
        """
        Indices of up to ``max_nn`` neighbors in row-major scan order.

        The scan stops as soon as ``max_nn`` neighbors are found, so the
        result is the first neighbors in scan order, not the nearest ones.
        """
        query = np.asarray(query, dtype=np.float64)[:3]
        indices = []
        if max_nn <= 0:
            return np.zeros(0, dtype=np.int64)
        for idx, _ in self._accepted(query):
            indices.append(idx)
            if len(indices) >= max_nn:
                break
        return np.asarray(indices, dtype=np.int64)

    def compute_centroid(self, query, sqrt_desired_nr_neighbors: float = 1.0) -> Tuple[np.ndarray, int]:
        """
        Running mean of the neighbors of ``query``.

        ``sqrt_desired_nr_neighbors`` is accepted for interface stability;
        the window is always scanned with unit stride.

        Returns:
            centroid: (3,), NaN when no neighbor was found
            count: number of neighbors
        """
        query = np.asarray(query, dtype=np.float64)[:3]
        centroid = np.zeros(3)
        nnn = 0
        for _, p in self._accepted(query):
            centroid += p
            nnn += 1

        if nnn == 0:
            return np.full(3, np.nan), 0
        return centroid / nnn, nnn

    def compute_covariance_online(self, query, sqrt_desired_nr_neighbors: float = 1.0) -> Tuple[np.ndarray, np.ndarray, int]:
        """
        One-pass (Welford) centroid and covariance of the neighbors of ``query``.

        For every accepted point the deviation from the old mean and from
        the updated mean are multiplied into the upper triangle of the
        scatter accumulator; the lower triangle is mirrored at the end.

        Returns:
            cov: (3, 3), NaN when no neighbor was found
            centroid: (3,), NaN when no neighbor was found
            count: number of neighbors
        """
        query = np.asarray(query, dtype=np.float64)[:3]
        cov = np.zeros((3, 3))
        centroid = np.zeros(3)
        nnn = 0

        for _, p in self._accepted(query):
            nnn += 1
            demean_old = p - centroid
            centroid = centroid + demean_old / nnn
            demean_new = p - centroid

            cov[1, 1] += demean_new[1] * demean_old[1]
            cov[1, 2] += demean_new[1] * demean_old[2]
            cov[2, 2] += demean_new[2] * demean_old[2]
            cov[0] += demean_old * demean_new[0]

        if nnn == 0:
            return np.full((3, 3), np.nan), np.full(3, np.nan), 0

        cov[1, 0], cov[2, 0], cov[2, 1] = cov[0, 1], cov[0, 2], cov[1, 2]
        return cov / nnn, centroid, nnn
