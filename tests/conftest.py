import numpy as np
import pytest

from neighborhood import OrganizedCloud

WIDTH, HEIGHT, FOCAL = 32, 24, 30.0


def wavy_depth(width=WIDTH, height=HEIGHT):
    """Tilted, rippled surface about 1.5 m in front of the camera."""
    u = np.arange(width, dtype=np.float64)[None, :] - width / 2.0
    v = np.arange(height, dtype=np.float64)[:, None] - height / 2.0
    return 1.5 + 0.01 * u + 0.05 * np.sin(v / 4.0)


def brute_force_neighbors(cloud, query, sqr_radius):
    """Flat indices of every valid point within the radius, ascending."""
    pts = cloud.points
    valid = cloud.valid_mask()
    d = pts - np.asarray(query, dtype=np.float64)[:3]
    d2 = np.where(valid, np.einsum('ni,ni->n', np.nan_to_num(d), np.nan_to_num(d)), np.inf)
    return np.flatnonzero(d2 <= sqr_radius)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def wavy_cloud():
    return OrganizedCloud.from_depth(wavy_depth(), FOCAL)


@pytest.fixture
def plane_cloud():
    return OrganizedCloud.from_depth(np.full((HEIGHT, WIDTH), 2.0), FOCAL)
