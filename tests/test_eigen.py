# ============================================================================
# Closed-form eigen33 tests
# ============================================================================
import numpy as np

from neighborhood import (
    Spectrum,
    classify_spectrum,
    compute_roots,
    compute_roots2,
    eigen33,
    unit_orthogonal,
    compute_centroid_and_covariance,
)
from neighborhood.core.eigen import _STRATEGIES
from neighborhood.core.roots import sort3


def random_rotation(rng):
    q, r = np.linalg.qr(rng.normal(size=(3, 3)))
    q = q * np.sign(np.diag(r))
    if np.linalg.det(q) < 0:
        q[:, 0] = -q[:, 0]
    return q


def random_psd(rng, scale=1.0):
    a = rng.normal(size=(3, 5))
    return scale * (a @ a.T)


def assert_orthonormal(evecs, tol=1e-5):
    gram = evecs @ evecs.T
    assert np.allclose(gram, np.eye(3), atol=tol), gram


def test_diag_all_equal():
    """diag(5,5,5) -> (5,5,5) and the standard basis."""
    evals, evecs = eigen33(np.diag([5.0, 5.0, 5.0]))
    assert np.allclose(evals, [5.0, 5.0, 5.0])
    assert np.array_equal(evecs, np.eye(3))


def test_diag_low_pair():
    """diag(1,1,4) -> axis of 4 is z, the others span the xy plane."""
    evals, evecs = eigen33(np.diag([1.0, 1.0, 4.0]))
    assert np.allclose(evals, [1.0, 1.0, 4.0])
    assert np.isclose(abs(evecs[2, 2]), 1.0)
    assert np.allclose(evecs[:2, 2], 0.0)
    assert_orthonormal(evecs)


def test_diag_high_pair():
    evals, evecs = eigen33(np.diag([1.0, 4.0, 4.0]))
    assert np.allclose(evals, [1.0, 4.0, 4.0])
    assert np.isclose(abs(evecs[0, 0]), 1.0)
    assert np.allclose(evecs[1:, 0], 0.0)
    assert_orthonormal(evecs)


def test_zero_matrix():
    evals, evecs = eigen33(np.zeros((3, 3)))
    assert np.array_equal(evals, np.zeros(3))
    assert np.array_equal(evecs, np.eye(3))


def test_classify_spectrum():
    assert classify_spectrum(np.array([1.0, 1.0, 1.0])) is Spectrum.ALL_EQUAL
    assert classify_spectrum(np.array([0.2, 0.2, 1.0])) is Spectrum.LOW_PAIR
    assert classify_spectrum(np.array([0.2, 1.0, 1.0])) is Spectrum.HIGH_PAIR
    assert classify_spectrum(np.array([0.1, 0.5, 1.0])) is Spectrum.DISTINCT
    assert set(_STRATEGIES) == set(Spectrum)


def test_each_strategy_is_orthonormal(rng):
    """Every case strategy yields a right-handed orthonormal frame on its own input."""
    R = random_rotation(rng)
    cases = {
        Spectrum.ALL_EQUAL: [0.5, 0.5, 0.5],
        Spectrum.LOW_PAIR: [0.25, 0.25, 1.0],
        Spectrum.HIGH_PAIR: [0.25, 1.0, 1.0],
        Spectrum.DISTINCT: [0.1, 0.4, 1.0],
    }
    for case, lam in cases.items():
        m = R @ np.diag(lam) @ R.T
        evecs = _STRATEGIES[case](m, np.array(lam))
        assert_orthonormal(evecs)
        assert np.isclose(np.linalg.det(evecs), 1.0, atol=1e-6), case


def test_rotated_distinct_spectrum(rng):
    for _ in range(20):
        R = random_rotation(rng)
        lam = np.array([1.0, 2.0, 3.0])
        evals, evecs = eigen33(R @ np.diag(lam) @ R.T)
        assert np.allclose(evals, lam, atol=1e-9)
        # rows are +-columns of R
        dots = np.abs(np.einsum('ij,ji->i', evecs, R))
        assert np.allclose(dots, 1.0, atol=1e-8)


def test_rotated_repeated_pair(rng):
    R = random_rotation(rng)
    evals, evecs = eigen33(R @ np.diag([2.0, 2.0, 7.0]) @ R.T)
    assert np.allclose(evals, [2.0, 2.0, 7.0], atol=1e-6)
    assert np.isclose(abs(np.dot(evecs[2], R[:, 2])), 1.0, atol=1e-6)
    assert_orthonormal(evecs)


def test_random_symmetric_ascending_orthonormal(rng):
    """Any symmetric input: ascending eigenvalues, orthonormal right-handed rows."""
    for _ in range(300):
        a = rng.normal(size=(3, 3)) * 10.0 ** rng.uniform(-4, 4)
        m = 0.5 * (a + a.T)
        evals, evecs = eigen33(m)
        assert np.all(np.diff(evals) >= 0.0), evals
        assert_orthonormal(evecs)
        assert np.isclose(np.linalg.det(evecs), 1.0, atol=1e-5)


def test_reconstruction_psd(rng):
    """V^T diag(lambda) V reproduces PSD inputs across scales."""
    for scale in (1e-6, 1e-2, 1.0, 1e3, 1e6):
        for _ in range(50):
            m = random_psd(rng, scale)
            evals, evecs = eigen33(m)
            rebuilt = evecs.T @ np.diag(evals) @ evecs
            tol = 1e-6 * np.abs(m).max()
            assert np.allclose(rebuilt, m, atol=tol), (scale, m, rebuilt)


def test_matches_numpy_eigvalsh(rng):
    for _ in range(50):
        m = random_psd(rng)
        evals, _ = eigen33(m)
        assert np.allclose(evals, np.linalg.eigvalsh(m), atol=1e-7 * np.abs(m).max())


def test_covariance_eigenvalues_nonnegative(rng):
    """Covariances of point sets, including flat and linear ones."""
    for k in range(60):
        pts = rng.normal(size=(rng.integers(3, 40), 3))
        if k % 3 == 1:
            pts[:, 2] = 0.0           # planar
        elif k % 3 == 2:
            pts[:, 1:] = 0.0          # collinear
        _, cov = compute_centroid_and_covariance(pts)
        evals, evecs = eigen33(cov)
        assert evals[0] >= -1e-7 * max(np.abs(cov).max(), 1.0)
        assert_orthonormal(evecs)


def test_planar_covariance_normal():
    """Points on the z=0 plane: smallest-eigenvalue axis is z."""
    g = np.stack(np.meshgrid(np.linspace(-1, 1, 7), np.linspace(-2, 2, 5)), -1).reshape(-1, 2)
    pts = np.column_stack([g, np.zeros(len(g))])
    _, cov = compute_centroid_and_covariance(pts)
    evals, evecs = eigen33(cov)
    assert abs(evals[0]) < 1e-12
    assert np.isclose(abs(evecs[0, 2]), 1.0)


def test_unit_orthogonal(rng):
    vecs = list(rng.normal(size=(50, 3)))
    vecs += [np.array([0.0, 0.0, 1.0]), np.array([1e-12, 0.0, -3.0]), np.array([1.0, 0.0, 0.0])]
    for v in vecs:
        u = unit_orthogonal(v)
        assert np.isclose(np.linalg.norm(u), 1.0)
        assert abs(np.dot(u, v)) <= 1e-9 * np.linalg.norm(v)


def test_unit_orthogonal_branches():
    assert np.allclose(unit_orthogonal(np.array([3.0, 4.0, 1.0])), [-0.8, 0.6, 0.0])
    assert np.allclose(unit_orthogonal(np.array([0.0, 0.0, 2.0])), [0.0, -1.0, 0.0])


def test_roots2_clamps_negative_discriminant():
    # b^2 - 4c slightly negative
    roots = compute_roots2(2.0, 1.0 + 1e-12)
    assert np.allclose(roots, [0.0, 1.0, 1.0])
    assert np.all(np.diff(roots) >= 0.0)


def test_roots_singular_matrix_uses_zero_root():
    roots = compute_roots(np.diag([0.0, 1.0, 2.0]))
    assert np.array_equal(roots, np.array([0.0, 1.0, 2.0]))


def test_roots_sorted():
    assert sort3(3.0, 1.0, 2.0) == (1.0, 2.0, 3.0)
    assert sort3(2.0, 3.0, 1.0) == (1.0, 2.0, 3.0)
    assert sort3(1.0, 1.0, 0.0) == (0.0, 1.0, 1.0)
