# ============================================================================
# Batched (torch) eigensolver vs. numpy reference
# ============================================================================
import numpy as np
import torch

from neighborhood import batched_compute_roots, batched_eigen33, compute_roots, eigen33
from neighborhood.core.batched import batched_unit_orthogonal


def _test_matrices(rng, n=200):
    mats = []
    for k in range(n):
        a = rng.normal(size=(3, 4))
        if k % 4 == 1:
            a[2] = 0.0                     # rank deficient
        mats.append((a @ a.T) * 10.0 ** rng.uniform(-3, 3))
    mats += [
        np.diag([5.0, 5.0, 5.0]),
        np.diag([1.0, 1.0, 4.0]),
        np.diag([1.0, 4.0, 4.0]),
        np.zeros((3, 3)),
    ]
    return np.stack(mats)


def test_batched_roots_match_reference(rng):
    mats = _test_matrices(rng)
    roots = batched_compute_roots(torch.from_numpy(mats)).numpy()
    for m, r in zip(mats, roots):
        ref = compute_roots(m)
        assert np.allclose(r, ref, rtol=1e-10, atol=1e-12), (m, r, ref)


def test_batched_eigen33_matches_reference(rng):
    mats = _test_matrices(rng)
    evals, evecs = batched_eigen33(torch.from_numpy(mats))
    evals, evecs = evals.numpy(), evecs.numpy()

    for m, lam, V in zip(mats, evals, evecs):
        ref_lam, ref_V = eigen33(m)
        scale = max(np.abs(m).max(), 1.0)
        assert np.allclose(lam, ref_lam, rtol=1e-9, atol=1e-12 * scale)
        # same axes up to sign
        assert np.allclose(np.abs(np.einsum('ij,ij->i', V, ref_V)), 1.0, atol=1e-6)


def test_batched_eigen33_degenerate_cases():
    mats = torch.stack([
        torch.diag(torch.tensor([5.0, 5.0, 5.0], dtype=torch.float64)),
        torch.diag(torch.tensor([1.0, 1.0, 4.0], dtype=torch.float64)),
        torch.zeros(3, 3, dtype=torch.float64),
    ])
    evals, evecs = batched_eigen33(mats)

    assert torch.allclose(evals[0], torch.tensor([5.0, 5.0, 5.0], dtype=torch.float64))
    assert torch.equal(evecs[0], torch.eye(3, dtype=torch.float64))

    assert torch.allclose(evals[1], torch.tensor([1.0, 1.0, 4.0], dtype=torch.float64))
    assert torch.isclose(evecs[1, 2, 2].abs(), torch.tensor(1.0, dtype=torch.float64))

    assert torch.equal(evals[2], torch.zeros(3, dtype=torch.float64))
    assert torch.equal(evecs[2], torch.eye(3, dtype=torch.float64))


def test_batched_eigen33_orthonormal_float32(rng):
    mats = torch.from_numpy(_test_matrices(rng, 100)).float()
    evals, evecs = batched_eigen33(mats)

    assert not torch.isnan(evecs).any()
    assert torch.all(evals[:, 1:] >= evals[:, :-1])
    gram = evecs @ evecs.transpose(1, 2)
    eye = torch.eye(3).expand_as(gram)
    assert torch.allclose(gram, eye, atol=1e-5)


def test_batched_unit_orthogonal(rng):
    v = torch.from_numpy(rng.normal(size=(64, 3)))
    v[0] = torch.tensor([0.0, 0.0, 3.0], dtype=torch.float64)
    u = batched_unit_orthogonal(v)
    assert torch.allclose(u.norm(dim=-1), torch.ones(64, dtype=torch.float64))
    assert torch.allclose((u * v).sum(dim=-1), torch.zeros(64, dtype=torch.float64), atol=1e-12)


def test_batched_roots_float32_small_determinant():
    """|c0| above EPS_EIGEN keeps the cubic solution in float32."""
    m = torch.diag(torch.tensor([2e-3, 1e-2, 1.5e-2], dtype=torch.float32)).unsqueeze(0)
    roots = batched_compute_roots(m)[0].double().numpy()
    assert np.allclose(roots, [2e-3, 1e-2, 1.5e-2], atol=1e-6)
