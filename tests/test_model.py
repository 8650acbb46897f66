"""Tests for fitting the UBCM and for the matrices it produces.

The tests are designed to be lightweight and deterministic.
They validate that:

1) newton, quasinewton and fixed-point fits agree on the parameters;
2) the expected matrix reproduces the degree sequence (row sums);
3) expected and standard-deviation matrices are symmetric, with zero
   diagonal and entries in the expected ranges;
4) errors and warnings are raised at the right moment.
"""

from __future__ import annotations

import warnings

import numpy as np
import pytest

from maxentgraphs import (
    UBCM,
    ArgumentError,
    ConvergenceWarning,
    DimensionMismatch,
    PreconditionError,
    build,
    fit,
)

DEGREES = np.array([1, 1, 2, 2, 3, 3, 3, 4, 4, 5, 6, 7])


def _fitted(degrees=DEGREES, **kw):
    kw.setdefault("tol", 1e-10)
    return fit(build(degrees), **kw)


def test_newton_reproduces_degrees():
    model = _fitted(method="newton")

    assert model.converged
    assert model.error < 1e-8
    P = model.expected_matrix()
    np.testing.assert_allclose(P.sum(axis=1), DEGREES, atol=1e-6)
    np.testing.assert_allclose(model.expected_degrees(), DEGREES, atol=1e-6)
    np.testing.assert_allclose(model.gradient(), 0.0, atol=1e-8)


def test_fixed_point_reproduces_degrees():
    model = _fitted(method="fixedpoint", tol=1e-12, eps=1e-12, max_steps=20_000)

    assert model.converged
    np.testing.assert_allclose(model.expected_matrix().sum(axis=1), DEGREES, atol=1e-6)


def test_methods_agree():
    newton = _fitted(method="newton")
    fixed = _fitted(method="fixed-point", tol=1e-12, eps=1e-12, max_steps=20_000)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        quasi = _fitted(method="quasinewton", max_steps=5_000)

    _, x_newton = newton.get_parameters()
    _, x_fixed = fixed.get_parameters()
    _, x_quasi = quasi.get_parameters()
    np.testing.assert_allclose(x_fixed, x_newton, rtol=1e-6)
    np.testing.assert_allclose(x_quasi, x_newton, rtol=1e-4)


@pytest.mark.parametrize("initial_guess", ["nodes", "links", "random"])
def test_initial_guesses(initial_guess):
    model = _fitted(initial_guess=initial_guess, rng=0)
    np.testing.assert_allclose(model.expected_degrees(), DEGREES, atol=1e-6)


def test_explicit_initial_guess():
    n_classes = build(DEGREES).structure.n_classes
    model = _fitted(initial_guess=np.full(n_classes, 0.5))
    np.testing.assert_allclose(model.expected_degrees(), DEGREES, atol=1e-6)

    with pytest.raises(DimensionMismatch):
        fit(build(DEGREES), initial_guess=np.ones(n_classes + 1))
    with pytest.raises(ArgumentError):
        fit(build(DEGREES), initial_guess=-np.ones(n_classes))


def test_unknown_keywords_fail_before_solving():
    model = build(DEGREES)
    with pytest.raises(ArgumentError):
        fit(model, method="gradient-descent")
    with pytest.raises(ArgumentError):
        fit(model, initial_guess="uniform")
    assert not model.is_fitted


def test_reduced_and_node_parameters():
    model = _fitted()
    theta, x = model.get_parameters()
    assert theta.size == model.structure.n_classes
    np.testing.assert_allclose(x, np.exp(-theta))

    theta_n, x_n = model.get_parameters(reduced=False)
    assert x_n.size == DEGREES.size
    np.testing.assert_allclose(x_n, x[model.structure.node_to_class])
    # equal degrees, equal parameters
    assert x_n[0] == x_n[1]


def test_matrices_properties():
    model = _fitted()
    P = model.expected_matrix()
    S = model.variance_matrix()
    off = ~np.eye(DEGREES.size, dtype=bool)

    for M in (P, S):
        assert M.shape == (DEGREES.size, DEGREES.size)
        np.testing.assert_array_equal(M, M.T)
        assert np.all(np.diag(M) == 0)

    assert np.all((P[off] > 0) & (P[off] < 1))
    assert np.all((S[off] > 0) & (S[off] <= 0.5))
    np.testing.assert_allclose(S ** 2, P * (1 - P), atol=1e-12)


def test_matrices_are_cached():
    model = _fitted()
    assert not model.status["matrix_computed"]
    P = model.expected_matrix()
    assert model.expected_matrix() is P
    assert model.status["matrix_computed"]
    assert not model.status["variance_computed"]
    model.variance_matrix()
    assert model.status["variance_computed"]

    # a new fit starts from fresh caches
    model.solve_tool(method="newton", tol=1e-10)
    assert not model.status["matrix_computed"]


def test_preconditions():
    model = build(DEGREES)
    for getter in (model.expected_matrix, model.variance_matrix, model.get_parameters,
                   model.loglikelihood, model.to_frame, model.sample):
        with pytest.raises(PreconditionError):
            getter()


def test_convergence_warning_keeps_last_iterate():
    model = build(DEGREES)
    with pytest.warns(ConvergenceWarning):
        model.solve_tool(method="newton", max_steps=1)

    assert model.is_fitted
    assert not model.converged
    assert model.n_steps == 1
    P = model.expected_matrix()
    assert np.all(np.isfinite(P))


def test_pinned_nodes():
    degrees = np.array([0, 1, 1, 2, 2, 3])
    with pytest.warns(UserWarning, match="zero degree"):
        model = build(degrees)
    fit(model, tol=1e-10)

    P = model.expected_matrix()
    assert np.all(P[0] == 0)
    np.testing.assert_allclose(P.sum(axis=1), degrees, atol=1e-6)
    assert np.all(model.variance_matrix()[0] == 0)

    degrees = np.array([4, 3, 3, 3, 2])
    with pytest.warns(UserWarning, match="connected to all"):
        model = build(degrees)
    fit(model, tol=1e-10)

    P = model.expected_matrix()
    assert np.all(P[0, 1:] == 1)
    np.testing.assert_allclose(P.sum(axis=1), degrees, atol=1e-6)
    assert model.to_frame()["status"].tolist() == ["active", "active", "full"]


def test_float32_precision():
    model = fit(build(DEGREES, precision=np.float32), tol=1e-10)
    _, x = model.get_parameters()
    assert x.dtype == np.float32
    assert model.expected_matrix().dtype == np.float32
    assert model.variance_matrix().dtype == np.float32
    np.testing.assert_allclose(model.expected_matrix().sum(axis=1), DEGREES, atol=1e-4)

    with pytest.raises(ArgumentError):
        UBCM(DEGREES, precision=np.int32)


@pytest.mark.parametrize("precision", [np.float16, np.longdouble, np.int32])
def test_unsupported_precision(precision):
    if np.dtype(precision) == np.float64:
        pytest.skip("longdouble is float64 on this platform")
    with pytest.raises(ArgumentError):
        build(DEGREES, precision=precision)


def test_loglikelihood_is_maximal_at_solution():
    model = _fitted()
    ll = model.loglikelihood()
    theta, _ = model.get_parameters()

    from maxentgraphs.models.UBCM.likelihood import loglikelihood_ubcm

    rng = np.random.default_rng(0)
    for _ in range(5):
        assert loglikelihood_ubcm(theta + 0.01 * rng.standard_normal(theta.size), model.args) < ll


def test_to_frame_and_repr():
    model = _fitted()
    df = model.to_frame()
    assert list(df.columns) == ["degree", "multiplicity", "status", "theta", "x", "expected_degree"]
    assert df["multiplicity"].sum() == DEGREES.size
    np.testing.assert_allclose(df["expected_degree"], df["degree"], atol=1e-6)
    assert "compression" in repr(model)
    assert "fitted" in repr(model)


def _random_degrees(seed):
    """Degree sequence of a random graph, with an isolated or a full node for some seeds."""
    rng = np.random.default_rng(seed)
    n = int(rng.integers(5, 16))
    A = np.triu(rng.random((n, n)) < rng.uniform(0.2, 0.8), 1).astype(int)
    A = A + A.T
    if seed % 3 == 1:
        A[0, :] = A[:, 0] = 0
    elif seed % 3 == 2:
        A[0, :] = A[:, 0] = 1
        A[0, 0] = 0
    return A.sum(axis=1)


@pytest.mark.parametrize("method", ["newton", "quasinewton", "fixedpoint"])
@pytest.mark.parametrize("seed", range(12))
def test_random_graphs_reproduce_degrees(method, seed):
    degrees = _random_degrees(seed)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model = fit(build(degrees), method=method, tol=1e-10, eps=0.0, max_steps=5_000)

    if model.converged:
        np.testing.assert_allclose(model.expected_matrix().sum(axis=1), degrees, atol=1e-6)
    else:
        assert any(issubclass(w.category, ConvergenceWarning) for w in caught)


def test_slow_fixed_point_warns():
    # two full nodes and one empty node leave the residual sequence [1, 1, 2, 2],
    # whose two degree-2 nodes are linked in every realization
    degrees = np.array([3, 6, 3, 2, 6, 4, 4])
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        model = build(degrees)
    with pytest.warns(ConvergenceWarning):
        fit(model, method="fixedpoint", tol=1e-12, eps=0.0, max_steps=200)

    assert not model.converged
    assert model.n_steps == 200
    assert model.error > 0
    P = model.expected_matrix()
    assert np.all(np.isfinite(P))
    # node 1 is full, node 3 is pinned empty after the first stage
    assert np.all(np.delete(P[1], 1) == 1)
    assert P[3, 0] == 0 and P[3, 1] == 1
