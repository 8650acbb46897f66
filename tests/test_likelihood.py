"""Unit tests for the reduced UBCM log-likelihood and its derivatives."""

from __future__ import annotations

import numpy as np
import pytest

from maxentgraphs.models.UBCM.likelihood import (
    expected_degree_ubcm,
    iterative_ubcm,
    logistic,
    loglikelihood_hessian_diag_ubcm,
    loglikelihood_hessian_ubcm,
    loglikelihood_prime_ubcm,
    loglikelihood_ubcm,
    softplus,
)

K = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
F = np.array([3.0, 2.0, 1.0, 4.0, 1.0])
ARGS = (K, F)
THETA = np.array([0.7, 0.1, -0.2, -0.5, 0.3])


def _finite_gradient(fun, theta, h=1e-6):
    g = np.zeros_like(theta)
    for k in range(theta.size):
        e = np.zeros_like(theta)
        e[k] = h
        g[k] = (fun(theta + e) - fun(theta - e)) / (2 * h)
    return g


def test_stable_helpers():
    t = np.array([-800.0, -1.0, 0.0, 1.0, 800.0])
    assert np.all(np.isfinite(softplus(t)))
    assert softplus(t)[-1] == pytest.approx(800.0)
    np.testing.assert_allclose(softplus(t[1:4]), np.log1p(np.exp(t[1:4])))
    np.testing.assert_allclose(logistic(t), [0.0, 1 / (1 + np.e), 0.5, 1 / (1 + np.exp(-1)), 1.0])


def test_loglikelihood_small_instance():
    # a single class of two nodes: one pair
    theta = np.array([0.4])
    args = (np.array([1.0]), np.array([2.0]))
    expected = -0.4 * 2.0 - np.log1p(np.exp(-0.8))
    assert loglikelihood_ubcm(theta, args) == pytest.approx(expected)


def test_gradient_matches_finite_differences():
    g = loglikelihood_prime_ubcm(THETA, ARGS)
    g_num = _finite_gradient(lambda t: loglikelihood_ubcm(t, ARGS), THETA)
    np.testing.assert_allclose(g, g_num, rtol=1e-6, atol=1e-6)


def test_gradient_is_expected_minus_observed_degree():
    g = loglikelihood_prime_ubcm(THETA, ARGS)
    k_exp = expected_degree_ubcm(THETA, ARGS)
    np.testing.assert_allclose(g, F * (k_exp - K))


def test_hessian():
    H = loglikelihood_hessian_ubcm(THETA, ARGS)
    H_num = np.column_stack([
        _finite_gradient(lambda t: loglikelihood_prime_ubcm(t, ARGS)[k], THETA)
        for k in range(THETA.size)
    ])
    np.testing.assert_allclose(H, H_num, rtol=1e-5, atol=1e-6)
    np.testing.assert_allclose(H, H.T)
    assert np.all(np.linalg.eigvalsh(H) < 0)
    np.testing.assert_allclose(loglikelihood_hessian_diag_ubcm(THETA, ARGS), np.diag(H))


def test_fixed_point_map_at_degree_matching_parameters():
    # build degrees that THETA reproduces exactly
    k_exp = expected_degree_ubcm(THETA, ARGS)
    x = np.exp(-THETA)
    np.testing.assert_allclose(iterative_ubcm(x, (k_exp, F)), x)
    np.testing.assert_allclose(loglikelihood_prime_ubcm(THETA, (k_exp, F)), 0.0, atol=1e-12)
