"""
likelihood.py

══════════
Log-likelihood and derivatives for the UBCM in the reduced parameter space.

All functions take the parameters of the active degree classes and an
argument tuple ``args = (K, F)`` where ``K`` holds the (residual) degree of
each class and ``F`` its multiplicity. Parameters live in theta-space,
``x = exp(-theta)``, except for the fixed-point map which works on ``x``.

Two nodes in classes k, k' are linked with probability

    p_kk' = x_k x_k' / (1 + x_k x_k') = logistic(-theta_k - theta_k')

and the number of node pairs between the classes is ``F_k (F_k' - d_kk')``
counted on ordered pairs, hence the factor 1/2 in the likelihood.
"""

import numpy as np


def softplus(t):
    """
    Numerically stable evaluation of log(1 + exp(t)).

    Uses the identity:
        log(1 + exp(t)) = t + log(1 + exp(-t))   if t >= 0
                        =     log(1 + exp(t))   if t <  0

    so that the exponential is always evaluated on a non-positive argument.
    """
    t = np.asarray(t, dtype=np.float64)
    out = np.empty_like(t)
    mask = t >= 0
    out[mask] = t[mask] + np.log1p(np.exp(-t[mask]))
    out[~mask] = np.log1p(np.exp(t[~mask]))
    return out


def logistic(t):
    """
    Numerically stable logistic function:
        sigmoid(t) = 1 / (1 + exp(-t))

    In both branches the exponential is evaluated on a non-positive argument.
    """
    t = np.asarray(t, dtype=np.float64)
    out = np.empty_like(t)
    mask = t >= 0
    out[mask] = 1.0 / (1.0 + np.exp(-t[mask]))
    exp_t = np.exp(t[~mask])
    out[~mask] = exp_t / (1.0 + exp_t)
    return out


def _pair_weights(F):
    """Ordered node pairs between classes, self-pairs removed on the diagonal."""
    F = np.asarray(F, dtype=np.float64)
    return F[:, None] * (F[None, :] - np.eye(F.size))


def _pair_arguments(theta):
    theta = np.asarray(theta, dtype=np.float64)
    return -theta[:, None] - theta[None, :]


def loglikelihood_ubcm(sol, args):
    """Log-likelihood L(theta) of the reduced UBCM.

    L = - sum_k theta_k K_k F_k
        - 1/2 sum_{k,k'} F_k (F_k' - d_kk') log(1 + exp(-theta_k - theta_k'))
    """
    K = np.asarray(args[0], dtype=np.float64)
    F = np.asarray(args[1], dtype=np.float64)
    theta = np.asarray(sol, dtype=np.float64)

    f = -np.sum(theta * K * F)
    f -= 0.5 * np.sum(_pair_weights(F) * softplus(_pair_arguments(theta)))
    return float(f)


def loglikelihood_prime_ubcm(sol, args):
    """Gradient of the reduced log-likelihood.

    dL/dtheta_k = - K_k F_k + F_k sum_k' (F_k' - d_kk') p_kk'

    i.e. expected minus observed total degree of class k; it vanishes when
    every class reproduces its degree in expectation.
    """
    K = np.asarray(args[0], dtype=np.float64)
    F = np.asarray(args[1], dtype=np.float64)

    p = logistic(_pair_arguments(sol))
    f = -K * F
    f += np.sum(_pair_weights(F) * p, axis=1)
    return f


def loglikelihood_hessian_ubcm(sol, args):
    """Hessian of the reduced log-likelihood (negative definite)."""
    F = np.asarray(args[1], dtype=np.float64)

    p = logistic(_pair_arguments(sol))
    e = _pair_weights(F) * p * (1.0 - p)

    f = -e
    # the self-pair term depends on 2 theta_k, so it enters the diagonal twice
    f[np.diag_indices_from(f)] -= np.sum(e, axis=1)
    return f


def loglikelihood_hessian_diag_ubcm(sol, args):
    """Diagonal of the Hessian, used by the quasinewton method."""
    F = np.asarray(args[1], dtype=np.float64)

    p = logistic(_pair_arguments(sol))
    e = _pair_weights(F) * p * (1.0 - p)
    return -(np.sum(e, axis=1) + np.diag(e))


def expected_degree_ubcm(sol, args):
    """Expected degree of a node of each class."""
    F = np.asarray(args[1], dtype=np.float64)

    p = logistic(_pair_arguments(sol))
    return np.sum((F[None, :] - np.eye(F.size)) * p, axis=1)


def iterative_ubcm(x, args):
    """Fixed-point map of the UBCM in x-space.

        x_k <- K_k / ( sum_k' F_k' x_k' / (1 + x_k' x_k) - x_k / (1 + x_k^2) )

    Its fixed points are exactly the parameters for which every class has
    expected degree equal to its observed degree.
    """
    K = np.asarray(args[0], dtype=np.float64)
    F = np.asarray(args[1], dtype=np.float64)
    x = np.asarray(x, dtype=np.float64)

    xx = x[:, None] * x[None, :]
    fx = np.sum(F[None, :] * x[None, :] / (1.0 + xx), axis=1)
    fx -= x / (1.0 + x * x)
    return K / fx
