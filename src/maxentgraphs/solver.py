"""
solver.py

══════════
Root finder shared by the maximum-entropy models.

The solver looks for the roots of ``fun`` (newton, quasinewton) or for a
fixed point ``fun(x) = x`` (fixed-point). Newton-type steps are damped by
a backtracking line search on ``step_fun``, the function being minimised,
and the Hessian can be regularised to stay positive definite.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import numpy as np
import scipy.linalg

from .errors import ArgumentError


@dataclass(frozen=True)
class SolverResult:
    """Outcome of a ``solver`` run."""

    x: np.ndarray
    converged: bool
    n_steps: int
    norm_seq: np.ndarray
    diff_seq: np.ndarray
    alfa_seq: np.ndarray
    elapsed: float


def sufficient_decrease_condition(f_old, f_new, alpha, grad_f, p, c1=1e-04):
    """Armijo test for a step ``alpha * p`` on the function being minimised.
    :param f_old: -L at the current point.
    :type f_old: float
    :param f_new: -L at the candidate point.
    :type f_new: float
    :param alpha: Step length.
    :type alpha: float
    :param grad_f: Gradient of -L at the current point.
    :type grad_f: numpy.ndarray
    :param p: Newton direction.
    :type p: numpy.ndarray
    :param c1: Fraction of the linear decrease that must be achieved.
    :type c1: float, optional
    :rtype: bool
    """
    sup = f_old + c1 * alpha * np.dot(grad_f, p.T)
    return bool(f_new < sup)


def linsearch_fun(xx, args):
    """Backtracking line search for the newton and quasinewton steps.
    The step is halved (times ``beta``) until -L decreases enough, at most
    50 times.
    :param xx: Current point, direction, shrink factor beta, first alpha,
        gradient of -L at the current point.
    :type xx: (numpy.ndarray, numpy.ndarray, float, float, numpy.ndarray)
    :param args: -L as ``step_fun(theta, args)`` and its arguments.
    :type args: (func, tuple)
    :return: Accepted step length.
    :rtype: float
    """
    x, dx, beta, alfa, f = xx
    step_fun, arg_step_fun = args

    i = 0
    s_old = step_fun(x, arg_step_fun)
    while (
            not sufficient_decrease_condition(
                s_old, step_fun(x + alfa * dx, arg_step_fun), alfa, f, dx
            )
            and i < 50
    ):
        alfa *= beta
        i += 1
    return alfa


def linsearch_fun_fixed(xx):
    """Step control for the fixed-point iteration.
    From the second step on, the update is shrunk until it is shorter than
    the previous one.
    :param xx: Current point, proposed update, previous update, first alpha,
        shrink factor beta, step number.
    :type xx: (numpy.ndarray, numpy.ndarray, numpy.ndarray, float, float, int)
    :return: Accepted step length.
    :rtype: float
    """
    x, dx, dx_old, alfa, beta, step = xx

    if step:
        kk = 0
        limit = np.linalg.norm(dx_old)
        while not np.linalg.norm(alfa * dx) < limit and kk < 50:
            alfa *= beta
            kk += 1

    return alfa


def matrix_regulariser_function_eigen_based(b, eps):
    """Lift the eigenvalues of the Hessian of -L to at least ``eps``.
    The Hessian of -L is positive semi-definite; near pinned directions
    some eigenvalues vanish and the Newton system becomes singular.
    :param b: Symmetric matrix.
    :type b: numpy.ndarray
    :param eps: Smallest eigenvalue allowed.
    :type eps: float
    :return: Positive definite matrix with the same eigenvectors.
    :rtype: numpy.ndarray
    """
    b = (b + b.transpose()) * 0.5
    t, e = scipy.linalg.eigh(b)
    t = np.maximum(t, eps)
    return (e * t) @ e.transpose()


def solver(
    x0,
    fun,
    step_fun,
    linsearch_fun=None,
    hessian_regulariser=matrix_regulariser_function_eigen_based,
    fun_jac=None,
    tol=1e-8,
    eps=1e-8,
    max_steps=100,
    method="newton",
    verbose=False,
    regularise=True,
    regularise_eps=1e-3,
    linsearch=True,
):
    """Find roots of eq. fun = 0 (newton, quasinewton) or the fixed point
    of eq. fun(x) = x (fixed-point).
    :param x0: Initial point
    :type x0: numpy.ndarray
    :param fun: Function handle of the function to find the roots of,
        or the fixed-point map.
    :type fun: function
    :param step_fun: Function to minimise, used by the linsearch and in
        verbose prints.
    :type step_fun: function
    :param linsearch_fun: Function to compute the linsearch
    :type linsearch_fun: function
    :param hessian_regulariser: Function to regularise fun hessian
    :type hessian_regulariser: function
    :param fun_jac: Function to compute the hessian of fun (newton) or its
        diagonal (quasinewton), defaults to None
    :type fun_jac: function, optional
    :param tol: The solver stops when \\|residual|<=tol, defaults to 1e-8
    :type tol: float, optional
    :param eps: The solver stops when the difference between two consecutive
        steps is at most eps, defaults to 1e-8
    :type eps: float, optional
    :param max_steps: Maximum number of steps the solver takes, defaults to 100
    :type max_steps: int, optional
    :param method: "newton", "quasinewton" or "fixed-point".
    :type method: str, optional
    :param verbose: If True the solver prints out information at each step,
         defaults to False
    :type verbose: bool, optional
    :param regularise: If True the solver will regularise the hessian matrix,
         defaults to True
    :type regularise: bool, optional
    :param regularise_eps: Positive value to pass to the regulariser function,
         defaults to 1e-3
    :type regularise_eps: float, optional
    :param linsearch: If True a linsearch algorithm is implemented,
         defaults to True
    :type linsearch: bool, optional
    :return: Last iterate and convergence diagnostics
    :rtype: SolverResult
    """
    if method not in ("newton", "quasinewton", "fixed-point"):
        raise ArgumentError('Method must be "newton", "quasinewton" or "fixed-point".')
    if linsearch and linsearch_fun is None:
        raise ArgumentError("linsearch=True needs a linsearch_fun.")
    if method != "fixed-point" and fun_jac is None:
        raise ArgumentError('Method "{}" needs fun_jac.'.format(method))

    tic_all = time.time()

    def residual(x):
        if method == "fixed-point":
            return fun(x) - x
        return fun(x)

    beta = 0.5  # to compute alpha
    n_steps = 0
    x = np.array(x0, dtype=np.float64)

    f = residual(x)
    norm = np.linalg.norm(f)
    diff = 1
    dx_old = np.zeros_like(x)

    norm_seq = [norm]
    diff_seq = [diff]
    alfa_seq = []

    if verbose:
        print("\nx0 = {}".format(x))
        print("|f(x0)| = {}".format(norm))

    toc_alfa = 0
    toc_dx = 0
    toc_jacfun = 0

    while (
        norm > tol and n_steps < max_steps and diff > eps
    ):  # stopping condition

        x_old = x  # save previous iteration

        # f jacobian
        tic = time.time()
        if method == "newton":
            H = fun_jac(x)
            if regularise:
                b_matrix = hessian_regulariser(H, np.max(np.abs(f)) * regularise_eps)
            else:
                b_matrix = H
        elif method == "quasinewton":
            b_matrix = fun_jac(x)  # Jacobian diagonal
            if regularise:
                b_matrix = np.maximum(b_matrix, np.max(np.abs(f)) * regularise_eps)
        toc_jacfun += time.time() - tic

        # descending direction computation
        tic = time.time()
        if method == "newton":
            try:
                dx = np.linalg.solve(b_matrix, -f)
            except np.linalg.LinAlgError:
                # further regularise the Hessian and retry
                b_matrix = hessian_regulariser(
                    fun_jac(x), max(np.max(np.abs(f)), 1.0) * regularise_eps,
                )
                dx = np.linalg.solve(b_matrix, -f)
        elif method == "quasinewton":
            dx = -f / b_matrix
        else:
            dx = f
        toc_dx += time.time() - tic

        # backtraking line search
        tic = time.time()
        if linsearch and (method in ["newton", "quasinewton"]):
            alfa = linsearch_fun((x, dx, beta, 1.0, f))
        elif linsearch and (method in ["fixed-point"]):
            alfa = linsearch_fun((x, dx, dx_old, 1.0, beta, n_steps))
        else:
            alfa = 1.0
        alfa_seq.append(alfa)
        toc_alfa += time.time() - tic

        # solution update
        x = x + alfa * dx
        dx_old = alfa * dx

        f = residual(x)

        # stopping condition computation
        norm = np.linalg.norm(f)
        diff_v = x - x_old
        # to avoid nans given by inf-inf
        diff_v[np.isnan(diff_v)] = -1
        diff = np.linalg.norm(diff_v)

        norm_seq.append(norm)
        diff_seq.append(diff)

        n_steps += 1

        if verbose:
            print("\nstep {}".format(n_steps))
            print("alpha = {}".format(alfa))
            print("|f(x)| = {}".format(norm))
            print("F(x) = {}".format(step_fun(x)))
            print("diff = {}".format(diff))

    toc_all = time.time() - tic_all
    converged = bool(norm <= tol or diff <= eps)

    if verbose:
        print("Number of steps for convergence = {}".format(n_steps))
        print("toc_jacfun = {}".format(toc_jacfun))
        print("toc_alfa = {}".format(toc_alfa))
        print("toc_dx = {}".format(toc_dx))
        print("toc_all = {}".format(toc_all))

    return SolverResult(
        x=x,
        converged=converged,
        n_steps=n_steps,
        norm_seq=np.array(norm_seq),
        diff_seq=np.array(diff_seq),
        alfa_seq=np.array(alfa_seq),
        elapsed=toc_all,
    )
