"""
UBCM.py

══════════
Undirected Binary Configuration Model.

The UBCM is the maximum-entropy ensemble of undirected binary graphs
reproducing, in expectation, the degree sequence of the observed graph.
In exponential parametrization the link probabilities read

    p_ij = x_i x_j / (1 + x_i x_j),    x_i = exp(-theta_i),

and the multipliers are fitted by enforcing k_i = sum_j p_ij. Nodes with
the same degree share the same multiplier, so the problem is solved on the
degree classes of ``reduction.DegreeReduction`` only.

The structural data (degrees, classes, index maps) is immutable and owned by
the model; everything produced by a fit lives in a ``FitState`` which is
replaced, never updated, when the model is solved again.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from ...errors import ArgumentError, ConvergenceWarning, DimensionMismatch, PreconditionError
from ...matrices import (
    class_probability_matrix,
    expand_parameters,
    expected_matrix_from_fitnesses,
    std_matrix_from_fitnesses,
)
from ...reduction import DegreeReduction, reduce_degrees
from ...sampling import sample_adjacency, sample_ensemble
from ...solver import (
    linsearch_fun,
    linsearch_fun_fixed,
    matrix_regulariser_function_eigen_based,
    solver,
)
from .likelihood import (
    iterative_ubcm,
    loglikelihood_hessian_diag_ubcm,
    loglikelihood_hessian_ubcm,
    loglikelihood_prime_ubcm,
    loglikelihood_ubcm,
)

METHODS = ("newton", "quasinewton", "fixed-point")
_METHOD_ALIASES = {"fixedpoint": "fixed-point"}
INITIAL_GUESSES = ("nodes", "links", "random")
PRECISIONS = (np.dtype(np.float32), np.dtype(np.float64))


@dataclass
class FitState:
    """Parameters and caches produced by one fit of a model."""

    theta: np.ndarray
    x: np.ndarray
    method: str
    converged: bool
    n_steps: int
    error: float
    elapsed: float = 0.0
    norm_seq: np.ndarray = field(default_factory=lambda: np.zeros(0))
    diff_seq: np.ndarray = field(default_factory=lambda: np.zeros(0))
    alfa_seq: np.ndarray = field(default_factory=lambda: np.zeros(0))
    avg_mat: Optional[np.ndarray] = None
    std_mat: Optional[np.ndarray] = None

    @property
    def matrix_computed(self) -> bool:
        return self.avg_mat is not None

    @property
    def variance_computed(self) -> bool:
        return self.std_mat is not None


def _check_method(method):
    method = _METHOD_ALIASES.get(method, method)
    if method not in METHODS:
        raise ArgumentError(
            "'{}' is not a valid solution method. Choose among {}.".format(method, ", ".join(METHODS)))
    return method


class UBCM:
    """Undirected Binary Configuration Model of a degree sequence.

    :param degrees: degree sequence, one non-negative integer per node.
    :type degrees: list, numpy.ndarray
    :param precision: floating type of the stored parameters and matrices.
    :type precision: numpy dtype, optional
    :param graph: optional reference to the graph the degrees come from.
    """

    name = "UBCM"

    def __init__(self, degrees, precision=np.float64, graph=None):
        precision = np.dtype(precision)
        if precision not in PRECISIONS:
            raise ArgumentError(
                "precision must be float32 or float64, got {}.".format(precision))
        self.precision = precision
        self.graph = graph
        self.structure: DegreeReduction = reduce_degrees(degrees)
        self._state: Optional[FitState] = None

        if np.any(self.structure.degrees == 0):
            warnings.warn(
                "This system has at least a node with zero degree. "
                "Its parameter is fixed to x = 0.",
                UserWarning,
            )
        if np.any(self.structure.degrees == self.structure.n_nodes - 1):
            warnings.warn(
                "This system has at least a node connected to all other nodes. "
                "Its parameter is fixed to x = inf.",
                UserWarning,
            )

    def __repr__(self):
        s = self.structure
        if s.n_classes < s.n_nodes:
            comp = "{:.2f}% compression".format((1 - s.compression_ratio) * 100)
        else:
            comp = "uncompressed"
        return "UBCM{{{}}} model ({}, {})".format(
            self.precision.name, comp, "fitted" if self.is_fitted else "not fitted")

    # ------------------------------------------------------------------
    # structure
    # ------------------------------------------------------------------
    @property
    def degree_sequence(self) -> np.ndarray:
        return self.structure.degrees

    @property
    def args(self):
        """Residual degrees and multiplicities of the classes left to the solver."""
        s = self.structure
        active = s.active
        return (s.residual_degrees[active].astype(np.float64),
                s.multiplicities[active].astype(np.float64))

    @property
    def is_fitted(self) -> bool:
        return self._state is not None

    @property
    def status(self) -> dict:
        s = self.structure
        return dict(
            parameters_computed=self.is_fitted,
            matrix_computed=self.is_fitted and self._state.matrix_computed,
            variance_computed=self.is_fitted and self._state.variance_computed,
            converged=self._state.converged if self.is_fitted else None,
            compression_ratio=s.compression_ratio,
            n_nodes=s.n_nodes,
            n_classes=s.n_classes,
        )

    def _fitted_state(self) -> FitState:
        if self._state is None:
            raise PreconditionError("The model has not been fitted yet. Call solve_tool() first.")
        return self._state

    # ------------------------------------------------------------------
    # solver
    # ------------------------------------------------------------------
    def _set_parameters(self, method, initial_guess, tol, eps, max_steps, linsearch, regularise):
        """
        Internal method resolving the default settings of the solver.
        """
        method = _check_method(method)
        if initial_guess is None:
            initial_guess = "nodes"
        if isinstance(initial_guess, str) and initial_guess not in INITIAL_GUESSES:
            raise ArgumentError(
                "'{}' is not a valid initial guess. Choose among {} or pass a vector.".format(
                    initial_guess, ", ".join(INITIAL_GUESSES)))
        if tol is None:
            tol = 1e-8
        if eps is None:
            eps = 1e-8
        if max_steps is None:
            max_steps = 1000 if method == "fixed-point" else 100
        if linsearch is None:
            linsearch = method != "fixed-point"
        if regularise is None:
            regularise = method != "fixed-point"
        return method, initial_guess, tol, eps, max_steps, linsearch, regularise

    def _set_initial_guess(self, initial_guess, rng=None):
        """
        Internal method returning the starting point in x-space for the
        classes left to the solver.
        """
        s = self.structure
        if isinstance(initial_guess, str):
            kappa = s.residual_degrees.astype(np.float64)
            if initial_guess == "nodes":
                x0 = kappa / np.sqrt(s.n_nodes)
            elif initial_guess == "links":
                x0 = kappa / np.sqrt(max(2.0 * s.n_edges, 1.0))
            else:
                rng = rng if isinstance(rng, np.random.Generator) else np.random.default_rng(rng)
                x0 = 1.0 - rng.random(s.n_classes)
        else:
            x0 = np.asarray(initial_guess, dtype=np.float64).reshape(-1)
            if x0.size != s.n_classes:
                raise DimensionMismatch(
                    "Length of initial vector {} does not match the number of degree classes {}.".format(
                        x0.size, s.n_classes))
            if np.any(x0[s.active] <= 0) or not np.all(np.isfinite(x0[s.active])):
                raise ArgumentError("The initial vector must be positive and finite.")
        return x0[s.active]

    def _set_solved_problem(self, theta_active, method, converged, n_steps, sol=None):
        """Expand the solution of the active classes to all classes."""
        s = self.structure
        theta = np.zeros(s.n_classes, dtype=np.float64)
        theta[s.empty] = np.inf
        theta[s.full] = -np.inf
        theta[s.active] = theta_active

        error = self._check_solution(theta)
        self._state = FitState(
            theta=theta.astype(self.precision),
            x=np.exp(-theta).astype(self.precision),
            method=method,
            converged=converged,
            n_steps=n_steps,
            error=error,
        )
        if sol is not None:
            self._state.elapsed = sol.elapsed
            self._state.norm_seq = sol.norm_seq
            self._state.diff_seq = sol.diff_seq
            self._state.alfa_seq = sol.alfa_seq

    def _check_solution(self, theta) -> float:
        """Maximum absolute difference between observed and expected degrees."""
        k_exp = self._class_expected_degrees(theta)
        return float(np.max(np.abs(k_exp - self.structure.reduced_degrees)))

    def _class_expected_degrees(self, theta) -> np.ndarray:
        s = self.structure
        p = class_probability_matrix(theta, s.order)
        pairs = s.multiplicities[None, :] - np.eye(s.n_classes)
        return np.sum(pairs * p, axis=1)

    def solve_tool(
            self,
            method=None,
            initial_guess=None,
            tol=None,
            eps=None,
            max_steps=None,
            verbose=False,
            linsearch=None,
            regularise=None,
            print_error=False,
            rng=None):
        """Solve the UBCM of the degree sequence.
        It does not return the solution, use the getter methods instead.
        :param str method: *newton* (default), *quasinewton* or *fixedpoint*
            (also spelled *fixed-point*).
        :param initial_guess: *nodes* (default), *links*, *random* or a
            positive vector in x-space with one entry per degree class.
        :param float tol: Tolerance on the residual, optional
        :param float eps: Tolerance of the difference between consecutive solutions, optional
        :param int max_steps: Maximum number of steps, optional
        :param bool verbose: Print errors and iteration steps, optional
        :param bool linsearch: Implement the linesearch when searching for roots, optional
        :param bool regularise: Regularise the Hessian in the newton methods, optional
        :param bool print_error: Print the final error of the solution
        :param rng: seed or generator used by the *random* initial guess
        """
        if method is None:
            method = "newton"
        method, initial_guess, tol, eps, max_steps, linsearch, regularise = self._set_parameters(
            method, initial_guess, tol, eps, max_steps, linsearch, regularise)
        x0 = self._set_initial_guess(initial_guess, rng=rng)

        if x0.size == 0:
            self._set_solved_problem(np.zeros(0), method, True, 0)
            return self

        args = self.args
        if method == "fixed-point":
            sol = solver(
                x0,
                fun=lambda x: iterative_ubcm(x, args),
                step_fun=lambda x: -loglikelihood_ubcm(-np.log(x), args),
                linsearch_fun=linsearch_fun_fixed,
                tol=tol,
                eps=eps,
                max_steps=max_steps,
                method=method,
                verbose=verbose,
                regularise=False,
                linsearch=linsearch,
            )
            theta_active = -np.log(sol.x)
        else:
            d_fun_jac = {
                "newton": lambda t: -loglikelihood_hessian_ubcm(t, args),
                "quasinewton": lambda t: -loglikelihood_hessian_diag_ubcm(t, args),
            }
            lins_args = (lambda t, a: -loglikelihood_ubcm(t, a), args)
            sol = solver(
                -np.log(x0),
                fun=lambda t: -loglikelihood_prime_ubcm(t, args),
                step_fun=lambda t: -loglikelihood_ubcm(t, args),
                linsearch_fun=lambda xx: linsearch_fun(xx, lins_args),
                hessian_regulariser=matrix_regulariser_function_eigen_based,
                fun_jac=d_fun_jac[method],
                tol=tol,
                eps=eps,
                max_steps=max_steps,
                method=method,
                verbose=verbose,
                regularise=regularise,
                linsearch=linsearch,
            )
            theta_active = sol.x

        self._set_solved_problem(theta_active, method, sol.converged, sol.n_steps, sol=sol)

        if not sol.converged:
            warnings.warn(
                "Solver did not converge in {} steps (residual {:.3e}, max degree error {:.3e}). "
                "The last iterate is kept.".format(sol.n_steps, sol.norm_seq[-1], self._state.error),
                ConvergenceWarning,
            )
        if print_error or verbose:
            if sol.converged:
                print("Solver converged.")
            print("max degree error = {}".format(self._state.error))
        return self

    # ------------------------------------------------------------------
    # getters
    # ------------------------------------------------------------------
    def get_parameters(self, reduced=True):
        """Return ``(theta, x)`` per degree class, or per node if ``reduced`` is False."""
        state = self._fitted_state()
        if reduced:
            return state.theta, state.x
        idx = self.structure.node_to_class
        return expand_parameters(state.theta, idx), expand_parameters(state.x, idx)

    @property
    def converged(self) -> bool:
        return self._fitted_state().converged

    @property
    def error(self) -> float:
        return self._fitted_state().error

    @property
    def n_steps(self) -> int:
        return self._fitted_state().n_steps

    def loglikelihood(self) -> float:
        """Log-likelihood of the fitted parameters (classes left to the solver)."""
        state = self._fitted_state()
        return loglikelihood_ubcm(state.theta[self.structure.active].astype(np.float64), self.args)

    def gradient(self) -> np.ndarray:
        """Gradient of the log-likelihood at the fitted parameters."""
        state = self._fitted_state()
        return loglikelihood_prime_ubcm(state.theta[self.structure.active].astype(np.float64), self.args)

    def expected_degrees(self) -> np.ndarray:
        """Expected degree of every node under the fitted model."""
        state = self._fitted_state()
        k_exp = self._class_expected_degrees(state.theta.astype(np.float64))
        return expand_parameters(k_exp, self.structure.node_to_class)

    def expected_matrix(self) -> np.ndarray:
        """Matrix of link probabilities, computed once and cached."""
        state = self._fitted_state()
        if state.avg_mat is None:
            s = self.structure
            state.avg_mat = expected_matrix_from_fitnesses(
                expand_parameters(state.x, s.node_to_class),
                expand_parameters(s.order, s.node_to_class),
                dtype=self.precision,
            )
        return state.avg_mat

    def variance_matrix(self) -> np.ndarray:
        """Matrix of the standard deviations sigma_ij of every entry, cached."""
        state = self._fitted_state()
        if state.std_mat is None:
            s = self.structure
            state.std_mat = std_matrix_from_fitnesses(
                expand_parameters(state.x, s.node_to_class),
                expand_parameters(s.order, s.node_to_class),
                dtype=self.precision,
            )
        return state.std_mat

    def sample(self, rng=None) -> np.ndarray:
        """One adjacency matrix drawn from the fitted ensemble."""
        return sample_adjacency(self.expected_matrix(), rng=rng)

    def sample_ensemble(self, n_samples, rng=None, progress=False):
        """Generator of ``n_samples`` adjacency matrices from the fitted ensemble."""
        return sample_ensemble(self.expected_matrix(), n_samples, rng=rng, progress=progress)

    def to_frame(self) -> pd.DataFrame:
        """Per-class summary of the fit."""
        state = self._fitted_state()
        s = self.structure
        status = np.where(s.active, "active", np.where(s.full, "full", "empty"))
        return pd.DataFrame({
            "degree": s.reduced_degrees,
            "multiplicity": s.multiplicities,
            "status": status,
            "theta": state.theta,
            "x": state.x,
            "expected_degree": self._class_expected_degrees(state.theta.astype(np.float64)),
        })
