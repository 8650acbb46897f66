"""
api.py
==============================================

Public API
----------
build(data, precision=np.float64, model="UBCM") -> model
fit(model, method="newton", initial_guess="nodes", ...) -> model
expected_matrix(model) -> ndarray
variance_matrix(model) -> ndarray
sample(model, rng=None) -> ndarray
ubcm_solver(data, *, method="newton", **solver_kw) -> dict
probability_matrix_from_ubcm(res) -> ndarray
"""

from __future__ import annotations

import numpy as np

from .errors import ArgumentError
from .graphs import degree_sequence_from
from .matrices import expected_matrix_from_fitnesses
from .models import MODELS


def build(data, precision=np.float64, model: str = "UBCM"):
    """
    Build an unfitted maximum-entropy model.

    Parameters
    ----------
    data :        degree sequence, square adjacency matrix (dense or
                  scipy sparse) or object with a ``degree_sequence()`` method
    precision :   floating type of parameters and matrices
    model :       name of the model variant, see ``maxentgraphs.models.MODELS``
    """
    try:
        cls = MODELS[model]
    except KeyError:
        raise ArgumentError(
            "'{}' is not a known model. Choose among {}.".format(model, ", ".join(MODELS))) from None

    degrees = degree_sequence_from(data)
    graph = None if isinstance(data, (list, tuple, np.ndarray)) and np.ndim(data) == 1 else data
    return cls(degrees, precision=precision, graph=graph)


def fit(model, method: str = "newton", initial_guess="nodes", tol=None, max_steps=None, **solver_kw):
    """Fit ``model`` in place and return it.

    Extra keywords (``eps``, ``verbose``, ``linsearch``, ``regularise``,
    ``rng``...) are forwarded to ``solve_tool``.
    """
    model.solve_tool(method=method, initial_guess=initial_guess, tol=tol, max_steps=max_steps, **solver_kw)
    return model


def expected_matrix(model) -> np.ndarray:
    return model.expected_matrix()


def variance_matrix(model) -> np.ndarray:
    """Standard deviation of every entry of the adjacency matrix."""
    return model.variance_matrix()


def sample(model, rng=None) -> np.ndarray:
    return model.sample(rng=rng)


def ubcm_solver(data,
                *,
                method: str = "newton",
                return_probability_matrix: bool = True,
                **solver_kw) -> dict:
    """
    Fit the UBCM on a degree sequence or adjacency matrix in one call.

    Returns
    -------
    dict  with per-node parameters, observed/expected degrees, link counts
          and solver diagnostics; ``P`` is included unless
          ``return_probability_matrix`` is False.
    """
    model = fit(build(data, model="UBCM"), method=method, **solver_kw)

    theta, x = model.get_parameters(reduced=False)
    s = model.structure
    k_obs = s.degrees.astype(float)
    k_exp = model.expected_degrees()

    res = dict(
        theta=theta,
        x=x,
        order=s.order[s.node_to_class],
        k_obs=k_obs,
        k_exp=k_exp,
        L_obs=float(k_obs.sum()) / 2.0,
        L_exp=float(k_exp.sum()) / 2.0,
        constraint="UBCM",
        converged=model.converged,
        solver_steps=model.n_steps,
        max_degree_error=model.error,
    )
    if return_probability_matrix:
        res["P"] = model.expected_matrix()
    return res


def probability_matrix_from_ubcm(res: dict) -> np.ndarray:
    """Construct the UBCM probability matrix from a ``ubcm_solver`` result."""
    if "P" in res and isinstance(res["P"], np.ndarray):
        return np.asarray(res["P"], dtype=float)
    return expected_matrix_from_fitnesses(res["x"], res["order"])
