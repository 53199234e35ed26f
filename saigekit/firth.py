"""Logistic regression by Newton-Raphson, with optional Firth bias correction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve


@dataclass(frozen=True)
class LogisticFit:
    """Result of a (penalised) logistic fit."""

    coefficients: np.ndarray
    converged: bool
    iterations: int
    covariance: np.ndarray


def _probabilities(x: np.ndarray, beta: np.ndarray, offset: np.ndarray) -> np.ndarray:
    return 1.0 / (np.exp(-(x @ beta) - offset) + 1.0)


def _invert_spd(matrix: np.ndarray) -> Optional[np.ndarray]:
    """Invert a symmetric positive-definite matrix, or return None when it is not one."""
    if not np.all(np.isfinite(matrix)) or not np.allclose(matrix, matrix.T):
        return None
    try:
        factor = cho_factor(matrix, lower=True, check_finite=False)
    except LinAlgError:
        return None
    return cho_solve(factor, np.eye(matrix.shape[0]), check_finite=False)


def logistf_fit(
    x: Sequence[Sequence[float]] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    weight: Optional[Sequence[float] | np.ndarray] = None,
    offset: Optional[Sequence[float] | np.ndarray] = None,
    firth: bool = True,
    init: Optional[Sequence[float] | np.ndarray] = None,
    maxit: int = 25,
    maxstep: float = 5.0,
    gconv: float = 1e-5,
    xconv: float = 1e-5,
) -> LogisticFit:
    """Fit a logistic model of ``y`` on the columns of ``x``.

    With ``firth`` set the score is modified by the hat-matrix diagonal
    (Firth's penalised likelihood). Each Newton step is scaled down so that no
    coefficient moves by more than ``maxstep``. The fit counts as converged when
    the step and score fall within ``xconv`` and ``gconv``, or when ``maxit``
    iterations have been made. A fit whose information matrix cannot be
    inverted stops early; coefficients are NaN if the covariance holds NaN.
    """
    design = np.atleast_2d(np.asarray(x, dtype=float))
    n, k = design.shape
    response = np.asarray(y, dtype=float).reshape(-1)
    if response.size != n:
        raise ValueError("y must have one entry per row of x")
    w = np.ones(n) if weight is None else np.asarray(weight, dtype=float).reshape(-1)
    off = np.zeros(n) if offset is None else np.asarray(offset, dtype=float).reshape(-1)
    if w.size != n or off.size != n:
        raise ValueError("weight and offset must have one entry per row of x")
    beta = np.zeros(k) if init is None else np.array(init, dtype=float).reshape(-1)
    if beta.size != k:
        raise ValueError("init must have one entry per column of x")
    if maxstep <= 0:
        raise ValueError("maxstep must be positive")

    pi = _probabilities(design, beta, off)
    covariance = np.zeros((k, k))
    iterations = 0
    converged = False

    while iterations <= maxit:
        wpi = w * pi * (1 - pi)
        wpi_sqrt = np.sqrt(wpi)
        weighted = design * (w * wpi_sqrt)[:, None]
        q, _ = np.linalg.qr(weighted, mode="reduced")
        hat = np.sum(q * q, axis=1)

        residual = w * (response - pi)
        if firth:
            residual = residual + hat * (0.5 - pi)
        score = design.T @ residual

        scaled = design * wpi_sqrt[:, None]
        inverse = _invert_spd(scaled.T @ scaled)
        if inverse is None:
            break
        covariance = inverse

        delta = np.nan_to_num(covariance @ score, nan=0.0)
        largest = np.max(np.abs(delta)) / maxstep
        if largest > 1:
            delta = delta / largest

        iterations += 1
        beta = beta + delta
        pi = _probabilities(design, beta, off)
        if iterations == maxit or (
            np.max(np.abs(delta)) <= xconv and np.all(np.abs(score) <= gconv)
        ):
            converged = True
            break

    if np.isnan(covariance).any():
        beta = np.full(k, np.nan)
    return LogisticFit(
        coefficients=beta,
        converged=converged,
        iterations=iterations,
        covariance=covariance,
    )