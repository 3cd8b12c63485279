"""Reference solve of the bundle shopping LP built on SciPy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.optimize import linprog

from catalog import Bundle
from requirements import Requirement


@dataclass
class LPSolution:
    x: np.ndarray
    status: str
    objective: float


class LPSolverError(RuntimeError):
    pass


def covering_matrix(
    requirements: Sequence[Requirement], bundles: Sequence[Bundle]
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(A, b, c)`` for ``min c @ x`` subject to ``A @ x >= b``, ``x >= 0``."""
    A = np.array(
        [[bundle.quantity_of(req.name) for bundle in bundles] for req in requirements],
        dtype=float,
    ).reshape(len(requirements), len(bundles))
    b = np.array([req.quantity for req in requirements], dtype=float)
    c = np.array([float(bundle.price) for bundle in bundles], dtype=float)
    return A, b, c


def solve_lp(
    cost: np.ndarray,
    A: np.ndarray,
    b: np.ndarray,
    *,
    integral: bool = False,
) -> LPSolution:
    """Minimize ``cost @ x`` subject to ``A @ x >= b`` and ``x >= 0``."""
    c = np.asarray(cost, dtype=float)
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    n = c.size

    if A.ndim != 2 or A.shape[1] != n:
        raise ValueError("A must be a 2-D array with n columns")
    if b.ndim != 1 or b.size != A.shape[0]:
        raise ValueError("b must be a 1-D array matching the number of rows in A")

    res = linprog(
        c,
        A_ub=-A,
        b_ub=-b,
        bounds=[(0, None)] * n,
        method="highs",
        integrality=np.ones(n, dtype=int) if integral else None,
    )
    if not res.success:
        raise LPSolverError(res.message)
    return LPSolution(res.x, "optimal", float(c @ res.x))


def solve_shopping(
    requirements: Sequence[Requirement],
    bundles: Sequence[Bundle],
    *,
    integral: bool = False,
) -> LPSolution:
    A, b, c = covering_matrix(requirements, bundles)
    return solve_lp(c, A, b, integral=integral)
