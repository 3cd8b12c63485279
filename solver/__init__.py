"""Reference LP solver."""

from .lp_solver import LPSolution, LPSolverError, solve_lp, solve_shopping

__all__ = ["LPSolution", "LPSolverError", "solve_lp", "solve_shopping"]
