"""Plotting helpers for solve traces."""

from .trace import generate_plots

__all__ = ["generate_plots"]
