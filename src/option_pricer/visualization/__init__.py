"""Visualization module for option_pricer.

This module provides plotting functions for:
- CRR lattices with early-exercise nodes
- CRR convergence against tree depth
"""

from .trees import plot_crr_lattice, plot_crr_convergence

__all__ = [
    "plot_crr_lattice",
    "plot_crr_convergence",
]
