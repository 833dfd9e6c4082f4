"""Plot binomial trees and convergence analysis."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes

from ..valuation.binomial import CRRPricer

if TYPE_CHECKING:
    from ..options import Option


def plot_crr_lattice(
    pricer: CRRPricer,
    max_steps: int = 5,
    figsize: tuple[float, float] = (12, 8),
) -> tuple[Figure, Axes]:
    """Plot the first levels of a CRR lattice (for small trees only).

    Nodes are coloured by option value and labelled with spot / value;
    nodes where early exercise is optimal are outlined in red.

    Parameters
    ----------
    pricer : CRRPricer
        Pricer to plot; the lattice is computed if needed.
    max_steps : int, optional
        Maximum number of steps to display (default: 5). Deeper trees are
        truncated.
    figsize : tuple[float, float], optional
        Figure size (default: (12, 8))

    Returns
    -------
    tuple[Figure, Axes]
        Matplotlib figure and axes objects
    """
    if not isinstance(pricer, CRRPricer):
        raise TypeError("plot_crr_lattice requires a CRRPricer")
    if not pricer.computed:
        pricer.compute()

    num_steps = min(max_steps, pricer.depth)
    fig, ax = plt.subplots(figsize=figsize)

    x_positions = []
    y_positions = []
    values = []
    exercised = []
    labels = []

    for step in range(num_steps + 1):
        for node in range(step + 1):
            x_positions.append(step)
            y_positions.append(2 * node - step)  # up moves plotted upwards
            value = pricer.get(step, node)
            values.append(value)
            exercised.append(pricer.get_exercise(step, node))
            labels.append(f"{pricer.spot(step, node):.2f}\n{value:.2f}")

    # Connections: node (n, i) leads to (n+1, i+1) and (n+1, i)
    for step in range(num_steps):
        for node in range(step + 1):
            x0, y0 = step, 2 * node - step
            ax.plot([x0, x0 + 1], [y0, y0 + 1], "b-", alpha=0.5)
            ax.plot([x0, x0 + 1], [y0, y0 - 1], "b-", alpha=0.5)

    edge_colors = ["red" if flag else "black" for flag in exercised]
    ax.scatter(
        x_positions,
        y_positions,
        s=100,
        c=values,
        cmap="viridis",
        edgecolors=edge_colors,
        linewidths=1.5,
    )

    for x, y, label in zip(x_positions, y_positions, labels):
        ax.text(x, y + 0.3, label, ha="center", fontsize=8)

    ax.set_xlabel("Time Step")
    ax.set_ylabel("Node Position")
    ax.set_title(f"CRR Lattice ({num_steps} of {pricer.depth} steps)")
    ax.grid(True, alpha=0.3)

    return fig, ax


def plot_crr_convergence(
    option: Option,
    S0: float,
    rate: float,
    volatility: float,
    depths: Sequence[int] = tuple(range(10, 201, 10)),
    reference_price: float | None = None,
    figsize: tuple[float, float] = (10, 6),
) -> tuple[Figure, Axes]:
    """Plot CRR option price as a function of tree depth.

    Parameters
    ----------
    option : Option
        Contract to value.
    S0, rate, volatility : float
        Market parameters passed to :meth:`CRRPricer.from_rate_volatility`.
    depths : Sequence[int], optional
        Tree depths to evaluate (default: 10, 20, ..., 200)
    reference_price : float, optional
        Reference price (e.g. Black-Scholes) to plot for comparison
    figsize : tuple[float, float], optional
        Figure size (default: (10, 6))

    Returns
    -------
    tuple[Figure, Axes]
        Matplotlib figure and axes objects
    """
    depths = np.asarray(depths, dtype=int)
    if depths.size == 0:
        raise ValueError("plot_crr_convergence requires at least one depth")

    prices = [
        CRRPricer.from_rate_volatility(option, int(depth), S0, rate, volatility)()
        for depth in depths
    ]

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(depths, prices, marker="o", linewidth=2, label="CRR Price")

    if reference_price is not None:
        ax.axhline(
            y=reference_price,
            color="r",
            linestyle="--",
            linewidth=2,
            label=f"Reference: {reference_price:.4f}",
        )

    ax.set_xlabel("Number of Steps")
    ax.set_ylabel("Option Price")
    ax.set_title("CRR Convergence")
    ax.legend()
    ax.grid(True, alpha=0.3)

    return fig, ax
