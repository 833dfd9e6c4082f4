"""Helper functions shared by the pricers."""

from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Iterator
import time
import numpy as np
from scipy.stats import norm

from .exceptions import ValidationError

__all__ = [
    "log_timing",
    "binomial_coefficient",
    "norm_cdf",
    "norm_pdf",
    "put_call_parity_rhs",
    "put_call_parity_gap",
]


@contextmanager
def log_timing(logger, label: str, enabled: bool) -> Iterator[None]:
    """Log timing for a code block when enabled is True."""
    if not enabled:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logger.debug("Timing %s: %.6fs", label, elapsed)


def binomial_coefficient(n: int, k: int) -> float:
    """Binomial coefficient C(n, k) as a float.

    Uses the multiplicative symmetric formula, i.e. ``min(k, n-k)``
    multiplications, so large ``n`` does not overflow through factorials.
    Returns 0.0 for ``k`` outside ``[0, n]``.
    """
    if k < 0 or k > n:
        return 0.0
    m = min(k, n - k)
    c = 1.0
    for j in range(1, m + 1):
        c = c * (n - m + j) / j
    return c


def norm_cdf(x):
    """Standard normal CDF, ``0.5 * erfc(-x / sqrt(2))``."""
    return norm.cdf(x)


def norm_pdf(x):
    """Standard normal density."""
    return norm.pdf(x)


def put_call_parity_rhs(spot: float, strike: float, rate: float, expiry: float) -> float:
    """Right-hand side of put-call parity, ``S - K e^{-rT}``.

    Parameters
    ==========
    spot: float
        current spot price
    strike: float
        strike of both legs
    rate: float
        continuously compounded risk-free rate
    expiry: float
        time to expiry in years
    """
    if expiry < 0:
        raise ValidationError("expiry must be >= 0")
    return float(spot - strike * np.exp(-rate * expiry))


def put_call_parity_gap(
    call_price: float,
    put_price: float,
    *,
    spot: float,
    strike: float,
    rate: float,
    expiry: float,
) -> float:
    """Return ``(C - P) - (S - K e^{-rT})``; zero when parity holds."""
    rhs = put_call_parity_rhs(spot, strike, rate, expiry)
    return float(call_price - put_price - rhs)
