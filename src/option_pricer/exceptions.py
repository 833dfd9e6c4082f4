"""Custom exception hierarchy for the option_pricer library.

All library-specific exceptions inherit from :class:`OptionPricerError`,
enabling callers to catch *any* library error with a single ``except`` clause::

    try:
        pricer = CRRPricer(option, depth=3, S0=100.0, U=1.2, D=0.8, R=1.05)
        pv = pricer()
    except OptionPricerError as exc:
        log.error("Library error: %s", exc)

Errors that correspond to a builtin category also derive from that builtin
(``ValueError``, ``TypeError``, ``IndexError``, ``RuntimeError``) so generic
handlers keep working.
"""

from __future__ import annotations


class OptionPricerError(Exception):
    """Base exception for all library errors."""


# ── Input validation ────────────────────────────────────────────────


class ValidationError(OptionPricerError, ValueError):
    """Invalid input values (negative depth, non-finite strike, unordered fixing times, etc.)."""


class ConfigurationError(OptionPricerError, TypeError):
    """Wrong types passed to a public API (e.g. missing option, raw str instead of enum)."""


# ── Feature support ─────────────────────────────────────────────────


class UnsupportedFeatureError(OptionPricerError):
    """Requested contract/pricer combination is not supported."""


# ── Usage order ─────────────────────────────────────────────────────


class PreconditionError(OptionPricerError, RuntimeError):
    """An operation was called before the state it depends on exists."""


class LatticeIndexError(OptionPricerError, IndexError):
    """A lattice node was addressed outside ``0 <= n <= depth``, ``0 <= i <= n``."""


# ── Numerical issues ────────────────────────────────────────────────


class NumericalError(OptionPricerError):
    """Base for errors arising from numerical computation."""


class ArbitrageViolationError(NumericalError):
    """Model parameters imply an arbitrage (``D < R < U`` does not hold)."""
