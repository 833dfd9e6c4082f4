"""Valuation of European and American options using the binomial option pricing model of
Cox-Ross-Rubinstein
"""

from __future__ import annotations
from typing import TYPE_CHECKING, TextIO
import logging
import math
import numpy as np

from ..exceptions import (
    ArbitrageViolationError,
    ConfigurationError,
    PreconditionError,
    UnsupportedFeatureError,
    ValidationError,
)
from ..lattice import Lattice
from ..utils import binomial_coefficient, log_timing

if TYPE_CHECKING:
    from ..options import Option


logger = logging.getLogger(__name__)


def _check_option(option: Option | None) -> None:
    if option is None:
        raise ConfigurationError("CRRPricer: option is null")
    if option.is_asian:
        raise UnsupportedFeatureError(
            "CRRPricer: Asian options are path dependent and cannot be valued on a recombining tree"
        )


def _check_depth(depth, minimum: int) -> int:
    if isinstance(depth, bool) or not isinstance(depth, (int, np.integer)):
        raise ConfigurationError(f"CRRPricer: depth must be an int, got {type(depth).__name__}")
    if depth < minimum:
        raise ValidationError(f"CRRPricer: depth must be >= {minimum}, got {depth}")
    return int(depth)


class CRRPricer:
    """Binomial tree pricer with optional early exercise.

    Parameters
    ==========
    option: Option
        contract to value; Asian contracts are rejected
    depth: int
        number of time steps (>= 0)
    S0: float
        initial spot
    U, D, R: float
        per-period up, down and risk-free growth factors (``1 + return``)
    as_returns: bool, default False
        interpret ``U``, ``D`` and ``R`` as per-period returns and convert them
        with ``factor = 1 + return``
    log_timings: bool, default False
        log elapsed time of :meth:`compute` at debug level

    Raises
    ======
    ArbitrageViolationError
        if ``D < R < U`` does not hold

    Examples
    ========
    >>> from option_pricer import CRRPricer, OptionSpec
    >>> call = OptionSpec.european_call(strike=100.0, expiry=1.0)
    >>> round(CRRPricer(call, 3, 100.0, 1.2, 0.8, 1.05)(), 6)
    21.123529
    """

    def __init__(
        self,
        option: Option,
        depth: int,
        S0: float,
        U: float,
        D: float,
        R: float,
        *,
        as_returns: bool = False,
        log_timings: bool = False,
    ) -> None:
        _check_option(option)
        self._depth = _check_depth(depth, 0)
        self._option = option
        self._S0 = float(S0)
        if not np.isfinite(self._S0) or self._S0 < 0.0:
            raise ValidationError(f"CRRPricer: S0 must be finite and >= 0, got {S0}")

        if as_returns:
            U, D, R = 1.0 + U, 1.0 + D, 1.0 + R
        self._U, self._D, self._R = float(U), float(D), float(R)

        if not np.all(np.isfinite((self._U, self._D, self._R))):
            raise ValidationError("CRRPricer: growth factors must be finite")
        if self._U <= 0.0 or self._D <= 0.0 or self._R <= 0.0:
            raise ValidationError("CRRPricer: growth factors must be > 0 (returns > -100%)")
        if not (self._D < self._R < self._U):
            raise ArbitrageViolationError(
                f"CRRPricer: need D < R < U, got D={self._D}, R={self._R}, U={self._U}"
            )

        self._log_timings = log_timings
        self._option_tree: Lattice[float] = Lattice(self._depth, default=0.0)
        self._exercise_tree: Lattice[bool] = Lattice(self._depth, default=False)
        self._computed = False
        logger.debug(
            "CRRPricer depth=%d S0=%.6g U=%.10g D=%.10g R=%.10g american=%s",
            self._depth,
            self._S0,
            self._U,
            self._D,
            self._R,
            option.is_american,
        )

    @classmethod
    def from_rate_volatility(
        cls,
        option: Option,
        depth: int,
        S0: float,
        rate: float,
        volatility: float,
        *,
        log_timings: bool = False,
    ) -> CRRPricer:
        """Build the CRR tree from a continuously compounded rate and a volatility.

        The option's expiry is split into ``depth`` equal steps ``dt`` and

        .. math::

            U = e^{\\sigma\\sqrt{\\Delta t}}, \\quad D = e^{-\\sigma\\sqrt{\\Delta t}},
            \\quad R = e^{r\\Delta t}
        """
        _check_option(option)
        depth = _check_depth(depth, 1)
        for label, value in (("rate", rate), ("volatility", volatility)):
            if not np.isfinite(value):
                raise ValidationError(f"CRRPricer: {label} must be finite, got {value}")
        if volatility < 0.0:
            raise ValidationError(f"CRRPricer: volatility must be >= 0, got {volatility}")

        delta_t = option.expiry / depth
        step = volatility * math.sqrt(delta_t)
        U = math.exp(step)
        D = math.exp(-step)
        R = math.exp(rate * delta_t)
        return cls(option, depth, S0, U, D, R, log_timings=log_timings)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def option(self) -> Option:
        return self._option

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def S0(self) -> float:
        return self._S0

    @property
    def up(self) -> float:
        return self._U

    @property
    def down(self) -> float:
        return self._D

    @property
    def growth(self) -> float:
        return self._R

    @property
    def risk_neutral_probability(self) -> float:
        """q = (R - D) / (U - D), strictly inside (0, 1) by construction."""
        return (self._R - self._D) / (self._U - self._D)

    @property
    def computed(self) -> bool:
        return self._computed

    @property
    def option_tree(self) -> Lattice[float]:
        return self._option_tree

    @property
    def exercise_tree(self) -> Lattice[bool]:
        return self._exercise_tree

    def spot(self, n: int, i: int) -> float:
        """Spot at node ``(n, i)``: ``S0 * U**i * D**(n - i)``."""
        return self._S0 * self._U**i * self._D ** (n - i)

    def _level_spots(self, n: int) -> np.ndarray:
        i = np.arange(n + 1)
        return self._S0 * np.power(self._U, i) * np.power(self._D, n - i)

    def _level_payoffs(self, n: int) -> np.ndarray:
        return np.asarray(self._option.payoff(self._level_spots(n)), dtype=float).reshape(n + 1)

    # ------------------------------------------------------------------
    # Backward induction
    # ------------------------------------------------------------------

    def compute(self) -> None:
        """Fill the option and exercise lattices by backward induction.

        An American node is exercised when the intrinsic value is at least the
        continuation value (ties exercise).
        """
        with log_timing(logger, "CRR compute", self._log_timings):
            q = self.risk_neutral_probability
            american = self._option.is_american
            depth = self._depth

            values = self._level_payoffs(depth)
            exercise = (values >= 0.0) & american
            self._store_level(depth, values, exercise)

            for n in range(depth - 1, -1, -1):
                continuation = (q * values[1:] + (1.0 - q) * values[:-1]) / self._R
                if american:
                    intrinsic = self._level_payoffs(n)
                    exercise = intrinsic >= continuation
                    values = np.where(exercise, intrinsic, continuation)
                else:
                    exercise = np.zeros(n + 1, dtype=bool)
                    values = continuation
                self._store_level(n, values, exercise)

        self._computed = True
        logger.debug("CRR compute done depth=%d root=%.10g", depth, values[0])

    def _store_level(self, n: int, values: np.ndarray, exercise: np.ndarray) -> None:
        for i, (value, flag) in enumerate(zip(values.tolist(), exercise.tolist())):
            self._option_tree.set_node(n, i, value)
            self._exercise_tree.set_node(n, i, bool(flag))

    def get(self, n: int, i: int) -> float:
        """Option value at node ``(n, i)``; requires :meth:`compute`."""
        if not self._computed:
            raise PreconditionError("CRRPricer.get needs compute() first")
        return self._option_tree.get_node(n, i)

    def get_exercise(self, n: int, i: int) -> bool:
        """Early-exercise flag at node ``(n, i)``; requires :meth:`compute`."""
        if not self._computed:
            raise PreconditionError("CRRPricer.get_exercise needs compute() first")
        return self._exercise_tree.get_node(n, i)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def _closed_form(self) -> float:
        """Discounted expectation of the terminal payoff under Binomial(depth, q)."""
        q = self.risk_neutral_probability
        depth = self._depth
        payoffs = self._level_payoffs(depth)

        price = 0.0
        for i in range(depth + 1):
            weight = binomial_coefficient(depth, i) * q**i * (1.0 - q) ** (depth - i)
            if not math.isfinite(weight):
                # C(depth, i) overflows a double for very deep trees
                log_weight = (
                    math.lgamma(depth + 1)
                    - math.lgamma(i + 1)
                    - math.lgamma(depth - i + 1)
                    + i * math.log(q)
                    + (depth - i) * math.log1p(-q)
                )
                weight = math.exp(log_weight)
            price += weight * payoffs[i]
        return price / self._R**depth

    def __call__(self, closed_form: bool = False) -> float:
        """Return the option price.

        Parameters
        ==========
        closed_form: bool, default False
            False: root of the backward-induction lattice (computed lazily).
            True: exact discrete closed form, European contracts only.
        """
        if closed_form:
            if self._option.is_american:
                raise PreconditionError("CRRPricer: closed form only for European options")
            return float(self._closed_form())

        if not self._computed:
            self.compute()
        return float(self._option_tree.get_node(0, 0))

    def price(self) -> float:
        """Alias for ``self(closed_form=False)``."""
        return self(closed_form=False)

    def display(self, file: TextIO | None = None) -> None:
        """Print the option value lattice; requires :meth:`compute`."""
        if not self._computed:
            raise PreconditionError("CRRPricer.display needs compute() first")
        self._option_tree.display(file)
