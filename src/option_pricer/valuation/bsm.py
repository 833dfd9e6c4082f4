"""Black-Scholes closed-form valuation of European vanilla and digital options."""

from __future__ import annotations
from typing import TYPE_CHECKING, NamedTuple
import logging
import numpy as np

from ..enums import OptionType, PayoffStyle
from ..exceptions import ConfigurationError, UnsupportedFeatureError, ValidationError
from ..options import OptionSpec
from ..utils import norm_cdf, norm_pdf

if TYPE_CHECKING:
    from ..options import Option


logger = logging.getLogger(__name__)

# Floors applied to T, sigma, S and K before taking logs/dividing.
_GUARD = 1e-12


class _BSMInputs(NamedTuple):
    """Pre-computed inputs shared by price and delta."""

    sigma_sqrt_t: float
    df_r: float
    d1: float
    d2: float


class BlackScholesPricer:
    """Black-Scholes pricer for European vanilla and digital options.

    Parameters
    ==========
    option: OptionSpec
        European contract with ``PayoffStyle.VANILLA`` or ``PayoffStyle.DIGITAL``
    spot: float
        current spot price
    rate: float
        continuously compounded risk-free rate
    volatility: float
        annualized volatility

    Notes
    -----
    The strike is read once at construction. When the option has expired
    (``T <= 0``) or the volatility is negligible, :meth:`price` returns the
    payoff at the current spot and :meth:`delta` the corresponding step.
    """

    def __init__(self, option: Option, spot: float, rate: float, volatility: float) -> None:
        if option is None:
            raise ConfigurationError("BlackScholesPricer: option is null")
        if not isinstance(option, OptionSpec):
            raise UnsupportedFeatureError(
                "BlackScholesPricer: only European vanilla and digital OptionSpec "
                f"contracts have a closed form, got {type(option).__name__}"
            )
        if option.is_american:
            raise UnsupportedFeatureError("BlackScholesPricer: American options have no closed form")

        for label, value in (("spot", spot), ("rate", rate), ("volatility", volatility)):
            if not np.isfinite(value):
                raise ValidationError(f"BlackScholesPricer: {label} must be finite")
        if spot < 0.0:
            raise ValidationError(f"BlackScholesPricer: spot must be >= 0, got {spot}")
        if volatility < 0.0:
            raise ValidationError(f"BlackScholesPricer: volatility must be >= 0, got {volatility}")

        self._option = option
        self._strike = float(option.strike)
        self._spot = float(spot)
        self._rate = float(rate)
        self._volatility = float(volatility)
        self._is_digital = option.payoff_style is PayoffStyle.DIGITAL
        logger.debug(
            "BlackScholesPricer %s %s K=%.6g S=%.6g r=%.6g sigma=%.6g T=%.6g",
            option.payoff_style.value,
            option.option_type.value,
            self._strike,
            self._spot,
            self._rate,
            self._volatility,
            option.expiry,
        )

    @property
    def option(self) -> OptionSpec:
        return self._option

    @property
    def strike(self) -> float:
        return self._strike

    @property
    def is_digital(self) -> bool:
        return self._is_digital

    def _is_degenerate(self) -> bool:
        return self._option.expiry <= 0.0 or self._volatility < _GUARD

    def _inputs(self) -> _BSMInputs:
        """Compute d1, d2 with guarded T, sigma, S and K."""
        T = max(self._option.expiry, _GUARD)
        sigma = max(self._volatility, _GUARD)
        S = max(self._spot, _GUARD)
        K = max(self._strike, _GUARD)

        sigma_sqrt_t = sigma * np.sqrt(T)
        d1 = (np.log(S / K) + (self._rate + 0.5 * sigma**2) * T) / sigma_sqrt_t
        d2 = d1 - sigma_sqrt_t
        return _BSMInputs(
            sigma_sqrt_t=float(sigma_sqrt_t),
            df_r=float(np.exp(-self._rate * T)),
            d1=float(d1),
            d2=float(d2),
        )

    def price(self) -> float:
        """Black-Scholes value of the option.

        Vanilla:

        .. math::

            C = S N(d_1) - K e^{-rT} N(d_2), \\quad P = K e^{-rT} N(-d_2) - S N(-d_1)

        Digital (cash-or-nothing, unit notional):

        .. math::

            C = e^{-rT} N(d_2), \\quad P = e^{-rT} N(-d_2)
        """
        if self._is_degenerate():
            return float(self._option.payoff(self._spot))

        inp = self._inputs()
        call = self._option.option_type is OptionType.CALL

        if self._is_digital:
            if call:
                return float(inp.df_r * norm_cdf(inp.d2))
            return float(inp.df_r * norm_cdf(-inp.d2))

        if call:
            value = self._spot * norm_cdf(inp.d1) - self._strike * inp.df_r * norm_cdf(inp.d2)
        else:
            value = self._strike * inp.df_r * norm_cdf(-inp.d2) - self._spot * norm_cdf(-inp.d1)
        return float(value)

    def delta(self) -> float:
        """Sensitivity of :meth:`price` to the spot.

        delta = N(d1) for calls, N(d1) - 1 for puts;
        digital delta = ± e^{-rT} φ(d2) / (S σ √T).
        """
        call = self._option.option_type is OptionType.CALL

        if self._is_degenerate():
            if self._is_digital:
                return 0.0
            if call:
                return 1.0 if self._spot > self._strike else 0.0
            return -1.0 if self._spot < self._strike else 0.0

        inp = self._inputs()
        if self._is_digital:
            factor = inp.df_r * norm_pdf(inp.d2) / (max(self._spot, _GUARD) * inp.sigma_sqrt_t)
            return float(factor if call else -factor)

        if call:
            return float(norm_cdf(inp.d1))
        return float(norm_cdf(inp.d1) - 1.0)

    def __call__(self) -> float:
        """Alias for :meth:`price`."""
        return self.price()
