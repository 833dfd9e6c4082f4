"""Option contract descriptors consumed by the pricers.

The family is flat: a vanilla/digital contract (:class:`OptionSpec`), an
arithmetic Asian contract (:class:`AsianOptionSpec`) and a custom payoff
(:class:`PayoffSpec`). Each exposes the same small surface, captured by the
:class:`Option` protocol, and capability flags instead of a class hierarchy.

Payoffs are vectorized: they accept a float or an ``np.ndarray`` of spots and
return a float or an array of the same shape. Path payoffs take the path on the
last axis, so a ``(num_paths, num_fixings)`` array is valued in one call.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
import numpy as np

from .enums import ExerciseType, OptionType, PayoffStyle
from .exceptions import ConfigurationError, UnsupportedFeatureError, ValidationError

__all__ = [
    "Option",
    "OptionSpec",
    "AsianOptionSpec",
    "PayoffSpec",
]


@runtime_checkable
class Option(Protocol):
    """Structural interface shared by all option descriptors."""

    @property
    def expiry(self) -> float: ...

    @property
    def option_type(self) -> OptionType | None: ...

    @property
    def strike(self) -> float | None: ...

    @property
    def time_steps(self) -> tuple[float, ...]: ...

    @property
    def is_asian(self) -> bool: ...

    @property
    def is_american(self) -> bool: ...

    def payoff(self, spot: np.ndarray | float) -> np.ndarray | float: ...

    def payoff_path(self, path: np.ndarray | Sequence[float]) -> np.ndarray | float: ...


def _as_output(values: np.ndarray) -> np.ndarray | float:
    values = np.asarray(values, dtype=float)
    if values.ndim == 0:
        return float(values)
    return values


def _coerce_nonnegative(value, label: str) -> float:
    if value is None:
        raise ValidationError(f"{label} must be provided")
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be numeric") from exc
    if not np.isfinite(out):
        raise ValidationError(f"{label} must be finite")
    if out < 0.0:
        raise ValidationError(f"{label} must be >= 0")
    return out


def _last_fixing(path: np.ndarray | Sequence[float], label: str) -> np.ndarray:
    path = np.asarray(path, dtype=float)
    if path.ndim == 0 or path.shape[-1] == 0:
        raise ValidationError(f"{label}: path cannot be empty")
    return path


def _vanilla_payoff(option_type: OptionType, strike: float, spot) -> np.ndarray:
    """Vectorized vanilla payoff: max(S-K,0) for calls, max(K-S,0) for puts."""
    spot = np.asarray(spot, dtype=float)
    if option_type is OptionType.CALL:
        return np.maximum(spot - strike, 0.0)
    return np.maximum(strike - spot, 0.0)


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """Contract specification for a vanilla or digital option.

    Attributes
    ==========
    option_type: OptionType
        CALL or PUT
    strike: float
        strike price, >= 0
    expiry: float
        time to expiry in years, >= 0
    exercise_type: ExerciseType
        EUROPEAN (default) or AMERICAN
    payoff_style: PayoffStyle
        VANILLA (default) or DIGITAL. Digital calls pay 1 when ``S >= K``,
        digital puts pay 1 when ``S <= K``.
    """

    option_type: OptionType
    strike: float
    expiry: float
    exercise_type: ExerciseType = ExerciseType.EUROPEAN
    payoff_style: PayoffStyle = PayoffStyle.VANILLA

    def __post_init__(self) -> None:
        if not isinstance(self.option_type, OptionType):
            raise ConfigurationError(
                f"option_type must be OptionType enum, got {type(self.option_type).__name__}"
            )
        if not isinstance(self.exercise_type, ExerciseType):
            raise ConfigurationError(
                f"exercise_type must be ExerciseType enum, got {type(self.exercise_type).__name__}"
            )
        if not isinstance(self.payoff_style, PayoffStyle):
            raise ConfigurationError(
                f"payoff_style must be PayoffStyle enum, got {type(self.payoff_style).__name__}"
            )
        if (
            self.payoff_style is PayoffStyle.DIGITAL
            and self.exercise_type is ExerciseType.AMERICAN
        ):
            raise UnsupportedFeatureError("American digital options are not supported")
        object.__setattr__(self, "strike", _coerce_nonnegative(self.strike, "OptionSpec.strike"))
        object.__setattr__(self, "expiry", _coerce_nonnegative(self.expiry, "OptionSpec.expiry"))

    @classmethod
    def european_call(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.CALL, strike, expiry)

    @classmethod
    def european_put(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.PUT, strike, expiry)

    @classmethod
    def american_call(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.CALL, strike, expiry, exercise_type=ExerciseType.AMERICAN)

    @classmethod
    def american_put(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.PUT, strike, expiry, exercise_type=ExerciseType.AMERICAN)

    @classmethod
    def digital_call(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.CALL, strike, expiry, payoff_style=PayoffStyle.DIGITAL)

    @classmethod
    def digital_put(cls, strike: float, expiry: float) -> OptionSpec:
        return cls(OptionType.PUT, strike, expiry, payoff_style=PayoffStyle.DIGITAL)

    @property
    def is_asian(self) -> bool:
        return False

    @property
    def is_american(self) -> bool:
        return self.exercise_type is ExerciseType.AMERICAN

    @property
    def is_digital(self) -> bool:
        return self.payoff_style is PayoffStyle.DIGITAL

    @property
    def time_steps(self) -> tuple[float, ...]:
        return (self.expiry,)

    def payoff(self, spot: np.ndarray | float) -> np.ndarray | float:
        """Payoff as a function of spot."""
        if self.payoff_style is PayoffStyle.VANILLA:
            return _as_output(_vanilla_payoff(self.option_type, self.strike, spot))
        spot = np.asarray(spot, dtype=float)
        if self.option_type is OptionType.CALL:
            return _as_output(np.where(spot >= self.strike, 1.0, 0.0))
        return _as_output(np.where(spot <= self.strike, 1.0, 0.0))

    def payoff_path(self, path: np.ndarray | Sequence[float]) -> np.ndarray | float:
        """Payoff of the last fixing of each path."""
        path = _last_fixing(path, "OptionSpec")
        return self.payoff(path[..., -1])


@dataclass(frozen=True, slots=True)
class AsianOptionSpec:
    """Contract specification for an arithmetic-average Asian option.

    Parameters
    ----------
    option_type : OptionType
        OptionType.CALL or OptionType.PUT to specify payoff direction
    strike : float
        Strike price
    time_steps : Sequence[float]
        Fixing times in years, strictly increasing. The last fixing is the expiry.

    Notes
    -----
    - Arithmetic average: S_avg = (1/N) * Σ S_i over the fixings
    - Payoff for call: max(S_avg - K, 0)
    - Payoff for put: max(K - S_avg, 0)
    - Only European exercise
    """

    option_type: OptionType
    strike: float
    time_steps: tuple[float, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.option_type, OptionType):
            raise ConfigurationError(
                f"option_type must be OptionType enum, got {type(self.option_type).__name__}"
            )
        object.__setattr__(
            self, "strike", _coerce_nonnegative(self.strike, "AsianOptionSpec.strike")
        )

        if self.time_steps is None:
            raise ValidationError("AsianOptionSpec: time steps cannot be empty")
        steps = tuple(
            _coerce_nonnegative(t, "AsianOptionSpec.time_steps") for t in self.time_steps
        )
        if not steps:
            raise ValidationError("AsianOptionSpec: time steps cannot be empty")
        if any(b <= a for a, b in zip(steps, steps[1:])):
            raise ValidationError("AsianOptionSpec: time steps must be strictly increasing")
        object.__setattr__(self, "time_steps", steps)

    @property
    def expiry(self) -> float:
        return self.time_steps[-1]

    @property
    def exercise_type(self) -> ExerciseType:
        return ExerciseType.EUROPEAN

    @property
    def is_asian(self) -> bool:
        return True

    @property
    def is_american(self) -> bool:
        return False

    def payoff(self, spot: np.ndarray | float) -> np.ndarray | float:
        """Payoff given an (average) price."""
        return _as_output(_vanilla_payoff(self.option_type, self.strike, spot))

    def payoff_path(self, path: np.ndarray | Sequence[float]) -> np.ndarray | float:
        """Payoff of the arithmetic average of each path."""
        path = _last_fixing(path, "AsianOptionSpec")
        return self.payoff(path.mean(axis=-1))


@dataclass(frozen=True, slots=True)
class PayoffSpec:
    """Contract specification for a single-contract custom payoff.

    Useful for payoffs that are not a single vanilla call/put (e.g. a capped
    straddle) while still treating the product as ONE contract for exercise
    decisions: American pricing compares intrinsic vs continuation on the full
    payoff.

    Notes
    -----
    - payoff_fn must be vectorized over spot (accept float or np.ndarray)
    - strike is None; option_type optionally tags the payoff direction
    - the closed-form pricer rejects this spec
    """

    payoff_fn: Callable[[np.ndarray | float], np.ndarray | float]
    expiry: float
    exercise_type: ExerciseType = ExerciseType.EUROPEAN

    strike: None = None
    option_type: OptionType | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.exercise_type, ExerciseType):
            raise ConfigurationError(
                f"exercise_type must be ExerciseType enum, got {type(self.exercise_type).__name__}"
            )
        if not callable(self.payoff_fn):
            raise ConfigurationError("payoff_fn must be callable")
        if self.option_type is not None and not isinstance(self.option_type, OptionType):
            raise ConfigurationError(
                f"option_type must be OptionType enum or None, got {type(self.option_type).__name__}"
            )
        object.__setattr__(self, "expiry", _coerce_nonnegative(self.expiry, "PayoffSpec.expiry"))

    @property
    def is_asian(self) -> bool:
        return False

    @property
    def is_american(self) -> bool:
        return self.exercise_type is ExerciseType.AMERICAN

    @property
    def time_steps(self) -> tuple[float, ...]:
        return (self.expiry,)

    def payoff(self, spot: np.ndarray | float) -> np.ndarray | float:
        """Vectorized payoff as a function of spot."""
        return _as_output(self.payoff_fn(spot))

    def payoff_path(self, path: np.ndarray | Sequence[float]) -> np.ndarray | float:
        path = _last_fixing(path, "PayoffSpec")
        return self.payoff(path[..., -1])
