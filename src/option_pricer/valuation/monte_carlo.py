"""Monte Carlo Simulation option valuation under Black-Scholes dynamics."""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING
import logging
import os
import numpy as np

from ..enums import PayoffStyle
from ..exceptions import ConfigurationError, PreconditionError, ValidationError
from ..options import OptionSpec
from ..utils import log_timing
from .bsm import _GUARD, BlackScholesPricer
from .params import MonteCarloParams

if TYPE_CHECKING:
    from ..options import Option


logger = logging.getLogger(__name__)

_Z_95 = 1.96


@dataclass(slots=True)
class RunningStats:
    """Running count, mean and sum of squared deviations (Welford).

    Accumulators built independently (e.g. one per worker thread) are combined
    with :meth:`merge`, the parallel form of Welford's update (Chan et al.).
    The merge is associative up to rounding, so the result does not depend on
    how samples were chunked.

    The pricer folds whole batches with :meth:`update_batch`, which is a merge
    of the batch's own mean and M2; :meth:`update` is the equivalent
    single-sample step.
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def update(self, sample: float) -> None:
        """Fold a single sample."""
        self.count += 1
        delta = sample - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (sample - self.mean)

    def update_batch(self, samples: np.ndarray) -> None:
        """Fold an array of samples through its batch mean and M2."""
        samples = np.asarray(samples, dtype=float).ravel()
        if samples.size == 0:
            return
        batch_mean = float(samples.mean())
        batch_m2 = float(np.sum((samples - batch_mean) ** 2))
        self.merge(RunningStats(int(samples.size), batch_mean, batch_m2))

    def merge(self, other: RunningStats) -> None:
        """Combine another accumulator into this one."""
        if other.count == 0:
            return
        if self.count == 0:
            self.count, self.mean, self.m2 = other.count, other.mean, other.m2
            return
        total = self.count + other.count
        delta = other.mean - self.mean
        self.mean += delta * (other.count / total)
        self.m2 += other.m2 + delta * delta * (self.count * other.count / total)
        self.count = total

    @property
    def variance(self) -> float:
        """Sample variance (ddof=1); NaN with fewer than two samples."""
        if self.count < 2:
            return float("nan")
        return self.m2 / (self.count - 1)

    @property
    def std_error(self) -> float:
        """Standard error of the mean; NaN with fewer than two samples."""
        if self.count < 2:
            return float("nan")
        return float(np.sqrt(self.variance / self.count))


class BlackScholesMCPricer:
    """Monte Carlo pricer for European, digital and Asian payoffs.

    Paths follow geometric Brownian motion sampled on the option's fixing times
    (the expiry alone for non path-dependent contracts). Each call to
    :meth:`generate` adds paths to the running estimate; the estimate is never
    rolled back.

    Parameters
    ==========
    option: Option
        contract to value
    initial_price: float
        spot at time zero
    rate: float
        continuously compounded risk-free rate (also the drift)
    volatility: float
        annualized volatility
    params: MonteCarloParams, optional
        seed, worker count, batch size and variance-reduction switches

    Notes
    -----
    American contracts are valued on their terminal payoff only.
    """

    def __init__(
        self,
        option: Option,
        initial_price: float,
        rate: float,
        volatility: float,
        params: MonteCarloParams | None = None,
    ) -> None:
        if option is None:
            raise ConfigurationError("BlackScholesMCPricer: option pointer must not be null")
        if params is None:
            params = MonteCarloParams()
        if not isinstance(params, MonteCarloParams):
            raise ConfigurationError(
                f"BlackScholesMCPricer requires MonteCarloParams, got {type(params).__name__}"
            )
        for label, value in (
            ("initial_price", initial_price),
            ("rate", rate),
            ("volatility", volatility),
        ):
            if not np.isfinite(value):
                raise ValidationError(f"BlackScholesMCPricer: {label} must be finite")
        if initial_price < 0.0:
            raise ValidationError("BlackScholesMCPricer: initial_price must be >= 0")
        if volatility < 0.0:
            raise ValidationError("BlackScholesMCPricer: volatility must be >= 0")

        self._option = option
        self._initial_price = float(initial_price)
        self._rate = float(rate)
        self._volatility = float(volatility)
        self._params = params

        # Cache fixing times and per-step increments once
        time_steps = tuple(float(t) for t in option.time_steps) if option.is_asian else ()
        if not time_steps:
            time_steps = (float(option.expiry),)
        times = np.asarray(time_steps, dtype=float)
        if times[0] < 0.0 or np.any(np.diff(times) < 0.0):
            raise ValidationError("BlackScholesMCPricer: time steps must be non-decreasing")
        dt = np.diff(times, prepend=0.0)

        drift = self._rate - 0.5 * self._volatility**2
        self._time_steps = times
        self._drift_dt = drift * dt
        self._vol_sqrt_dt = self._volatility * np.sqrt(dt)
        # steps with dt == 0 leave the spot unchanged and consume no draw
        self._active = (self._drift_dt != 0.0) | (self._vol_sqrt_dt != 0.0)
        self._maturity = float(times[-1])
        self._discount = float(np.exp(-self._rate * self._maturity))

        self._control_mean: float | None = None
        if params.control_variate and self._is_vanilla_european(option):
            # below the guard the closed form degenerates to the payoff at spot,
            # which is only the true value once the option has expired
            if self._volatility >= _GUARD or option.expiry == 0.0:
                self._control_mean = BlackScholesPricer(
                    option, self._initial_price, self._rate, self._volatility
                ).price()

        if option.is_american:
            logger.warning(
                "BlackScholesMCPricer values American contracts on the terminal payoff; "
                "early exercise is ignored"
            )

        self._stats = RunningStats()
        self._seed_sequence = np.random.SeedSequence(params.random_seed)
        logger.debug(
            "BlackScholesMCPricer fixings=%d maturity=%.6g control_mean=%s",
            times.size,
            self._maturity,
            self._control_mean,
        )

    @staticmethod
    def _is_vanilla_european(option: Option) -> bool:
        return (
            isinstance(option, OptionSpec)
            and not option.is_american
            and option.payoff_style is PayoffStyle.VANILLA
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def option(self) -> Option:
        return self._option

    @property
    def params(self) -> MonteCarloParams:
        return self._params

    @property
    def time_steps(self) -> np.ndarray:
        return self._time_steps.copy()

    @property
    def maturity(self) -> float:
        return self._maturity

    @property
    def control_mean(self) -> float | None:
        """Closed-form control mean, or None when no control variate applies."""
        return self._control_mean

    @property
    def nb_paths(self) -> int:
        return self._stats.count

    def get_nb_paths(self) -> int:
        return self._stats.count

    @property
    def statistics(self) -> RunningStats:
        """Copy of the running accumulator."""
        return RunningStats(self._stats.count, self._stats.mean, self._stats.m2)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _simulate_paths(self, rng: np.random.Generator, num_paths: int) -> np.ndarray:
        """Simulate ``num_paths`` paths on the fixing grid, shape ``(num_paths, num_fixings)``.

        With antithetic variates, path ``2k`` uses the draws ``z`` and path
        ``2k + 1`` uses ``-z``; an odd count drops the last negative path.
        """
        num_fixings = self._time_steps.size
        num_draws = (num_paths + 1) // 2 if self._params.antithetic else num_paths

        z = np.zeros((num_draws, num_fixings), dtype=float)
        z[:, self._active] = rng.standard_normal((num_draws, int(self._active.sum())))

        step_pos = np.exp(self._drift_dt + self._vol_sqrt_dt * z)
        paths = self._initial_price * np.cumprod(step_pos, axis=1)
        if not self._params.antithetic:
            return paths

        step_neg = np.exp(self._drift_dt - self._vol_sqrt_dt * z)
        paths_neg = self._initial_price * np.cumprod(step_neg, axis=1)
        paired = np.stack([paths, paths_neg], axis=1).reshape(2 * num_draws, num_fixings)
        return paired[:num_paths]

    def _simulate_batch(self, rng: np.random.Generator, num_paths: int) -> np.ndarray:
        """Discounted samples for one batch of paths."""
        if self._control_mean is not None:
            # zero-variance control: the simulated payoff cancels exactly
            return np.full(num_paths, self._control_mean, dtype=float)
        paths = self._simulate_paths(rng, num_paths)
        payoffs = np.asarray(self._option.payoff_path(paths), dtype=float).reshape(num_paths)
        return self._discount * payoffs

    def _simulate_chunk(self, num_paths: int, seed: np.random.SeedSequence) -> RunningStats:
        """Worker body: private generator and private accumulator."""
        rng = np.random.default_rng(seed)
        stats = RunningStats()
        remaining = num_paths
        while remaining > 0:
            batch = min(remaining, self._params.batch_size)
            stats.update_batch(self._simulate_batch(rng, batch))
            remaining -= batch
        return stats

    def _worker_count(self, nb_paths: int) -> int:
        available = self._params.max_workers or os.cpu_count() or 1
        return max(1, min(nb_paths, available))

    def generate(self, nb_paths: int) -> None:
        """Simulate ``nb_paths`` additional paths and fold them into the estimate.

        The work is split evenly across ``min(nb_paths, workers)`` threads,
        the remainder going to the first workers. Non-positive counts are a no-op.
        Each worker folds its batches into a private :class:`RunningStats`, and
        the partial accumulators are merged into the running estimate in worker
        order once all threads have finished.
        """
        if nb_paths <= 0:
            return

        workers = self._worker_count(nb_paths)
        base, remainder = divmod(nb_paths, workers)
        counts = [base + (1 if i < remainder else 0) for i in range(workers)]
        seeds = self._seed_sequence.spawn(workers)
        logger.debug("MC generate paths=%d workers=%d", nb_paths, workers)

        with log_timing(logger, "MC generate", self._params.log_timings):
            if workers == 1:
                partials = [self._simulate_chunk(counts[0], seeds[0])]
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    partials = list(pool.map(self._simulate_chunk, counts, seeds))

        for partial in partials:
            self._stats.merge(partial)

        logger.debug(
            "MC running estimate=%.10g paths=%d", self._stats.mean, self._stats.count
        )
        self._warn_if_high_std_error()

    def _warn_if_high_std_error(self) -> None:
        """Emit a warning log if the standard error is high relative to the estimate."""
        ratio_limit = self._params.std_error_warn_ratio
        if ratio_limit is None or self._stats.count < 2:
            return
        std_error = self._stats.std_error
        scale = max(abs(self._stats.mean), 1.0e-12)
        ratio = std_error / scale
        if ratio > ratio_limit:
            logger.warning(
                "MC standard error high: std_error=%.6g ratio=%.6g (>%.3g) paths=%d",
                std_error,
                ratio,
                ratio_limit,
                self._stats.count,
            )

    # ------------------------------------------------------------------
    # Estimates
    # ------------------------------------------------------------------

    def price(self) -> float:
        """Running Monte Carlo estimate; requires at least one generated path."""
        if self._stats.count == 0:
            raise PreconditionError(
                "BlackScholesMCPricer: call generate() before requesting price"
            )
        return float(self._stats.mean)

    def __call__(self) -> float:
        """Alias for :meth:`price`."""
        return self.price()

    def confidence_interval(self, z: float = _Z_95) -> tuple[float, float]:
        """Normal confidence interval around the estimate (95% by default).

        Returns
        =======
        tuple of (low, high)
            ``mean -/+ z * se`` with ``se = sqrt(M2 / (n - 1) / n)``. A zero
            (or sub-rounding) standard error, as produced by a perfect control
            variate, is widened to ``eps * (1 + |mean|)``.
        """
        if self._stats.count < 2:
            raise PreconditionError(
                "BlackScholesMCPricer: need at least two paths for confidence interval"
            )
        mean = self._stats.mean
        std_error = max(self._stats.std_error, np.finfo(float).eps * (1.0 + abs(mean)))
        return (float(mean - z * std_error), float(mean + z * std_error))
