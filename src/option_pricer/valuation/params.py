"""Parameter classes for method-specific valuation configuration.

The binomial and closed-form pricers are fully described by their constructor
arguments; Monte Carlo has enough knobs to warrant its own parameter class.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MonteCarloParams:
    """Parameters for Monte Carlo option valuation.

    Attributes
    ==========
    random_seed:
        Seed of the root ``SeedSequence``; every worker and every
        ``generate`` call spawns an independent child stream from it.
        If None, fresh OS entropy is used.
    max_workers:
        Upper bound on worker threads per ``generate`` call.
        If None, ``os.cpu_count()`` is used.
    batch_size:
        Number of paths a worker simulates per vectorized batch. Bounds memory
        at roughly ``batch_size * num_fixings`` floats per worker.
        Default: 50_000.
    antithetic:
        Pair each normal draw with its negation. Default: True.
    control_variate:
        Use the closed-form Black-Scholes value as a zero-variance control for
        European vanilla contracts. Default: True.
    std_error_warn_ratio:
        Log a warning when ``std_error / |price|`` exceeds this ratio after a
        ``generate`` call. None disables the check.
    log_timings:
        Log elapsed time of each ``generate`` call at debug level.
    """

    random_seed: int | None = None
    max_workers: int | None = None
    batch_size: int = 50_000
    antithetic: bool = True
    control_variate: bool = True
    std_error_warn_ratio: float | None = None
    log_timings: bool = False

    def __post_init__(self):
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.batch_size < 2:
            raise ValueError(f"batch_size must be >= 2, got {self.batch_size}")
        if self.std_error_warn_ratio is not None and self.std_error_warn_ratio <= 0:
            raise ValueError(
                f"std_error_warn_ratio must be positive, got {self.std_error_warn_ratio}"
            )
        if self.random_seed is not None and self.random_seed < 0:
            raise ValueError(f"random_seed must be >= 0, got {self.random_seed}")
