"""Option valuation and pricing engines.

Three independent methods that must agree on the same contract: a
Cox-Ross-Rubinstein binomial tree, Black-Scholes closed forms and a
multi-threaded Monte Carlo simulation.

Public API
----------
Pricers:
    CRRPricer: Binomial tree pricer with early exercise
    BlackScholesPricer: Closed-form pricer for European vanilla and digital options
    BlackScholesMCPricer: Monte Carlo pricer with antithetic and control variates

Support classes:
    RunningStats: Welford accumulator with parallel merge
    MonteCarloParams: Configuration for Monte Carlo pricing
"""

from .binomial import CRRPricer
from .bsm import BlackScholesPricer
from .monte_carlo import BlackScholesMCPricer, RunningStats
from .params import MonteCarloParams

__all__ = [
    "CRRPricer",
    "BlackScholesPricer",
    "BlackScholesMCPricer",
    "RunningStats",
    "MonteCarloParams",
]
