from .enums import ExerciseType, OptionType, PayoffStyle
from .lattice import Lattice
from .options import AsianOptionSpec, Option, OptionSpec, PayoffSpec
from .valuation import (
    BlackScholesMCPricer,
    BlackScholesPricer,
    CRRPricer,
    MonteCarloParams,
    RunningStats,
)


__all__ = [
    "ExerciseType",
    "OptionType",
    "PayoffStyle",
    "Lattice",
    "Option",
    "OptionSpec",
    "AsianOptionSpec",
    "PayoffSpec",
    "CRRPricer",
    "BlackScholesPricer",
    "BlackScholesMCPricer",
    "MonteCarloParams",
    "RunningStats",
]
