import math


def crr_factors(rate: float, vol: float, expiry: float, depth: int) -> tuple[float, float, float]:
    """CRR growth factors (U, D, R) for an expiry split into ``depth`` steps."""
    dt = expiry / depth
    step = vol * math.sqrt(dt)
    return math.exp(step), math.exp(-step), math.exp(rate * dt)


class DecreasingFixingsOption:
    """Minimal path-dependent contract whose fixing times go backwards."""

    expiry = 1.0
    strike = 100.0
    option_type = None
    time_steps = (0.5, 0.25, 1.0)
    is_asian = True
    is_american = False

    def payoff(self, spot):
        return spot

    def payoff_path(self, path):
        return path[..., -1]
