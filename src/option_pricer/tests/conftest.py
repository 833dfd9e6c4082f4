"""Shared pytest fixtures for option_pricer tests."""

import pytest

from option_pricer.options import OptionSpec


# ---------------------------------------------------------------------------
# Scalar constants
# ---------------------------------------------------------------------------

SPOT = 100.0
STRIKE = 100.0
RATE = 0.05
VOL = 0.20
EXPIRY = 1.0


@pytest.fixture()
def spot() -> float:
    return SPOT


@pytest.fixture()
def strike() -> float:
    return STRIKE


@pytest.fixture()
def risk_free_rate() -> float:
    return RATE


@pytest.fixture()
def vol() -> float:
    return VOL


@pytest.fixture()
def expiry() -> float:
    return EXPIRY


# ---------------------------------------------------------------------------
# Option specs
# ---------------------------------------------------------------------------


@pytest.fixture()
def euro_call_spec(strike: float, expiry: float) -> OptionSpec:
    return OptionSpec.european_call(strike, expiry)


@pytest.fixture()
def euro_put_spec(strike: float, expiry: float) -> OptionSpec:
    return OptionSpec.european_put(strike, expiry)


@pytest.fixture()
def amer_put_spec(strike: float, expiry: float) -> OptionSpec:
    return OptionSpec.american_put(strike, expiry)


@pytest.fixture()
def digital_call_spec(strike: float, expiry: float) -> OptionSpec:
    return OptionSpec.digital_call(strike, expiry)


@pytest.fixture()
def digital_put_spec(strike: float, expiry: float) -> OptionSpec:
    return OptionSpec.digital_put(strike, expiry)
