"""Tests for Monte Carlo option valuation."""

import logging

import numpy as np
import pytest

from option_pricer.enums import OptionType
from option_pricer.exceptions import (
    ConfigurationError,
    PreconditionError,
    ValidationError,
)
from option_pricer.options import AsianOptionSpec, OptionSpec, PayoffSpec
from option_pricer.tests.helpers import DecreasingFixingsOption
from option_pricer.valuation import (
    BlackScholesMCPricer,
    BlackScholesPricer,
    MonteCarloParams,
)

MC_LOGGER = "option_pricer.valuation.monte_carlo"


def _no_control(**kw) -> MonteCarloParams:
    kw.setdefault("random_seed", 42)
    return MonteCarloParams(control_variate=False, **kw)


def _within_error(pricer: BlackScholesMCPricer, target: float, n_se: float = 4.0) -> bool:
    return abs(pricer.price() - target) <= n_se * pricer.statistics.std_error


class TestControlVariate:
    def test_vanilla_matches_closed_form(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(
            euro_call_spec, spot, risk_free_rate, vol, MonteCarloParams(random_seed=1)
        )
        pricer.generate(10_000)
        bs = BlackScholesPricer(euro_call_spec, spot, risk_free_rate, vol).price()
        assert pricer.control_mean == pytest.approx(bs, abs=1e-12)
        assert pricer.price() == pytest.approx(bs, abs=1e-12)
        assert pricer.statistics.std_error == 0.0

    def test_confidence_interval_has_positive_width(self, euro_put_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_put_spec, spot, risk_free_rate, vol)
        pricer.generate(100)
        low, high = pricer.confidence_interval()
        assert low < pricer.price() < high
        assert high - low > 0.0

    def test_digital_and_asian_use_no_control(self, digital_call_spec, spot, risk_free_rate, vol):
        digital = BlackScholesMCPricer(digital_call_spec, spot, risk_free_rate, vol)
        asian = BlackScholesMCPricer(
            AsianOptionSpec(OptionType.CALL, 100.0, [0.5, 1.0]), spot, risk_free_rate, vol
        )
        assert digital.control_mean is None
        assert asian.control_mean is None

    def test_zero_volatility_skips_control(self, euro_call_spec, spot, risk_free_rate):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, 0.0)
        assert pricer.control_mean is None
        pricer.generate(10)
        # deterministic forward: S e^{rT} - K, discounted
        expected = spot - 100.0 * np.exp(-risk_free_rate)
        assert pricer.price() == pytest.approx(expected, abs=1e-10)

    def test_volatility_below_guard_skips_control(self, euro_call_spec, spot, risk_free_rate):
        pricer = BlackScholesMCPricer(
            euro_call_spec, spot, risk_free_rate, 1e-13, MonteCarloParams(random_seed=1)
        )
        assert pricer.control_mean is None
        pricer.generate(1_000)
        expected = spot - 100.0 * np.exp(-risk_free_rate)
        assert pricer.price() == pytest.approx(expected, abs=1e-8)

    def test_expired_vanilla_uses_payoff(self, risk_free_rate, vol):
        option = OptionSpec.european_put(100.0, 0.0)
        pricer = BlackScholesMCPricer(option, 90.0, risk_free_rate, vol)
        assert pricer.control_mean == pytest.approx(10.0)
        pricer.generate(5)
        assert pricer.price() == pytest.approx(10.0)


class TestSimulatedEstimates:
    def test_vanilla_call_converges(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, _no_control())
        pricer.generate(200_000)
        bs = BlackScholesPricer(euro_call_spec, spot, risk_free_rate, vol).price()
        assert _within_error(pricer, bs)
        low, high = pricer.confidence_interval()
        assert low < pricer.price() < high

    def test_vanilla_put_without_antithetic(self, euro_put_spec, spot, risk_free_rate, vol):
        params = _no_control(antithetic=False, random_seed=7)
        pricer = BlackScholesMCPricer(euro_put_spec, spot, risk_free_rate, vol, params)
        pricer.generate(200_000)
        bs = BlackScholesPricer(euro_put_spec, spot, risk_free_rate, vol).price()
        assert _within_error(pricer, bs)

    @pytest.mark.parametrize("factory", [OptionSpec.digital_call, OptionSpec.digital_put])
    def test_digital_converges(self, factory, spot, risk_free_rate, vol):
        option = factory(100.0, 1.0)
        pricer = BlackScholesMCPricer(option, spot, risk_free_rate, vol, _no_control())
        pricer.generate(200_000)
        bs = BlackScholesPricer(option, spot, risk_free_rate, vol).price()
        assert _within_error(pricer, bs)

    def test_single_fixing_asian_matches_vanilla(self, spot, risk_free_rate, vol):
        asian = AsianOptionSpec(OptionType.CALL, 100.0, [1.0])
        pricer = BlackScholesMCPricer(asian, spot, risk_free_rate, vol, _no_control())
        pricer.generate(200_000)
        bs = BlackScholesPricer(OptionSpec.european_call(100.0, 1.0), spot, risk_free_rate, vol)
        assert _within_error(pricer, bs.price())

    def test_averaging_lowers_call_value(self, spot, risk_free_rate, vol):
        fixings = [i / 12 for i in range(1, 13)]
        asian = AsianOptionSpec(OptionType.CALL, 100.0, fixings)
        pricer = BlackScholesMCPricer(asian, spot, risk_free_rate, vol, _no_control())
        pricer.generate(50_000)
        european = BlackScholesPricer(
            OptionSpec.european_call(100.0, 1.0), spot, risk_free_rate, vol
        ).price()
        assert pricer.price() < european - 2.0
        assert pricer.price() > 0.0

    def test_custom_payoff(self, spot, risk_free_rate, vol):
        straddle = PayoffSpec(lambda s: np.abs(np.asarray(s) - 100.0), expiry=1.0)
        pricer = BlackScholesMCPricer(straddle, spot, risk_free_rate, vol, _no_control())
        pricer.generate(200_000)
        call = BlackScholesPricer(OptionSpec.european_call(100.0, 1.0), spot, risk_free_rate, vol)
        put = BlackScholesPricer(OptionSpec.european_put(100.0, 1.0), spot, risk_free_rate, vol)
        assert _within_error(pricer, call() + put())

    def test_small_batches_match_large_batches_in_law(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(
            euro_call_spec, spot, risk_free_rate, vol, _no_control(batch_size=1_000)
        )
        pricer.generate(100_000)
        bs = BlackScholesPricer(euro_call_spec, spot, risk_free_rate, vol).price()
        assert _within_error(pricer, bs)


class TestPathGeneration:
    def test_generate_accumulates_counts(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, _no_control())
        pricer.generate(1_000)
        pricer.generate(501)
        assert pricer.nb_paths == 1_501
        assert pricer.get_nb_paths() == 1_501

    @pytest.mark.parametrize("count", [0, -5])
    def test_non_positive_counts_are_noop(self, count, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, _no_control())
        pricer.generate(count)
        assert pricer.nb_paths == 0
        pricer.generate(10)
        before = pricer.price()
        pricer.generate(count)
        assert pricer.nb_paths == 10
        assert pricer.price() == before

    def test_more_workers_than_paths(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(
            euro_call_spec, spot, risk_free_rate, vol, _no_control(max_workers=8)
        )
        pricer.generate(3)
        assert pricer.nb_paths == 3

    def test_same_seed_reproduces_estimate(self, euro_call_spec, spot, risk_free_rate, vol):
        params = _no_control(random_seed=123, max_workers=4, batch_size=2_500)
        first = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, params)
        second = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, params)
        for pricer in (first, second):
            pricer.generate(20_000)
            pricer.generate(777)
        assert first.price() == second.price()
        assert first.statistics == second.statistics

    def test_successive_generate_calls_use_fresh_streams(
        self, euro_call_spec, spot, risk_free_rate, vol
    ):
        pricer = BlackScholesMCPricer(
            euro_call_spec, spot, risk_free_rate, vol, _no_control(max_workers=1)
        )
        pricer.generate(1_000)
        first = pricer.price()
        pricer.generate(1_000)
        # a repeated stream would leave the mean unchanged
        assert pricer.price() != first

    def test_antithetic_paths_are_mirrored(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, _no_control())
        rng = np.random.default_rng(0)
        paths = pricer._simulate_paths(rng, 5)
        assert paths.shape == (5, 1)
        # log-returns of paired paths are symmetric around the drift
        drift = (risk_free_rate - 0.5 * vol**2) * 1.0
        log_ret = np.log(paths[:, 0] / spot)
        assert log_ret[0] + log_ret[1] == pytest.approx(2 * drift)
        assert log_ret[2] + log_ret[3] == pytest.approx(2 * drift)

    def test_zero_length_steps_leave_spot_unchanged(self, spot, risk_free_rate, vol):
        asian = AsianOptionSpec(OptionType.CALL, 100.0, [0.0, 0.5, 1.0])
        pricer = BlackScholesMCPricer(asian, spot, risk_free_rate, vol, _no_control())
        paths = pricer._simulate_paths(np.random.default_rng(3), 4)
        np.testing.assert_allclose(paths[:, 0], spot)
        np.testing.assert_allclose(pricer.time_steps, [0.0, 0.5, 1.0])
        assert pricer.maturity == 1.0


class TestMonteCarloLogging:
    def test_american_contract_logs_warning(self, amer_put_spec, spot, risk_free_rate, vol, caplog):
        with caplog.at_level(logging.WARNING, logger=MC_LOGGER):
            BlackScholesMCPricer(amer_put_spec, spot, risk_free_rate, vol)
        assert "early exercise is ignored" in caplog.text

    def test_high_standard_error_logs_warning(self, euro_call_spec, spot, risk_free_rate, vol, caplog):
        params = _no_control(std_error_warn_ratio=1e-6)
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, params)
        with caplog.at_level(logging.WARNING, logger=MC_LOGGER):
            pricer.generate(1_000)
        assert "MC standard error high" in caplog.text

    def test_no_warning_below_ratio(self, euro_call_spec, spot, risk_free_rate, vol, caplog):
        params = MonteCarloParams(std_error_warn_ratio=0.5)
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, params)
        with caplog.at_level(logging.WARNING, logger=MC_LOGGER):
            pricer.generate(1_000)
        assert "MC standard error high" not in caplog.text


class TestMonteCarloValidation:
    def test_price_before_generate_raises(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol)
        with pytest.raises(PreconditionError):
            pricer.price()
        with pytest.raises(PreconditionError):
            pricer()
        with pytest.raises(PreconditionError):
            pricer.confidence_interval()

    def test_interval_needs_two_paths(self, euro_call_spec, spot, risk_free_rate, vol):
        pricer = BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, _no_control())
        pricer.generate(1)
        assert np.isfinite(pricer.price())
        with pytest.raises(PreconditionError):
            pricer.confidence_interval()

    def test_null_option(self, spot, risk_free_rate, vol):
        with pytest.raises(ConfigurationError):
            BlackScholesMCPricer(None, spot, risk_free_rate, vol)

    def test_params_type_checked(self, euro_call_spec, spot, risk_free_rate, vol):
        with pytest.raises(ConfigurationError):
            BlackScholesMCPricer(euro_call_spec, spot, risk_free_rate, vol, {"random_seed": 1})

    def test_decreasing_fixings_rejected(self, spot, risk_free_rate, vol):
        with pytest.raises(ValidationError):
            BlackScholesMCPricer(DecreasingFixingsOption(), spot, risk_free_rate, vol)

    @pytest.mark.parametrize(
        "initial_price,rate,volatility",
        [(-1.0, 0.05, 0.2), (100.0, 0.05, -0.1), (100.0, float("nan"), 0.2)],
    )
    def test_invalid_market_inputs(self, euro_call_spec, initial_price, rate, volatility):
        with pytest.raises(ValidationError):
            BlackScholesMCPricer(euro_call_spec, initial_price, rate, volatility)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_workers": 0},
            {"batch_size": 1},
            {"std_error_warn_ratio": 0.0},
            {"random_seed": -3},
        ],
    )
    def test_invalid_params(self, kwargs):
        with pytest.raises(ValueError):
            MonteCarloParams(**kwargs)
