"""
Position Sizer Tests

Kelly fraction, volatility estimates, VAR constraint, risk parity and the
greedy portfolio VAR budget.
"""

import math
from datetime import datetime, timezone

import numpy as np
import pytest

from src.signal_generation.position_sizer import PositionSizer, RiskConfig
from src.signal_generation.signal_schema import Signal, SignalDirection


def make_signal(symbol='AAPL', strength=0.6, expected_return=0.02, price=100.0,
                direction=SignalDirection.BUY):
    return Signal(
        timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        direction=direction,
        strength=strength,
        price=price,
        metadata={'symbol': symbol, 'expected_return': expected_return}
    )


@pytest.fixture
def sizer():
    return PositionSizer(RiskConfig())


class TestKellyFraction:

    def test_kelly_formula(self, sizer):
        # b = 0.03 / 0.015 = 2, p = 0.6 -> (2*0.6 - 0.4) / 2 = 0.4, capped at 0.25
        assert sizer.calculate_kelly_fraction(make_signal(strength=0.6, expected_return=0.03)) == 0.25

    def test_kelly_uncapped(self):
        sizer = PositionSizer(RiskConfig(max_kelly_fraction=1.0))
        kelly = sizer.calculate_kelly_fraction(make_signal(strength=0.6, expected_return=0.03))
        assert kelly == pytest.approx(0.4)

    def test_negative_edge_clamps_to_zero(self, sizer):
        assert sizer.calculate_kelly_fraction(make_signal(strength=0.2, expected_return=0.01)) == 0.0

    def test_non_positive_expected_return(self, sizer):
        assert sizer.calculate_kelly_fraction(make_signal(expected_return=0.0)) == 0.0
        assert sizer.calculate_kelly_fraction(make_signal(expected_return=-0.05)) == 0.0

    def test_missing_expected_return_uses_default(self, sizer):
        signal = Signal(timestamp=datetime.now(timezone.utc), direction=SignalDirection.BUY,
                        strength=0.9, price=10.0, metadata={'symbol': 'X'})
        assert signal.expected_return == 0.02
        assert sizer.calculate_kelly_fraction(signal) > 0


class TestVolatility:

    def test_baseline_adjusted_by_strength(self, sizer):
        assert sizer.estimate_volatility(make_signal(strength=1.0)) == pytest.approx(0.02)
        assert sizer.estimate_volatility(make_signal(strength=0.0)) == pytest.approx(0.03)
        assert sizer.estimate_volatility(make_signal(strength=0.5)) == pytest.approx(0.025)

    def test_cached_estimate_wins(self, sizer):
        sizer.update_volatility_estimate('AAPL', 0.05)
        assert sizer.estimate_volatility(make_signal(symbol='AAPL')) == 0.05
        assert sizer.estimate_volatility(make_signal(symbol='MSFT', strength=1.0)) == pytest.approx(0.02)

    def test_volatility_from_prices(self, sizer):
        prices = [100, 101, 99, 102, 100, 103]
        volatility = sizer.update_volatility_from_prices('AAPL', prices)

        returns = np.diff(prices) / np.array(prices[:-1])
        assert volatility == pytest.approx(np.std(returns, ddof=1))
        assert sizer.volatility_cache['AAPL'] == volatility

    def test_volatility_from_too_few_prices(self, sizer):
        assert sizer.update_volatility_from_prices('AAPL', [100, 101]) is None
        assert 'AAPL' not in sizer.volatility_cache


class TestSizing:

    def test_empty_inputs(self, sizer):
        assert sizer.size([], 100000) == []
        assert sizer.size([make_signal()], 0) == []
        assert sizer.size([make_signal()], -5) == []
        assert sizer.size([make_signal()], float('nan')) == []

    def test_single_signal_size(self, sizer):
        signal = make_signal(strength=0.6, expected_return=0.03)
        sizing = sizer.size([signal], 100000)[0]

        volatility = 0.02 + 0.4 * 0.01
        var_limit = 0.005 * 100000 / (volatility * 1.645)
        expected = min(25000.0, var_limit, 100000 * 1.0 * 0.5)

        assert sizing.kelly_fraction == 0.25
        assert sizing.var_constraint == pytest.approx(var_limit)
        assert sizing.risk_parity_weight == pytest.approx(1.0)
        assert sizing.position_size == pytest.approx(expected)
        assert sizing.risk_contribution == pytest.approx(expected / 100000 * volatility)

    def test_var_limit_respected_per_position(self, sizer):
        for sizing in sizer.size([make_signal(strength=0.9, expected_return=0.05)], 50000):
            volatility = sizer.estimate_volatility(sizing.signal)
            assert sizing.position_size * volatility * 1.645 <= 0.005 * 50000 + 1e-6

    def test_risk_parity_weights_sum_to_one(self, sizer):
        sizer.update_volatility_estimate('A', 0.01)
        sizer.update_volatility_estimate('B', 0.02)
        sizer.update_volatility_estimate('C', 0.04)
        signals = [make_signal(symbol=s, strength=0.8, expected_return=0.03) for s in 'ABC']

        sizings = sizer.size(signals, 100000)
        weights = {s.signal.symbol: s.risk_parity_weight for s in sizings}

        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights['A'] == pytest.approx(2 * weights['B'])
        assert weights['B'] == pytest.approx(2 * weights['C'])

    def test_ranked_by_risk_adjusted_return(self, sizer):
        signals = [
            make_signal(symbol='LOW', strength=0.7, expected_return=0.01),
            make_signal(symbol='HIGH', strength=0.7, expected_return=0.05),
        ]
        sizings = sizer.size(signals, 100000)
        assert [s.signal.symbol for s in sizings][0] == 'HIGH'

    def test_strong_signal_allocated_before_weak(self, sizer):
        weak = make_signal(symbol='WEAK', strength=0.2, expected_return=0.01)
        strong = make_signal(symbol='STRONG', strength=0.9, expected_return=0.03)

        sizings = sizer.size([weak, strong], 100000)

        # 0.03 / 0.021 vs 0.01 / 0.028 return per unit of volatility
        assert [s.signal.symbol for s in sizings] == ['STRONG', 'WEAK']
        assert sizings[0].position_size == pytest.approx(0.005 * 100000 / (0.021 * 1.645))
        assert sizings[0].position_size > sizings[1].position_size
        assert sizings[1].position_size == 0.0

    def test_budget_never_exceeded(self):
        sizer = PositionSizer(RiskConfig(max_portfolio_var=0.003))
        signals = [make_signal(symbol=f"S{i}", strength=0.9, expected_return=0.04) for i in range(10)]

        sizings = sizer.size(signals, 1_000_000)

        assert 0 < len(sizings) < len(signals)
        assert sum(s.risk_contribution for s in sizings) <= 0.003 + 1e-12

    def test_many_random_batches_stay_within_budget(self):
        rng = np.random.default_rng(123)
        sizer = PositionSizer(RiskConfig(max_portfolio_var=0.001))

        for _ in range(50):
            signals = [
                make_signal(symbol=f"S{i}", strength=float(rng.uniform(0, 1)),
                            expected_return=float(rng.uniform(-0.02, 0.08)))
                for i in range(int(rng.integers(1, 12)))
            ]
            sizings = sizer.size(signals, float(rng.uniform(1e4, 1e7)))
            assert sum(s.risk_contribution for s in sizings) <= 0.001 + 1e-12

    def test_zero_volatility_does_not_raise(self, sizer):
        sizer.update_volatility_estimate('FLAT', 0.0)
        signals = [
            make_signal(symbol='FLAT', strength=0.8, expected_return=0.03),
            make_signal(symbol='MOVE', strength=0.8, expected_return=0.03),
        ]

        sizings = sizer.size(signals, 100000)
        by_symbol = {s.signal.symbol: s for s in sizings}

        assert by_symbol['FLAT'].risk_parity_weight == 1.0
        assert by_symbol['FLAT'].risk_contribution == 0.0
        assert all(math.isfinite(s.position_size) for s in sizings)

    def test_sizing_summary(self, sizer):
        assert sizer.get_sizing_summary() == {'total_positions': 0}

        sizer.size([make_signal(strength=0.8, expected_return=0.03)], 100000)
        summary = sizer.get_sizing_summary()

        assert summary['total_positions'] == 1
        assert summary['avg_kelly_fraction'] == pytest.approx(0.25)

    def test_sizing_history_is_bounded(self):
        sizer = PositionSizer(RiskConfig(history_size=5))

        for i in range(12):
            sizer.size([make_signal(symbol=f"S{i}", strength=0.8, expected_return=0.03)], 100000)

        assert len(sizer.sizing_history) == 5
        assert sizer.sizing_history[0]['symbol'] == 'S7'
        assert sizer.get_sizing_summary()['total_positions'] == 5


class TestRiskMetrics:

    def test_z_score_lookup(self, sizer):
        assert sizer.get_z_score(0.90) == 1.28
        assert sizer.get_z_score(0.99) == 2.326
        assert sizer.get_z_score(0.975) == 1.645

    def test_portfolio_var(self, sizer):
        sizings = sizer.size([make_signal(strength=0.8, expected_return=0.03)], 100000)
        assert sizer.calculate_portfolio_var(sizings, 100000) == pytest.approx(
            sizings[0].risk_contribution * 100000
        )

    def test_sharpe_ratio(self, sizer):
        returns = [0.01, -0.005, 0.007, 0.002, -0.001]
        values = np.array(returns)
        expected = (values.mean() - 0.02 / 252) / (values.std() * np.sqrt(252))

        assert sizer.calculate_sharpe_ratio(returns) == pytest.approx(expected)
        assert sizer.calculate_sharpe_ratio([]) == 0.0
        assert sizer.calculate_sharpe_ratio([0.01, 0.01]) == 0.0

    def test_max_drawdown(self, sizer):
        assert sizer.calculate_max_drawdown([100, 120, 90, 130, 117]) == pytest.approx(0.25)
        assert sizer.calculate_max_drawdown([100, 101, 102]) == 0.0
        assert sizer.calculate_max_drawdown([]) == 0.0
