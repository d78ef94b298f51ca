"""
Execution Simulator Tests

Slippage and fill-probability model, seeded fill draws, broker submission
and signal-driven execution with profit attribution.
"""

from datetime import datetime, timezone

import pytest

from src.data_ingestion.price_feed import InMemoryPriceFeed
from src.execution_engine.execution_simulator import (
    ExecutionSimulator, SimulatorConfig, StrategyExecutionConfig
)
from src.execution_engine.order_schemas import Order, OrderSide, OrderStatus, OrderType
from src.execution_engine.trade_ledger import TradeLedger
from src.signal_generation.signal_schema import Signal, SignalDirection


def certain_fill_config(**overrides) -> SimulatorConfig:
    params = dict(market_fill_probability=1.0, limit_fill_probability=1.0, max_fill_probability=1.0)
    params.update(overrides)
    return SimulatorConfig(**params)


def make_order(side=OrderSide.BUY, quantity=10.0, order_type=OrderType.MARKET, limit_price=None,
               symbol='AAPL', **metadata):
    return Order(
        order_id=Order.generate_order_id(),
        symbol=symbol,
        side=side,
        order_type=order_type,
        quantity=quantity,
        limit_price=limit_price,
        metadata=metadata
    )


def make_signal(direction, price, strength=1.0):
    return Signal(
        timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        direction=direction,
        strength=strength,
        price=price,
        metadata={'symbol': 'AAPL'}
    )


class TestFillModel:

    def setup_method(self):
        self.simulator = ExecutionSimulator(seed=0)

    def test_slippage_components(self):
        assert self.simulator.calculate_slippage(5, 0.5) == pytest.approx(0.0001 + 0.0005 + 0.00025)

    def test_quantity_impact_is_capped(self):
        assert self.simulator.calculate_slippage(100, 1.0) == pytest.approx(0.0011)
        assert self.simulator.calculate_slippage(1_000_000, 1.0) == pytest.approx(0.0011)

    def test_fill_probability(self):
        assert self.simulator.calculate_fill_probability(OrderType.MARKET, 1.0) == pytest.approx(0.95)
        assert self.simulator.calculate_fill_probability(OrderType.LIMIT, 1.0) == pytest.approx(0.80)
        assert self.simulator.calculate_fill_probability(OrderType.LIMIT, 0.0) == pytest.approx(0.40)

    def test_fill_probability_cap(self):
        simulator = ExecutionSimulator(SimulatorConfig(market_fill_probability=1.0), seed=0)
        assert simulator.calculate_fill_probability(OrderType.MARKET, 1.0) == pytest.approx(0.98)

    def test_quantity_from_signal(self):
        signal = make_signal(SignalDirection.BUY, price=30.0, strength=0.5)
        config = StrategyExecutionConfig(symbol='AAPL', capital=100000, risk_percent=0.02)

        assert self.simulator.calculate_quantity(signal, config) == 33.0


class TestSimulateFill:

    def test_buy_pays_up_and_sell_receives_less(self):
        simulator = ExecutionSimulator(certain_fill_config(), seed=1)

        buy = simulator.simulate_fill(make_order(OrderSide.BUY, quantity=5), 100.0, strength=1.0)
        sell = simulator.simulate_fill(make_order(OrderSide.SELL, quantity=5), 100.0, strength=1.0)

        assert buy.filled and sell.filled
        assert buy.executed_price == pytest.approx(100.0 * (1 + 0.0006))
        assert sell.executed_price == pytest.approx(100.0 * (1 - 0.0006))
        assert buy.slippage == pytest.approx(0.06)
        assert buy.fees == pytest.approx(buy.executed_price * 5 * 0.001)

    def test_zero_probability_never_fills(self):
        simulator = ExecutionSimulator(SimulatorConfig(market_fill_probability=0.0), seed=1)

        for _ in range(20):
            result = simulator.simulate_fill(make_order(), 100.0)
            assert not result.filled
            assert result.executed_quantity == 0.0

    def test_seeded_draws_are_reproducible(self):
        first = ExecutionSimulator(seed=99)
        second = ExecutionSimulator(seed=99)

        outcomes_a = [first.simulate_fill(make_order(), 50.0, 0.3).filled for _ in range(50)]
        outcomes_b = [second.simulate_fill(make_order(), 50.0, 0.3).filled for _ in range(50)]

        assert outcomes_a == outcomes_b
        assert any(outcomes_a) and not all(outcomes_a)


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_uses_limit_price(self):
        simulator = ExecutionSimulator(certain_fill_config(), seed=1)
        result = await simulator.submit(make_order(quantity=1, limit_price=200.0))

        assert result.filled
        assert result.executed_quantity == 1
        assert result.executed_price == pytest.approx(200.0 * (1 + 0.0001 + 0.0001))

    @pytest.mark.asyncio
    async def test_submit_falls_back_to_feed(self):
        feed = InMemoryPriceFeed()
        feed.publish_price('AAPL', 150.0, volume=100)
        simulator = ExecutionSimulator(certain_fill_config(), price_feed=feed, seed=1)

        result = await simulator.submit(make_order(OrderSide.SELL, quantity=1))

        assert result.filled
        assert result.executed_price < 150.0

    @pytest.mark.asyncio
    async def test_submit_without_price_rejects(self):
        simulator = ExecutionSimulator(certain_fill_config(), price_feed=InMemoryPriceFeed(), seed=1)
        result = await simulator.submit(make_order(symbol='NOPE'))

        assert not result.filled

    @pytest.mark.asyncio
    async def test_submit_uses_signal_strength_metadata(self):
        # Weak signals halve the fill probability; 2.0 keeps the fill certain
        simulator = ExecutionSimulator(certain_fill_config(market_fill_probability=2.0), seed=1)
        result = await simulator.submit(make_order(quantity=1, limit_price=100.0, signal_strength=0.0))

        assert result.executed_price == pytest.approx(100.0 * (1 + 0.0001 + 0.0001 + 0.0005))

    @pytest.mark.asyncio
    async def test_submit_latency(self):
        simulator = ExecutionSimulator(certain_fill_config(fill_latency_range=(0.001, 0.002)), seed=1)
        result = await simulator.submit(make_order(quantity=1, limit_price=10.0))

        assert result.filled


class TestExecuteSignal:

    def test_round_trip_profit_attribution(self):
        ledger = TradeLedger()
        simulator = ExecutionSimulator(certain_fill_config(), ledger=ledger, seed=4)
        config = StrategyExecutionConfig(symbol='AAPL', capital=100000, risk_percent=0.02)

        buy = simulator.execute_signal('strat_1', make_signal(SignalDirection.BUY, 100.0), config)
        sell = simulator.execute_signal('strat_1', make_signal(SignalDirection.SELL, 110.0), config)

        assert buy.order.status == OrderStatus.FILLED
        assert buy.trade.quantity == 20
        assert buy.trade.profit == 0.0

        assert sell.trade.quantity == 18
        expected = (sell.trade.executed_price - buy.trade.executed_price) * 18
        assert sell.trade.profit == pytest.approx(expected)
        assert sell.trade.signal.direction == SignalDirection.SELL

        assert ledger.calculate_pnl('strat_1') == pytest.approx(expected)
        assert ledger.calculate_win_rate('strat_1') == pytest.approx(0.5)
        assert len(ledger.get_orders('strat_1')) == 2

    def test_rejected_signal_order(self):
        ledger = TradeLedger()
        simulator = ExecutionSimulator(SimulatorConfig(market_fill_probability=0.0), ledger=ledger, seed=4)
        config = StrategyExecutionConfig(symbol='AAPL')

        result = simulator.execute_signal('strat_2', make_signal(SignalDirection.BUY, 100.0), config)

        assert result.trade is None
        assert result.order.status == OrderStatus.REJECTED
        assert ledger.get_trades('strat_2') == []
        assert ledger.get_stats('strat_2').rejected_orders == 1
