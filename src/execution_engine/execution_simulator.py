"""
Execution Simulator

Stochastic paper-fill model: slippage, flat fees and a fill/no-fill draw.
Implements the broker submission interface so the smart order router can
run against it, and also executes signal-driven market orders directly.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .broker_adapter import BrokerAdapter
from .order_schemas import Order, Trade, OrderSide, OrderType, FillResult, utcnow
from .trade_ledger import TradeLedger
from ..data_ingestion.price_feed import PriceFeed
from ..signal_generation.signal_schema import Signal, SignalDirection


@dataclass
class SimulatorConfig:
    """Fill model parameters"""

    base_slippage: float = 0.0001              # 0.01%
    quantity_impact_divisor: float = 10000.0   # quantity / divisor
    max_quantity_impact: float = 0.001         # Cap at 0.1%
    strength_impact: float = 0.0005            # (1 - strength) * 0.05%

    fee_rate: float = 0.001                    # 0.1% of notional

    market_fill_probability: float = 0.95
    limit_fill_probability: float = 0.80
    max_fill_probability: float = 0.98

    fill_latency_range: Tuple[float, float] = (0.0, 0.0)   # Seconds waited in submit()


@dataclass
class StrategyExecutionConfig:
    """Capital settings for signal-driven orders"""

    symbol: str
    capital: float = 100000.0
    risk_percent: float = 0.02


@dataclass
class ExecutionResult:
    """Outcome of a signal-driven execution"""
    order: Order
    trade: Optional[Trade] = None


class ExecutionSimulator(BrokerAdapter):
    """
    Simulates order execution with size- and confidence-dependent slippage

    All randomness comes from the injected numpy Generator.
    """

    def __init__(
        self,
        config: SimulatorConfig = None,
        ledger: TradeLedger = None,
        price_feed: PriceFeed = None,
        rng: np.random.Generator = None,
        seed: int = None
    ):
        self.logger = logging.getLogger("ExecutionSimulator")
        self.config = config or SimulatorConfig()
        self.ledger = ledger or TradeLedger()
        self.price_feed = price_feed
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.logger.info(f"Initialized ExecutionSimulator with fee rate {self.config.fee_rate:.3%}")

    def calculate_slippage(self, quantity: float, strength: float) -> float:
        """Slippage as a fraction of the reference price"""
        quantity_impact = min(quantity / self.config.quantity_impact_divisor, self.config.max_quantity_impact)
        strength_impact = (1.0 - strength) * self.config.strength_impact

        return self.config.base_slippage + quantity_impact + strength_impact

    def calculate_fill_probability(self, order_type: OrderType, strength: float) -> float:
        if order_type == OrderType.MARKET:
            probability = self.config.market_fill_probability
        else:
            probability = self.config.limit_fill_probability

        probability *= (0.5 + strength * 0.5)

        return min(probability, self.config.max_fill_probability)

    def calculate_quantity(self, signal: Signal, config: StrategyExecutionConfig) -> float:
        """Whole units for a signal-driven order"""
        if signal.price <= 0:
            return 0.0

        position_value = config.capital * config.risk_percent * signal.strength
        return float(math.floor(position_value / signal.price))

    def simulate_fill(self, order: Order, reference_price: float, strength: float = 1.0) -> FillResult:
        """
        Draw a fill outcome for an order

        Buys pay up and sells receive less by the slippage amount.
        """
        strength = min(max(strength, 0.0), 1.0)

        slippage_fraction = self.calculate_slippage(order.quantity, strength)
        slippage = reference_price * slippage_fraction

        if order.side == OrderSide.BUY:
            executed_price = reference_price + slippage
        else:
            executed_price = reference_price - slippage

        fill_probability = self.calculate_fill_probability(order.order_type, strength)
        filled = order.quantity > 0 and self.rng.random() < fill_probability

        if not filled:
            return FillResult.rejected()

        return FillResult(
            filled=True,
            executed_quantity=order.quantity,
            executed_price=executed_price,
            fees=executed_price * order.quantity * self.config.fee_rate,
            slippage=abs(slippage)
        )

    async def submit(self, order: Order) -> FillResult:
        """Simulated venue submission for router child orders"""

        reference_price = order.limit_price
        if reference_price is None and self.price_feed is not None:
            latest = self.price_feed.get_latest_price(order.symbol)
            reference_price = latest.price if latest else None

        if reference_price is None or reference_price <= 0:
            self.logger.warning(f"No reference price for {order}, rejecting")
            return FillResult.rejected()

        low, high = self.config.fill_latency_range
        if high > 0:
            await asyncio.sleep(float(self.rng.uniform(low, high)))

        strength = order.metadata.get('signal_strength', 1.0)
        result = self.simulate_fill(order, reference_price, strength)

        if not result.filled:
            self.logger.debug(f"Simulated rejection for {order.order_id}")

        return result

    def execute_signal(self, execution_id: str, signal: Signal,
                       config: StrategyExecutionConfig) -> ExecutionResult:
        """
        Execute a signal as a market order and record it in the ledger

        Args:
            execution_id: Ledger key for this strategy execution
            signal: Originating signal; its price is the reference price
            config: Capital settings

        Returns:
            The terminal order and, when filled, the trade
        """
        side = OrderSide.BUY if signal.direction == SignalDirection.BUY else OrderSide.SELL

        order = Order(
            order_id=f"{execution_id}_order_{Order.generate_order_id()}",
            symbol=config.symbol,
            side=side,
            order_type=OrderType.MARKET,
            quantity=self.calculate_quantity(signal, config),
            metadata={'signal_id': signal.signal_id}
        )

        result = self.simulate_fill(order, signal.price, signal.strength)
        order = order.with_fill(result)

        trade = None
        if result.filled:
            trade = Trade(
                trade_id=Trade.generate_trade_id(execution_id),
                order_id=order.order_id,
                symbol=order.symbol,
                side=side,
                executed_price=result.executed_price,
                quantity=result.executed_quantity,
                fees=result.fees,
                slippage=result.slippage,
                timestamp=utcnow(),
                signal=signal,
                profit=self.ledger.attribute_profit(
                    execution_id, side, result.executed_price, result.executed_quantity
                )
            )

        self.ledger.record(execution_id, order, trade)

        if trade:
            self.logger.info(f"Executed {side.value} {trade.quantity} {config.symbol} @ {trade.executed_price:.4f} "
                             f"(fees {trade.fees:.2f})")
        else:
            self.logger.info(f"Signal order {order.order_id} rejected by simulator")

        return ExecutionResult(order=order, trade=trade)
