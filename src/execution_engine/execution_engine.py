"""
Execution Engine - Main orchestration engine for order execution

The central hub that coordinates:
- Position sizing of candidate signals against the risk budget
- Conversion of accepted sizings into smart parent orders
- Smart routing and algorithmic execution against the simulator
- Order/trade ledger queries

This is the primary interface for converting trading signals into executions.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Sequence

import numpy as np
from dotenv import load_dotenv

from .order_schemas import Order, Trade, OrderSide, ExecutionStats
from .trade_ledger import TradeLedger
from .execution_simulator import (
    ExecutionSimulator, SimulatorConfig, StrategyExecutionConfig, ExecutionResult
)
from .execution_router import (
    SmartOrderRouter, RoutingConfig, ParentOrderConfig, ParentOrderExecution,
    SchedulingAlgorithm, Aggressiveness, InvalidConfigError
)
from ..data_ingestion.price_feed import PriceFeed, InMemoryPriceFeed
from ..signal_generation.position_sizer import PositionSizer, PositionSizing, RiskConfig
from ..signal_generation.signal_schema import Signal, SignalDirection


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass
class ExecutionConfig:
    """Configuration for the Execution Engine"""

    # Component configurations
    risk_config: RiskConfig = field(default_factory=RiskConfig)
    routing_config: RoutingConfig = field(default_factory=RoutingConfig)
    simulator_config: SimulatorConfig = field(default_factory=SimulatorConfig)

    # Parent order defaults for routed sizings
    default_algorithm: SchedulingAlgorithm = SchedulingAlgorithm.TWAP
    default_time_window_minutes: float = 30.0
    default_max_slippage: float = 0.5           # Percent
    default_aggressiveness: Aggressiveness = Aggressiveness.NEUTRAL

    # Signal-driven execution capital
    capital: float = 100000.0
    risk_percent: float = 0.02

    # Engine settings
    log_level: str = "INFO"
    random_seed: Optional[int] = None           # None = nondeterministic

    @classmethod
    def from_env(cls, env_file: str = None) -> 'ExecutionConfig':
        """
        Build a config from environment variables (optionally loading a .env file)

        Raises:
            ValueError: if a variable is set but malformed
        """
        load_dotenv(env_file)

        risk_config = RiskConfig(
            max_portfolio_var=_env_float('RISK_MAX_PORTFOLIO_VAR', RiskConfig.max_portfolio_var),
            max_single_position_risk=_env_float('RISK_MAX_SINGLE_POSITION_RISK',
                                                RiskConfig.max_single_position_risk),
            max_kelly_fraction=_env_float('RISK_MAX_KELLY_FRACTION', RiskConfig.max_kelly_fraction),
            confidence_level=_env_float('RISK_CONFIDENCE_LEVEL', RiskConfig.confidence_level)
        )

        simulator_config = SimulatorConfig(
            fee_rate=_env_float('SIM_FEE_RATE', SimulatorConfig.fee_rate)
        )

        algorithm = os.getenv('ROUTER_DEFAULT_ALGORITHM')
        try:
            default_algorithm = (SchedulingAlgorithm(algorithm.strip().lower())
                                 if algorithm else SchedulingAlgorithm.TWAP)
        except ValueError:
            raise ValueError(f"Environment variable ROUTER_DEFAULT_ALGORITHM is not a known "
                             f"algorithm, got {algorithm!r}")

        log_level = (os.getenv('EXECUTION_LOG_LEVEL') or cls.log_level).strip().upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Environment variable EXECUTION_LOG_LEVEL must be one of "
                             f"{', '.join(LOG_LEVELS)}, got {log_level!r}")

        return cls(
            risk_config=risk_config,
            simulator_config=simulator_config,
            default_algorithm=default_algorithm,
            capital=_env_float('SIM_CAPITAL', cls.capital),
            risk_percent=_env_float('SIM_RISK_PERCENT', cls.risk_percent),
            log_level=log_level,
            random_seed=_env_int('EXECUTION_RANDOM_SEED', None)
        )


class ExecutionEngine:
    """
    Main execution engine wiring the sizer, router, simulator and ledger

    One numpy Generator is shared by every stochastic component, so a fixed
    ``random_seed`` reproduces a whole run.
    """

    def __init__(self, config: ExecutionConfig = None, price_feed: PriceFeed = None, clock=None):
        self.config = config or ExecutionConfig()
        self.logger = logging.getLogger("ExecutionEngine")

        # Configure logging
        logging.basicConfig(level=self.config.log_level.upper())

        self.rng = np.random.default_rng(self.config.random_seed)

        # Components
        self.price_feed = price_feed or InMemoryPriceFeed()
        self.ledger = TradeLedger()
        self.simulator = ExecutionSimulator(
            config=self.config.simulator_config,
            ledger=self.ledger,
            price_feed=self.price_feed,
            rng=self.rng
        )
        self.sizer = PositionSizer(self.config.risk_config)
        self.router = SmartOrderRouter(
            price_feed=self.price_feed,
            broker=self.simulator,
            ledger=self.ledger,
            config=self.config.routing_config,
            rng=self.rng,
            clock=clock
        )

        self.running = False

    async def start(self) -> bool:
        """Start the execution engine"""
        self.running = True
        self.logger.info(f"Execution Engine started (seed={self.config.random_seed})")
        return True

    async def stop(self) -> None:
        """Stop the execution engine, cancelling active smart orders"""
        self.logger.info("Stopping Execution Engine...")
        self.running = False
        await self.router.stop()

        summary = self.ledger.get_summary()
        self.logger.info(f"Final Stats: {summary['executions']} executions, "
                         f"{summary['total_orders']} orders, {summary['total_trades']} trades")

    # Sizing -> routing

    def size_positions(self, signals: Sequence[Signal], portfolio_value: float) -> List[PositionSizing]:
        return self.sizer.size(signals, portfolio_value)

    async def route_sized_positions(
        self,
        sizings: Sequence[PositionSizing],
        algorithm: SchedulingAlgorithm = None,
        time_window_minutes: float = None
    ) -> List[str]:
        """
        Start one smart order per accepted sizing

        Args:
            sizings: Output of ``size_positions``
            algorithm: Scheduling algorithm (defaults to config)
            time_window_minutes: Execution window (defaults to config)

        Returns:
            Execution ids, in sizing order. Zero-size sizings and sizings
            that cannot form a valid parent order are skipped.
        """
        execution_ids = []

        for sizing in sizings:
            signal = sizing.signal
            if sizing.position_size <= 0 or signal.price <= 0 or not signal.symbol:
                self.logger.debug(f"Skipping sizing for {signal.signal_id}")
                continue

            parent = ParentOrderConfig(
                symbol=signal.symbol,
                quantity=sizing.position_size / signal.price,
                side=OrderSide.BUY if signal.direction == SignalDirection.BUY else OrderSide.SELL,
                algorithm=algorithm or self.config.default_algorithm,
                time_window_minutes=time_window_minutes or self.config.default_time_window_minutes,
                max_slippage=self.config.default_max_slippage,
                aggressiveness=self.config.default_aggressiveness
            )

            try:
                execution_ids.append(await self.router.start_execution(parent))
            except InvalidConfigError as e:
                self.logger.warning(f"Skipping sizing for {signal.signal_id}: {e}")

        return execution_ids

    # Smart orders

    async def execute_smart_order(self, config: ParentOrderConfig) -> str:
        return await self.router.start_execution(config)

    def cancel_smart_order(self, execution_id: str) -> bool:
        return self.router.cancel_execution(execution_id)

    def get_smart_order_status(self, execution_id: str) -> Optional[ParentOrderExecution]:
        return self.router.get_status(execution_id)

    def get_all_active(self) -> List[ParentOrderExecution]:
        return self.router.get_all_active()

    def get_completed(self) -> List[ParentOrderExecution]:
        return self.router.get_completed()

    def get_performance_stats(self) -> Dict[str, Any]:
        return self.router.get_performance_stats()

    # Signal-driven execution

    def execute_signal(self, execution_id: str, signal: Signal,
                       config: StrategyExecutionConfig = None) -> ExecutionResult:
        """Execute a signal as a simulated market order"""
        if config is None:
            config = StrategyExecutionConfig(
                symbol=signal.symbol,
                capital=self.config.capital,
                risk_percent=self.config.risk_percent
            )
        return self.simulator.execute_signal(execution_id, signal, config)

    # Ledger queries

    def get_orders(self, execution_id: str) -> List[Order]:
        return self.ledger.get_orders(execution_id)

    def get_trades(self, execution_id: str) -> List[Trade]:
        return self.ledger.get_trades(execution_id)

    def get_stats(self, execution_id: str) -> Optional[ExecutionStats]:
        return self.ledger.get_stats(execution_id)

    def get_status(self) -> Dict[str, Any]:
        """Get engine status"""
        return {
            'running': self.running,
            'active_executions': len(self.router.get_all_active()),
            'router': self.router.get_performance_stats(),
            'ledger': self.ledger.get_summary(),
            'sizer': self.sizer.get_sizing_summary()
        }
