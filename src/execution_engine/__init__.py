"""
Execution Engine Module

Smart order routing and simulated execution for sized trading signals.

Core Components:
- BrokerAdapter: Order submission interface
- ExecutionSimulator: Stochastic fill model implementing BrokerAdapter
- TradeLedger: Append-only order/trade records per execution
- SmartOrderRouter: Algorithmic parent order slicing and scheduling
- ExecutionEngine: Main orchestration engine
"""

from .order_schemas import Order, OrderStatus, OrderType, OrderSide, Trade, FillResult, ExecutionStats
from .broker_adapter import BrokerAdapter, BrokerError, OrderRejectedError, BrokerConnectionError
from .trade_ledger import TradeLedger
from .execution_simulator import ExecutionSimulator, SimulatorConfig, StrategyExecutionConfig, ExecutionResult
from .execution_router import (
    SmartOrderRouter, RoutingConfig, ParentOrderConfig, ParentOrderExecution, OrderSlice,
    SchedulingAlgorithm, Aggressiveness, ExecutionStatus, InvalidConfigError,
    plan_slice_quantities, slice_count_for
)
from .execution_engine import ExecutionEngine, ExecutionConfig

__all__ = [
    # Order schemas
    'Order',
    'OrderStatus',
    'OrderType',
    'OrderSide',
    'Trade',
    'FillResult',
    'ExecutionStats',

    # Core components
    'BrokerAdapter',
    'BrokerError',
    'OrderRejectedError',
    'BrokerConnectionError',
    'TradeLedger',
    'ExecutionSimulator',
    'SimulatorConfig',
    'StrategyExecutionConfig',
    'ExecutionResult',
    'SmartOrderRouter',
    'RoutingConfig',
    'ParentOrderConfig',
    'ParentOrderExecution',
    'OrderSlice',
    'SchedulingAlgorithm',
    'Aggressiveness',
    'ExecutionStatus',
    'InvalidConfigError',
    'plan_slice_quantities',
    'slice_count_for',
    'ExecutionEngine',
    'ExecutionConfig'
]
