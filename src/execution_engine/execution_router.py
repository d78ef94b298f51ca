"""
Execution Router - Smart order routing with algorithmic slice scheduling

Features:
- Parent order slicing: TWAP, VWAP, Implementation-Shortfall, Arrival-Price
- Aggressiveness-aware child pricing clamped to a max slippage band
- One cooperative asyncio task per parent execution, one slice in flight at a time
- Implicit retry of rejected slices until the time window closes
- Cancellation observed within one loop tick
"""

import asyncio
import math
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Any
from datetime import datetime, timedelta
from enum import Enum
import logging

import numpy as np

from .broker_adapter import BrokerAdapter, BrokerError
from .order_schemas import Order, Trade, OrderSide, OrderType, utcnow
from .trade_ledger import TradeLedger
from ..data_ingestion.price_feed import PriceFeed


class InvalidConfigError(ValueError):
    """Parent order configuration rejected before execution"""
    pass


class SchedulingAlgorithm(Enum):
    """Slice scheduling algorithms"""
    TWAP = "twap"                                          # Time-weighted average price
    VWAP = "vwap"                                          # Volume-weighted average price
    IMPLEMENTATION_SHORTFALL = "implementation-shortfall"  # Front-loaded
    ARRIVAL_PRICE = "arrival-price"                        # U-shaped around arrival


class Aggressiveness(Enum):
    """How eagerly child orders cross the spread"""
    PASSIVE = "passive"
    NEUTRAL = "neutral"
    AGGRESSIVE = "aggressive"

    @property
    def multiplier(self) -> float:
        return {
            Aggressiveness.PASSIVE: 0.7,
            Aggressiveness.NEUTRAL: 1.0,
            Aggressiveness.AGGRESSIVE: 1.5
        }[self]


class ExecutionStatus(Enum):
    """Parent execution lifecycle; every state but ACTIVE is terminal"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.ACTIVE


# Relative tolerance when comparing filled and ordered quantities
QUANTITY_TOLERANCE = 1e-9

# (time window divisor, min slices, max slices)
SLICE_COUNT_RULES: Dict[SchedulingAlgorithm, Tuple[float, int, int]] = {
    SchedulingAlgorithm.TWAP: (2.0, 5, 20),
    SchedulingAlgorithm.VWAP: (3.0, 5, 15),
    SchedulingAlgorithm.IMPLEMENTATION_SHORTFALL: (5.0, 3, 12),
    SchedulingAlgorithm.ARRIVAL_PRICE: (1.5, 8, 25),
}


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidConfigError(f"Invalid {field_name} {value!r}; expected one of: {allowed}")


@dataclass(frozen=True)
class ParentOrderConfig:
    """
    Immutable parent order request

    ``max_slippage`` is a percentage of the reference price (0.5 = 0.5%).
    Enum fields accept their string values.
    """

    symbol: str
    quantity: float
    side: OrderSide
    algorithm: SchedulingAlgorithm
    time_window_minutes: float
    max_slippage: float = 0.5
    min_fill_size: float = 0.0
    aggressiveness: Aggressiveness = Aggressiveness.NEUTRAL

    def __post_init__(self):
        object.__setattr__(self, 'side', _coerce_enum(OrderSide, self.side, 'side'))
        object.__setattr__(self, 'algorithm', _coerce_enum(SchedulingAlgorithm, self.algorithm, 'algorithm'))
        object.__setattr__(self, 'aggressiveness',
                           _coerce_enum(Aggressiveness, self.aggressiveness, 'aggressiveness'))

    def validate(self) -> None:
        """Raise InvalidConfigError if the request cannot be executed"""
        if not self.symbol:
            raise InvalidConfigError("Symbol is required")
        if not _is_positive(self.quantity):
            raise InvalidConfigError(f"Quantity must be positive, got {self.quantity}")
        if not _is_positive(self.time_window_minutes):
            raise InvalidConfigError(f"Time window must be positive, got {self.time_window_minutes}")
        if not (math.isfinite(self.max_slippage) and self.max_slippage >= 0):
            raise InvalidConfigError(f"Max slippage must be non-negative, got {self.max_slippage}")
        if not (math.isfinite(self.min_fill_size) and 0 <= self.min_fill_size <= self.quantity):
            raise InvalidConfigError(f"Min fill size must be within [0, quantity], got {self.min_fill_size}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParentOrderConfig':
        """Build from a plain mapping; accepts ``strategy`` as an alias of ``algorithm``"""
        try:
            return cls(
                symbol=data['symbol'],
                quantity=float(data['quantity']),
                side=data['side'],
                algorithm=data.get('algorithm', data.get('strategy')),
                time_window_minutes=float(data.get('time_window_minutes', data.get('time_window'))),
                max_slippage=float(data.get('max_slippage', 0.5)),
                min_fill_size=float(data.get('min_fill_size', 0.0)),
                aggressiveness=data.get('aggressiveness', Aggressiveness.NEUTRAL)
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, InvalidConfigError):
                raise
            raise InvalidConfigError(f"Malformed parent order config: {e}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'quantity': self.quantity,
            'side': self.side.value,
            'algorithm': self.algorithm.value,
            'time_window_minutes': self.time_window_minutes,
            'max_slippage': self.max_slippage,
            'min_fill_size': self.min_fill_size,
            'aggressiveness': self.aggressiveness.value
        }


def _is_positive(value: float) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except TypeError:
        return False


@dataclass
class OrderSlice:
    """One planned child order; target price is resolved at execution time"""

    slice_id: str
    quantity: float
    scheduled_time: datetime
    target_price: Optional[float] = None
    filled: bool = False
    fill_price: Optional[float] = None
    fill_time: Optional[datetime] = None
    attempts: int = 0

    def mark_filled(self, price: float, fill_time: datetime) -> None:
        if self.filled:
            raise RuntimeError(f"Slice {self.slice_id} is already filled")
        self.filled = True
        self.fill_price = price
        self.fill_time = fill_time

    def is_due(self, now: datetime) -> bool:
        return not self.filled and self.scheduled_time <= now

    def to_dict(self) -> Dict[str, Any]:
        return {
            'slice_id': self.slice_id,
            'quantity': self.quantity,
            'scheduled_time': self.scheduled_time.isoformat(),
            'target_price': self.target_price,
            'filled': self.filled,
            'fill_price': self.fill_price,
            'fill_time': self.fill_time.isoformat() if self.fill_time else None,
            'attempts': self.attempts
        }


@dataclass
class ParentOrderExecution:
    """Parent order state owned by exactly one router task"""

    execution_id: str
    config: ParentOrderConfig
    slices: List[OrderSlice]
    start_time: datetime

    total_filled: float = 0.0
    avg_fill_price: float = 0.0
    slippage: float = 0.0                      # Percent vs arrival price
    arrival_price: Optional[float] = None      # First observed reference price
    status: ExecutionStatus = ExecutionStatus.ACTIVE
    end_time: Optional[datetime] = None

    _filled_notional: float = field(default=0.0, repr=False)

    def next_due_slice(self, now: datetime) -> Optional[OrderSlice]:
        """Earliest unfilled slice whose scheduled time has elapsed"""
        due = [s for s in self.slices if s.is_due(now)]
        return min(due, key=lambda s: s.scheduled_time) if due else None

    def all_filled(self) -> bool:
        return all(s.filled for s in self.slices)

    @property
    def remaining_quantity(self) -> float:
        return max(self.config.quantity - self.total_filled, 0.0)

    def is_done(self) -> bool:
        """Every slice filled, or the parent quantity fully executed"""
        return self.all_filled() or self.remaining_quantity <= self.config.quantity * QUANTITY_TOLERANCE

    def transition(self, new_status: ExecutionStatus, at: datetime) -> bool:
        """Move out of ACTIVE; terminal states never change again"""
        if self.status.is_terminal() or not new_status.is_terminal():
            return False
        self.status = new_status
        self.end_time = at
        return True

    def apply_fill(self, order_slice: OrderSlice, quantity: float, price: float, at: datetime) -> None:
        """
        Fold a child fill into the aggregates

        A fill smaller than the slice shrinks the slice and leaves it open.
        """
        remaining = self.remaining_quantity
        quantity = min(quantity, order_slice.quantity, remaining)
        if quantity <= 0:
            return
        notional = quantity * price

        # A fill that exhausts the parent closes the slice even if the plan overshot
        if quantity < order_slice.quantity and quantity < remaining:
            order_slice.quantity -= quantity
        else:
            order_slice.mark_filled(price, at)

        self.total_filled += quantity
        self._filled_notional += notional
        self.avg_fill_price = self._filled_notional / self.total_filled

        if self.arrival_price:
            self.slippage = abs(self.avg_fill_price - self.arrival_price) / self.arrival_price * 100.0

    @property
    def deadline(self) -> datetime:
        return self.start_time + timedelta(minutes=self.config.time_window_minutes)

    @property
    def fill_ratio(self) -> float:
        return self.total_filled / self.config.quantity if self.config.quantity else 0.0

    def execution_minutes(self, now: datetime = None) -> float:
        end = self.end_time or now or utcnow()
        return (end - self.start_time).total_seconds() / 60.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'execution_id': self.execution_id,
            'config': self.config.to_dict(),
            'slices': [s.to_dict() for s in self.slices],
            'total_filled': self.total_filled,
            'avg_fill_price': self.avg_fill_price,
            'slippage': self.slippage,
            'arrival_price': self.arrival_price,
            'status': self.status.value,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None
        }


@dataclass
class RoutingConfig:
    """Configuration for the smart order router"""

    # Loop timing
    check_interval_seconds: float = 1.0    # Wait when no slice is due yet
    loop_interval_seconds: float = 0.5     # Wait after every slice attempt
    deadline_grace_seconds: float = 0.0    # Extra time past the window before failing

    # Pricing
    spread_estimate: float = 0.0001        # Half-spread as a fraction of price (0.01%)

    # Planning
    twap_jitter: float = 0.10              # +/-10% per TWAP slice
    vwap_lookback: int = 20                # Price samples used for the volume profile
    shortfall_decay: float = 0.3           # exp(-decay * i)
    shortfall_slice_cap: float = 0.4       # Max share of remaining quantity per slice


def slice_count_for(algorithm: SchedulingAlgorithm, time_window_minutes: float) -> int:
    divisor, low, high = SLICE_COUNT_RULES[algorithm]
    return max(low, min(high, int(math.floor(time_window_minutes / divisor))))


def _twap_quantities(total: float, count: int, rng: np.random.Generator, jitter: float) -> List[float]:
    # Not renormalized: the jitter sum is allowed to drift from the total
    base = total / count
    variations = (rng.random(count) - 0.5) * 2.0 * jitter
    return [float(base * (1.0 + v)) for v in variations]


def _vwap_quantities(total: float, count: int, volumes: Sequence[float]) -> List[float]:
    weights = np.array([v if v and v > 0 else 1.0 for v in volumes], dtype=float)
    buckets = np.array([chunk.sum() for chunk in np.array_split(weights, count)])
    buckets = buckets / buckets.sum()

    quantities = [float(total * w) for w in buckets[:-1]]
    quantities.append(total - sum(quantities))
    return quantities


def _implementation_shortfall_quantities(total: float, count: int, multiplier: float,
                                         decay: float, cap: float) -> List[float]:
    quantities = []
    remaining = total

    for i in range(count):
        weight = math.exp(-decay * i) * multiplier
        slice_quantity = min(remaining * cap, total * weight / count)
        quantities.append(slice_quantity)
        remaining -= slice_quantity

    if remaining > 0:
        per_slice = remaining / count
        quantities = [q + per_slice for q in quantities]

    return quantities


def _arrival_price_quantities(total: float, count: int, multiplier: float) -> List[float]:
    weights = []
    for i in range(count):
        position = i / (count - 1) if count > 1 else 0.5
        weights.append((1.0 + 0.5 * 4.0 * (position - 0.5) ** 2) * multiplier)

    weight_sum = sum(weights)
    return [total * w / weight_sum for w in weights]


def plan_slice_quantities(
    config: ParentOrderConfig,
    volumes: Sequence[float],
    rng: np.random.Generator,
    routing: RoutingConfig = None
) -> List[float]:
    """
    Quantity vector for a parent order

    Args:
        config: Parent order request
        volumes: Recent traded volumes for the symbol, oldest first
        rng: Random source for TWAP jitter
        routing: Planning parameters

    Returns:
        One positive quantity per slice. Sums to ``config.quantity`` for all
        algorithms except TWAP.
    """
    routing = routing or RoutingConfig()
    count = slice_count_for(config.algorithm, config.time_window_minutes)
    total = config.quantity

    if config.algorithm == SchedulingAlgorithm.TWAP:
        return _twap_quantities(total, count, rng, routing.twap_jitter)

    if config.algorithm == SchedulingAlgorithm.VWAP:
        recent = list(volumes)[-routing.vwap_lookback:]
        if len(recent) < routing.vwap_lookback:
            # Not enough volume history
            return _twap_quantities(total, count, rng, routing.twap_jitter)
        return _vwap_quantities(total, count, recent)

    if config.algorithm == SchedulingAlgorithm.IMPLEMENTATION_SHORTFALL:
        return _implementation_shortfall_quantities(
            total, count, config.aggressiveness.multiplier,
            routing.shortfall_decay, routing.shortfall_slice_cap
        )

    return _arrival_price_quantities(total, count, config.aggressiveness.multiplier)


class SmartOrderRouter:
    """
    Smart order router driving parent executions on the event loop

    Each execution is an independent asyncio task that re-arms itself after
    every pass. Executions share no mutable state, so no locking is needed.
    """

    def __init__(
        self,
        price_feed: PriceFeed,
        broker: BrokerAdapter,
        ledger: TradeLedger = None,
        config: RoutingConfig = None,
        rng: np.random.Generator = None,
        seed: int = None,
        clock: Callable[[], datetime] = None
    ):
        self.price_feed = price_feed
        self.broker = broker
        self.ledger = ledger or TradeLedger()
        self.config = config or RoutingConfig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.clock = clock or utcnow
        self.logger = logging.getLogger("SmartOrderRouter")

        # Execution arena
        self._executions: Dict[str, ParentOrderExecution] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    async def start_execution(self, config: ParentOrderConfig) -> str:
        """
        Plan a parent order and start driving it

        Args:
            config: Parent order request

        Returns:
            Execution id

        Raises:
            InvalidConfigError: if the request is invalid; nothing is recorded
        """
        config.validate()

        execution_id = f"smart_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        start_time = self.clock()

        history = self.price_feed.get_history(config.symbol, self.config.vwap_lookback)
        quantities = plan_slice_quantities(config, [s.volume for s in history], self.rng, self.config)
        slices = self._schedule_slices(quantities, start_time, config.time_window_minutes)

        undersized = [s.slice_id for s in slices if s.quantity < config.min_fill_size]
        if undersized:
            self.logger.warning(f"{execution_id}: {len(undersized)} slices below min fill size "
                                f"{config.min_fill_size}")

        execution = ParentOrderExecution(
            execution_id=execution_id,
            config=config,
            slices=slices,
            start_time=start_time
        )

        self._executions[execution_id] = execution
        self._cancel_events[execution_id] = asyncio.Event()
        self._tasks[execution_id] = asyncio.create_task(self._run_execution(execution_id))

        self.logger.info(f"Starting smart order execution {execution_id}: {config.side.value} "
                         f"{config.quantity} {config.symbol} via {config.algorithm.value} "
                         f"in {len(slices)} slices over {config.time_window_minutes} min")
        return execution_id

    def cancel_execution(self, execution_id: str) -> bool:
        """Cancel an active execution; filled slices are kept"""
        execution = self._executions.get(execution_id)
        if execution is None or not execution.transition(ExecutionStatus.CANCELLED, self.clock()):
            return False

        self._cancel_events[execution_id].set()
        self.logger.info(f"Smart order cancelled: {execution_id} "
                         f"({execution.total_filled}/{execution.config.quantity} filled)")
        return True

    def get_status(self, execution_id: str) -> Optional[ParentOrderExecution]:
        return self._executions.get(execution_id)

    def _schedule_slices(self, quantities: List[float], start_time: datetime,
                         time_window_minutes: float) -> List[OrderSlice]:
        interval = timedelta(minutes=time_window_minutes) / len(quantities)
        return [
            OrderSlice(
                slice_id=f"slice_{i + 1}",
                quantity=quantity,
                scheduled_time=start_time + i * interval
            )
            for i, quantity in enumerate(quantities)
        ]

    async def _run_execution(self, execution_id: str) -> None:
        """Cooperative loop for one execution"""

        execution = self._executions[execution_id]
        cancel_event = self._cancel_events[execution_id]
        deadline = execution.deadline + timedelta(seconds=self.config.deadline_grace_seconds)

        try:
            while execution.status == ExecutionStatus.ACTIVE:
                now = self.clock()

                if execution.is_done():
                    self._complete(execution, now)
                    break

                if now >= deadline:
                    self._fail(execution, now)
                    break

                next_slice = execution.next_due_slice(now)
                if next_slice is None:
                    delay = self.config.check_interval_seconds
                else:
                    await self._attempt_slice(execution, next_slice)
                    delay = self.config.loop_interval_seconds

                if execution.status != ExecutionStatus.ACTIVE:
                    break

                if await self._wait_for_cancel(cancel_event, delay):
                    break
        except Exception as e:
            self.logger.error(f"Execution loop error on {execution_id}: {e}")
            self._fail(execution, self.clock())
        finally:
            self._tasks.pop(execution_id, None)

    async def _wait_for_cancel(self, cancel_event: asyncio.Event, delay: float) -> bool:
        """Sleep for ``delay`` unless cancelled first; True if cancelled"""
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    def calculate_target_price(self, config: ParentOrderConfig, reference_price: float) -> float:
        """
        Child order price for the configured aggressiveness

        Passive quotes inside the spread on the maker side, aggressive quotes
        through it, neutral quotes at the reference. The result never deviates
        from the reference by more than ``max_slippage`` percent.
        """
        spread = reference_price * self.config.spread_estimate
        buying = config.side == OrderSide.BUY

        if config.aggressiveness == Aggressiveness.PASSIVE:
            target = reference_price - spread if buying else reference_price + spread
        elif config.aggressiveness == Aggressiveness.AGGRESSIVE:
            target = reference_price + spread if buying else reference_price - spread
        else:
            target = reference_price

        max_deviation = reference_price * (config.max_slippage / 100.0)
        return min(max(target, reference_price - max_deviation), reference_price + max_deviation)

    async def _attempt_slice(self, execution: ParentOrderExecution, order_slice: OrderSlice) -> None:
        """Submit one slice; failures leave it unfilled for the next pass"""

        config = execution.config
        order_slice.attempts += 1

        try:
            latest = self.price_feed.get_latest_price(config.symbol)
            if latest is None or latest.price <= 0:
                self.logger.warning(f"{execution.execution_id}: no reference price for {config.symbol}, "
                                    f"retrying {order_slice.slice_id}")
                return

            reference_price = latest.price
            if execution.arrival_price is None:
                execution.arrival_price = reference_price

            target_price = self.calculate_target_price(config, reference_price)
            order_slice.target_price = target_price

            order = Order(
                order_id=Order.generate_order_id(),
                symbol=config.symbol,
                side=config.side,
                order_type=OrderType.MARKET if config.aggressiveness == Aggressiveness.AGGRESSIVE else OrderType.LIMIT,
                quantity=min(order_slice.quantity, execution.remaining_quantity),
                limit_price=target_price,
                parent_order_id=execution.execution_id,
                metadata={
                    'slice_id': order_slice.slice_id,
                    'algorithm': config.algorithm.value,
                    'attempt': order_slice.attempts
                }
            )

            result = await self.broker.submit(order)

            now = self.clock()
            order = order.with_fill(result)
            trade = None

            if result.filled and result.executed_quantity > 0:
                trade = Trade(
                    trade_id=Trade.generate_trade_id(execution.execution_id),
                    order_id=order.order_id,
                    symbol=config.symbol,
                    side=config.side,
                    executed_price=result.executed_price,
                    quantity=result.executed_quantity,
                    fees=result.fees,
                    slippage=result.slippage,
                    timestamp=now
                )
                execution.apply_fill(order_slice, result.executed_quantity, result.executed_price, now)
                self.logger.info(f"Slice {order_slice.slice_id} of {execution.execution_id} filled: "
                                 f"{result.executed_quantity} @ {result.executed_price:.4f}")
            else:
                self.logger.warning(f"Slice {order_slice.slice_id} of {execution.execution_id} not filled "
                                    f"(attempt {order_slice.attempts}), will retry")

            self.ledger.record(execution.execution_id, order, trade)

        except BrokerError as e:
            self.logger.error(f"Broker error on {execution.execution_id}/{order_slice.slice_id}: {e}")
        except Exception as e:
            self.logger.error(f"Failed to execute slice {order_slice.slice_id} "
                              f"of {execution.execution_id}: {e}")

    def _complete(self, execution: ParentOrderExecution, now: datetime) -> None:
        if not execution.transition(ExecutionStatus.COMPLETED, now):
            return

        self.logger.info(
            f"Smart order completed: {execution.execution_id} | "
            f"filled {execution.total_filled:.6g}/{execution.config.quantity:.6g} "
            f"({execution.fill_ratio:.1%}) | avg price {execution.avg_fill_price:.4f} | "
            f"slippage {execution.slippage:.3f}% | "
            f"execution time {execution.execution_minutes():.1f} min"
        )

    def _fail(self, execution: ParentOrderExecution, now: datetime) -> None:
        if not execution.transition(ExecutionStatus.FAILED, now):
            return

        unfilled = sum(1 for s in execution.slices if not s.filled)
        self.logger.warning(
            f"Smart order failed: {execution.execution_id} time window elapsed with "
            f"{unfilled} unfilled slices | filled {execution.fill_ratio:.1%} | "
            f"slippage {execution.slippage:.3f}%"
        )

    async def wait_for(self, execution_id: str, timeout: float = None) -> Optional[ParentOrderExecution]:
        """Wait until an execution's loop exits (or the timeout passes)"""
        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.wait({task}, timeout=timeout)
        return self._executions.get(execution_id)

    async def stop(self) -> None:
        """Cancel every active execution and wait for their loops to exit"""
        for execution_id in list(self._executions):
            self.cancel_execution(execution_id)

        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.logger.info("Smart Order Router stopped")

    def cleanup(self, execution_id: str) -> bool:
        """Evict a terminal execution and its ledger records"""
        execution = self._executions.get(execution_id)
        if execution is None or not execution.status.is_terminal():
            return False

        del self._executions[execution_id]
        self._cancel_events.pop(execution_id, None)
        self.ledger.cleanup(execution_id)
        return True

    def get_all_active(self) -> List[ParentOrderExecution]:
        return [e for e in self._executions.values() if e.status == ExecutionStatus.ACTIVE]

    def get_completed(self) -> List[ParentOrderExecution]:
        return [e for e in self._executions.values() if e.status == ExecutionStatus.COMPLETED]

    def get_performance_stats(self) -> Dict[str, Any]:
        """Aggregate router performance across executions still held"""

        all_executions = list(self._executions.values())
        completed = [e for e in all_executions if e.status == ExecutionStatus.COMPLETED]

        avg_slippage = sum(e.slippage for e in completed) / len(completed) if completed else 0.0
        avg_execution_time = (
            sum(e.execution_minutes() for e in completed) / len(completed) if completed else 0.0
        )
        success_rate = (len(completed) / len(all_executions)) * 100 if all_executions else 0.0

        return {
            'total_orders': len(all_executions),
            'completed_orders': len(completed),
            'avg_slippage': avg_slippage,
            'avg_execution_time': avg_execution_time,
            'success_rate': success_rate
        }
