"""
Order Schemas - Data structures for child orders, trades and execution stats

Ledger records (Order, Trade) are frozen: once an order outcome is known the
record is created and appended, never mutated. Status changes produce a new
record via ``dataclasses.replace``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Any
from datetime import datetime, timezone
import uuid


def utcnow() -> datetime:
    """Timezone-aware UTC now"""
    return datetime.now(timezone.utc)


class OrderSide(Enum):
    """Order side"""
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> 'OrderSide':
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(Enum):
    """Order types supported"""
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop_limit"


class OrderStatus(Enum):
    """Order lifecycle status"""
    PENDING = "pending"           # Order created, outcome unknown
    FILLED = "filled"             # Completely filled
    PARTIAL = "partial"           # Partially filled
    REJECTED = "rejected"         # Not filled by the venue
    CANCELLED = "cancelled"       # Cancelled by user/system


@dataclass(frozen=True)
class Order:
    """
    Child order record

    Quantity and prices are in instrument units / quote currency.
    ``limit_price`` is the target price resolved at submission time.
    """

    order_id: str
    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: float

    limit_price: Optional[float] = None
    status: OrderStatus = OrderStatus.PENDING
    executed_quantity: float = 0.0
    executed_price: float = 0.0
    fees: float = 0.0
    timestamp: datetime = field(default_factory=utcnow)

    parent_order_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def generate_order_id(cls) -> str:
        """Generate unique order ID"""
        return f"ord_{uuid.uuid4().hex[:12]}"

    def with_fill(self, result: 'FillResult') -> 'Order':
        """Return the terminal record for this order given a fill outcome"""
        if not result.filled:
            status = OrderStatus.REJECTED
        elif result.executed_quantity < self.quantity:
            status = OrderStatus.PARTIAL
        else:
            status = OrderStatus.FILLED

        return replace(
            self,
            status=status,
            executed_quantity=result.executed_quantity,
            executed_price=result.executed_price,
            fees=result.fees,
        )

    def is_terminal(self) -> bool:
        """Check if order is in terminal state (final)"""
        return self.status in {OrderStatus.FILLED, OrderStatus.REJECTED, OrderStatus.CANCELLED}

    def get_notional(self) -> float:
        """Executed notional value"""
        return self.executed_quantity * self.executed_price

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for serialization"""
        return {
            'order_id': self.order_id,
            'symbol': self.symbol,
            'side': self.side.value,
            'order_type': self.order_type.value,
            'quantity': self.quantity,
            'limit_price': self.limit_price,
            'status': self.status.value,
            'executed_quantity': self.executed_quantity,
            'executed_price': self.executed_price,
            'fees': self.fees,
            'timestamp': self.timestamp.isoformat(),
            'parent_order_id': self.parent_order_id,
            'metadata': self.metadata
        }

    def __str__(self) -> str:
        """String representation for logging"""
        return (f"Order({self.order_id}: {self.side.value} {self.quantity} {self.symbol} "
                f"@ {self.order_type.value} - {self.status.value})")


@dataclass(frozen=True)
class Trade:
    """Executed trade resulting from a filled order"""

    trade_id: str
    order_id: str
    symbol: str
    side: OrderSide
    executed_price: float
    quantity: float
    fees: float
    slippage: float                     # Absolute price slippage vs reference
    timestamp: datetime = field(default_factory=utcnow)
    signal: Optional[Any] = None        # Originating signal, if signal-driven
    profit: Optional[float] = None      # Realized profit on a closing trade

    @classmethod
    def generate_trade_id(cls, execution_id: str) -> str:
        return f"{execution_id}_trade_{uuid.uuid4().hex[:8]}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trade_id': self.trade_id,
            'order_id': self.order_id,
            'symbol': self.symbol,
            'side': self.side.value,
            'executed_price': self.executed_price,
            'quantity': self.quantity,
            'fees': self.fees,
            'slippage': self.slippage,
            'timestamp': self.timestamp.isoformat(),
            'profit': self.profit
        }


@dataclass(frozen=True)
class FillResult:
    """Outcome of submitting one order to a venue or simulator"""

    filled: bool
    executed_quantity: float = 0.0
    executed_price: float = 0.0
    fees: float = 0.0
    slippage: float = 0.0

    @classmethod
    def rejected(cls) -> 'FillResult':
        return cls(filled=False)


@dataclass
class ExecutionStats:
    """Running execution statistics for one execution id"""

    total_orders: int = 0
    filled_orders: int = 0
    rejected_orders: int = 0
    average_slippage: float = 0.0
    average_fees: float = 0.0
    fill_rate: float = 0.0

    def update(self, filled: bool, slippage: float = 0.0, fees: float = 0.0) -> None:
        """Fold one order outcome into the running averages"""
        self.total_orders += 1

        if filled:
            self.filled_orders += 1
            n = self.filled_orders
            self.average_slippage = (self.average_slippage * (n - 1) + slippage) / n
            self.average_fees = (self.average_fees * (n - 1) + fees) / n
        else:
            self.rejected_orders += 1

        self.fill_rate = self.filled_orders / self.total_orders

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_orders': self.total_orders,
            'filled_orders': self.filled_orders,
            'rejected_orders': self.rejected_orders,
            'average_slippage': self.average_slippage,
            'average_fees': self.average_fees,
            'fill_rate': self.fill_rate
        }
