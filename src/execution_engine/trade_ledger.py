"""
Trade Ledger - Append-only order and trade records per execution id

Handles:
- Recording child orders and resulting trades
- Running execution statistics (fill rate, average slippage and fees)
- Single-lookback profit attribution for closing trades
- Explicit teardown of an execution's records
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any
import logging

import pandas as pd

from .order_schemas import Order, Trade, OrderSide, OrderStatus, ExecutionStats


@dataclass
class _LedgerEntry:
    orders: List[Order] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)
    stats: ExecutionStats = field(default_factory=ExecutionStats)


class TradeLedger:
    """
    Order/trade ledger indexed by execution id

    Records are frozen dataclasses and are only ever appended. Memory is
    reclaimed explicitly through ``cleanup``.
    """

    def __init__(self):
        self.logger = logging.getLogger("TradeLedger")
        self._entries: Dict[str, _LedgerEntry] = {}

    def record(self, execution_id: str, order: Order, trade: Optional[Trade] = None) -> None:
        """
        Append an order outcome (and its trade, if filled)

        Args:
            execution_id: Owning execution id
            order: Terminal order record
            trade: Trade produced by the order, if any
        """
        entry = self._entries.setdefault(execution_id, _LedgerEntry())

        entry.orders.append(order)
        if trade is not None:
            entry.trades.append(trade)

        filled = order.status in (OrderStatus.FILLED, OrderStatus.PARTIAL)
        entry.stats.update(
            filled=filled,
            slippage=trade.slippage if trade is not None else 0.0,
            fees=order.fees
        )

        self.logger.debug(f"Recorded {order} for {execution_id}")

    def attribute_profit(self, execution_id: str, side: OrderSide, executed_price: float,
                         quantity: float) -> float:
        """
        Profit of a closing trade against the immediately preceding trade

        Only the last recorded trade is considered (no lot accounting); a
        same-side predecessor means the trade adds to the position and earns
        nothing. The matched quantity is the smaller of the two trade sizes.
        """
        entry = self._entries.get(execution_id)
        if entry is None or not entry.trades:
            return 0.0

        previous = entry.trades[-1]
        if previous.side != side.opposite:
            return 0.0

        matched = min(quantity, previous.quantity)
        if side == OrderSide.SELL:
            return (executed_price - previous.executed_price) * matched
        return (previous.executed_price - executed_price) * matched

    def get_orders(self, execution_id: str) -> List[Order]:
        entry = self._entries.get(execution_id)
        return list(entry.orders) if entry else []

    def get_trades(self, execution_id: str) -> List[Trade]:
        entry = self._entries.get(execution_id)
        return list(entry.trades) if entry else []

    def get_stats(self, execution_id: str) -> Optional[ExecutionStats]:
        """Snapshot of the running statistics, or None if nothing was recorded"""
        entry = self._entries.get(execution_id)
        return replace(entry.stats) if entry else None

    def get_execution_ids(self) -> List[str]:
        return list(self._entries.keys())

    def calculate_pnl(self, execution_id: str) -> float:
        return sum(trade.profit or 0.0 for trade in self.get_trades(execution_id))

    def calculate_win_rate(self, execution_id: str) -> float:
        trades = self.get_trades(execution_id)
        if not trades:
            return 0.0

        wins = sum(1 for trade in trades if (trade.profit or 0.0) > 0)
        return wins / len(trades)

    def to_dataframe(self, execution_id: str) -> pd.DataFrame:
        """Trades for an execution as a DataFrame indexed by timestamp"""
        trades = self.get_trades(execution_id)
        if not trades:
            return pd.DataFrame(columns=['trade_id', 'order_id', 'symbol', 'side', 'executed_price',
                                         'quantity', 'fees', 'slippage', 'profit'])

        df = pd.DataFrame([trade.to_dict() for trade in trades])
        df['timestamp'] = pd.to_datetime(df['timestamp'])
        return df.set_index('timestamp')

    def cleanup(self, execution_id: str) -> bool:
        """Remove every record for an execution"""
        removed = self._entries.pop(execution_id, None) is not None
        if removed:
            self.logger.info(f"Cleaned up ledger records for {execution_id}")
        return removed

    def get_summary(self) -> Dict[str, Any]:
        """Aggregate counts across all executions still held"""
        return {
            'executions': len(self._entries),
            'total_orders': sum(e.stats.total_orders for e in self._entries.values()),
            'filled_orders': sum(e.stats.filled_orders for e in self._entries.values()),
            'total_trades': sum(len(e.trades) for e in self._entries.values())
        }
