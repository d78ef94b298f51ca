"""
Price Feed - Latest price, volume and bounded history per symbol

The router and sizer only depend on the PriceFeed interface. InMemoryPriceFeed
buffers push updates in a fixed-size ring buffer per symbol and fans them out
to subscribers.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from loguru import logger


@dataclass(frozen=True)
class PriceSample:
    """One trade print for a symbol"""
    symbol: str
    price: float
    volume: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    change: float = 0.0


PriceCallback = Callable[[PriceSample], None]


class PriceFeed(ABC):
    """Interface consumed by the router and sizer"""

    @abstractmethod
    def get_latest_price(self, symbol: str) -> Optional[PriceSample]:
        """Most recent sample for a symbol, or None if nothing has been seen"""
        pass

    @abstractmethod
    def get_history(self, symbol: str, n: int) -> List[PriceSample]:
        """Up to ``n`` most recent samples, oldest first"""
        pass

    @abstractmethod
    def subscribe(self, callback: PriceCallback) -> Callable[[], None]:
        """Register a push callback; returns an unsubscribe function"""
        pass


class InMemoryPriceFeed(PriceFeed):
    """Bounded per-symbol ring buffers fed by ``publish``"""

    def __init__(self, history_size: int = 1000):
        if history_size <= 0:
            raise ValueError(f"history_size must be positive, got {history_size}")

        self.history_size = history_size
        self._buffers: Dict[str, Deque[PriceSample]] = {}
        self._subscribers: List[PriceCallback] = []

    def publish(self, sample: PriceSample) -> None:
        """Buffer a sample and notify subscribers"""
        buffer = self._buffers.get(sample.symbol)
        if buffer is None:
            buffer = deque(maxlen=self.history_size)
            self._buffers[sample.symbol] = buffer
        buffer.append(sample)

        for callback in list(self._subscribers):
            try:
                callback(sample)
            except Exception as e:
                logger.error(f"Price subscriber failed on {sample.symbol}: {e}")

    def publish_price(self, symbol: str, price: float, volume: float = 0.0,
                      timestamp: datetime = None) -> PriceSample:
        """Build and publish a sample, deriving ``change`` from the previous print"""
        previous = self.get_latest_price(symbol)
        change = price - previous.price if previous else 0.0

        sample = PriceSample(
            symbol=symbol,
            price=price,
            volume=volume,
            timestamp=timestamp or datetime.now(timezone.utc),
            change=change
        )
        self.publish(sample)
        return sample

    def get_latest_price(self, symbol: str) -> Optional[PriceSample]:
        buffer = self._buffers.get(symbol)
        return buffer[-1] if buffer else None

    def get_history(self, symbol: str, n: int) -> List[PriceSample]:
        buffer = self._buffers.get(symbol)
        if not buffer or n <= 0:
            return []
        return list(buffer)[-n:]

    def subscribe(self, callback: PriceCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def symbols(self) -> List[str]:
        return list(self._buffers.keys())

    def clear(self, symbol: str = None) -> None:
        """Drop buffered history for one symbol, or all symbols"""
        if symbol is None:
            self._buffers.clear()
        else:
            self._buffers.pop(symbol, None)
