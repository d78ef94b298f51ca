"""
Broker Adapter - Order submission interface used by the smart order router

The router only talks to this interface, so the execution simulator can be
swapped for a real venue adapter without touching routing logic. A rejected
order is a normal outcome (``FillResult.filled is False``); exceptions are
reserved for transport and venue failures.
"""

from abc import ABC, abstractmethod

from .order_schemas import Order, FillResult


class BrokerError(Exception):
    """Base exception for broker-related errors"""
    pass


class OrderRejectedError(BrokerError):
    """Order was refused outright by the venue"""
    pass


class BrokerConnectionError(BrokerError):
    """Connection to broker failed"""
    pass


class BrokerAdapter(ABC):
    """
    Abstract base class for order submission

    Implementations must be safe to call from the event loop and must not
    block it; long waits (fill latency, network) are awaited.
    """

    @abstractmethod
    async def submit(self, order: Order) -> FillResult:
        """
        Submit an order and wait for its outcome

        Args:
            order: Child order to submit

        Returns:
            Fill outcome; ``filled`` is False when the venue did not fill
        """
        pass
