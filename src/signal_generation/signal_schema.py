"""
Signal Schema - Data structures for trading signals
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Any
from datetime import datetime, timezone
import uuid


DEFAULT_EXPECTED_RETURN = 0.02


class SignalDirection(Enum):
    """Signal direction"""
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Signal:
    """
    Trade recommendation produced by a strategy

    ``strength`` doubles as the win-probability proxy for Kelly sizing.
    ``metadata`` is expected to carry at least ``symbol`` and
    ``expected_return``.
    """

    timestamp: datetime               # When signal was generated
    direction: SignalDirection        # Buy/sell
    strength: float                   # Confidence (0.0 to 1.0)
    price: float                      # Reference price at signal time
    metadata: Dict[str, Any] = field(default_factory=dict)
    signal_id: str = field(default_factory=lambda: f"sig_{uuid.uuid4().hex[:10]}")

    def __post_init__(self):
        """Post-initialization validation"""
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError(f"Strength must be between 0.0 and 1.0, got {self.strength}")

    @property
    def symbol(self) -> Optional[str]:
        return self.metadata.get('symbol')

    @property
    def expected_return(self) -> float:
        value = self.metadata.get('expected_return')
        return DEFAULT_EXPECTED_RETURN if value is None else value

    def to_dict(self) -> Dict[str, Any]:
        """Convert signal to dictionary for serialization"""
        return {
            'signal_id': self.signal_id,
            'timestamp': self.timestamp.isoformat(),
            'direction': self.direction.value,
            'strength': self.strength,
            'price': self.price,
            'metadata': self.metadata
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Signal':
        """Create signal from dictionary"""
        data = dict(data)
        data['direction'] = SignalDirection(data['direction'])
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return cls(**data)

    @classmethod
    def create(cls, symbol: str, direction: SignalDirection, strength: float, price: float,
               expected_return: float = DEFAULT_EXPECTED_RETURN, **metadata: Any) -> 'Signal':
        """Convenience constructor stamping the current UTC time"""
        return cls(
            timestamp=datetime.now(timezone.utc),
            direction=direction,
            strength=strength,
            price=price,
            metadata={'symbol': symbol, 'expected_return': expected_return, **metadata}
        )
