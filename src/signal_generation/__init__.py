"""
Signal Generation Module

Trade signals and risk-budgeted position sizing (Kelly, VAR, risk parity).
"""

from .signal_schema import Signal, SignalDirection
from .position_sizer import PositionSizer, PositionSizing, RiskConfig

__all__ = [
    'Signal',
    'SignalDirection',
    'PositionSizer',
    'PositionSizing',
    'RiskConfig'
]
