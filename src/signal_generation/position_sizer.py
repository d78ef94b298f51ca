"""
Position Sizer - Kelly / VAR / risk-parity position sizing for candidate signals
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Any, Sequence
from loguru import logger
from dataclasses import dataclass, asdict
import math
from collections import deque

from .signal_schema import Signal


# Approximate z-scores for common confidence levels
Z_SCORES = {
    '0.90': 1.28,
    '0.95': 1.645,
    '0.99': 2.326
}
DEFAULT_Z_SCORE = 1.645


@dataclass
class RiskConfig:
    """Configuration for position sizing"""

    max_portfolio_var: float = 0.02            # Daily VAR budget across accepted positions (2%)
    max_single_position_risk: float = 0.005    # VAR limit per position (0.5% of portfolio)
    max_kelly_fraction: float = 0.25           # Never bet more than 25% Kelly
    risk_free_rate: float = 0.02               # Annual risk-free rate
    confidence_level: float = 0.95             # VAR confidence level

    # Kelly inputs
    expected_loss: float = 0.015               # Assumed average loss per losing trade

    # Volatility assumptions
    base_volatility: float = 0.02              # Baseline daily volatility (2%)
    strength_volatility_adjustment: float = 0.01  # Extra vol for weak signals
    volatility_lookback: int = 20              # Returns used by update_volatility_from_prices

    risk_parity_scale: float = 0.5             # Scale down risk-parity size for diversification
    history_size: int = 1000                   # Sizing records kept for get_sizing_summary


@dataclass
class PositionSizing:
    """Sizer output for one accepted signal"""

    signal: Signal
    position_size: float          # Position value in currency units
    risk_contribution: float      # Fraction of portfolio VAR budget consumed
    kelly_fraction: float
    var_constraint: float         # VAR-constrained position value
    risk_parity_weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'signal_id': self.signal.signal_id,
            'symbol': self.signal.symbol,
            'position_size': self.position_size,
            'risk_contribution': self.risk_contribution,
            'kelly_fraction': self.kelly_fraction,
            'var_constraint': self.var_constraint,
            'risk_parity_weight': self.risk_parity_weight
        }


@dataclass
class _Candidate:
    signal: Signal
    kelly_fraction: float
    volatility: float
    var_constraint: float = 0.0
    risk_parity_weight: float = 0.0


def _finite(value: float, default: float = 0.0) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


class PositionSizer:
    """
    Sizes a batch of signals against a portfolio-level VAR budget

    Pipeline: per-signal Kelly fraction, volatility estimate, VAR-constrained
    size, inverse-volatility risk-parity weight, then greedy acceptance in
    order of expected return per unit of volatility.
    """

    def __init__(self, config: RiskConfig = None):
        """
        Initialize the PositionSizer

        Args:
            config: Risk configuration
        """
        self.config = config or RiskConfig()
        self.volatility_cache: Dict[str, float] = {}
        self.sizing_history: deque = deque(maxlen=self.config.history_size)

        logger.info(f"PositionSizer initialized: max VAR {self.config.max_portfolio_var:.2%}, "
                    f"max Kelly {self.config.max_kelly_fraction:.0%}")

    def size(self, signals: Sequence[Signal], portfolio_value: float) -> List[PositionSizing]:
        """
        Calculate position sizes for a set of candidate signals

        Args:
            signals: Candidate trade signals
            portfolio_value: Current portfolio value

        Returns:
            Accepted sizings, in acceptance order. Sum of risk contributions
            never exceeds ``max_portfolio_var``.
        """
        portfolio_value = _finite(portfolio_value)
        if not signals or portfolio_value <= 0:
            return []

        candidates = [
            _Candidate(
                signal=signal,
                kelly_fraction=self.calculate_kelly_fraction(signal),
                volatility=self.estimate_volatility(signal)
            )
            for signal in signals
        ]

        for candidate in candidates:
            candidate.var_constraint = self._calculate_var_constrained_size(
                candidate.kelly_fraction, candidate.volatility, portfolio_value
            )

        self._apply_risk_parity(candidates)

        result = self._allocate(candidates, portfolio_value)

        budget_used = sum(s.risk_contribution for s in result)
        logger.info(f"Sized {len(result)}/{len(candidates)} signals, "
                    f"risk budget used {budget_used:.4%} of {self.config.max_portfolio_var:.2%}")

        for sizing in result:
            self.sizing_history.append({
                **sizing.to_dict(),
                'portfolio_value': portfolio_value
            })

        return result

    def calculate_kelly_fraction(self, signal: Signal) -> float:
        """Kelly fraction (b*p - q) / b clamped to [0, max_kelly_fraction]"""

        p = min(max(_finite(signal.strength), 0.0), 1.0)
        q = 1.0 - p
        expected_return = _finite(signal.expected_return)
        expected_loss = _finite(self.config.expected_loss)

        if expected_return <= 0 or expected_loss <= 0:
            return 0.0

        b = expected_return / expected_loss
        kelly = (b * p - q) / b

        return min(max(_finite(kelly), 0.0), self.config.max_kelly_fraction)

    def estimate_volatility(self, signal: Signal) -> float:
        """Cached per-symbol volatility, else baseline adjusted for signal strength"""

        symbol = signal.symbol or 'default'
        if symbol in self.volatility_cache:
            return self.volatility_cache[symbol]

        # Higher strength = lower idiosyncratic vol assumption
        strength = min(max(_finite(signal.strength), 0.0), 1.0)
        return self.config.base_volatility + (1.0 - strength) * self.config.strength_volatility_adjustment

    def get_z_score(self, confidence_level: float = None) -> float:
        if confidence_level is None:
            confidence_level = self.config.confidence_level
        return Z_SCORES.get(f"{confidence_level:.2f}", DEFAULT_Z_SCORE)

    def _calculate_var_constrained_size(self, kelly_fraction: float, volatility: float,
                                        portfolio_value: float) -> float:
        kelly_position_value = portfolio_value * kelly_fraction

        # Zero volatility: no VAR constraint
        if volatility <= 0:
            return kelly_position_value

        z_score = self.get_z_score()
        max_position_value = (self.config.max_single_position_risk * portfolio_value) / (volatility * z_score)

        return min(kelly_position_value, max_position_value)

    def _apply_risk_parity(self, candidates: List[_Candidate]) -> None:
        """Inverse-volatility weights normalized to sum to 1"""

        zero_vol = [c for c in candidates if c.volatility <= 0]
        if zero_vol:
            # Limit of inverse-vol weighting as vol -> 0: zero-vol names take everything
            for candidate in candidates:
                candidate.risk_parity_weight = 1.0 / len(zero_vol) if candidate.volatility <= 0 else 0.0
            return

        inverse_vols = np.array([1.0 / c.volatility for c in candidates])
        weights = inverse_vols / inverse_vols.sum()
        for candidate, weight in zip(candidates, weights):
            candidate.risk_parity_weight = float(weight)

    def _risk_adjusted_return(self, candidate: _Candidate) -> float:
        expected_return = _finite(candidate.signal.expected_return)
        if candidate.volatility <= 0:
            if expected_return > 0:
                return math.inf
            return -math.inf if expected_return < 0 else 0.0
        return expected_return / candidate.volatility

    def _allocate(self, candidates: List[_Candidate], portfolio_value: float) -> List[PositionSizing]:
        """Greedy acceptance under the portfolio VAR budget"""

        result: List[PositionSizing] = []
        budget_used = 0.0

        # Best risk-adjusted opportunities first; stable sort keeps input order on ties
        ranked = sorted(candidates, key=self._risk_adjusted_return, reverse=True)

        for candidate in ranked:
            kelly_size = portfolio_value * candidate.kelly_fraction
            risk_parity_size = portfolio_value * candidate.risk_parity_weight * self.config.risk_parity_scale
            position_size = min(kelly_size, candidate.var_constraint, risk_parity_size)

            risk_contribution = (position_size / portfolio_value) * max(candidate.volatility, 0.0)

            if budget_used + risk_contribution > self.config.max_portfolio_var:
                logger.debug(f"Skipping {candidate.signal.symbol}: risk {risk_contribution:.4%} "
                             f"exceeds remaining budget")
                continue

            result.append(PositionSizing(
                signal=candidate.signal,
                position_size=position_size,
                risk_contribution=risk_contribution,
                kelly_fraction=candidate.kelly_fraction,
                var_constraint=candidate.var_constraint,
                risk_parity_weight=candidate.risk_parity_weight
            ))
            budget_used += risk_contribution

        return result

    def update_volatility_estimate(self, symbol: str, volatility: float) -> None:
        """Override the volatility estimate for a symbol"""
        self.volatility_cache[symbol] = max(_finite(volatility), 0.0)

    def update_volatility_from_prices(self, symbol: str, prices: Sequence[float]) -> Optional[float]:
        """
        Estimate daily volatility from a price series and cache it

        Returns:
            The cached volatility, or None if there were too few prices
        """
        series = pd.Series(list(prices), dtype=float)
        returns = series.pct_change().dropna()
        if len(returns) < 2:
            logger.warning(f"Not enough prices to estimate volatility for {symbol}")
            return None

        volatility = float(returns.tail(self.config.volatility_lookback).std())
        self.update_volatility_estimate(symbol, volatility)
        return self.volatility_cache[symbol]

    # Portfolio-level risk metrics

    def calculate_portfolio_var(self, sizings: Sequence[PositionSizing], portfolio_value: float) -> float:
        """Portfolio VAR in currency units"""
        total_risk = sum(s.risk_contribution for s in sizings)
        return total_risk * portfolio_value

    def calculate_sharpe_ratio(self, returns: Sequence[float], risk_free_rate: float = None) -> float:
        """Sharpe ratio of daily returns against the annualized volatility"""
        if risk_free_rate is None:
            risk_free_rate = self.config.risk_free_rate

        values = np.asarray(returns, dtype=float)
        if values.size == 0:
            return 0.0

        volatility = float(np.std(values) * np.sqrt(252))
        if volatility <= 0:
            return 0.0

        return float((values.mean() - risk_free_rate / 252) / volatility)

    def calculate_max_drawdown(self, equity_curve: Sequence[float]) -> float:
        """Maximum peak-to-trough drawdown as a fraction of the peak"""
        values = np.asarray(equity_curve, dtype=float)
        if values.size == 0:
            return 0.0

        peaks = np.maximum.accumulate(values)
        with np.errstate(divide='ignore', invalid='ignore'):
            drawdowns = np.where(peaks > 0, (peaks - values) / peaks, 0.0)

        return float(max(drawdowns.max(), 0.0))

    def get_sizing_summary(self) -> Dict[str, Any]:
        """Get summary of position sizing activity"""

        if not self.sizing_history:
            return {'total_positions': 0}

        df = pd.DataFrame(list(self.sizing_history))

        return {
            'total_positions': len(self.sizing_history),
            'avg_position_size': df['position_size'].mean(),
            'avg_kelly_fraction': df['kelly_fraction'].mean(),
            'avg_risk_contribution': df['risk_contribution'].mean(),
            'config': asdict(self.config)
        }
