"""
Return, risk and performance analysis over a daily portfolio valuation.
"""

import math
import logging
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence

from constants import Defaults, TimeConstants
from errors import InsufficientHistory, UndefinedReturn
from models import (
    DailyValue,
    PerformanceSummary,
    PeriodPerformance,
    ReturnSeries,
    RiskMetrics,
)
from utils import finite_or_none

logger = logging.getLogger(__name__)


class ReturnCalculator:
    """Simple, total and annualized (geometric) returns from a value series."""

    def __init__(self, days_per_year: int = TimeConstants.DAYS_PER_YEAR) -> None:
        self.days_per_year = days_per_year

    @staticmethod
    def _values(values: Sequence[DailyValue]) -> np.ndarray:
        if len(values) < 2:
            raise InsufficientHistory(
                f"At least 2 values are needed for returns, got {len(values)}"
            )
        return np.array([v.value for v in values], dtype=float)

    def daily_returns(self, values: Sequence[DailyValue]) -> List[float]:
        """
        Computes ``(v[i] - v[i-1]) / v[i-1]`` for every consecutive pair.

        Raises:
            InsufficientHistory: With fewer than 2 values.
            UndefinedReturn: If any previous value is zero.
        """
        arr = self._values(values)
        previous = arr[:-1]
        if np.any(previous == 0):
            zero_at = int(np.argmax(previous == 0))
            raise UndefinedReturn(
                f"Portfolio value is zero at {values[zero_at].timestamp}; return undefined"
            )
        return ((arr[1:] - previous) / previous).tolist()

    def total_return(self, values: Sequence[DailyValue]) -> float:
        """``(v[last] - v[0]) / v[0]``."""
        arr = self._values(values)
        if arr[0] == 0:
            raise UndefinedReturn("Starting portfolio value is zero; total return undefined")
        return float((arr[-1] - arr[0]) / arr[0])

    def annualized_return(self, daily_returns: Sequence[float]) -> Optional[float]:
        """
        Compounds the daily returns, then annualizes over the observation count.

        ``(1 + total) ** (365 / n) - 1``. With very few observations the exponent
        is large and so is the result; that is the formula, not an error. None is
        returned only when the result overflows a float.

        Raises:
            InsufficientHistory: With no return observations.
        """
        n = len(daily_returns)
        if n == 0:
            raise InsufficientHistory("No return observations to annualize")

        compounded = 0.0
        for r in daily_returns:
            compounded = (1 + compounded) * (1 + r) - 1

        try:
            annualized = (1 + compounded) ** (self.days_per_year / n) - 1
        except OverflowError:
            logger.warning(f"Annualized return overflowed over {n} observations")
            return None
        return finite_or_none(annualized)

    def calculate(self, values: Sequence[DailyValue]) -> ReturnSeries:
        """
        Computes every return statistic.

        Raises:
            InsufficientHistory: With fewer than 2 values.
            UndefinedReturn: If a zero value makes a return undefined.
        """
        daily = self.daily_returns(values)
        return ReturnSeries(
            daily_returns=daily,
            total_return=self.total_return(values),
            annualized_return=self.annualized_return(daily),
        )


class RiskMetricsEngine:
    """Volatility, Sharpe ratio, drawdown and historical VaR over daily returns.

    Annualization uses calendar days (sqrt(365)), not the trading-day convention.
    """

    def __init__(
        self,
        risk_free_rate: float = Defaults.RISK_FREE_RATE,
        days_per_year: int = TimeConstants.DAYS_PER_YEAR,
    ) -> None:
        """
        Initializes the RiskMetricsEngine.

        Args:
            risk_free_rate (float): Annual risk-free rate.
            days_per_year (int): Annualization factor.
        """
        self.risk_free_rate = risk_free_rate
        self.days_per_year = days_per_year

    def volatility(self, returns: Sequence[float]) -> float:
        """Population standard deviation of returns, annualized."""
        return float(np.std(np.asarray(returns, dtype=float)) * np.sqrt(self.days_per_year))

    def sharpe_ratio(self, returns: Sequence[float]) -> Optional[float]:
        """(annualized mean return - risk-free rate) / annualized volatility; None at zero volatility."""
        volatility = self.volatility(returns)
        if volatility == 0:
            return None
        annual_mean = float(np.mean(returns)) * self.days_per_year
        return finite_or_none((annual_mean - self.risk_free_rate) / volatility)

    @staticmethod
    def max_drawdown(returns: Sequence[float]) -> float:
        """
        Largest fractional decline from a running peak of the compounded value.

        The peak tracks compounded values only, so a loss on the first day is
        not a drawdown.
        """
        if len(returns) == 0:
            return 0.0
        cumulative = (1 + pd.Series(returns, dtype=float)).cumprod()
        running_max = cumulative.cummax()
        # A zero peak means the value was wiped out before any gain; no defined drawdown
        drawdown = ((running_max - cumulative) / running_max.where(running_max > 0)).fillna(0.0)
        return float(drawdown.max())

    @staticmethod
    def value_at_risk(returns: Sequence[float], confidence: float = 0.95) -> float:
        """
        One-tailed historical VaR.

        Sorts returns ascending and reports the loss at index ``floor((1 - confidence) * n)``.
        """
        if len(returns) == 0:
            raise InsufficientHistory("No returns for Value-at-Risk")
        sorted_returns = sorted(returns)
        tail = round(1 - confidence, 10)
        index = min(int(math.floor(tail * len(sorted_returns))), len(sorted_returns) - 1)
        return -float(sorted_returns[index])

    @staticmethod
    def beta(returns: Sequence[float]) -> float:
        """Placeholder: no benchmark series is available, so beta is the neutral 1.0."""
        return Defaults.BETA_PLACEHOLDER

    def calculate(self, returns: Sequence[float]) -> Optional[RiskMetrics]:
        """
        Calculates every risk metric.

        Returns:
            Optional[RiskMetrics]: None when there are no returns.
        """
        if len(returns) == 0:
            return None

        return RiskMetrics(
            volatility_annualized=finite_or_none(self.volatility(returns)),
            sharpe_ratio=self.sharpe_ratio(returns),
            max_drawdown=finite_or_none(self.max_drawdown(returns)),
            var_95=finite_or_none(self.value_at_risk(returns, 0.95)),
            beta=self.beta(returns),
            beta_is_placeholder=True,
        )


class PerformanceAnalyzer:
    """Trailing-window performance and daily return extremes."""

    def __init__(self, windows: Optional[Dict[str, int]] = None) -> None:
        self.windows = windows or TimeConstants.PERFORMANCE_WINDOWS

    def period_performance(
        self, daily_values: Sequence[DailyValue], days: int
    ) -> PeriodPerformance:
        """Return, high and low over the last ``days`` daily steps, clipped to history."""
        values = [v.value for v in daily_values]
        # A window of d days spans d daily steps, i.e. d + 1 points; the 24h
        # window compares the last two values rather than the last one with itself
        start_index = max(0, len(values) - 1 - days)
        window = values[start_index:]
        start_value, end_value = window[0], window[-1]
        period_return = (end_value - start_value) / start_value if start_value != 0 else None
        return PeriodPerformance(
            period_return=finite_or_none(period_return),
            high=max(window),
            low=min(window),
        )

    def calculate(
        self, daily_values: Sequence[DailyValue], daily_returns: Sequence[float]
    ) -> Optional[PerformanceSummary]:
        """
        Builds the performance summary.

        Returns:
            Optional[PerformanceSummary]: None when there are no daily values.
        """
        if not daily_values:
            return None

        periodic = {
            label: self.period_performance(daily_values, days)
            for label, days in self.windows.items()
        }

        return PerformanceSummary(
            periodic_returns=periodic,
            best_day=max(daily_returns) if daily_returns else None,
            worst_day=min(daily_returns) if daily_returns else None,
            positive_days=sum(1 for r in daily_returns if r > 0),
            negative_days=sum(1 for r in daily_returns if r < 0),
        )
