"""
Technical indicators over a single asset's raw close-price series.
"""

import logging
import numpy as np
from typing import List, Optional, Sequence

from constants import AnalysisThresholds, TechnicalIndicatorParameters
from models import BollingerBands, IndicatorSet, MACDResult

logger = logging.getLogger(__name__)


class TechnicalIndicatorEngine:
    """
    SMA, EMA, RSI, MACD and Bollinger Bands, each reporting the latest value only.

    Every indicator returns None when the series is shorter than its window.
    """

    def __init__(
        self, min_prices: int = TechnicalIndicatorParameters.MIN_PRICES_FOR_INDICATORS
    ) -> None:
        self.min_prices = min_prices

    @staticmethod
    def sma(prices: Sequence[float], period: int) -> Optional[float]:
        """Mean of the last ``period`` prices."""
        if len(prices) < period:
            return None
        return float(np.mean(np.asarray(prices[-period:], dtype=float)))

    @staticmethod
    def ema(prices: Sequence[float], period: int) -> Optional[float]:
        """Exponential moving average seeded with the SMA of the first ``period`` prices."""
        if len(prices) < period:
            return None

        multiplier = 2 / (period + 1)
        ema = float(np.mean(np.asarray(prices[:period], dtype=float)))
        for price in prices[period:]:
            ema = (price - ema) * multiplier + ema
        return ema

    @staticmethod
    def rsi(
        prices: Sequence[float], period: int = TechnicalIndicatorParameters.RSI_PERIOD
    ) -> Optional[float]:
        """Relative Strength Index from simple averages of the last ``period`` changes."""
        if len(prices) < period + 1:
            return None

        changes = np.diff(np.asarray(prices, dtype=float))[-period:]
        avg_gain = float(np.where(changes > 0, changes, 0.0).sum()) / period
        avg_loss = float(np.where(changes < 0, -changes, 0.0).sum()) / period

        # All gains (or a flat series) pins RSI at the top of the range
        if avg_loss == 0:
            return 100.0
        return 100 - (100 / (1 + avg_gain / avg_loss))

    def macd(
        self,
        prices: Sequence[float],
        fast: int = TechnicalIndicatorParameters.MACD_FAST_PERIOD,
        slow: int = TechnicalIndicatorParameters.MACD_SLOW_PERIOD,
        signal: int = TechnicalIndicatorParameters.MACD_SIGNAL_PERIOD,
    ) -> Optional[MACDResult]:
        """
        MACD line, signal line and histogram.

        The signal line is the EMA of the single latest MACD value, not of a MACD
        series. With the standard 9-period signal that EMA has too little input and
        is None, in which case the histogram equals the MACD line.
        """
        ema_fast = self.ema(prices, fast)
        ema_slow = self.ema(prices, slow)
        if ema_fast is None or ema_slow is None:
            return None

        macd_line = ema_fast - ema_slow
        signal_line = self.ema([macd_line], signal)
        histogram = macd_line - (signal_line if signal_line is not None else 0.0)
        return MACDResult(line=macd_line, signal=signal_line, histogram=histogram)

    def bollinger_bands(
        self,
        prices: Sequence[float],
        period: int = TechnicalIndicatorParameters.BOLLINGER_PERIOD,
        std_dev: float = TechnicalIndicatorParameters.BOLLINGER_STD_DEV,
    ) -> Optional[BollingerBands]:
        """Bands at ``std_dev`` population standard deviations around the SMA."""
        middle = self.sma(prices, period)
        if middle is None:
            return None

        recent = np.asarray(prices[-period:], dtype=float)
        sigma = float(np.sqrt(np.mean((recent - middle) ** 2)))
        return BollingerBands(
            lower=middle - std_dev * sigma,
            middle=middle,
            upper=middle + std_dev * sigma,
        )

    @staticmethod
    def technical_score(indicators: IndicatorSet) -> float:
        """
        Directional score in [-1, 1] from trend, momentum and MACD.

        Short SMA above long SMA adds 0.2; oversold RSI adds 0.3 and overbought
        subtracts 0.3; a positive MACD histogram adds 0.2, otherwise subtracts 0.2.
        """
        score = 0.0
        if indicators.sma_20 is not None and indicators.sma_50 is not None:
            if indicators.sma_20 > indicators.sma_50:
                score += 0.2
        if indicators.rsi_14 is not None:
            if indicators.rsi_14 < AnalysisThresholds.OVERSOLD_RSI:
                score += 0.3
            elif indicators.rsi_14 > AnalysisThresholds.OVERBOUGHT_RSI:
                score -= 0.3
        if indicators.macd is not None:
            score += 0.2 if indicators.macd.histogram > 0 else -0.2
        return max(-1.0, min(1.0, score))

    @staticmethod
    def signals(indicators: IndicatorSet, last_price: float) -> List[str]:
        """Human-readable signal labels for the latest indicator values."""
        signals = []

        if indicators.sma_20 is not None and indicators.sma_50 is not None:
            if indicators.sma_20 > indicators.sma_50:
                signals.append("bullish_trend")
            elif indicators.sma_20 < indicators.sma_50:
                signals.append("bearish_trend")

        if indicators.rsi_14 is not None:
            if indicators.rsi_14 > AnalysisThresholds.OVERBOUGHT_RSI:
                signals.append("overbought")
            elif indicators.rsi_14 < AnalysisThresholds.OVERSOLD_RSI:
                signals.append("oversold")

        if indicators.bollinger is not None:
            if last_price > indicators.bollinger.upper:
                signals.append("above_upper_band")
            elif last_price < indicators.bollinger.lower:
                signals.append("below_lower_band")

        if indicators.macd is not None:
            signals.append("macd_positive" if indicators.macd.histogram > 0 else "macd_negative")

        return signals

    def calculate(self, prices: Sequence[float]) -> Optional[IndicatorSet]:
        """
        Computes the full indicator set.

        Returns:
            Optional[IndicatorSet]: None below the minimum history gate.
        """
        if len(prices) < self.min_prices:
            logger.debug(
                f"Skipping indicators: {len(prices)} prices < {self.min_prices} required"
            )
            return None

        prices = list(prices)
        indicators = IndicatorSet(
            sma_20=self.sma(prices, TechnicalIndicatorParameters.SMA_SHORT_PERIOD),
            sma_50=self.sma(prices, TechnicalIndicatorParameters.SMA_LONG_PERIOD),
            rsi_14=self.rsi(prices, TechnicalIndicatorParameters.RSI_PERIOD),
            macd=self.macd(prices),
            bollinger=self.bollinger_bands(prices),
        )
        indicators.technical_score = self.technical_score(indicators)
        indicators.signals = self.signals(indicators, prices[-1])
        return indicators
