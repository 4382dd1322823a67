"""
Tests for technical indicators.
"""

import pytest
from indicators import TechnicalIndicatorEngine
from models import BollingerBands, IndicatorSet, MACDResult


@pytest.fixture
def engine():
    return TechnicalIndicatorEngine()


@pytest.fixture
def rising_prices():
    return [100.0 + i for i in range(60)]


@pytest.fixture
def falling_prices():
    return [200.0 - i for i in range(60)]


class TestMovingAverages:
    """Test SMA and EMA."""

    def test_sma(self, engine):
        assert engine.sma([1, 2, 3, 4, 5], 5) == 3.0
        assert engine.sma([1, 2, 3, 4, 5], 2) == 4.5

    def test_sma_short_series(self, engine):
        assert engine.sma([1, 2], 5) is None

    def test_ema_seeded_with_sma(self, engine):
        assert engine.ema([2, 4, 6], 3) == pytest.approx(4.0)

    def test_ema_recursion(self, engine):
        # seed 2.0 (mean of 1, 3), multiplier 2/3: (6 - 2) * 2/3 + 2
        assert engine.ema([1, 3, 6], 2) == pytest.approx(2 + 4 * 2 / 3)

    def test_ema_short_series(self, engine):
        assert engine.ema([1.0], 9) is None


class TestRSI:
    """Test Relative Strength Index."""

    def test_strictly_increasing_is_100(self, engine, rising_prices):
        assert engine.rsi(rising_prices) == 100.0

    def test_strictly_decreasing_is_0(self, engine, falling_prices):
        assert engine.rsi(falling_prices) == pytest.approx(0.0)

    def test_flat_series(self, engine):
        assert engine.rsi([10.0] * 20) == 100.0

    def test_balanced_changes(self, engine):
        prices = [10.0, 11.0] * 8  # 15 alternating changes, last 14 balanced

        assert engine.rsi(prices) == pytest.approx(50.0)

    def test_in_range(self, engine):
        prices = [100, 102, 101, 105, 103, 104, 99, 98, 101, 107, 106, 108, 104, 103, 105, 109]

        assert 0.0 <= engine.rsi(prices) <= 100.0

    def test_short_series(self, engine):
        assert engine.rsi([1.0] * 14) is None


class TestMACDAndBands:
    """Test MACD and Bollinger Bands."""

    def test_macd_signal_is_single_point(self, engine, rising_prices):
        result = engine.macd(rising_prices)

        assert isinstance(result, MACDResult)
        assert result.signal is None
        assert result.histogram == pytest.approx(result.line)
        assert result.line > 0

    def test_macd_short_series(self, engine):
        assert engine.macd([1.0] * 25) is None

    def test_bollinger_bands(self, engine):
        prices = [10.0, 12.0] * 10

        bands = engine.bollinger_bands(prices)

        assert isinstance(bands, BollingerBands)
        assert bands.middle == pytest.approx(11.0)
        assert bands.upper == pytest.approx(13.0)
        assert bands.lower == pytest.approx(9.0)

    def test_flat_bands_collapse(self, engine):
        bands = engine.bollinger_bands([5.0] * 20)

        assert bands.lower == bands.middle == bands.upper == 5.0


class TestCalculate:
    """Test the full indicator set and scoring."""

    def test_minimum_history_gate(self, engine):
        assert engine.calculate([1.0] * 49) is None

    def test_rising_market(self, engine, rising_prices):
        indicators = engine.calculate(rising_prices)

        assert indicators.sma_20 > indicators.sma_50
        assert indicators.rsi_14 == 100.0
        assert "bullish_trend" in indicators.signals
        assert "overbought" in indicators.signals
        assert "macd_positive" in indicators.signals
        # +0.2 trend, -0.3 overbought, +0.2 MACD
        assert indicators.technical_score == pytest.approx(0.1)

    def test_falling_market(self, engine, falling_prices):
        indicators = engine.calculate(falling_prices)

        assert "bearish_trend" in indicators.signals
        assert "oversold" in indicators.signals
        assert "macd_negative" in indicators.signals
        # +0.3 oversold, -0.2 MACD
        assert indicators.technical_score == pytest.approx(0.1)

    def test_score_is_clamped(self, engine):
        indicators = IndicatorSet(
            sma_20=2.0, sma_50=1.0, rsi_14=10.0, macd=MACDResult(1.0, None, 1.0)
        )

        assert -1.0 <= engine.technical_score(indicators) <= 1.0
        assert engine.technical_score(indicators) == pytest.approx(0.7)

    def test_empty_set_scores_zero(self, engine):
        assert engine.technical_score(IndicatorSet()) == 0.0
