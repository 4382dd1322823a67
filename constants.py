"""
Configuration constants for portfolio analytics.

This module centralizes all magic numbers and thresholds used throughout the application,
making them easy to find, understand, and modify.

All constants are organized into classes for better organization and to eliminate
duplication. Use `ClassName.CONSTANT_NAME` to access values.
"""

# ============================================================================
# THRESHOLD CLASSES (Organized Configuration)
# ============================================================================


class AnalysisThresholds:
    """Analysis alert and signal thresholds."""

    # Rebalancing
    REBALANCE_DRIFT_PCT = 5.0  # |target - current| above this (percentage points) needs rebalancing

    # Drawdown thresholds
    LARGE_DRAWDOWN = 0.20  # 20% peak-to-trough decline triggers alert

    # VaR threshold
    VALUE_AT_RISK_95_THRESHOLD = 0.05  # Daily loss above 5% at 95% confidence triggers alert

    # RSI thresholds
    OVERBOUGHT_RSI = 70  # Above this indicates overbought conditions
    OVERSOLD_RSI = 30  # Below this indicates oversold conditions

    # Volume spike heuristic
    VOLUME_SPIKE_MULTIPLIER = 1.5  # Sample above 1.5x trailing average counts as a spike
    VOLUME_TREND_SPIKES = 3  # More spikes than this means volume is increasing
    UNUSUAL_ACTIVITY_SPIKES = 5  # More spikes than this flags unusual activity

    # Price trend
    STRONG_TREND_PCT = 10.0  # |price change| above 10% is a strong trend

    # Sentiment trend
    SENTIMENT_SCORE_THRESHOLD = 0.2
    SENTIMENT_MAGNITUDE_THRESHOLD = 0.5


class TechnicalIndicatorParameters:
    """Technical indicator calculation parameters and window sizes."""

    # RSI (Relative Strength Index)
    RSI_PERIOD = 14  # Standard RSI calculation period

    # Moving Averages
    SMA_SHORT_PERIOD = 20
    SMA_LONG_PERIOD = 50

    # Bollinger Bands
    BOLLINGER_PERIOD = 20  # Period for Bollinger Bands calculation
    BOLLINGER_STD_DEV = 2  # Number of standard deviations for bands

    # MACD (Moving Average Convergence Divergence)
    MACD_FAST_PERIOD = 12  # Fast EMA period
    MACD_SLOW_PERIOD = 26  # Slow EMA period
    MACD_SIGNAL_PERIOD = 9  # Signal line EMA period

    # Minimum price history before any indicator is attempted
    MIN_PRICES_FOR_INDICATORS = 50


class TimeConstants:
    """Time and annualization constants."""

    # Crypto trades every calendar day
    DAYS_PER_YEAR = 365

    MS_PER_DAY = 86_400_000

    # Volume heuristic looks at the trailing 24 clock-hour buckets
    VOLUME_LOOKBACK_HOURS = 24

    # Repositories updated within this many days count as active
    ACTIVE_REPO_DAYS = 30

    # Trailing windows for periodic performance (label -> days)
    PERFORMANCE_WINDOWS = {
        "24h": 1,
        "7d": 7,
        "30d": 30,
        "90d": 90,
        "1y": 365,
    }


class LimitsAndConstraints:
    """System limits and constraints."""

    # Portfolio analysis timeframes (label -> days of history)
    PORTFOLIO_TIMEFRAMES = {"30d": 30, "90d": 90, "1y": 365}

    # Token analysis timeframes (label -> days of history)
    TOKEN_TIMEFRAMES = {"24h": 1, "7d": 7, "30d": 30}

    # Token identifiers are provider slugs such as "bitcoin" or "usd-coin"
    MAX_TOKEN_ID_LENGTH = 100
    MAX_TOKENS_PER_PORTFOLIO = 100


class RetryPolicy:
    """Upstream retry policy."""

    RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
    NOT_FOUND_STATUS = 404

    MAX_ATTEMPTS = 3
    BACKOFF_INITIAL_SECONDS = 1.0  # Wait ~1, 2, 4 seconds between attempts
    BACKOFF_MAX_SECONDS = 10.0
    BACKOFF_JITTER_SECONDS = 1.0


class DevelopmentScore:
    """Weights and normalizers for the developer activity score."""

    MAX_SCORE = 100
    STAR_WEIGHT = 0.4
    FORK_WEIGHT = 0.3
    ACTIVE_WEIGHT = 0.3

    STARS_NORMALIZER = 1000
    FORKS_NORMALIZER = 500
    ACTIVE_REPOS_NORMALIZER = 10


class Defaults:
    """Default configuration values."""

    # Market data provider
    COINGECKO_BASE_URL = "https://pro-api.coingecko.com/api/v3"
    GITHUB_BASE_URL = "https://api.github.com"
    VS_CURRENCY = "usd"

    # Response cache (can be overridden by config)
    CACHE_TTL_SECONDS = 60  # 1 minute

    # Batch throttling (can be overridden by config)
    BATCH_SIZE = 3
    BATCH_DELAY_SECONDS = 1.0

    # Risk-free rate (can be overridden by config)
    RISK_FREE_RATE = 0.02  # 2% annual risk-free rate

    # Request timeout (can be overridden by config)
    REQUEST_TIMEOUT = 30  # seconds

    # Beta has no benchmark series wired in
    BETA_PLACEHOLDER = 1.0

    # Default timeframes
    PORTFOLIO_TIMEFRAME = "30d"
    TOKEN_TIMEFRAME = "24h"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def validate_constants() -> None:
    """
    Validates that all constants are within reasonable ranges.

    Raises:
        ValueError: If any constant is invalid.
    """
    # RSI thresholds
    if not (0 < AnalysisThresholds.OVERBOUGHT_RSI <= 100):
        raise ValueError(
            f"OVERBOUGHT_RSI must be between 0 and 100, got {AnalysisThresholds.OVERBOUGHT_RSI}"
        )

    if not (0 <= AnalysisThresholds.OVERSOLD_RSI < 100):
        raise ValueError(
            f"OVERSOLD_RSI must be between 0 and 100, got {AnalysisThresholds.OVERSOLD_RSI}"
        )

    if AnalysisThresholds.OVERSOLD_RSI >= AnalysisThresholds.OVERBOUGHT_RSI:
        raise ValueError("OVERSOLD_RSI must be less than OVERBOUGHT_RSI")

    # Period validations
    if TechnicalIndicatorParameters.RSI_PERIOD <= 0:
        raise ValueError(f"RSI_PERIOD must be positive, got {TechnicalIndicatorParameters.RSI_PERIOD}")

    if TechnicalIndicatorParameters.SMA_SHORT_PERIOD >= TechnicalIndicatorParameters.SMA_LONG_PERIOD:
        raise ValueError("SMA_SHORT_PERIOD must be less than SMA_LONG_PERIOD")

    if TechnicalIndicatorParameters.MACD_FAST_PERIOD >= TechnicalIndicatorParameters.MACD_SLOW_PERIOD:
        raise ValueError("MACD_FAST_PERIOD must be less than MACD_SLOW_PERIOD")

    if TechnicalIndicatorParameters.MIN_PRICES_FOR_INDICATORS < TechnicalIndicatorParameters.SMA_LONG_PERIOD:
        raise ValueError("MIN_PRICES_FOR_INDICATORS must cover SMA_LONG_PERIOD")

    # Retry policy
    if RetryPolicy.MAX_ATTEMPTS < 1:
        raise ValueError(f"MAX_ATTEMPTS must be at least 1, got {RetryPolicy.MAX_ATTEMPTS}")

    if RetryPolicy.NOT_FOUND_STATUS in RetryPolicy.RETRYABLE_STATUS_CODES:
        raise ValueError("404 must not be a retryable status")

    # Limits
    if Defaults.BATCH_SIZE <= 0:
        raise ValueError(f"BATCH_SIZE must be positive, got {Defaults.BATCH_SIZE}")

    if TimeConstants.DAYS_PER_YEAR <= 0:
        raise ValueError(
            f"DAYS_PER_YEAR must be positive, got {TimeConstants.DAYS_PER_YEAR}"
        )


# Validate on import
validate_constants()
