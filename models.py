"""
Data models for portfolio analytics.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from constants import Defaults, LimitsAndConstraints
from errors import InvalidInput
from utils import timeframe_to_days, validate_portfolio_id, validate_token_id


# ============================================================================
# PYDANTIC MODELS (With Validation)
# ============================================================================


class PortfolioAnalysisRequest(BaseModel):
    """Validated portfolio analysis request."""

    portfolio_id: str = Field(..., min_length=1, description="Portfolio identifier")
    timeframe: str = Field(
        default=Defaults.PORTFOLIO_TIMEFRAME, description="History window (30d, 90d, 1y)"
    )

    @field_validator("portfolio_id", mode="before")
    @classmethod
    def validate_portfolio_id(cls, v: Any) -> str:
        return validate_portfolio_id(v)

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe(cls, v: str) -> str:
        """
        Validates the analysis timeframe.

        Args:
            v (str): The timeframe label to validate.

        Returns:
            str: The normalized timeframe label.
        """
        v = v.strip().lower()
        if v not in LimitsAndConstraints.PORTFOLIO_TIMEFRAMES:
            raise ValueError(
                f"Invalid timeframe '{v}'. Must be one of: "
                f"{', '.join(LimitsAndConstraints.PORTFOLIO_TIMEFRAMES)}"
            )
        return v

    @property
    def days(self) -> int:
        return timeframe_to_days(self.timeframe, LimitsAndConstraints.PORTFOLIO_TIMEFRAMES)


class TokenAnalysisRequest(BaseModel):
    """Validated token analysis request."""

    token_id: str = Field(..., min_length=1, description="Market-data token identifier")
    timeframe: str = Field(
        default=Defaults.TOKEN_TIMEFRAME, description="History window (24h, 7d, 30d)"
    )

    @field_validator("token_id", mode="before")
    @classmethod
    def validate_token_id(cls, v: Any) -> str:
        return validate_token_id(v)

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in LimitsAndConstraints.TOKEN_TIMEFRAMES:
            raise ValueError(
                f"Invalid timeframe '{v}'. Must be one of: "
                f"{', '.join(LimitsAndConstraints.TOKEN_TIMEFRAMES)}"
            )
        return v

    @property
    def days(self) -> int:
        return timeframe_to_days(self.timeframe, LimitsAndConstraints.TOKEN_TIMEFRAMES)


# ============================================================================
# UPSTREAM BOUNDARY RECORDS
# ============================================================================


class PricePoint(BaseModel):
    """One (timestamp, price) observation from the market-data provider."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Epoch milliseconds")
    price: float = Field(..., ge=0)


class VolumePoint(BaseModel):
    """One (timestamp, volume) observation from the market-data provider."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    volume: float = Field(..., ge=0)


def _pairs_to_points(pairs: Any, value_key: str) -> List[Dict[str, Any]]:
    """Convert provider [[ts, value], ...] pairs into dicts, skipping null samples."""
    if pairs is None:
        return []
    points = []
    for item in pairs:
        if isinstance(item, dict):
            points.append(item)
            continue
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            raise ValueError(f"Malformed sample: {item!r}")
        if item[0] is None or item[1] is None:
            continue
        points.append({"timestamp": int(item[0]), value_key: item[1]})
    return points


class MarketChart(BaseModel):
    """
    Price and volume history for one token.

    Both series are sorted ascending by timestamp on ingress.
    """

    prices: List[PricePoint] = Field(default_factory=list)
    total_volumes: List[VolumePoint] = Field(default_factory=list)

    @field_validator("prices", mode="before")
    @classmethod
    def parse_prices(cls, v: Any) -> List[Dict[str, Any]]:
        return _pairs_to_points(v, "price")

    @field_validator("total_volumes", mode="before")
    @classmethod
    def parse_volumes(cls, v: Any) -> List[Dict[str, Any]]:
        return _pairs_to_points(v, "volume")

    @field_validator("prices", "total_volumes")
    @classmethod
    def sort_ascending(cls, v: List[Any]) -> List[Any]:
        return sorted(v, key=lambda p: p.timestamp)

    @property
    def close_prices(self) -> List[float]:
        return [p.price for p in self.prices]

    @property
    def latest_price(self) -> Optional[float]:
        return self.prices[-1].price if self.prices else None


class SimplePriceQuote(BaseModel):
    """Current price snapshot for one token."""

    usd: Optional[float] = Field(default=None, ge=0)
    usd_24h_change: Optional[float] = None
    usd_24h_vol: Optional[float] = Field(default=None, ge=0)


class RepositoryInfo(BaseModel):
    """Repository search hit used as a developer-activity signal."""

    name: str = ""
    stargazers_count: int = Field(default=0, ge=0)
    forks_count: int = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None


class SentimentScore(BaseModel):
    """Aggregate sentiment figures as stored by the sentiment collaborator."""

    score: Optional[float] = None
    magnitude: Optional[float] = None
    mentions: Optional[int] = None
    positive_percentage: Optional[float] = None
    negative_percentage: Optional[float] = None
    neutral_percentage: Optional[float] = None


class SentimentRecord(BaseModel):
    """Stored sentiment record for one token."""

    token_id: str
    overall_sentiment: Optional[SentimentScore] = None


# ============================================================================
# DATACLASS MODELS (Domain)
# ============================================================================


@dataclass
class Holding:
    """A position in one token."""

    token_id: str
    amount: float
    purchase_price: float = 0.0
    target_allocation_pct: Optional[float] = None

    def __post_init__(self) -> None:
        self.token_id = validate_token_id(self.token_id)
        if self.amount < 0:
            raise InvalidInput(f"Holding amount for {self.token_id} cannot be negative")
        if self.purchase_price < 0:
            raise InvalidInput(f"Purchase price for {self.token_id} cannot be negative")
        if self.target_allocation_pct is not None and not (
            0 <= self.target_allocation_pct <= 100
        ):
            raise InvalidInput(
                f"Target allocation for {self.token_id} must be within [0, 100], "
                f"got {self.target_allocation_pct}"
            )


def _first_present(record: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not None."""
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


@dataclass
class Transaction:
    """An append-only portfolio transaction."""

    token_id: str
    timestamp: int
    transaction_type: str
    amount: float
    price: Optional[float] = None


@dataclass
class Portfolio:
    """Holdings keyed by token id plus a timestamp-ordered transaction log."""

    id: str
    holdings: Dict[str, Holding] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)

    @classmethod
    def from_records(
        cls,
        portfolio_id: str,
        holding_records: List[Dict[str, Any]],
        transaction_records: Optional[List[Dict[str, Any]]] = None,
    ) -> "Portfolio":
        """
        Builds a Portfolio from store records.

        Records for the same token are merged by summing amounts; the first
        non-null target allocation wins.
        """
        holdings: Dict[str, Holding] = {}
        for record in holding_records:
            target = _first_present(record, "target_allocation_pct", "target_allocation")
            purchase_price = _first_present(record, "purchase_price", "purchase_price_usd")
            holding = Holding(
                token_id=record.get("token_id"),
                amount=float(record.get("amount") or 0.0),
                purchase_price=float(purchase_price or 0.0),
                target_allocation_pct=float(target) if target is not None else None,
            )
            existing = holdings.get(holding.token_id)
            if existing is None:
                holdings[holding.token_id] = holding
            else:
                # Cost basis of merged lots is amount-weighted
                merged_amount = existing.amount + holding.amount
                if merged_amount > 0:
                    existing.purchase_price = (
                        existing.amount * existing.purchase_price
                        + holding.amount * holding.purchase_price
                    ) / merged_amount
                existing.amount = merged_amount
                if existing.target_allocation_pct is None:
                    existing.target_allocation_pct = holding.target_allocation_pct

        transactions = [
            Transaction(
                token_id=validate_token_id(r.get("token_id")),
                timestamp=int(r.get("timestamp") or 0),
                transaction_type=str(r.get("type", "unknown")),
                amount=float(r.get("amount") or 0.0),
                price=float(r["price"]) if r.get("price") is not None else None,
            )
            for r in (transaction_records or [])
        ]
        transactions.sort(key=lambda t: t.timestamp)

        return cls(id=portfolio_id, holdings=holdings, transactions=transactions)

    @property
    def token_ids(self) -> List[str]:
        return list(self.holdings.keys())


@dataclass
class DailyValue:
    """Whole-portfolio valuation at one grid timestamp."""

    timestamp: int
    value: float


@dataclass
class ReturnSeries:
    """Return statistics over a daily value series."""

    daily_returns: List[float]
    total_return: Optional[float]
    annualized_return: Optional[float]


@dataclass
class RiskMetrics:
    """Risk statistics over daily returns.

    beta is a fixed placeholder until a benchmark series is wired in;
    beta_is_placeholder tells callers not to treat it as a measurement.
    """

    volatility_annualized: Optional[float] = None
    sharpe_ratio: Optional[float] = None
    max_drawdown: Optional[float] = None  # Fraction of running peak, in [0, 1]
    var_95: Optional[float] = None  # Daily loss at 95% confidence, positive = loss
    beta: Optional[float] = None
    beta_is_placeholder: bool = True


@dataclass
class MACDResult:
    """MACD line, single-point signal line and histogram."""

    line: float
    signal: Optional[float]
    histogram: float


@dataclass
class BollingerBands:
    """Bollinger bands around the 20-period SMA."""

    lower: float
    middle: float
    upper: float


@dataclass
class IndicatorSet:
    """Latest technical indicator values; each None when history is too short."""

    sma_20: Optional[float] = None
    sma_50: Optional[float] = None
    rsi_14: Optional[float] = None
    macd: Optional[MACDResult] = None
    bollinger: Optional[BollingerBands] = None
    technical_score: Optional[float] = None  # Directional score in [-1, 1]
    signals: List[str] = field(default_factory=list)


@dataclass
class AllocationEntry:
    """Value and weight of one holding within a single valuation snapshot."""

    token_id: str
    amount: float
    value: float
    weight: float
    price: Optional[float] = None
    cost_basis: float = 0.0  # amount * purchase_price
    unrealized_pnl: Optional[float] = None  # None when unpriced
    return_pct: Optional[float] = None  # None when cost basis is 0


@dataclass
class ProfitLossSummary:
    """Portfolio-wide cost basis and unrealized profit/loss."""

    total_value: float
    total_cost: float
    unrealized_pnl: float
    return_pct: Optional[float]  # None when total cost is 0


@dataclass
class RebalanceRecommendation:
    """Target-vs-current allocation delta for one holding."""

    token_id: str
    current_allocation_pct: float
    target_allocation_pct: float
    delta_pct: float
    adjustment_amount: Optional[float]  # Signed units; None when price is unknown


@dataclass
class RebalancePlan:
    """Recommendations for every holding with a target allocation."""

    portfolio_id: str
    total_value: float
    recommendations: List[RebalanceRecommendation]
    needs_rebalance: bool
    threshold_pct: float
    unpriced_tokens: List[str] = field(default_factory=list)
    generated_at: Optional[str] = None


@dataclass
class PeriodPerformance:
    """Return and range over one trailing window."""

    period_return: Optional[float]
    high: float
    low: float


@dataclass
class PerformanceSummary:
    """Periodic windows plus daily return extremes."""

    periodic_returns: Dict[str, PeriodPerformance]
    best_day: Optional[float]
    worst_day: Optional[float]
    positive_days: int
    negative_days: int


@dataclass
class FailedAsset:
    """Per-asset fetch failure reported alongside successes."""

    token_id: str
    error: str
    status_code: Optional[int] = None


@dataclass
class PortfolioReport:
    """Aggregate portfolio analysis."""

    portfolio_id: str
    timeframe: str
    current_value: float
    daily_values: List[DailyValue]
    returns: Optional[ReturnSeries]
    risk_metrics: Optional[RiskMetrics]
    allocation: List[AllocationEntry]
    performance: Optional[PerformanceSummary]
    profit_loss: Optional[ProfitLossSummary] = None
    failed_assets: List[FailedAsset] = field(default_factory=list)
    alerts: List[str] = field(default_factory=list)
    transaction_count: int = 0
    generated_at: Optional[str] = None


@dataclass
class PriceAnalysis:
    """Price sub-section of a token report."""

    price_change_percentage: float
    volatility: float
    current_price: float
    price_trend: str
    trend_strength: str


@dataclass
class VolumeAnalysis:
    """Volume sub-section of a token report."""

    average_volume: float
    volume_spikes: int
    volume_trend: str
    unusual_activity: bool


@dataclass
class DeveloperAnalysis:
    """Developer-activity sub-section of a token report."""

    total_repositories: int
    total_stars: int
    total_forks: int
    active_repositories: int
    development_score: int


@dataclass
class SocialAnalysis:
    """Social sub-section of a token report; absent figures stay None."""

    sentiment_score: Optional[float]
    total_mentions: Optional[int]
    positive_percentage: Optional[float]
    negative_percentage: Optional[float]
    neutral_percentage: Optional[float]
    sentiment_trend: str


@dataclass
class TokenReport:
    """Aggregate token analysis; each sub-section may be None independently."""

    token_id: str
    timeframe: str
    price_analysis: Optional[PriceAnalysis] = None
    volume_analysis: Optional[VolumeAnalysis] = None
    developer_analysis: Optional[DeveloperAnalysis] = None
    social_analysis: Optional[SocialAnalysis] = None
    technical_indicators: Optional[IndicatorSet] = None
    alerts: List[str] = field(default_factory=list)
    generated_at: Optional[str] = None
