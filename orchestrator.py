"""
Main orchestrator coordinating all components.
"""

import logging
from functools import partial
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar
from concurrent.futures import Future, ThreadPoolExecutor
from pydantic import BaseModel, ValidationError

from config import Config
from cache import ResponseCache
from alerts import AlertSystem
from store import Store
from scheduler import BatchScheduler
from timeseries import TimeSeriesAligner
from signals import TokenSignalAnalyzer
from indicators import TechnicalIndicatorEngine
from allocation import AllocationAnalyzer, RebalanceRecommender
from analyzers import PerformanceAnalyzer, ReturnCalculator, RiskMetricsEngine
from fetcher import DeveloperActivityClient, MarketDataClient
from errors import (
    AnalyticsError,
    InsufficientHistory,
    InvalidInput,
    UndefinedReturn,
    UpstreamUnavailable,
)
from models import (
    FailedAsset,
    MarketChart,
    Portfolio,
    PortfolioAnalysisRequest,
    PortfolioReport,
    RebalancePlan,
    SentimentRecord,
    TokenAnalysisRequest,
    TokenReport,
)
from utils import to_jsonable, validate_token_list

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

# Volume spikes are judged on hourly buckets of the last day
VOLUME_HISTORY_DAYS = 1


def _validate_request(model: Type[RequestT], **fields: Any) -> RequestT:
    """Builds a request model, surfacing validation failures as InvalidInput."""
    try:
        return model(**fields)
    except ValidationError as e:
        messages = []
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            messages.append(f"{field}: {error['msg']}")
        raise InvalidInput("; ".join(messages)) from e


class PortfolioAnalyticsOrchestrator:
    """Entry points for portfolio analysis, token analysis and rebalancing."""

    def __init__(
        self,
        config: Config,
        store: Store,
        market_data: Optional[MarketDataClient] = None,
        developer_client: Optional[DeveloperActivityClient] = None,
        cache: Optional[ResponseCache] = None,
        scheduler: Optional[BatchScheduler] = None,
    ) -> None:
        """
        Initializes the PortfolioAnalyticsOrchestrator.

        Args:
            config (Config): The configuration object.
            store (Store): Source of holdings, transactions and sentiment; sink for reports.
            market_data (Optional[MarketDataClient]): Built from config when omitted.
            developer_client (Optional[DeveloperActivityClient]): Built from config when omitted.
            cache (Optional[ResponseCache]): Shared response cache.
            scheduler (Optional[BatchScheduler]): Throttle for per-asset history fetches.
        """
        self.config = config
        self.store = store
        self.cache = cache if cache is not None else ResponseCache(config.cache_ttl_seconds)
        self.market_data = market_data or MarketDataClient.from_config(config, self.cache)
        self.developer_client = developer_client or DeveloperActivityClient.from_config(
            config, self.cache
        )
        self.scheduler = scheduler or BatchScheduler(
            batch_size=config.batch_size, delay=config.batch_delay_seconds
        )

        self.aligner = TimeSeriesAligner()
        self.return_calculator = ReturnCalculator()
        self.risk_engine = RiskMetricsEngine(risk_free_rate=config.risk_free_rate)
        self.performance_analyzer = PerformanceAnalyzer()
        self.indicator_engine = TechnicalIndicatorEngine()
        self.allocation_analyzer = AllocationAnalyzer()
        self.rebalance_recommender = RebalanceRecommender(
            threshold_pct=config.rebalance_threshold_pct,
            allocation_analyzer=self.allocation_analyzer,
        )
        self.signal_analyzer = TokenSignalAnalyzer()
        self.alert_system = AlertSystem(rebalance_threshold_pct=config.rebalance_threshold_pct)

    # ------------------------------------------------------------------
    # Portfolio analysis
    # ------------------------------------------------------------------

    def _load_portfolio(self, portfolio_id: str) -> Portfolio:
        portfolio = Portfolio.from_records(
            portfolio_id,
            self.store.read_holdings(portfolio_id),
            self.store.read_transactions(portfolio_id),
        )
        validate_token_list(portfolio.token_ids)
        return portfolio

    def _fetch_history(
        self, token_id: str, days: int
    ) -> Tuple[str, Optional[MarketChart], Optional[FailedAsset]]:
        """
        Fetches one asset's history without letting its failure escape.

        Returns:
            Tuple of (token_id, chart or None, failure or None).
        """
        try:
            chart = self.market_data.get_price_history(token_id, days=days)
        except Exception as e:
            # Use match/case for clean error categorization
            match e:
                case UpstreamUnavailable():
                    logger.warning(f"UPSTREAM ERROR - {token_id}: {e.message}")
                    return token_id, None, FailedAsset(token_id, e.message, e.status_code)

                case AnalyticsError():
                    logger.error(f"ANALYTICS ERROR - {token_id}: {e.message}")
                    return token_id, None, FailedAsset(token_id, e.message, e.status_code)

                case _:
                    error_msg = f"Unexpected error fetching {token_id}: {type(e).__name__}: {e}"
                    logger.exception(f"UNEXPECTED ERROR - {error_msg}")
                    return token_id, None, FailedAsset(token_id, error_msg)

        if chart is None:
            return token_id, None, FailedAsset(token_id, f"Token not found: {token_id}", 404)
        if not chart.prices:
            return token_id, None, FailedAsset(token_id, f"No price history for {token_id}")
        return token_id, chart, None

    def _fetch_all_histories(
        self, token_ids: List[str], days: int
    ) -> Tuple[Dict[str, MarketChart], List[FailedAsset]]:
        """Fans out history fetches in throttled batches."""
        tasks = [partial(self._fetch_history, token_id, days) for token_id in token_ids]
        results = self.scheduler.run_batched(
            tasks,
            batch_size=self.config.batch_size,
            delay=self.config.batch_delay_seconds,
        )

        charts: Dict[str, MarketChart] = {}
        failed: List[FailedAsset] = []
        for token_id, chart, failure in results:
            if failure is not None:
                failed.append(failure)
            else:
                charts[token_id] = chart

        logger.info(f"Fetched history for {len(charts)}/{len(token_ids)} assets")
        return charts, failed

    def analyze_portfolio(
        self,
        portfolio_id: str,
        timeframe: str = "30d",
        now_ms: Optional[int] = None,
    ) -> PortfolioReport:
        """
        Values a portfolio over the timeframe and computes returns, risk,
        allocation and performance.

        Per-asset fetch failures are reported in ``failed_assets``; the report
        still covers the assets that succeeded.

        Args:
            portfolio_id (str): Portfolio identifier.
            timeframe (str): One of 30d, 90d, 1y.
            now_ms (Optional[int]): Grid end in epoch milliseconds; defaults to now.

        Returns:
            PortfolioReport: The persisted report.

        Raises:
            InvalidInput: On a missing portfolio id or unknown timeframe.
            UpstreamUnavailable: If every asset's history fetch failed upstream.
        """
        request = _validate_request(
            PortfolioAnalysisRequest, portfolio_id=portfolio_id, timeframe=timeframe
        )
        logger.info(f"Analyzing portfolio {request.portfolio_id} over {request.timeframe}")
        self.cache.clear_expired()

        portfolio = self._load_portfolio(request.portfolio_id)
        charts: Dict[str, MarketChart] = {}
        failed: List[FailedAsset] = []

        if portfolio.holdings:
            charts, failed = self._fetch_all_histories(portfolio.token_ids, request.days)
            upstream_failures = [f for f in failed if f.status_code != 404]
            if not charts and upstream_failures:
                first = upstream_failures[0]
                raise UpstreamUnavailable(
                    f"All price history requests failed for portfolio "
                    f"{request.portfolio_id}: {first.error}",
                    status_code=first.status_code,
                )
        else:
            logger.info(f"Portfolio {request.portfolio_id} has no holdings")

        series_by_asset = {token_id: chart.prices for token_id, chart in charts.items()}
        grid = self.aligner.build_daily_grid(series_by_asset, now_ms=now_ms)
        daily_values = self.aligner.value_series(portfolio.holdings, series_by_asset, grid)

        try:
            returns = self.return_calculator.calculate(daily_values)
        except (InsufficientHistory, UndefinedReturn) as e:
            logger.info(f"Returns unavailable for {request.portfolio_id}: {e.message}")
            returns = None

        daily_returns = returns.daily_returns if returns else []
        latest_prices = self.aligner.latest_prices(series_by_asset)
        allocation = self.allocation_analyzer.current_allocation(portfolio.holdings, latest_prices)

        report = PortfolioReport(
            portfolio_id=request.portfolio_id,
            timeframe=request.timeframe,
            current_value=daily_values[-1].value if daily_values else 0.0,
            daily_values=daily_values,
            returns=returns,
            risk_metrics=self.risk_engine.calculate(daily_returns),
            allocation=allocation,
            performance=self.performance_analyzer.calculate(daily_values, daily_returns),
            profit_loss=self.allocation_analyzer.profit_loss(allocation),
            failed_assets=failed,
            transaction_count=len(portfolio.transactions),
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

        report.alerts = self.alert_system.check_portfolio(report)
        if any(h.target_allocation_pct is not None for h in portfolio.holdings.values()):
            plan = self.rebalance_recommender.plan(
                request.portfolio_id, portfolio.holdings, latest_prices
            )
            report.alerts.extend(self.alert_system.check_rebalance(plan))

        self.store.upsert_report(
            f"portfolio_analytics:{request.portfolio_id}:{request.timeframe}",
            to_jsonable(report),
        )
        return report

    # ------------------------------------------------------------------
    # Token analysis
    # ------------------------------------------------------------------

    @staticmethod
    def _section_result(name: str, token_id: str, future: Future) -> Any:
        """Unwraps one sub-section fetch; a failure degrades that section to None."""
        try:
            return future.result()
        except AnalyticsError as e:
            logger.warning(f"{name} unavailable for {token_id}: {e.message}")
        except ValidationError as e:
            logger.warning(f"{name} malformed for {token_id}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error fetching {name} for {token_id}: {e}")
        return None

    def analyze_token(self, token_id: str, timeframe: str = "24h") -> TokenReport:
        """
        Builds a token report from independent price, volume, developer and
        social signals, fetched concurrently.

        Each sub-section is None when its input is unavailable.

        Raises:
            InvalidInput: On a missing token id or unknown timeframe.
        """
        request = _validate_request(TokenAnalysisRequest, token_id=token_id, timeframe=timeframe)
        token_id = request.token_id
        logger.info(f"Analyzing token {token_id} over {request.timeframe}")

        with ThreadPoolExecutor(max_workers=4) as executor:
            futures = {
                "price history": executor.submit(
                    self.market_data.get_price_history, token_id, days=request.days
                ),
                "volume history": executor.submit(
                    self.market_data.get_price_history, token_id, days=VOLUME_HISTORY_DAYS
                ),
                "developer activity": executor.submit(
                    self.developer_client.search_repositories, token_id
                ),
                "sentiment": executor.submit(self._read_sentiment, token_id),
            }
            results = {
                name: self._section_result(name, token_id, future)
                for name, future in futures.items()
            }

        price_chart: Optional[MarketChart] = results["price history"]
        volume_chart: Optional[MarketChart] = results["volume history"]

        report = TokenReport(token_id=token_id, timeframe=request.timeframe)
        if price_chart is not None:
            prices = price_chart.close_prices
            report.price_analysis = self.signal_analyzer.analyze_price(prices)
            report.technical_indicators = self.indicator_engine.calculate(prices)
        if volume_chart is not None:
            report.volume_analysis = self.signal_analyzer.analyze_volume(
                volume_chart.total_volumes
            )
        report.developer_analysis = self.signal_analyzer.analyze_developer(
            results["developer activity"]
        )
        report.social_analysis = self.signal_analyzer.analyze_social(results["sentiment"])
        report.alerts = self.alert_system.check_token(report)
        report.generated_at = datetime.now(timezone.utc).isoformat()

        self.store.upsert_report(
            f"token_analytics:{token_id}:{request.timeframe}", to_jsonable(report)
        )
        return report

    def _read_sentiment(self, token_id: str) -> Optional[SentimentRecord]:
        record = self.store.read_sentiment(token_id)
        if record is None:
            return None
        return SentimentRecord.model_validate(record)

    # ------------------------------------------------------------------
    # Rebalancing
    # ------------------------------------------------------------------

    def recommend_rebalance(self, portfolio_id: str) -> RebalancePlan:
        """
        Compares current allocation, at the latest spot prices, with each
        holding's target allocation.

        Raises:
            InvalidInput: On a missing portfolio id.
            UpstreamUnavailable: If the price snapshot cannot be fetched.
        """
        request = _validate_request(PortfolioAnalysisRequest, portfolio_id=portfolio_id)
        portfolio = self._load_portfolio(request.portfolio_id)

        quotes = self.market_data.get_simple_price(portfolio.token_ids)
        snapshot = {token_id: quote.usd for token_id, quote in quotes.items()}

        plan = self.rebalance_recommender.plan(request.portfolio_id, portfolio.holdings, snapshot)
        if plan.needs_rebalance:
            logger.info(f"Portfolio {request.portfolio_id} needs rebalancing")

        self.store.upsert_report(f"portfolio_rebalance:{request.portfolio_id}", to_jsonable(plan))
        return plan

    @staticmethod
    def error_response(exc: Exception) -> Dict[str, Any]:
        """Converts a failure into the single user-visible error object."""
        if isinstance(exc, AnalyticsError):
            return exc.to_dict()
        return {"error": f"Internal error: {type(exc).__name__}"}

    def close(self) -> None:
        self.market_data.client.close()
        self.developer_client.client.close()
