"""
Alert system for significant portfolio and token conditions.
"""

import logging
from typing import List, Optional
from models import PortfolioReport, RebalancePlan, TokenReport
from constants import AnalysisThresholds

logger = logging.getLogger(__name__)


class AlertSystem:
    """Monitor portfolio and token reports for conditions worth a notification."""

    def __init__(
        self,
        drawdown_threshold: float = AnalysisThresholds.LARGE_DRAWDOWN,
        var_threshold: float = AnalysisThresholds.VALUE_AT_RISK_95_THRESHOLD,
        rebalance_threshold_pct: float = AnalysisThresholds.REBALANCE_DRIFT_PCT,
    ) -> None:
        """
        Initializes the AlertSystem with given thresholds.

        Args:
            drawdown_threshold (float): Max drawdown fraction above which to alert.
            var_threshold (float): Daily 95% VaR above which to alert.
            rebalance_threshold_pct (float): Allocation drift in percentage points above which to alert.
        """
        self.drawdown_threshold = drawdown_threshold
        self.var_threshold = var_threshold
        self.rebalance_threshold_pct = rebalance_threshold_pct

    def check_portfolio(self, report: PortfolioReport) -> List[str]:
        """
        Checks for alert conditions on a portfolio report.

        Args:
            report (PortfolioReport): The portfolio report to check.

        Returns:
            List[str]: A list of alerts.
        """
        alerts = []
        risk = report.risk_metrics

        # Drawdown alerts - max_drawdown is a positive fraction of the running peak
        if risk and risk.max_drawdown is not None and risk.max_drawdown > self.drawdown_threshold:
            alerts.append(f"Large drawdown: {risk.max_drawdown*100:.1f}%")

        # VaR alerts - var_95 is a positive daily loss
        if risk and risk.var_95 is not None and risk.var_95 > self.var_threshold:
            alerts.append(f"High VaR (95%): {risk.var_95*100:.2f}%")

        for failed in report.failed_assets:
            alerts.append(f"Price history unavailable for {failed.token_id}")

        return alerts

    def check_rebalance(self, plan: Optional[RebalancePlan]) -> List[str]:
        """One alert per holding drifting beyond the rebalance threshold."""
        if plan is None:
            return []

        alerts = []
        for rec in plan.recommendations:
            if abs(rec.delta_pct) > self.rebalance_threshold_pct:
                direction = "Increase" if rec.delta_pct > 0 else "Reduce"
                alerts.append(
                    f"Rebalance {rec.token_id}: {direction} allocation from "
                    f"{rec.current_allocation_pct:.1f}% to {rec.target_allocation_pct:.1f}%"
                )
        return alerts

    def check_token(self, report: TokenReport) -> List[str]:
        """
        Checks for alert conditions on a token report.

        Args:
            report (TokenReport): The token report to check.

        Returns:
            List[str]: A list of alerts.
        """
        alerts = []

        # RSI alerts - check if technical_indicators exists and rsi is not None
        indicators = report.technical_indicators
        if indicators and indicators.rsi_14 is not None:
            if indicators.rsi_14 > AnalysisThresholds.OVERBOUGHT_RSI:
                alerts.append(f"Overbought (RSI: {indicators.rsi_14:.0f})")
            elif indicators.rsi_14 < AnalysisThresholds.OVERSOLD_RSI:
                alerts.append(f"Oversold (RSI: {indicators.rsi_14:.0f})")

        volume = report.volume_analysis
        if volume and volume.unusual_activity:
            alerts.append(f"Unusual volume activity: {volume.volume_spikes} spikes in 24h")

        price = report.price_analysis
        if price and price.trend_strength == "strong":
            alerts.append(
                f"Strong {price.price_trend} trend: {price.price_change_percentage:+.1f}%"
            )

        return alerts
