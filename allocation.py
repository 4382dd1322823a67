"""
Current allocation and rebalancing against target allocations.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from constants import AnalysisThresholds
from models import (
    AllocationEntry,
    Holding,
    ProfitLossSummary,
    RebalancePlan,
    RebalanceRecommendation,
)
from utils import finite_or_none

logger = logging.getLogger(__name__)


def _return_pct(pnl: Optional[float], cost: float) -> Optional[float]:
    if pnl is None or cost <= 0:
        return None
    return finite_or_none(pnl / cost * 100)


class AllocationAnalyzer:
    """Values each holding against a single price snapshot."""

    def current_allocation(
        self, holdings: Mapping[str, Holding], price_snapshot: Mapping[str, Optional[float]]
    ) -> List[AllocationEntry]:
        """
        Computes value and weight per holding.

        A holding with no price in the snapshot is valued at 0 and keeps
        ``price=None`` so callers can tell it apart from a worthless position.
        Weights sum to 1, or are all 0 when the total value is 0. Cost basis
        is ``amount * purchase_price``; profit/loss is None for an unpriced
        holding and the return percentage is None when the cost basis is 0.

        Args:
            holdings (Mapping[str, Holding]): Holdings keyed by token id.
            price_snapshot (Mapping[str, Optional[float]]): Latest price per token id.

        Returns:
            List[AllocationEntry]: One entry per holding, in holding order.
        """
        valued = []
        for token_id, holding in holdings.items():
            price = price_snapshot.get(token_id)
            value = holding.amount * price if price is not None else 0.0
            valued.append((holding, price, value))

        total_value = sum(value for _, _, value in valued)

        entries = []
        for holding, price, value in valued:
            cost_basis = holding.amount * holding.purchase_price
            pnl = value - cost_basis if price is not None else None
            entries.append(
                AllocationEntry(
                    token_id=holding.token_id,
                    amount=holding.amount,
                    value=value,
                    weight=value / total_value if total_value > 0 else 0.0,
                    price=price,
                    cost_basis=cost_basis,
                    unrealized_pnl=pnl,
                    return_pct=_return_pct(pnl, cost_basis),
                )
            )
        return entries

    @staticmethod
    def total_value(entries: List[AllocationEntry]) -> float:
        return sum(entry.value for entry in entries)

    def profit_loss(self, entries: List[AllocationEntry]) -> Optional[ProfitLossSummary]:
        """
        Portfolio totals of value, cost basis and unrealized profit/loss.

        Unpriced holdings count at value 0. Returns None for an empty portfolio.
        """
        if not entries:
            return None
        total_value = self.total_value(entries)
        total_cost = sum(entry.cost_basis for entry in entries)
        pnl = total_value - total_cost
        return ProfitLossSummary(
            total_value=total_value,
            total_cost=total_cost,
            unrealized_pnl=pnl,
            return_pct=_return_pct(pnl, total_cost),
        )


class RebalanceRecommender:
    """Target-vs-current allocation deltas and suggested unit adjustments."""

    def __init__(
        self,
        threshold_pct: float = AnalysisThresholds.REBALANCE_DRIFT_PCT,
        allocation_analyzer: Optional[AllocationAnalyzer] = None,
    ) -> None:
        """
        Initializes the RebalanceRecommender.

        Args:
            threshold_pct (float): Drift in percentage points that makes rebalancing worth a notification.
            allocation_analyzer (Optional[AllocationAnalyzer]): Analyzer used by plan().
        """
        self.threshold_pct = threshold_pct
        self.allocation_analyzer = allocation_analyzer or AllocationAnalyzer()

    def recommend(
        self,
        entries: List[AllocationEntry],
        targets: Mapping[str, Optional[float]],
        total_value: float,
    ) -> List[RebalanceRecommendation]:
        """
        Builds a recommendation for every entry that has a target allocation.

        ``delta = target_pct - current_pct`` and
        ``adjustment_amount = (delta / 100 * total_value) / price``; the adjustment
        is None when the entry has no usable price.
        """
        recommendations = []
        for entry in entries:
            target = targets.get(entry.token_id)
            if target is None:
                continue

            current_pct = entry.weight * 100
            delta = target - current_pct
            if entry.price:
                adjustment = finite_or_none((delta / 100 * total_value) / entry.price)
            else:
                logger.warning(f"No price for {entry.token_id}; adjustment amount unavailable")
                adjustment = None

            recommendations.append(
                RebalanceRecommendation(
                    token_id=entry.token_id,
                    current_allocation_pct=current_pct,
                    target_allocation_pct=target,
                    delta_pct=delta,
                    adjustment_amount=adjustment,
                )
            )
        return recommendations

    def needs_rebalance(self, recommendations: List[RebalanceRecommendation]) -> bool:
        """True when any holding drifts more than the threshold from its target."""
        return any(abs(r.delta_pct) > self.threshold_pct for r in recommendations)

    def plan(
        self,
        portfolio_id: str,
        holdings: Mapping[str, Holding],
        price_snapshot: Mapping[str, Optional[float]],
    ) -> RebalancePlan:
        """Values the holdings and produces the full rebalance plan."""
        entries = self.allocation_analyzer.current_allocation(holdings, price_snapshot)
        total_value = self.allocation_analyzer.total_value(entries)
        targets: Dict[str, Optional[float]] = {
            token_id: holding.target_allocation_pct for token_id, holding in holdings.items()
        }
        recommendations = self.recommend(entries, targets, total_value)

        return RebalancePlan(
            portfolio_id=portfolio_id,
            total_value=total_value,
            recommendations=recommendations,
            needs_rebalance=self.needs_rebalance(recommendations),
            threshold_pct=self.threshold_pct,
            unpriced_tokens=[e.token_id for e in entries if e.price is None],
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
