"""
Alignment of irregular per-asset price series onto a common daily grid.
"""

import time
import logging
import numpy as np
from typing import Dict, List, Mapping, Optional, Sequence

from constants import TimeConstants
from models import DailyValue, Holding, PricePoint

logger = logging.getLogger(__name__)


class TimeSeriesAligner:
    """Builds a fixed-step daily grid and resolves prices by nearest timestamp."""

    def __init__(self, step_ms: int = TimeConstants.MS_PER_DAY) -> None:
        self.step_ms = step_ms

    def build_daily_grid(
        self,
        series_by_asset: Mapping[str, Sequence[PricePoint]],
        now_ms: Optional[int] = None,
    ) -> List[int]:
        """
        Builds the common daily timestamp grid.

        Starts at the earliest first timestamp across all series and steps by one
        day up to and including ``now_ms``.

        Args:
            series_by_asset (Mapping[str, Sequence[PricePoint]]): Ascending series per token.
            now_ms (Optional[int]): Grid end in epoch milliseconds; defaults to the current time.

        Returns:
            List[int]: Ascending grid timestamps; empty if no series has data.
        """
        first_timestamps = [series[0].timestamp for series in series_by_asset.values() if series]
        if not first_timestamps:
            return []

        start = min(first_timestamps)
        end = int(time.time() * 1000) if now_ms is None else now_ms
        if end < start:
            logger.warning(f"Grid end {end} precedes first price {start}; using single point")
            return [start]

        return list(range(start, end + 1, self.step_ms))

    @staticmethod
    def price_at(series: Sequence[PricePoint], timestamp: int) -> Optional[float]:
        """
        Returns the price whose timestamp is nearest to ``timestamp``.

        Ties go to the first point in iteration order. None for an empty series.
        """
        if not series:
            return None
        timestamps = np.fromiter((p.timestamp for p in series), dtype=np.int64, count=len(series))
        # argmin returns the first index on ties
        nearest = int(np.argmin(np.abs(timestamps - np.int64(timestamp))))
        return series[nearest].price

    def value_series(
        self,
        holdings: Mapping[str, Holding],
        series_by_asset: Mapping[str, Sequence[PricePoint]],
        grid: Sequence[int],
    ) -> List[DailyValue]:
        """
        Values the whole portfolio at each grid timestamp.

        A holding without a resolvable price contributes 0 at that timestamp; this
        is the only place where a missing price is treated as zero.
        """
        daily_values: List[DailyValue] = []
        for timestamp in grid:
            total = 0.0
            for token_id, holding in holdings.items():
                price = self.price_at(series_by_asset.get(token_id, ()), timestamp)
                if price is not None:
                    total += holding.amount * price
            daily_values.append(DailyValue(timestamp=timestamp, value=total))
        return daily_values

    def latest_prices(
        self, series_by_asset: Mapping[str, Sequence[PricePoint]]
    ) -> Dict[str, float]:
        """Last observed price per token, skipping empty series."""
        return {
            token_id: series[-1].price
            for token_id, series in series_by_asset.items()
            if series
        }
