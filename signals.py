"""
Per-token market, developer and social signal sub-sections.
"""

import logging
import numpy as np
import pandas as pd
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from constants import AnalysisThresholds, DevelopmentScore, TimeConstants
from models import (
    DeveloperAnalysis,
    PriceAnalysis,
    RepositoryInfo,
    SentimentRecord,
    SocialAnalysis,
    VolumeAnalysis,
    VolumePoint,
)

logger = logging.getLogger(__name__)


class TokenSignalAnalyzer:
    """Builds the independent sub-sections of a token report.

    Each analysis returns None when its input is missing or too short, so one
    unavailable signal never blocks the others.
    """

    @staticmethod
    def analyze_price(prices: Sequence[float]) -> Optional[PriceAnalysis]:
        """Change, volatility and trend over the price window."""
        if len(prices) < 2:
            return None

        first_price, last_price = prices[0], prices[-1]
        if first_price == 0:
            logger.warning("First price is zero; price change undefined")
            return None

        change_pct = (last_price - first_price) / first_price * 100

        arr = np.asarray(prices, dtype=float)
        previous = arr[:-1]
        valid = previous != 0
        returns = (arr[1:][valid] - previous[valid]) / previous[valid]
        volatility = float(np.std(returns)) if returns.size else 0.0

        return PriceAnalysis(
            price_change_percentage=change_pct,
            volatility=volatility,
            current_price=last_price,
            price_trend="upward" if change_pct > 0 else "downward",
            trend_strength=(
                "strong" if abs(change_pct) > AnalysisThresholds.STRONG_TREND_PCT else "weak"
            ),
        )

    @staticmethod
    def hourly_volumes(volumes: Sequence[VolumePoint]) -> List[float]:
        """Mean volume per clock hour, oldest first; hours without samples are skipped."""
        series = pd.Series(
            [v.volume for v in volumes],
            index=pd.to_datetime([v.timestamp for v in volumes], unit="ms", utc=True),
            dtype=float,
        ).sort_index()
        return series.resample("1h").mean().dropna().tolist()

    @staticmethod
    def analyze_volume(volumes: Sequence[VolumePoint]) -> Optional[VolumeAnalysis]:
        """
        Volume spike heuristic over the trailing 24 hours.

        Samples are averaged into clock-hour buckets first; a 1-day range
        arrives at roughly 5-minute granularity. An hour above 1.5x the trailing average
        is a spike; more than 3 spikes is an increasing trend and more than 5 is
        unusual activity.
        """
        if len(volumes) < 2:
            return None

        hourly = TokenSignalAnalyzer.hourly_volumes(volumes)
        recent = hourly[-TimeConstants.VOLUME_LOOKBACK_HOURS :]
        average = sum(recent) / len(recent)
        spikes = sum(
            1 for volume in recent if volume > average * AnalysisThresholds.VOLUME_SPIKE_MULTIPLIER
        )

        return VolumeAnalysis(
            average_volume=average,
            volume_spikes=spikes,
            volume_trend=(
                "increasing" if spikes > AnalysisThresholds.VOLUME_TREND_SPIKES else "stable"
            ),
            unusual_activity=spikes > AnalysisThresholds.UNUSUAL_ACTIVITY_SPIKES,
        )

    @staticmethod
    def development_score(stars: int, forks: int, active_repos: int) -> int:
        """0-100 score weighting normalized stars, forks and active repositories."""
        normalized_stars = min(stars / DevelopmentScore.STARS_NORMALIZER, 1)
        normalized_forks = min(forks / DevelopmentScore.FORKS_NORMALIZER, 1)
        normalized_active = min(active_repos / DevelopmentScore.ACTIVE_REPOS_NORMALIZER, 1)

        return round(
            DevelopmentScore.MAX_SCORE
            * (
                normalized_stars * DevelopmentScore.STAR_WEIGHT
                + normalized_forks * DevelopmentScore.FORK_WEIGHT
                + normalized_active * DevelopmentScore.ACTIVE_WEIGHT
            )
        )

    def analyze_developer(
        self, repositories: Optional[List[RepositoryInfo]], now: Optional[datetime] = None
    ) -> Optional[DeveloperAnalysis]:
        """Repository counts and development score; None if the signal was unavailable."""
        if repositories is None:
            return None

        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=TimeConstants.ACTIVE_REPO_DAYS)

        def _is_active(repo: RepositoryInfo) -> bool:
            if repo.updated_at is None:
                return False
            updated = repo.updated_at
            if updated.tzinfo is None:
                updated = updated.replace(tzinfo=timezone.utc)
            return updated > cutoff

        total_stars = sum(r.stargazers_count for r in repositories)
        total_forks = sum(r.forks_count for r in repositories)
        active = sum(1 for r in repositories if _is_active(r))

        return DeveloperAnalysis(
            total_repositories=len(repositories),
            total_stars=total_stars,
            total_forks=total_forks,
            active_repositories=active,
            development_score=self.development_score(total_stars, total_forks, active),
        )

    @staticmethod
    def sentiment_trend(score: Optional[float], magnitude: Optional[float]) -> str:
        if score is None or magnitude is None:
            return "neutral"
        if magnitude > AnalysisThresholds.SENTIMENT_MAGNITUDE_THRESHOLD:
            if score > AnalysisThresholds.SENTIMENT_SCORE_THRESHOLD:
                return "bullish"
            if score < -AnalysisThresholds.SENTIMENT_SCORE_THRESHOLD:
                return "bearish"
        return "neutral"

    def analyze_social(self, record: Optional[SentimentRecord]) -> Optional[SocialAnalysis]:
        """Stored sentiment figures; absent figures stay None."""
        if record is None:
            return None

        overall = record.overall_sentiment
        if overall is None:
            return SocialAnalysis(
                sentiment_score=None,
                total_mentions=None,
                positive_percentage=None,
                negative_percentage=None,
                neutral_percentage=None,
                sentiment_trend="neutral",
            )

        return SocialAnalysis(
            sentiment_score=overall.score,
            total_mentions=overall.mentions,
            positive_percentage=overall.positive_percentage,
            negative_percentage=overall.negative_percentage,
            neutral_percentage=overall.neutral_percentage,
            sentiment_trend=self.sentiment_trend(overall.score, overall.magnitude),
        )
