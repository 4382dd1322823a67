"""
Tests for token price, volume, developer and social signals.
"""

import pytest
from datetime import datetime, timedelta, timezone
from models import RepositoryInfo, SentimentRecord, SentimentScore, VolumePoint
from signals import TokenSignalAnalyzer

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def analyzer():
    return TokenSignalAnalyzer()


def volumes(*values):
    return [VolumePoint(timestamp=i * 3_600_000, volume=v) for i, v in enumerate(values)]


class TestPriceAnalysis:
    """Test price change and trend classification."""

    def test_strong_upward_trend(self, analyzer):
        result = analyzer.analyze_price([100.0, 105.0, 120.0])

        assert result.price_change_percentage == pytest.approx(20.0)
        assert result.current_price == 120.0
        assert result.price_trend == "upward"
        assert result.trend_strength == "strong"

    def test_weak_downward_trend(self, analyzer):
        result = analyzer.analyze_price([100.0, 98.0, 95.0])

        assert result.price_trend == "downward"
        assert result.trend_strength == "weak"

    def test_flat_is_downward_and_weak(self, analyzer):
        result = analyzer.analyze_price([100.0, 100.0])

        assert result.price_change_percentage == 0.0
        assert result.volatility == 0.0
        assert result.price_trend == "downward"

    def test_volatility_is_population_std(self, analyzer):
        result = analyzer.analyze_price([100.0, 110.0, 99.0])

        # returns 0.10, -0.10
        assert result.volatility == pytest.approx(0.10)

    def test_insufficient_or_zero_start(self, analyzer):
        assert analyzer.analyze_price([100.0]) is None
        assert analyzer.analyze_price([0.0, 10.0]) is None


class TestVolumeAnalysis:
    """Test the volume spike heuristic."""

    def test_no_spikes(self, analyzer):
        result = analyzer.analyze_volume(volumes(*[100.0] * 24))

        assert result.average_volume == 100.0
        assert result.volume_spikes == 0
        assert result.volume_trend == "stable"
        assert result.unusual_activity is False

    def test_unusual_activity(self, analyzer):
        # 18 quiet hours, 6 hours at 10x: average 325, spike line 487.5
        result = analyzer.analyze_volume(volumes(*([100.0] * 18 + [1000.0] * 6)))

        assert result.volume_spikes == 6
        assert result.volume_trend == "increasing"
        assert result.unusual_activity is True

    def test_increasing_but_not_unusual(self, analyzer):
        result = analyzer.analyze_volume(volumes(*([100.0] * 20 + [1000.0] * 4)))

        assert result.volume_spikes == 4
        assert result.volume_trend == "increasing"
        assert result.unusual_activity is False

    def test_only_last_24_samples_count(self, analyzer):
        data = volumes(*([1000.0] * 10 + [100.0] * 24))

        result = analyzer.analyze_volume(data)

        assert result.average_volume == 100.0
        assert result.volume_spikes == 0

    def test_too_short(self, analyzer):
        assert analyzer.analyze_volume(volumes(100.0)) is None

    def test_five_minute_samples_cover_a_full_day(self, analyzer):
        # One elevated sample at the top of each hour for the first 12 hours
        data = [
            VolumePoint(
                timestamp=i * 300_000,
                volume=10_000.0 if i % 12 == 0 and i < 144 else 100.0,
            )
            for i in range(288)
        ]

        hourly = analyzer.hourly_volumes(data)
        result = analyzer.analyze_volume(data)

        assert len(hourly) == 24
        assert hourly[0] == pytest.approx(925.0)
        assert hourly[-1] == pytest.approx(100.0)
        assert result.average_volume == pytest.approx(512.5)
        assert result.volume_spikes == 12
        assert result.volume_trend == "increasing"
        assert result.unusual_activity is True

    def test_five_minute_samples_keep_last_24_hours(self, analyzer):
        # 30 hours of samples; only the first 6 hours are elevated
        data = [
            VolumePoint(timestamp=i * 300_000, volume=5_000.0 if i < 72 else 100.0)
            for i in range(360)
        ]

        result = analyzer.analyze_volume(data)

        assert result.average_volume == pytest.approx(100.0)
        assert result.volume_spikes == 0


class TestDeveloperAnalysis:
    """Test repository aggregation and the development score."""

    def test_score_components(self, analyzer):
        assert analyzer.development_score(1000, 500, 10) == 100
        assert analyzer.development_score(0, 0, 0) == 0
        assert analyzer.development_score(500, 0, 0) == 20
        assert analyzer.development_score(5000, 5000, 50) == 100

    def test_analyze_developer(self, analyzer):
        repos = [
            RepositoryInfo(name="core", stargazers_count=800, forks_count=200,
                           updated_at=NOW - timedelta(days=2)),
            RepositoryInfo(name="old", stargazers_count=200, forks_count=50,
                           updated_at=NOW - timedelta(days=90)),
            RepositoryInfo(name="unknown"),
        ]

        result = analyzer.analyze_developer(repos, now=NOW)

        assert result.total_repositories == 3
        assert result.total_stars == 1000
        assert result.total_forks == 250
        assert result.active_repositories == 1
        # 0.4 * 1 + 0.3 * 0.5 + 0.3 * 0.1 = 0.58
        assert result.development_score == 58

    def test_naive_timestamps_treated_as_utc(self, analyzer):
        repos = [RepositoryInfo(name="x", updated_at=datetime(2024, 5, 30))]

        assert analyzer.analyze_developer(repos, now=NOW).active_repositories == 1

    def test_empty_result_set(self, analyzer):
        result = analyzer.analyze_developer([], now=NOW)

        assert result.total_repositories == 0
        assert result.development_score == 0

    def test_unavailable(self, analyzer):
        assert analyzer.analyze_developer(None) is None


class TestSocialAnalysis:
    """Test sentiment pass-through and trend."""

    @pytest.mark.parametrize(
        "score,magnitude,trend",
        [
            (0.5, 0.8, "bullish"),
            (-0.5, 0.8, "bearish"),
            (0.5, 0.3, "neutral"),
            (0.1, 0.9, "neutral"),
            (None, 0.9, "neutral"),
        ],
    )
    def test_sentiment_trend(self, analyzer, score, magnitude, trend):
        assert analyzer.sentiment_trend(score, magnitude) == trend

    def test_analyze_social(self, analyzer):
        record = SentimentRecord(
            token_id="bitcoin",
            overall_sentiment=SentimentScore(
                score=0.4, magnitude=0.7, mentions=120,
                positive_percentage=60.0, negative_percentage=10.0, neutral_percentage=30.0,
            ),
        )

        result = analyzer.analyze_social(record)

        assert result.sentiment_score == 0.4
        assert result.total_mentions == 120
        assert result.positive_percentage == 60.0
        assert result.sentiment_trend == "bullish"

    def test_absent_figures_stay_none(self, analyzer):
        record = SentimentRecord(token_id="bitcoin", overall_sentiment=SentimentScore(score=0.1))

        result = analyzer.analyze_social(record)

        assert result.sentiment_score == 0.1
        assert result.total_mentions is None
        assert result.positive_percentage is None
        assert result.sentiment_trend == "neutral"

    def test_missing_overall_sentiment(self, analyzer):
        result = analyzer.analyze_social(SentimentRecord(token_id="bitcoin"))

        assert result.sentiment_score is None
        assert result.sentiment_trend == "neutral"

    def test_no_record(self, analyzer):
        assert analyzer.analyze_social(None) is None
