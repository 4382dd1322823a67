"""
Tests for the in-memory store.
"""

import json
import pytest
from store import InMemoryStore


@pytest.fixture
def store_data():
    return {
        "portfolios": {
            "p1": {
                "holdings": [{"token_id": "bitcoin", "amount": 1.5, "target_allocation": 60}],
                "transactions": [{"token_id": "bitcoin", "timestamp": 1, "type": "buy", "amount": 1.5}],
            }
        },
        "sentiment": {"bitcoin": {"overall_sentiment": {"score": 0.3, "magnitude": 0.6}}},
    }


@pytest.fixture
def store(store_data):
    return InMemoryStore(
        portfolios=store_data["portfolios"], sentiment=store_data["sentiment"]
    )


class TestReads:
    """Test reading seeded records."""

    def test_read_holdings(self, store):
        holdings = store.read_holdings("p1")

        assert holdings == [{"token_id": "bitcoin", "amount": 1.5, "target_allocation": 60}]

    def test_reads_are_copies(self, store):
        store.read_holdings("p1")[0]["amount"] = 999

        assert store.read_holdings("p1")[0]["amount"] == 1.5

    def test_unknown_portfolio(self, store):
        assert store.read_holdings("nope") == []
        assert store.read_transactions("nope") == []

    def test_read_transactions(self, store):
        assert store.read_transactions("p1")[0]["type"] == "buy"

    def test_read_sentiment(self, store):
        record = store.read_sentiment("bitcoin")

        assert record["token_id"] == "bitcoin"
        assert record["overall_sentiment"]["score"] == 0.3
        assert store.read_sentiment("ethereum") is None


class TestReports:
    """Test upserts."""

    def test_upsert_replaces(self, store):
        store.upsert_report("portfolio_analytics:p1:30d", {"v": 1})
        store.upsert_report("portfolio_analytics:p1:30d", {"v": 2})

        assert store.get_report("portfolio_analytics:p1:30d") == {"v": 2}
        assert store.report_keys == ["portfolio_analytics:p1:30d"]

    def test_missing_report(self, store):
        assert store.get_report("nope") is None


class TestJsonLoader:
    """Test loading from a JSON file."""

    def test_from_json_file(self, tmp_path, store_data):
        path = tmp_path / "store.json"
        path.write_text(json.dumps(store_data))

        store = InMemoryStore.from_json_file(path)

        assert store.read_holdings("p1")[0]["token_id"] == "bitcoin"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            InMemoryStore.from_json_file(tmp_path / "missing.json")

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(ValueError):
            InMemoryStore.from_json_file(path)
