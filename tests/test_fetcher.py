"""
Comprehensive tests for upstream fetching with retries and caching.
"""

import pytest
import requests
from unittest.mock import Mock
from tenacity import wait_none
from cache import ResponseCache
from config import Config
from errors import InvalidInput, UpstreamUnavailable
from fetcher import DeveloperActivityClient, MarketDataClient, ResilientFetchClient


def make_response(status_code=200, payload=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.reason = reason
    response.json.return_value = payload
    return response


@pytest.fixture
def client():
    """Fetch client that retries without waiting."""
    return ResilientFetchClient(base_url="https://api.example.com/v3", wait=wait_none())


@pytest.fixture
def cache():
    return ResponseCache(ttl_seconds=60)


@pytest.fixture
def market_data(client, cache):
    return MarketDataClient(client, cache)


@pytest.fixture
def chart_payload():
    return {
        "prices": [[2000, 20.0], [1000, 10.0], [3000, 30.0]],
        "total_volumes": [[1000, 5.0], [2000, 6.0], [3000, 7.0]],
    }


class TestSessionConfiguration:
    """Test session and connection pool configuration."""

    def test_adapter_does_not_retry(self, client):
        """Retries belong to tenacity, not the transport adapter."""
        adapter = client.session.get_adapter("https://api.example.com")

        assert adapter.max_retries.total == 0

    def test_default_headers(self):
        client = ResilientFetchClient(headers={"x-cg-pro-api-key": "secret"})

        assert client.session.headers["Accept"] == "application/json"
        assert client.session.headers["x-cg-pro-api-key"] == "secret"

    def test_invalid_max_retries(self):
        with pytest.raises(ValueError):
            ResilientFetchClient(max_retries=0)

    def test_relative_and_absolute_urls(self, client):
        assert client._url("/coins/bitcoin") == "https://api.example.com/v3/coins/bitcoin"
        assert client._url("https://other.example.com/x") == "https://other.example.com/x"


class TestRetryPolicy:
    """Test status handling and retry behaviour."""

    def test_success_returns_json(self, client):
        client.session.get = Mock(return_value=make_response(200, {"ok": True}))

        assert client.fetch("/ping") == {"ok": True}
        assert client.session.get.call_count == 1

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_status_then_success(self, client, status):
        client.session.get = Mock(
            side_effect=[make_response(status), make_response(200, {"ok": True})]
        )

        assert client.fetch("/ping") == {"ok": True}
        assert client.session.get.call_count == 2

    def test_retries_exhausted(self, client):
        """Three 503s in a row give up with the last status code."""
        client.session.get = Mock(return_value=make_response(503, reason="Unavailable"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.fetch("/ping")

        assert exc_info.value.status_code == 503
        assert client.session.get.call_count == 3

    def test_not_found_returns_none_without_retry(self, client):
        client.session.get = Mock(return_value=make_response(404, reason="Not Found"))

        assert client.fetch("/coins/nope") is None
        assert client.session.get.call_count == 1

    def test_non_retryable_client_error(self, client):
        client.session.get = Mock(return_value=make_response(401, reason="Unauthorized"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.fetch("/ping")

        assert exc_info.value.status_code == 401
        assert client.session.get.call_count == 1

    def test_connection_errors_retried(self, client):
        client.session.get = Mock(
            side_effect=[
                requests.ConnectionError("reset"),
                requests.Timeout("slow"),
                make_response(200, [1, 2]),
            ]
        )

        assert client.fetch("/ping") == [1, 2]
        assert client.session.get.call_count == 3

    def test_persistent_network_error(self, client):
        client.session.get = Mock(side_effect=requests.ConnectionError("down"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            client.fetch("/ping")

        assert exc_info.value.status_code is None
        assert client.session.get.call_count == 3

    def test_invalid_json(self, client):
        response = make_response(200)
        response.json.side_effect = ValueError("not json")
        client.session.get = Mock(return_value=response)

        with pytest.raises(UpstreamUnavailable):
            client.fetch("/ping")

    def test_timeout_passed_to_session(self, client):
        client.session.get = Mock(return_value=make_response(200, {}))

        client.fetch("/ping", params={"a": 1}, timeout=5)

        _, kwargs = client.session.get.call_args
        assert kwargs["timeout"] == 5
        assert kwargs["params"] == {"a": 1}


class TestMarketDataClient:
    """Test market-data endpoints."""

    def test_price_history_parsed_and_sorted(self, market_data, chart_payload):
        market_data.client.session.get = Mock(return_value=make_response(200, chart_payload))

        chart = market_data.get_price_history("Bitcoin", days=30)

        assert [p.timestamp for p in chart.prices] == [1000, 2000, 3000]
        assert chart.close_prices == [10.0, 20.0, 30.0]
        assert chart.latest_price == 30.0
        args, kwargs = market_data.client.session.get.call_args
        assert args[0].endswith("/coins/bitcoin/market_chart")
        assert kwargs["params"] == {"vs_currency": "usd", "days": "30"}

    def test_price_history_cached(self, market_data, chart_payload):
        market_data.client.session.get = Mock(return_value=make_response(200, chart_payload))

        market_data.get_price_history("bitcoin", days=30)
        market_data.get_price_history("bitcoin", days=30)
        market_data.get_price_history("bitcoin", days=7)

        assert market_data.client.session.get.call_count == 2

    def test_unknown_token_returns_none(self, market_data):
        market_data.client.session.get = Mock(return_value=make_response(404))

        assert market_data.get_price_history("nope") is None

    def test_malformed_chart(self, market_data):
        market_data.client.session.get = Mock(
            return_value=make_response(200, {"prices": [[1000]]})
        )

        with pytest.raises(UpstreamUnavailable):
            market_data.get_price_history("bitcoin")

    def test_invalid_token_id(self, market_data):
        with pytest.raises(InvalidInput):
            market_data.get_price_history("")

    def test_simple_price(self, market_data):
        payload = {
            "bitcoin": {"usd": 50000.0, "usd_24h_change": 1.5, "usd_24h_vol": 1e9},
            "ethereum": {"usd": 3000.0},
        }
        market_data.client.session.get = Mock(return_value=make_response(200, payload))

        quotes = market_data.get_simple_price(["ethereum", "bitcoin"])

        assert quotes["bitcoin"].usd == 50000.0
        assert quotes["bitcoin"].usd_24h_change == 1.5
        assert quotes["ethereum"].usd_24h_vol is None
        _, kwargs = market_data.client.session.get.call_args
        assert kwargs["params"]["ids"] == "bitcoin,ethereum"
        assert kwargs["params"]["include_24hr_change"] == "true"

    def test_simple_price_empty(self, market_data):
        market_data.client.session.get = Mock()

        assert market_data.get_simple_price([]) == {}
        market_data.client.session.get.assert_not_called()

    def test_from_config_sets_api_key_header(self, cache):
        config = Config(coingecko_api_key="cg-test-key-123")

        market_data = MarketDataClient.from_config(config, cache)

        assert market_data.client.session.headers["x-cg-pro-api-key"] == "cg-test-key-123"


class TestDeveloperActivityClient:
    """Test repository search."""

    @pytest.fixture
    def developer_client(self, cache):
        client = ResilientFetchClient(base_url="https://api.github.test", wait=wait_none())
        return DeveloperActivityClient(client, cache)

    def test_search_repositories(self, developer_client):
        payload = {
            "items": [
                {"name": "core", "stargazers_count": 100, "forks_count": 10,
                 "updated_at": "2024-01-01T00:00:00Z"},
                {"name": "docs"},
            ]
        }
        developer_client.client.session.get = Mock(return_value=make_response(200, payload))

        repos = developer_client.search_repositories("bitcoin")

        assert len(repos) == 2
        assert repos[0].stargazers_count == 100
        assert repos[1].forks_count == 0
        _, kwargs = developer_client.client.session.get.call_args
        assert kwargs["params"] == {"q": "bitcoin cryptocurrency"}

    def test_search_not_found(self, developer_client):
        developer_client.client.session.get = Mock(return_value=make_response(404))

        assert developer_client.search_repositories("bitcoin") is None
