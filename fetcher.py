"""
Upstream data fetching with retries and response caching.
"""

import logging
import requests
from requests import Session
from requests.adapters import HTTPAdapter
from pydantic import ValidationError
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential_jitter,
    retry_if_exception_type,
    before_sleep_log,
)
from cache import ResponseCache
from constants import Defaults, RetryPolicy
from errors import NotFound, UpstreamUnavailable
from models import MarketChart, RepositoryInfo, SimplePriceQuote
from utils import validate_token_id, validate_token_list

logger = logging.getLogger(__name__)


class RetryableStatusError(Exception):
    """Transient HTTP status; raised inside the retry loop only."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code


TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout, RetryableStatusError)


class ResilientFetchClient:
    """Single outbound GET with timeout, exponential-backoff retry and status policy."""

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        max_retries: int = RetryPolicy.MAX_ATTEMPTS,
        wait: Optional[Callable] = None,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
    ) -> None:
        """
        Initializes the ResilientFetchClient.

        Args:
            base_url (str): Prefix for relative request paths.
            headers (Optional[Mapping[str, str]]): Headers sent with every request.
            timeout (float): Default per-request timeout in seconds.
            max_retries (int): Total attempts per request, first try included.
            wait (Optional[Callable]): tenacity wait strategy; exponential with jitter by default.
            pool_connections (int): The number of connection pools.
            pool_maxsize (int): The maximum number of connections per pool.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.wait = wait or wait_exponential_jitter(
            initial=RetryPolicy.BACKOFF_INITIAL_SECONDS,
            max=RetryPolicy.BACKOFF_MAX_SECONDS,
            jitter=RetryPolicy.BACKOFF_JITTER_SECONDS,
        )
        self.session = self._create_pooled_session(pool_connections, pool_maxsize)
        if headers:
            self.session.headers.update(headers)

    def _create_pooled_session(
        self, pool_connections: int = 10, pool_maxsize: int = 10
    ) -> Session:
        """Create a requests Session with connection pooling.

        Retries are driven by tenacity in fetch(), so the adapter itself never retries.

        Args:
            pool_connections: Number of connection pools
            pool_maxsize: Max connections per pool

        Returns:
            Configured Session object
        """
        session = Session()

        adapter = HTTPAdapter(
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            max_retries=0,
            pool_block=False,  # Don't block when pool is full
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json"})

        logger.debug(f"Created HTTP session with connection pool (size: {pool_maxsize})")
        return session

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request_once(
        self,
        url: str,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]],
        timeout: float,
    ) -> Any:
        """Issue one GET and classify the outcome."""
        response = self.session.get(url, params=params, headers=headers, timeout=timeout)
        status = response.status_code

        if status == RetryPolicy.NOT_FOUND_STATUS:
            raise NotFound(f"Resource not found: {url}", status_code=status)
        if status in RetryPolicy.RETRYABLE_STATUS_CODES:
            raise RetryableStatusError(status, url)
        if not response.ok:
            raise UpstreamUnavailable(
                f"API Error: {status} - {response.reason}", status_code=status
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Invalid JSON from {url}: {e}", status_code=status
            ) from e

    def fetch(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        """
        Fetches and decodes a JSON resource.

        Connection errors, timeouts and HTTP 429/500/502/503/504 are retried with
        exponential backoff. A 404 is a valid "not found" result and returns None.

        Args:
            path (str): Path relative to base_url, or an absolute URL.
            params (Optional[Mapping[str, Any]]): Query parameters.
            headers (Optional[Mapping[str, str]]): Extra headers for this request.
            timeout (Optional[float]): Overrides the default timeout.

        Returns:
            Optional[Any]: Decoded JSON body, or None if the resource does not exist.

        Raises:
            UpstreamUnavailable: If retries are exhausted or the status is not retryable.
        """
        url = self._url(path)
        timeout = self.timeout if timeout is None else timeout

        retryer = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.wait,
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            return retryer(self._request_once, url, params, headers, timeout)
        except NotFound as e:
            logger.warning(e.message)
            return None
        except RetryableStatusError as e:
            logger.error(f"Giving up on {url} after {self.max_retries} attempts: {e}")
            raise UpstreamUnavailable(
                f"Upstream unavailable after {self.max_retries} attempts: {e}",
                status_code=e.status_code,
            ) from e
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise UpstreamUnavailable(
                f"Network error after {self.max_retries} attempts: {type(e).__name__}"
            ) from e

    def close(self) -> None:
        self.session.close()
        logger.debug("Closed HTTP session pool")

    def __del__(self) -> None:
        """Cleanup: Close the session when object is destroyed."""
        if hasattr(self, "session"):
            try:
                self.session.close()
            except Exception:
                pass  # Ignore errors during cleanup


class MarketDataClient:
    """Market-data provider endpoints, validated on ingress and memoized."""

    def __init__(
        self,
        fetch_client: ResilientFetchClient,
        cache: ResponseCache,
        vs_currency: str = Defaults.VS_CURRENCY,
    ) -> None:
        self.client = fetch_client
        self.cache = cache
        self.vs_currency = vs_currency

    @classmethod
    def from_config(cls, config, cache: ResponseCache) -> "MarketDataClient":
        """Builds a client authenticated with the configured API key header."""
        headers = {}
        if config.coingecko_api_key:
            headers["x-cg-pro-api-key"] = config.coingecko_api_key
        fetch_client = ResilientFetchClient(
            base_url=config.coingecko_base_url,
            headers=headers,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
        )
        return cls(fetch_client, cache)

    def get_price_history(
        self, token_id: str, vs_currency: Optional[str] = None, days: int = 30
    ) -> Optional[MarketChart]:
        """
        Fetches the price and volume history for a token.

        Args:
            token_id (str): Provider token identifier.
            vs_currency (Optional[str]): Quote currency; defaults to the client's.
            days (int): Days of history.

        Returns:
            Optional[MarketChart]: Sorted history, or None if the token is unknown.

        Raises:
            UpstreamUnavailable: On exhausted retries or a malformed payload.
        """
        token_id = validate_token_id(token_id)
        vs_currency = vs_currency or self.vs_currency
        params = {"vs_currency": vs_currency, "days": str(days)}
        key = f"market_chart:{token_id}:{vs_currency}:{days}"

        payload = self.cache.get_or_compute(
            key, lambda: self.client.fetch(f"/coins/{token_id}/market_chart", params=params)
        )
        if payload is None:
            return None

        try:
            chart = MarketChart.model_validate(payload)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Malformed market chart for {token_id}: {e}") from e

        logger.debug(f"Fetched {len(chart.prices)} price points for {token_id}")
        return chart

    def get_simple_price(self, token_ids: Iterable[str]) -> Dict[str, SimplePriceQuote]:
        """
        Fetches current price, 24h change and 24h volume for several tokens.

        Tokens the provider does not know are absent from the result.
        """
        ids = sorted(validate_token_list(list(token_ids)))
        if not ids:
            return {}

        ids_param = ",".join(ids)
        params = {
            "ids": ids_param,
            "vs_currencies": self.vs_currency,
            "include_24hr_change": "true",
            "include_24hr_vol": "true",
        }
        key = f"simple_price:{ids_param}:{self.vs_currency}"

        payload = self.cache.get_or_compute(
            key, lambda: self.client.fetch("/simple/price", params=params)
        )
        if not payload:
            return {}

        quotes = {}
        for token_id, raw in payload.items():
            try:
                quotes[token_id] = SimplePriceQuote.model_validate(raw)
            except ValidationError as e:
                raise UpstreamUnavailable(f"Malformed price quote for {token_id}: {e}") from e
        return quotes


class DeveloperActivityClient:
    """Repository search used as a developer-activity signal."""

    def __init__(self, fetch_client: ResilientFetchClient, cache: ResponseCache) -> None:
        self.client = fetch_client
        self.cache = cache

    @classmethod
    def from_config(cls, config, cache: ResponseCache) -> "DeveloperActivityClient":
        headers = {"Accept": "application/vnd.github+json"}
        if config.github_token:
            headers["Authorization"] = f"token {config.github_token}"
        fetch_client = ResilientFetchClient(
            base_url=config.github_base_url,
            headers=headers,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
        )
        return cls(fetch_client, cache)

    def search_repositories(self, token_id: str) -> Optional[List[RepositoryInfo]]:
        """Returns repositories matching the token, or None when the search is unavailable."""
        token_id = validate_token_id(token_id)
        params = {"q": f"{token_id} cryptocurrency"}

        payload = self.cache.get_or_compute(
            f"repositories:{token_id}",
            lambda: self.client.fetch("/search/repositories", params=params),
        )
        if payload is None:
            return None

        try:
            return [RepositoryInfo.model_validate(item) for item in payload.get("items", [])]
        except (ValidationError, AttributeError) as e:
            raise UpstreamUnavailable(f"Malformed repository search for {token_id}: {e}") from e
