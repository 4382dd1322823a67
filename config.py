"""
Configuration management with validation.
"""

import os
import logging
from pathlib import Path
from urllib.parse import urlparse
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file if it exists
try:
    # Look for .env file in current directory or next to this module
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
        logger.debug(f"Loaded environment variables from {env_path.absolute()}")
    else:
        module_env = Path(__file__).parent / ".env"
        if module_env.exists():
            load_dotenv(dotenv_path=module_env, override=False)
            logger.debug(f"Loaded environment variables from {module_env.absolute()}")
except OSError as e:
    logger.warning(f"Could not load .env file: {e}")


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to the default on bad input."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}, using default {default}")
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, falling back to the default on bad input."""
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}, using default {default}")
        return default


class Config:
    """Application configuration with validation."""

    def __init__(
        self,
        coingecko_api_key: str = None,
        coingecko_base_url: str = None,
        github_token: str = None,
        github_base_url: str = None,
        request_timeout: int = None,
        max_retries: int = None,
        cache_ttl_seconds: int = None,
        batch_size: int = None,
        batch_delay_seconds: float = None,
        risk_free_rate: float = None,
        rebalance_threshold_pct: float = None,
    ):
        """Initialize configuration, loading from environment variables if not specified."""
        from constants import AnalysisThresholds, Defaults, RetryPolicy

        self.coingecko_api_key = (
            coingecko_api_key
            if coingecko_api_key is not None
            else os.getenv("COINGECKO_API_KEY")
        )
        self.coingecko_base_url = (
            coingecko_base_url
            if coingecko_base_url is not None
            else os.getenv("COINGECKO_BASE_URL", Defaults.COINGECKO_BASE_URL)
        )
        self.github_token = (
            github_token if github_token is not None else os.getenv("GITHUB_TOKEN")
        )
        self.github_base_url = (
            github_base_url
            if github_base_url is not None
            else os.getenv("GITHUB_BASE_URL", Defaults.GITHUB_BASE_URL)
        )

        self.request_timeout = (
            request_timeout
            if request_timeout is not None
            else _env_int("REQUEST_TIMEOUT", Defaults.REQUEST_TIMEOUT)
        )
        self.max_retries = (
            max_retries
            if max_retries is not None
            else _env_int("MAX_RETRIES", RetryPolicy.MAX_ATTEMPTS)
        )
        self.cache_ttl_seconds = (
            cache_ttl_seconds
            if cache_ttl_seconds is not None
            else _env_int("CACHE_TTL_SECONDS", Defaults.CACHE_TTL_SECONDS)
        )
        self.batch_size = (
            batch_size
            if batch_size is not None
            else _env_int("BATCH_SIZE", Defaults.BATCH_SIZE)
        )
        self.batch_delay_seconds = (
            batch_delay_seconds
            if batch_delay_seconds is not None
            else _env_float("BATCH_DELAY_SECONDS", Defaults.BATCH_DELAY_SECONDS)
        )
        self.risk_free_rate = (
            risk_free_rate
            if risk_free_rate is not None
            else _env_float("RISK_FREE_RATE", Defaults.RISK_FREE_RATE)
        )
        self.rebalance_threshold_pct = (
            rebalance_threshold_pct
            if rebalance_threshold_pct is not None
            else _env_float(
                "REBALANCE_THRESHOLD_PCT", AnalysisThresholds.REBALANCE_DRIFT_PCT
            )
        )

        self.__post_init__()

    def __repr__(self) -> str:
        """Safe string representation that masks credentials."""
        return (
            f"Config(coingecko_api_key='{self._mask_api_key(self.coingecko_api_key)}', "
            f"coingecko_base_url='{self.coingecko_base_url}', "
            f"github_token='{self._mask_api_key(self.github_token)}', ...)"
        )

    def __str__(self) -> str:
        """Safe string conversion that masks credentials."""
        return self.__repr__()

    @staticmethod
    def _mask_api_key(api_key: str) -> str:
        """Mask API key for safe logging/display."""
        if not api_key:
            return "NOT_SET"
        if len(api_key) <= 8:
            return "***"
        # Show first 4 and last 4 characters
        return f"{api_key[:4]}...{api_key[-4:]}"

    @staticmethod
    def _validate_url(name: str, url: str) -> None:
        """Raise ValueError unless url has an http(s) scheme and a host."""
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(
                f"{name} must be a valid URL with scheme and host. Got: {url}"
            )
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"{name} must use http or https scheme. Got: {parsed.scheme}")

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.coingecko_api_key is not None and self.coingecko_api_key == "":
            raise ValueError("COINGECKO_API_KEY cannot be empty string")

        self._validate_url("COINGECKO_BASE_URL", self.coingecko_base_url)
        self._validate_url("GITHUB_BASE_URL", self.github_base_url)

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")

        if self.cache_ttl_seconds < 0:
            raise ValueError(
                f"cache_ttl_seconds cannot be negative, got {self.cache_ttl_seconds}"
            )

        if self.batch_delay_seconds < 0:
            raise ValueError(
                f"batch_delay_seconds cannot be negative, got {self.batch_delay_seconds}"
            )

        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")

        # Soft ranges only warn
        if not (3 <= self.max_retries <= 5):
            logger.warning(
                f"max_retries {self.max_retries} outside recommended range [3, 5]"
            )

        if not (10 <= self.request_timeout <= 120):
            logger.warning(
                f"request_timeout {self.request_timeout} outside recommended range [10, 120]"
            )

        if not (0 <= self.cache_ttl_seconds <= 3600):
            logger.warning(
                f"cache_ttl_seconds {self.cache_ttl_seconds} outside recommended range [0, 3600]"
            )

        if not (1 <= self.batch_size <= 10):
            logger.warning(
                f"batch_size {self.batch_size} outside recommended range [1, 10]"
            )

        if not (0 <= self.risk_free_rate <= 0.1):
            logger.warning(
                f"risk_free_rate {self.risk_free_rate} outside recommended range [0, 0.1]"
            )

        if self.coingecko_api_key:
            logger.info(
                f"Configuration loaded - Market data: {self.coingecko_base_url}, "
                f"API Key: {self._mask_api_key(self.coingecko_api_key)}"
            )

    @classmethod
    def from_env(cls) -> "Config":
        """
        Loads the configuration from environment variables.

        Returns:
            Config: The configuration object.

        Raises:
            ValueError: If COINGECKO_API_KEY environment variable is not set.
        """
        if not os.getenv("COINGECKO_API_KEY"):
            raise ValueError("COINGECKO_API_KEY environment variable must be set")

        return cls()
