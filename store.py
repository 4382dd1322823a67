"""
Storage collaborator contract and an in-memory implementation.
"""

import copy
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)


class Store(Protocol):
    """Reads portfolio inputs and persists computed reports."""

    def read_holdings(self, portfolio_id: str) -> List[Dict[str, Any]]:  # pragma: no cover - interface
        ...

    def read_transactions(self, portfolio_id: str) -> List[Dict[str, Any]]:  # pragma: no cover - interface
        ...

    def read_sentiment(self, token_id: str) -> Optional[Dict[str, Any]]:  # pragma: no cover - interface
        ...

    def upsert_report(self, key: str, report: Dict[str, Any]) -> None:  # pragma: no cover - interface
        ...


class InMemoryStore:
    """
    Dict-backed store, seedable directly or from a JSON file.

    Expected file layout::

        {
          "portfolios": {"<id>": {"holdings": [...], "transactions": [...]}},
          "sentiment": {"<token_id>": {"overall_sentiment": {...}}}
        }
    """

    def __init__(
        self,
        portfolios: Optional[Dict[str, Dict[str, List[Dict[str, Any]]]]] = None,
        sentiment: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> None:
        self._portfolios = portfolios or {}
        self._sentiment = sentiment or {}
        self._reports: Dict[str, Dict[str, Any]] = {}
        self._lock = Lock()

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryStore":
        """
        Loads portfolios and sentiment records from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a JSON object.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Store file {path} must contain a JSON object")

        logger.info(f"Loaded store data from {path}")
        return cls(portfolios=data.get("portfolios", {}), sentiment=data.get("sentiment", {}))

    def read_holdings(self, portfolio_id: str) -> List[Dict[str, Any]]:
        portfolio = self._portfolios.get(portfolio_id, {})
        return copy.deepcopy(portfolio.get("holdings", []))

    def read_transactions(self, portfolio_id: str) -> List[Dict[str, Any]]:
        portfolio = self._portfolios.get(portfolio_id, {})
        return copy.deepcopy(portfolio.get("transactions", []))

    def read_sentiment(self, token_id: str) -> Optional[Dict[str, Any]]:
        record = self._sentiment.get(token_id)
        if record is None:
            return None
        return {"token_id": token_id, **copy.deepcopy(record)}

    def upsert_report(self, key: str, report: Dict[str, Any]) -> None:
        """Insert or replace the report stored under ``key``."""
        with self._lock:
            self._reports[key] = copy.deepcopy(report)
        logger.debug(f"Stored report {key}")

    def get_report(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            report = self._reports.get(key)
        return copy.deepcopy(report) if report is not None else None

    @property
    def report_keys(self) -> List[str]:
        with self._lock:
            return sorted(self._reports)
