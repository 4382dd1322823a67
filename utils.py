"""
Utility functions and helpers.
"""

import math
import logging
import dataclasses
from typing import Any, Dict, List, Optional

from constants import LimitsAndConstraints
from errors import InvalidInput

logger = logging.getLogger(__name__)


def validate_token_id(token_id: str) -> str:
    """
    Validates and normalizes a single token identifier.

    This is the centralized token validation logic used across the application.
    Token identifiers are market-data provider slugs, so they are lowercased.

    Args:
        token_id (str): The token identifier to validate.

    Returns:
        str: The validated and normalized identifier (lowercased and stripped).

    Raises:
        InvalidInput: If the identifier is missing, too long, or has invalid characters.

    Examples:
        >>> validate_token_id(" Bitcoin ")
        'bitcoin'
        >>> validate_token_id("usd-coin")
        'usd-coin'
    """
    if token_id is None:
        raise InvalidInput("token_id is required")

    token_id = str(token_id).strip().lower()

    if not token_id:
        raise InvalidInput("token_id is required")

    if len(token_id) > LimitsAndConstraints.MAX_TOKEN_ID_LENGTH:
        raise InvalidInput(
            f"Token id '{token_id[:20]}...' has invalid length "
            f"(must be 1-{LimitsAndConstraints.MAX_TOKEN_ID_LENGTH} characters)"
        )

    # Provider slugs are alphanumeric with hyphens, dots and underscores
    if not all(c.isalnum() or c in "-._" for c in token_id):
        raise InvalidInput(
            f"Invalid characters in token id '{token_id}'. "
            "Only alphanumeric, hyphens, dots, and underscores allowed."
        )

    return token_id


def validate_token_list(token_ids: List[str]) -> List[str]:
    """
    Validates a list of token identifiers, dropping duplicates but keeping first-seen order.

    Raises:
        InvalidInput: If the list is too long or any identifier is invalid.
    """
    if len(token_ids) > LimitsAndConstraints.MAX_TOKENS_PER_PORTFOLIO:
        raise InvalidInput(
            f"Maximum {LimitsAndConstraints.MAX_TOKENS_PER_PORTFOLIO} tokens allowed"
        )

    validated = []
    for token_id in token_ids:
        normalized = validate_token_id(token_id)
        if normalized not in validated:
            validated.append(normalized)

    return validated


def validate_portfolio_id(portfolio_id: Any) -> str:
    """Portfolio ids are opaque; only presence is checked."""
    if portfolio_id is None or not str(portfolio_id).strip():
        raise InvalidInput("portfolio_id is required")
    return str(portfolio_id).strip()


def timeframe_to_days(timeframe: str, allowed: Dict[str, int]) -> int:
    """
    Maps a timeframe label to a number of days of history.

    Args:
        timeframe (str): Label such as "30d".
        allowed (Dict[str, int]): Accepted labels and their day counts.

    Returns:
        int: Days of history to request.

    Raises:
        InvalidInput: If the label is not accepted.
    """
    normalized = (timeframe or "").strip().lower()
    if normalized not in allowed:
        raise InvalidInput(
            f"Invalid timeframe '{timeframe}'. Must be one of: {', '.join(allowed)}"
        )
    return allowed[normalized]


def finite_or_none(value: Optional[float]) -> Optional[float]:
    """Coerce NaN/Infinity to None so they never reach a report."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def to_jsonable(obj: Any) -> Any:
    """
    Converts report dataclasses into plain JSON-serializable structures.

    Non-finite floats become None.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, float):
        return finite_or_none(obj)
    if hasattr(obj, "model_dump"):
        return to_jsonable(obj.model_dump())
    return obj
