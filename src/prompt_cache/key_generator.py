#!/usr/bin/env python3
"""
Cache Key Generation — Quantized Context Keys

Implements:
- ContextDescriptor: the user context a system prompt is built from
- generate_cache_key(context) → deterministic key
- Continuous amounts (income, expenses, savings) bucketed into bands
- Same bands + same discrete fields = identical key = cache hit
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

KEY_DELIMITER = ":"
DEFAULT_BAND = "zero"
TOP_BAND = "very-high"

# (upper bound exclusive, label); anything >= the last bound is TOP_BAND
Bands = Sequence[Tuple[float, str]]

INCOME_BANDS: Bands = ((30000, "low"), (80000, "medium"), (150000, "high"))
EXPENSES_BANDS: Bands = ((20000, "low"), (60000, "medium"), (120000, "high"))
SAVINGS_BANDS: Bands = ((5000, "low"), (50000, "medium"), (250000, "high"))

DEFAULT_BANDS: Dict[str, Bands] = {
    "monthly_income": INCOME_BANDS,
    "monthly_expenses": EXPENSES_BANDS,
    "total_savings": SAVINGS_BANDS,
}

_FIELD_ALIASES = {
    "userId": "user_id",
    "monthlyIncome": "monthly_income",
    "monthlyExpenses": "monthly_expenses",
    "totalSavings": "total_savings",
    "activeGoals": "active_goals",
    "cryptoEnabled": "crypto_enabled",
    "experienceLevel": "experience_level",
}


@dataclass(frozen=True)
class ContextDescriptor:
    """User context that drives system prompt assembly."""

    user_id: str
    monthly_income: Any = 0
    monthly_expenses: Any = 0
    total_savings: Any = 0
    active_goals: Any = 0
    language: str = "en"
    crypto_enabled: Any = False
    experience_level: str = "beginner"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContextDescriptor":
        """Build from a loosely typed mapping (camelCase or snake_case keys)."""
        normalized = {_FIELD_ALIASES.get(k, k): v for k, v in data.items()}
        return cls(
            user_id=str(normalized.get("user_id") or ""),
            monthly_income=normalized.get("monthly_income", 0),
            monthly_expenses=normalized.get("monthly_expenses", 0),
            total_savings=normalized.get("total_savings", 0),
            active_goals=normalized.get("active_goals", 0),
            language=normalized.get("language") or "en",
            crypto_enabled=normalized.get("crypto_enabled", False),
            experience_level=normalized.get("experience_level") or "beginner",
        )


def quantize(value: Any, bands: Bands) -> str:
    """
    Map a continuous amount onto a band label.

    Exactly zero is its own band; a value sitting on a boundary belongs to
    the higher band. Anything that is not a number falls back to DEFAULT_BAND.
    """
    if isinstance(value, bool):
        return DEFAULT_BAND
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_BAND
    if math.isnan(amount) or amount == 0:
        return DEFAULT_BAND

    for upper, label in bands:
        if amount < upper:
            return label
    return TOP_BAND


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_flag(value: Any) -> str:
    if isinstance(value, str):
        return "true" if value.strip().lower() in ("true", "1", "yes") else "false"
    return "true" if value else "false"


class CacheKeyGenerator:
    """
    Generate deterministic cache keys from a ContextDescriptor.

    Design:
    - key = user_id:income:expenses:savings:goals:language:crypto:experience
    - Continuous amounts replaced by band labels (zero/low/medium/high/very-high)
    - User id always leads the key so a user's entries can be found by owner
    - No I/O, no state: same descriptor always gives the same key
    """

    def __init__(self, bands: Optional[Mapping[str, Bands]] = None):
        self.bands: Dict[str, Bands] = dict(DEFAULT_BANDS)
        if bands:
            self.bands.update(bands)

    def band_for(self, field_name: str, value: Any) -> str:
        return quantize(value, self.bands[field_name])

    def generate_cache_key(self, context: ContextDescriptor) -> str:
        """
        Generate the cache key for a context.

        Args:
            context: ContextDescriptor for the requesting user

        Returns:
            Colon-delimited key, user id first
        """
        parts = [
            str(context.user_id),
            self.band_for("monthly_income", context.monthly_income),
            self.band_for("monthly_expenses", context.monthly_expenses),
            self.band_for("total_savings", context.total_savings),
            str(_as_count(context.active_goals)),
            str(context.language),
            _as_flag(context.crypto_enabled),
            str(context.experience_level),
        ]
        key = KEY_DELIMITER.join(parts)

        logger.debug(f"Generated key: {key}")
        return key
