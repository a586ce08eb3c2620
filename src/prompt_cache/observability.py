"""Cache event schema enforcement."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

EVENT_TYPES = ["hit", "miss", "write", "evict", "expire", "invalidate", "clear"]

CACHE_EVENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": [
        "event",
        "occurred_at",
        "key",
        "user_id",
        "size",
        "count",
    ],
    "properties": {
        "event": {"type": "string", "enum": EVENT_TYPES},
        "occurred_at": {"type": "string", "format": "date-time"},
        "key": {"type": ["string", "null"]},
        "user_id": {"type": ["string", "null"]},
        "size": {"type": "integer", "minimum": 0},
        "count": {"type": "integer", "minimum": 0},
        "reason": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

_validator = Draft7Validator(CACHE_EVENT_SCHEMA)


def validate_event(payload: Dict[str, Any]) -> None:
    errors = sorted(_validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        messages = ", ".join(error.message for error in errors)
        raise ValueError(f"cache event validation failed: {messages}")


@dataclass
class CacheEventRecord:
    event: str
    size: int
    key: Optional[str] = None
    user_id: Optional[str] = None
    count: int = 1
    reason: Optional[str] = None
    occurred_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "event": self.event,
            "occurred_at": self.occurred_at,
            "key": self.key,
            "user_id": self.user_id,
            "size": self.size,
            "count": self.count,
            "reason": self.reason,
        }
        validate_event(payload)
        return payload
