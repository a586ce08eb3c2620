"""Capacity eviction policies for the prompt cache."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Optional


class FifoEviction:
    """Evict the earliest-inserted entry. Reads never reorder entries."""

    name = "fifo"

    def on_access(self, store: "OrderedDict[str, Any]", key: str) -> None:
        return None

    def select_victim(self, store: "OrderedDict[str, Any]") -> Optional[str]:
        return next(iter(store), None)


class LruEviction(FifoEviction):
    """Opt-in access-order policy: every hit moves the entry to newest."""

    name = "lru"

    def on_access(self, store: "OrderedDict[str, Any]", key: str) -> None:
        store.move_to_end(key)


POLICIES = {
    FifoEviction.name: FifoEviction,
    LruEviction.name: LruEviction,
}


def build_eviction_policy(name: str) -> FifoEviction:
    try:
        return POLICIES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown eviction policy: {name!r} (expected one of {sorted(POLICIES)})") from None
