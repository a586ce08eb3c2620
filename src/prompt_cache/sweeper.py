"""Background removal of expired prompt cache entries."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Periodically calls cache.clear_expired() on a daemon thread.

    Only bounds memory for entries nobody reads again; read-time expiry is
    unchanged whether or not a sweeper runs.
    """

    def __init__(self, cache: Any, interval_sec: float) -> None:
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")
        self._cache = cache
        self._interval = interval_sec
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name="prompt-cache-sweeper",
        )
        self._thread.start()
        logger.debug(f"Expiry sweeper started (interval={self._interval}s)")

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
            logger.debug("Expiry sweeper stopped")

    def sweep_once(self) -> int:
        return self._cache.clear_expired()

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.sweep_once()
            except Exception as e:
                logger.warning(f"Expiry sweep error: {e}")
