"""
Background refresh of the content stores.

Reloads run inside the API process because the stores are per-process
in-memory caches.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Optional

from backend.content_store import ContentRegistry
from backend.dependencies import get_content_registry

logger = logging.getLogger(__name__)


def refresh_once(registry: Optional[ContentRegistry] = None) -> dict:
    """
    Reload every content domain once. Returns domain name -> source availability.
    """
    registry = registry or get_content_registry()
    results = registry.load_all()
    unavailable = [name for name, available in results.items() if not available]
    if unavailable:
        logger.warning("Refresh finished, unavailable: %s", ", ".join(unavailable))
    else:
        logger.info("Refresh finished for %d domains", len(results))
    return results


class ContentRefresher:
    """Daemon thread reloading all domains every ``interval_seconds``."""

    def __init__(
        self,
        registry: ContentRegistry,
        interval_seconds: float,
        jitter_seconds: float = 0.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.jitter_seconds = jitter_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _next_delay(self) -> float:
        return self.interval_seconds + random.uniform(0, self.jitter_seconds)

    def _run(self) -> None:
        while not self._stop.wait(self._next_delay()):
            try:
                refresh_once(self.registry)
            except Exception:
                logger.exception("Content refresh failed")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="content-refresher", daemon=True
        )
        self._thread.start()
        logger.info("Content refresher started (every %.0fs)", self.interval_seconds)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
