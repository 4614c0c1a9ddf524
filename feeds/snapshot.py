"""Periodic snapshot polling: timer -> fetch -> atomic swap.

A poller owns one immutable Snapshot at a time. A successful fetch replaces it
whole; a failed fetch keeps the previous one and raises a flag. There is no
retry or backoff, the next tick simply tries again.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """One successfully fetched document."""
    data: T
    sequence: int
    fetched_at: datetime = field(default_factory=datetime.now)


class SnapshotPoller(Generic[T]):
    """Runs fetch every interval_seconds and keeps the latest good result."""

    def __init__(
        self,
        fetch: Callable[[], T],
        interval_seconds: float,
        name: str = "feed",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.fetch = fetch
        self.interval_seconds = interval_seconds
        self.name = name

        self._lock = threading.Lock()
        self._current: Optional[Snapshot[T]] = None
        self._last_error: Optional[Exception] = None
        self._sequence = 0
        self._stop_event = threading.Event()
        self._polled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def current(self) -> Optional[Snapshot[T]]:
        """Latest snapshot, or None before the first successful fetch."""
        return self._current

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    @property
    def available(self) -> bool:
        """False until a fetch has succeeded at least once."""
        return self._current is not None

    @property
    def is_stale(self) -> bool:
        """True when the most recent fetch failed."""
        return self._last_error is not None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> bool:
        """Fetch once and swap the snapshot in on success.

        Results are applied in arrival order, so a slow fetch finishing after
        a newer one still wins. Returns True on success.
        """
        try:
            data = self.fetch()
        except Exception as e:
            with self._lock:
                self._last_error = e
            logger.warning("%s poll failed, keeping previous snapshot: %s", self.name, e)
            self._polled.set()
            return False

        with self._lock:
            self._sequence += 1
            sequence = self._sequence
            self._current = Snapshot(data=data, sequence=sequence)
            self._last_error = None
        logger.debug("%s snapshot #%d swapped in", self.name, sequence)
        self._polled.set()
        return True

    def wait_for_first_poll(self, timeout: Optional[float] = None) -> bool:
        """Block until at least one fetch has finished, successful or not."""
        return self._polled.wait(timeout)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval_seconds)

    def start(self) -> None:
        """Poll immediately, then every interval, on a daemon thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=f"{self.name}-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling; safe to call more than once."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        self._thread = None
