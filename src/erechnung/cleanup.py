"""Evict downloaded and expired sessions based on retention policy."""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Self, assert_never

from .domain.sessions import SessionStore
from .domain.status import (
    Completed,
    Downloaded,
    Failed,
    Processing,
    Status,
    Uploaded,
    status_name,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(minutes=5)
DEFAULT_RETENTION = timedelta(minutes=30)


def is_evictable(status: Status, now: datetime, retention: timedelta) -> bool:
    """Downloaded sessions always go; others once their last transition is
    at least ``retention`` old."""
    match status:
        case Downloaded():
            return True
        case Uploaded() | Processing() | Completed() | Failed():
            return now - status.timestamp >= retention
        case _:
            assert_never(status)


def run_cleanup(
    store: SessionStore,
    retention: timedelta = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> int:
    """Delete every evictable session.

    Returns number of sessions removed.
    """
    now = now or utcnow()
    removed = 0

    for session_id in store.list_ids():
        try:
            status = store.delete_if(
                session_id, lambda current: is_evictable(current, now, retention)
            )
            if status is not None:
                removed += 1
                logger.info(
                    f"Cleaned up session: {session_id} (status: {status_name(status)})"
                )
        except Exception as e:
            logger.exception(f"Error cleaning up session {session_id}: {e}")

    if removed:
        logger.info(f"Cleanup complete: {removed} sessions removed")
    return removed


class CleanupScheduler:
    """Runs ``run_cleanup`` on a fixed interval in a daemon thread."""

    def __init__(
        self,
        store: SessionStore,
        interval: timedelta = DEFAULT_INTERVAL,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.interval = interval
        self.retention = retention
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="session-cleanup", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Session cleanup every {self.interval}, retention {self.retention}"
        )

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval.total_seconds()):
            logger.debug("Running scheduled cleanup of expired sessions")
            run_cleanup(self.store, self.retention, self.clock())

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
