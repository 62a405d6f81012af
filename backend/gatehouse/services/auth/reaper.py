"""Background task that keeps the refresh-token whitelist free of expired entries."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta

from gatehouse.services._shared.ports import Whitelist

log = logging.getLogger(__name__)


class WhitelistReaper:
    """
    Run :meth:`Whitelist.reap` on a dedicated daemon thread.

    The thread lives until :meth:`stop` sets its cancellation event. A
    storage error ends the thread; it is logged for the operator and kept in
    :attr:`failure`, never retried.

    :param whitelist: Store to sweep.
    :param max_age: Entries older than this are deleted (refresh lifetime).
    """

    def __init__(self, whitelist: Whitelist, max_age: timedelta) -> None:
        self.whitelist = whitelist
        self.max_age = max_age
        self.failure: BaseException | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="whitelist-reaper", daemon=True)
        self._thread.start()
        log.info("whitelist.reaper_started max_age=%s", self.max_age)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        try:
            self.whitelist.reap(self.max_age, stop=self._stop)
        except Exception as exc:
            self.failure = exc
            log.error("whitelist reap failed: %s", exc, exc_info=exc)
        else:
            log.info("whitelist.reaper_stopped")
