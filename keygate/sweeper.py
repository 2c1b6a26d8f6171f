"""Periodic removal of unused keys past their expiry window"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .errors import StorageError
from .keys import SWEEP_INTERVAL_SECONDS, expiry_window, utcnow
from .store import KeyStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Deletes expired unused keys every *interval* seconds.

    Used keys and keys without a creation time are never touched.
    """

    def __init__(
        self,
        store: KeyStore,
        interval: float = SWEEP_INTERVAL_SECONDS,
        expiry: timedelta = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.interval = interval
        self.expiry = expiry or expiry_window()
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> int:
        """Sweep now; return how many keys were removed."""
        with self.store.lock:
            now = self.clock()
            records = self.store.records
            kept = tuple(r for r in records if not r.is_expired(now, self.expiry))
            removed = len(records) - len(kept)
            if removed:
                self.store.save(kept)

        if removed:
            logger.info(f"Expiry sweep removed {removed} key(s), {len(kept)} remaining")
        else:
            logger.debug("Expiry sweep found nothing to remove")
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.run_once()
            except StorageError as e:
                # next run retries; records stay in memory until then
                logger.error(f"Expiry sweep could not persist: {e}")
            except Exception:
                logger.exception("Expiry sweep failed")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info(f"Expiry sweeper started (every {self.interval:g}s, window {self.expiry})")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            # shutdown must go on to flush the store
            logger.exception("Expiry sweeper ended with an error")
        logger.info("Expiry sweeper stopped")
