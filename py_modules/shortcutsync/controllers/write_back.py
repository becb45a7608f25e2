"""Debounced write-back of catalog edits to shortcuts.vdf.

Catalog change notifications arm a timer; every further notification before
it fires re-arms it, so a burst of edits ends in a single flush.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from shortcutsync.catalog.base import CatalogRecord
from shortcutsync.catalog.local import MemoryCatalog
from shortcutsync.config import DEFAULT_WRITE_BACK_DELAY

logger = logging.getLogger(__name__)

FlushFactory = Callable[[], Awaitable[object]]


class WriteBackState(str, Enum):
    IDLE = "idle"
    PENDING_FLUSH = "pending_flush"


class WriteBackScheduler:
    """Coalesces change notifications into one flush after a quiet period."""

    def __init__(self, flush: FlushFactory, delay: float = DEFAULT_WRITE_BACK_DELAY,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            flush: Coroutine function run once the delay passes without changes
            delay: Quiet period in seconds
            loop: Event loop to schedule on; defaults to the running loop at
                the first notify()
        """
        self._flush = flush
        self.delay = delay
        self._loop = loop
        self._lock = threading.Lock()
        self._state = WriteBackState.IDLE
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._catalog: Optional[MemoryCatalog] = None
        self._plugin_id: Optional[str] = None

    @property
    def state(self) -> WriteBackState:
        return self._state

    @property
    def flush_task(self) -> Optional[asyncio.Task]:
        return self._task

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def notify(self) -> None:
        """Arm or re-arm the timer. Must be called on the scheduler's loop."""
        loop = self._get_loop()
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = loop.call_later(self.delay, self._fire)
            self._state = WriteBackState.PENDING_FLUSH
        logger.debug(f"[WriteBack] Flush scheduled in {self.delay}s")

    def notify_threadsafe(self) -> None:
        """notify() for producers running on other threads."""
        if self._loop is None:
            raise RuntimeError("WriteBackScheduler has no event loop yet")
        self._loop.call_soon_threadsafe(self.notify)

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            self._state = WriteBackState.IDLE
            if self._closed:
                return
        self._task = self._get_loop().create_task(self._run_flush())

    async def _run_flush(self) -> None:
        logger.info("[WriteBack] Flushing catalog changes to Steam")
        try:
            await self._flush()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[WriteBack] Flush failed: {e}", exc_info=True)

    def shutdown(self) -> None:
        """Drop any pending flush and cancel one in progress. Nothing is written."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._state = WriteBackState.IDLE
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.detach()
        logger.info("[WriteBack] Scheduler stopped")

    async def stop(self) -> None:
        """shutdown() and wait for a cancelled flush to unwind."""
        task = self._task
        self.shutdown()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # Catalog wiring

    def attach(self, catalog: MemoryCatalog, plugin_id: str) -> None:
        """Notify on every change to records owned by plugin_id.

        Binds the scheduler to its loop (the running one unless given at
        construction), so edits made on worker threads can always be posted.
        """
        self._get_loop()
        self.detach()
        self._catalog = catalog
        self._plugin_id = plugin_id
        catalog.add_listener(self._on_catalog_changed)

    def detach(self) -> None:
        if self._catalog is not None:
            self._catalog.remove_listener(self._on_catalog_changed)
            self._catalog = None

    def _on_catalog_changed(self, games: List[CatalogRecord]) -> None:
        if not any(g.plugin_id == self._plugin_id for g in games):
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and (self._loop is None or running is self._loop):
            self.notify()
        else:
            self.notify_threadsafe()
