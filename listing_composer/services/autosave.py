from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Callable

from listing_composer.core.config import settings
from listing_composer.services.draft_store import DraftStore
from listing_composer.services.persistence import DraftPersistence

log = logging.getLogger(__name__)


class AutosaveScheduler:
    """
    Periodic local save of a dirty draft.

    - One asyncio task per session; a tick saves when dirty, otherwise the task ends.
    - Driven by store notifications via sync(); stop() cancels on teardown.
    - Save failures are reported by DraftPersistence (False) and never stop the loop.
    """

    def __init__(
        self,
        store: DraftStore,
        persistence: DraftPersistence,
        *,
        interval_seconds: float | None = None,
    ):
        self.store = store
        self.persistence = persistence
        self.interval_seconds = interval_seconds if interval_seconds is not None else settings.autosave_interval_seconds
        self._task: asyncio.Task | None = None
        self._cancelled: list[asyncio.Task] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.sync)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def sync(self, store: DraftStore | None = None) -> None:
        if self.store.is_dirty:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        if self.running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("autosave: no running event loop, not scheduling")
            return
        self._task = loop.create_task(self._run())
        log.debug("autosave: started interval=%.1fs", self.interval_seconds)

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self._cancelled = [t for t in self._cancelled if not t.done()] + [self._task]
            log.debug("autosave: stopped")
        self._task = None

    def save_now(self) -> bool:
        now = datetime.now(timezone.utc)
        ok = self.persistence.save(self.store.draft, now=now)
        if ok:
            self.store.mark_saved(now)
        return ok

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if not self.store.is_dirty:
                log.debug("autosave: draft clean, ending")
                return
            self.save_now()

    async def aclose(self) -> None:
        self.detach()
        self.stop()
        pending, self._cancelled = self._cancelled, []
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> "AutosaveScheduler":
        self.attach()
        self.sync()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
