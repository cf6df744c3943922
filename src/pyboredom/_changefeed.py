"""Background change-feed runtime feeding the push cache."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from pyboredom.exceptions import StoreError
from pyboredom.models.state import BoredomState
from pyboredom.store.base import StateStore


class ChangeFeedRuntime:
    """Asyncio task that consumes ``store.watch()`` and emits each state.

    One connection yields a finite sequence; when it ends or fails the
    runtime reports the feed stale, waits ``reconnect_delay`` seconds and
    opens a new one.  ``on_live`` fires once the first state of a
    connection (the current record) has been delivered.
    """

    def __init__(
        self,
        *,
        store: StateStore,
        on_state: Callable[[BoredomState], None],
        on_live: Callable[[], None] | None = None,
        on_stale: Callable[[], None] | None = None,
        reconnect_delay: float = 2.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._on_state = on_state
        self._on_live = on_live
        self._on_stale = on_stale
        self._reconnect_delay = reconnect_delay
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task[None] | None = None
        self._connections = 0

    @property
    def is_running(self) -> bool:
        """Whether the background task is active."""
        return self._task is not None and not self._task.done()

    @property
    def connections(self) -> int:
        """Number of feed connections opened so far."""
        return self._connections

    def start(self) -> None:
        """Spawn the background task on the running loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pyboredom-change-feed")
        self._logger.debug("Change feed runtime started")

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._mark_stale()
        self._logger.debug("Change feed runtime stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._consume()
                self._logger.warning("Change feed ended; reconnecting in %.1fs", self._reconnect_delay)
            except StoreError as exc:
                self._logger.warning("Change feed lost: %s; reconnecting in %.1fs", exc, self._reconnect_delay)
            except Exception:
                self._logger.exception("Change feed failed; reconnecting in %.1fs", self._reconnect_delay)
            self._mark_stale()
            await asyncio.sleep(self._reconnect_delay)

    async def _consume(self) -> None:
        self._connections += 1
        first = True
        async for state in self._store.watch():
            self._on_state(state)
            if first:
                first = False
                self._logger.info("Change feed live (connection %d)", self._connections)
                if self._on_live is not None:
                    self._on_live()

    def _mark_stale(self) -> None:
        if self._on_stale is not None:
            self._on_stale()
