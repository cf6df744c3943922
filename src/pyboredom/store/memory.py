"""Single-process, non-durable state store.

Behaves like the MongoDB adapter (same update operators, guard and change
feed) so a replica can run without a database.  State is lost on exit.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from pyboredom._constants import STATE_ID
from pyboredom.exceptions import StateNotFoundError
from pyboredom.models.state import BoredomState
from pyboredom.store.base import build_update, parse_state

_logger = logging.getLogger(__name__)

_CLOSED = object()


def _apply_update(document: dict[str, Any], update: Mapping[str, Mapping[str, Any]]) -> None:
    for key, value in update.get("$set", {}).items():
        document[key] = value
    for key, value in update.get("$inc", {}).items():
        document[key] = document.get(key, 0) + value
    for key, value in update.get("$max", {}).items():
        current = document.get(key)
        if current is None or value > current:
            document[key] = value


class MemoryStateStore:
    """In-memory :class:`~pyboredom.store.base.StateStore`."""

    def __init__(self, *, state_id: str = STATE_ID) -> None:
        self._state_id = state_id
        self._document: dict[str, Any] | None = None
        self._subscribers: list[asyncio.Queue[object]] = []

    async def connect(self) -> None:
        _logger.debug("Memory store ready")

    async def close(self) -> None:
        for queue in self._subscribers:
            queue.put_nowait(_CLOSED)

    async def load(self) -> BoredomState:
        if self._document is None:
            raise StateNotFoundError("State not found in store", operation="load")
        return parse_state(self._document, operation="load")

    async def create(self, initial: BoredomState) -> BoredomState:
        if self._document is None:
            self._document = {"_id": self._state_id, **initial.to_wire()}
            _logger.info("Default state created in memory store")
            self._publish()
        return parse_state(self._document, operation="create")

    async def atomic_update(
        self,
        set_fields: Mapping[str, Any] | None = None,
        inc_fields: Mapping[str, int] | None = None,
        *,
        max_fields: Mapping[str, Any] | None = None,
        expect: Mapping[str, Any] | None = None,
    ) -> BoredomState | None:
        update = build_update(set_fields, inc_fields, max_fields)
        if self._document is None:
            return None
        if expect and any(self._document.get(k) != v for k, v in expect.items()):
            return None

        candidate = copy.deepcopy(self._document)
        _apply_update(candidate, update)
        # Validate before committing so a bad patch leaves the record untouched.
        state = parse_state(candidate, operation="atomic_update")
        self._document = candidate
        self._publish()
        return state

    async def watch(self) -> AsyncIterator[BoredomState]:
        queue: asyncio.Queue[object] = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            yield await self.load()
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                assert isinstance(item, BoredomState)  # noqa: S101
                yield item
        finally:
            self._subscribers.remove(queue)

    def _publish(self) -> None:
        if not self._subscribers or self._document is None:
            return
        state = parse_state(self._document, operation="watch")
        for queue in self._subscribers:
            queue.put_nowait(state)
