"""Structural store interface and shared helpers."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from pyboredom.exceptions import StoreError
from pyboredom.models.state import BoredomState

# Wire (camelCase) field names of the state record.
FIELD_LEVEL = "level"
FIELD_LAST_UPDATE_TIME = "lastUpdateTime"
FIELD_SPIKES = "boredomSpikes"


class StateStore(Protocol):
    """Durable home of the singleton :class:`BoredomState` record.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production adapters concrete.
    """

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def load(self) -> BoredomState:
        ...

    async def create(self, initial: BoredomState) -> BoredomState:
        ...

    async def atomic_update(
        self,
        set_fields: Mapping[str, Any] | None = None,
        inc_fields: Mapping[str, int] | None = None,
        *,
        max_fields: Mapping[str, Any] | None = None,
        expect: Mapping[str, Any] | None = None,
    ) -> BoredomState | None:
        ...

    def watch(self) -> AsyncIterator[BoredomState]:
        """Yield the current record, then every later version of it."""
        ...


def build_update(
    set_fields: Mapping[str, Any] | None,
    inc_fields: Mapping[str, int] | None,
    max_fields: Mapping[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    """Build a ``$set``/``$inc``/``$max`` update document.

    Raises :class:`ValueError` for an empty patch or a field named by more
    than one operator.
    """
    update: dict[str, dict[str, Any]] = {}
    seen: set[str] = set()
    for operator, fields in (("$set", set_fields), ("$inc", inc_fields), ("$max", max_fields)):
        if not fields:
            continue
        overlap = seen.intersection(fields)
        if overlap:
            raise ValueError(f"fields updated by more than one operator: {sorted(overlap)}")
        seen.update(fields)
        update[operator] = dict(fields)
    if not update:
        raise ValueError("atomic update needs at least one field")
    return update


def parse_state(document: Mapping[str, Any], *, operation: str) -> BoredomState:
    """Validate a stored document into a :class:`BoredomState`."""
    try:
        return BoredomState.model_validate(dict(document))
    except ValidationError as exc:
        raise StoreError(f"Stored state record is invalid: {exc}", operation=operation) from exc
