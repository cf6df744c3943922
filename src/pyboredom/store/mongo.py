"""MongoDB-backed state store using pymongo's asyncio client."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import CollectionInvalid, ConnectionFailure, DuplicateKeyError, PyMongoError
from pymongo.write_concern import WriteConcern

from pyboredom._constants import STATE_ID
from pyboredom._redact import redact_uri
from pyboredom.config import BoredomConfig
from pyboredom.exceptions import (
    BoredomConfigError,
    StateNotFoundError,
    StoreError,
    StoreUnavailableError,
    WriteTimeoutError,
)
from pyboredom.models.state import BoredomState
from pyboredom.store.base import build_update, parse_state

_logger = logging.getLogger(__name__)

# Longest a change-stream getMore waits server-side before returning empty.
_WATCH_MAX_AWAIT_MS = 1_000


def translate_error(exc: PyMongoError, operation: str, *, writing: bool = False) -> StoreError:
    """Map a driver exception onto the pyboredom store taxonomy.

    A timed out write has an unknown outcome and becomes
    :class:`WriteTimeoutError`; timeouts on reads and lost connections
    become :class:`StoreUnavailableError`.
    """
    if exc.timeout and writing:
        return WriteTimeoutError(f"{operation} timed out: {exc}", operation=operation)
    if exc.timeout or isinstance(exc, ConnectionFailure):
        return StoreUnavailableError(f"{operation} failed, store unavailable: {exc}", operation=operation)
    return StoreError(f"{operation} failed: {exc}", operation=operation)


class MongoStateStore:
    """Singleton state record in a MongoDB collection.

    Usage::

        store = MongoStateStore(config)
        await store.connect()
        state = await store.load()
    """

    def __init__(
        self,
        config: BoredomConfig,
        *,
        client: AsyncMongoClient[dict[str, Any]] | None = None,
        state_id: str = STATE_ID,
    ) -> None:
        self._config = config
        self._state_id = state_id
        self._external_client = client is not None
        self._client = client
        self._collection: Any = None
        self._writer: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the client and make sure the state collection exists."""
        if self._client is None:
            if not self._config.mongodb_uri:
                raise BoredomConfigError("MONGODB_URI environment variable is not set")
            self._client = AsyncMongoClient(
                self._config.mongodb_uri,
                maxPoolSize=self._config.max_pool_size,
                readPreference=self._config.read_preference,
                timeoutMS=self._config.store_timeout_ms or None,
                serverSelectionTimeoutMS=self._config.store_timeout_ms or None,
            )
        db = self._client[self._config.database]
        name = self._config.collection
        try:
            existing = await db.list_collection_names(filter={"name": name})
            if name not in existing:
                try:
                    await db.create_collection(name)
                    _logger.info("Collection %r created", name)
                except CollectionInvalid:
                    _logger.debug("Collection %r created concurrently", name)
        except PyMongoError as exc:
            raise translate_error(exc, "connect") from exc

        self._bind(db[name])
        _logger.info(
            "Connected to MongoDB %s db=%s collection=%s",
            redact_uri(self._config.mongodb_uri or ""),
            self._config.database,
            name,
        )

    def _bind(self, collection: Any) -> None:
        self._collection = collection
        # pymongo strips wtimeout from writes that run under timeoutMS.
        wtimeout = None if self._config.store_timeout_ms else self._config.write_timeout_ms or None
        self._writer = collection.with_options(
            write_concern=WriteConcern(w=self._config.write_concern_w, wtimeout=wtimeout),
        )

    async def close(self) -> None:
        client = self._client
        self._collection = None
        self._writer = None
        if client is not None and not self._external_client:
            self._client = None
            await client.close()
            _logger.info("MongoDB connection closed")

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise StoreError("Store not connected. Call 'await store.connect()' first.")
        return self._collection

    # ------------------------------------------------------------------
    # Record operations
    # ------------------------------------------------------------------

    async def load(self) -> BoredomState:
        collection = self._require_collection()
        try:
            document = await collection.find_one({"_id": self._state_id})
        except PyMongoError as exc:
            raise translate_error(exc, "load") from exc
        if document is None:
            raise StateNotFoundError("State not found in database", operation="load")
        return parse_state(document, operation="load")

    async def create(self, initial: BoredomState) -> BoredomState:
        """Insert *initial* unless the record already exists.

        Uses a conditional upsert, so concurrent first boots converge on a
        single record.  A duplicate-key error from a lost upsert race is
        harmless and answered by reading the winner's record.
        """
        self._require_collection()
        try:
            document = await self._writer.find_one_and_update(
                {"_id": self._state_id},
                {"$setOnInsert": initial.to_wire()},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            _logger.debug("Lost first-boot insert race; loading existing state")
            return await self.load()
        except PyMongoError as exc:
            raise translate_error(exc, "create", writing=True) from exc
        if document is None:
            return await self.load()
        return parse_state(document, operation="create")

    async def atomic_update(
        self,
        set_fields: Mapping[str, Any] | None = None,
        inc_fields: Mapping[str, int] | None = None,
        *,
        max_fields: Mapping[str, Any] | None = None,
        expect: Mapping[str, Any] | None = None,
    ) -> BoredomState | None:
        """Apply ``$set``/``$inc``/``$max`` in one ``findOneAndUpdate``.

        Returns the post-update record, or ``None`` when the record is
        missing or does not match *expect*.
        """
        update = build_update(set_fields, inc_fields, max_fields)
        self._require_collection()
        query: dict[str, Any] = {"_id": self._state_id}
        if expect:
            query.update(expect)
        _logger.debug("findOneAndUpdate query=%s update=%s", query, update)
        try:
            document = await self._writer.find_one_and_update(
                query,
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise translate_error(exc, "atomic_update", writing=True) from exc
        if document is None:
            return None
        return parse_state(document, operation="atomic_update")

    async def watch(self) -> AsyncIterator[BoredomState]:
        """Yield the current record, then the post-change record for every change.

        The change stream is opened before the current record is read, so
        no change can fall between the two; a change seen by both is
        delivered twice.  The sequence ends only by raising; callers reopen
        it after :class:`StoreUnavailableError`.
        """
        collection = self._require_collection()
        pipeline = [{"$match": {"documentKey._id": self._state_id}}]
        try:
            async with await collection.watch(
                pipeline,
                full_document="updateLookup",
                max_await_time_ms=_WATCH_MAX_AWAIT_MS,
            ) as stream:
                yield await self.load()
                async for change in stream:
                    operation_type = change.get("operationType")
                    document = change.get("fullDocument")
                    if document is None:
                        _logger.warning("Change feed event without document op=%s", operation_type)
                        continue
                    _logger.debug("Change feed event op=%s", operation_type)
                    yield parse_state(document, operation="watch")
        except PyMongoError as exc:
            raise translate_error(exc, "watch") from exc
