"""Service configuration for pyboredom."""

from __future__ import annotations

import dataclasses
import os
from datetime import UTC, datetime
from typing import Any

from pyboredom._constants import (
    ALONE_SINCE,
    CACHE_MODE_PUSH,
    CACHE_MODE_TTL,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_COLLECTION,
    DEFAULT_DATABASE,
    DEFAULT_DECAY_INTERVAL_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_PERSIST_MIN_INTERVAL_MS,
    DEFAULT_STORE_TIMEOUT_MS,
    DEFAULT_WRITE_TIMEOUT_MS,
    STORE_BACKEND_MEMORY,
    STORE_BACKEND_MONGO,
)
from pyboredom.exceptions import BoredomConfigError

_READ_PREFERENCES = frozenset(
    {"primary", "primaryPreferred", "secondary", "secondaryPreferred", "nearest"},
)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _parse_instant(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise BoredomConfigError(f"BOREDOM_ALONE_SINCE is not an ISO 8601 timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


@dataclasses.dataclass(frozen=True)
class BoredomConfig:
    """Service configuration.

    Parameters
    ----------
    store_backend : str
        ``"mongo"`` for the shared MongoDB deployment or ``"memory"`` for a
        single-process, non-durable store (local development).
    mongodb_uri : str or None
        MongoDB connection string.  Required for the ``mongo`` backend.
    database : str
        Database holding the state collection.
    collection : str
        Collection holding the singleton state record.
    max_pool_size : int
        Upper bound on pooled store connections per replica.
    read_preference : str
        MongoDB read preference mode name.
    store_timeout_ms : int
        Client-side deadline for every store operation.
    write_concern : str
        Write concern ``w`` value; ``"majority"`` keeps acknowledged writes
        across a replica-set failover.  Numeric strings are passed as ints.
    write_timeout_ms : int
        Write concern ``wtimeout``.  Only sent when ``store_timeout_ms`` is
        0; otherwise the client-side deadline also bounds writes.
    cache_mode : str
        ``"ttl"`` for the pull cache or ``"push"`` for the change-feed
        driven cache.
    cache_ttl_ms : int
        Lifetime of a cached state in ``ttl`` mode.
    decay_interval_ms : int
        Elapsed time that removes one level point.
    persist_min_interval_ms : int
        Minimum age of the stored record before a read persists decay.
    feed_reconnect_delay : float
        Seconds to wait before re-opening a dropped change feed.
    alone_since : datetime
        Fixed instant ``timeAlone`` is counted from.
    admin_username : str
        Username accepted by the credential check endpoint.
    admin_password : str
        Password accepted by the credential check endpoint.
    host : str
        HTTP listen address.
    port : int
        HTTP listen port.
    access_log : bool
        Emit aiohttp access log lines.
    """

    store_backend: str = STORE_BACKEND_MONGO
    mongodb_uri: str | None = None
    database: str = DEFAULT_DATABASE
    collection: str = DEFAULT_COLLECTION
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    read_preference: str = "primaryPreferred"
    store_timeout_ms: int = DEFAULT_STORE_TIMEOUT_MS
    write_concern: str = "majority"
    write_timeout_ms: int = DEFAULT_WRITE_TIMEOUT_MS
    cache_mode: str = CACHE_MODE_TTL
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    decay_interval_ms: int = DEFAULT_DECAY_INTERVAL_MS
    persist_min_interval_ms: int = DEFAULT_PERSIST_MIN_INTERVAL_MS
    feed_reconnect_delay: float = 2.0
    alone_since: datetime = ALONE_SINCE
    admin_username: str = "admin"
    admin_password: str = "password"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5000
    access_log: bool = True

    def validate(self) -> BoredomConfig:
        """Check cross-field consistency and return ``self``.

        Raises
        ------
        BoredomConfigError
            If any value is out of range or inconsistent.
        """
        if self.store_backend not in {STORE_BACKEND_MONGO, STORE_BACKEND_MEMORY}:
            raise BoredomConfigError(f"unknown store backend {self.store_backend!r}")
        if self.store_backend == STORE_BACKEND_MONGO and not self.mongodb_uri:
            raise BoredomConfigError("MONGODB_URI environment variable is not set")
        if self.cache_mode not in {CACHE_MODE_TTL, CACHE_MODE_PUSH}:
            raise BoredomConfigError(f"unknown cache mode {self.cache_mode!r}")
        if self.read_preference not in _READ_PREFERENCES:
            raise BoredomConfigError(f"unknown read preference {self.read_preference!r}")
        if self.decay_interval_ms <= 0:
            raise BoredomConfigError("decay_interval_ms must be positive")
        for name in ("cache_ttl_ms", "persist_min_interval_ms", "store_timeout_ms", "write_timeout_ms"):
            if getattr(self, name) < 0:
                raise BoredomConfigError(f"{name} must not be negative")
        if self.max_pool_size < 1:
            raise BoredomConfigError("max_pool_size must be at least 1")
        if not 0 < self.port < 65536:
            raise BoredomConfigError(f"invalid port {self.port}")
        return self

    @property
    def write_concern_w(self) -> str | int:
        """The ``w`` value in the form the driver expects."""
        return int(self.write_concern) if self.write_concern.isdigit() else self.write_concern

    @classmethod
    def from_env(cls, **overrides: Any) -> BoredomConfig:
        """Create configuration from environment variables.

        Reads ``MONGODB_URI``, ``ADMIN_USERNAME``, ``ADMIN_PASSWORD``,
        ``PORT`` and the optional ``BOREDOM_*`` / ``MONGODB_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        BoredomConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "BOREDOM_STORE": "store_backend",
            "MONGODB_URI": "mongodb_uri",
            "BOREDOM_DB_NAME": "database",
            "BOREDOM_COLLECTION": "collection",
            "MONGODB_READ_PREFERENCE": "read_preference",
            "MONGODB_WRITE_CONCERN": "write_concern",
            "BOREDOM_CACHE_MODE": "cache_mode",
            "ADMIN_USERNAME": "admin_username",
            "ADMIN_PASSWORD": "admin_password",
            "HOST": "host",
        }
        _ENV_INT_MAP = {
            "MONGODB_MAX_POOL_SIZE": "max_pool_size",
            "MONGODB_TIMEOUT_MS": "store_timeout_ms",
            "MONGODB_WTIMEOUT_MS": "write_timeout_ms",
            "BOREDOM_CACHE_TTL_MS": "cache_ttl_ms",
            "BOREDOM_DECAY_INTERVAL_MS": "decay_interval_ms",
            "BOREDOM_PERSIST_MIN_INTERVAL_MS": "persist_min_interval_ms",
            "PORT": "port",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val.strip()

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(val)
            except ValueError as exc:
                raise BoredomConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        delay_env = env.get("BOREDOM_FEED_RECONNECT_DELAY")
        if delay_env is not None and "feed_reconnect_delay" not in overrides:
            config_kwargs["feed_reconnect_delay"] = float(delay_env)

        since_env = env.get("BOREDOM_ALONE_SINCE")
        if since_env is not None and "alone_since" not in overrides:
            config_kwargs["alone_since"] = _parse_instant(since_env)

        if "access_log" not in overrides:
            config_kwargs["access_log"] = _env_bool(env.get("BOREDOM_ACCESS_LOG"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
