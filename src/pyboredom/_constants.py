"""Internal constants shared across the library."""

from datetime import UTC, datetime

STATE_ID = "current_boredom_state"
DEFAULT_DATABASE = "boredomDB"
DEFAULT_COLLECTION = "boredomState"

LEVEL_MIN = 0
LEVEL_MAX = 100

# One level point per 30 minutes (2 per hour).
DEFAULT_DECAY_INTERVAL_MS = 30 * 60 * 1000
DEFAULT_CACHE_TTL_MS = 5_000
# Replicas only persist decay once the record is older than this.
DEFAULT_PERSIST_MIN_INTERVAL_MS = 60_000

DEFAULT_WRITE_TIMEOUT_MS = 5_000
DEFAULT_STORE_TIMEOUT_MS = 10_000
DEFAULT_MAX_POOL_SIZE = 5

# 2025-10-13 11:00 Europe/Amsterdam (CEST, UTC+2).
ALONE_SINCE = datetime(2025, 10, 13, 9, 0, 0, tzinfo=UTC)

CACHE_MODE_TTL = "ttl"
CACHE_MODE_PUSH = "push"
STORE_BACKEND_MONGO = "mongo"
STORE_BACKEND_MEMORY = "memory"
