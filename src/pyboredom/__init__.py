"""pyboredom - Shared, decaying boredom level served over HTTP."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyboredom")
except PackageNotFoundError:
    __version__ = "0+local"
from pyboredom.config import BoredomConfig
from pyboredom.decay import DecayResult, compute_decay
from pyboredom.exceptions import (
    AuthFailureError,
    BoredomConfigError,
    BoredomError,
    InvalidArgumentError,
    StateNotFoundError,
    StoreError,
    StoreUnavailableError,
    WriteTimeoutError,
)
from pyboredom.models import BoredomSnapshot, BoredomState
from pyboredom.service import BoredomService

__all__ = [
    "__version__",
    "AuthFailureError",
    "BoredomConfig",
    "BoredomConfigError",
    "BoredomError",
    "BoredomService",
    "BoredomSnapshot",
    "BoredomState",
    "DecayResult",
    "InvalidArgumentError",
    "StateNotFoundError",
    "StoreError",
    "StoreUnavailableError",
    "WriteTimeoutError",
    "compute_decay",
]
