"""Data models for boredom state."""

from pyboredom.models._base import BoredomBaseModel
from pyboredom.models.state import BoredomSnapshot, BoredomState

__all__ = [
    "BoredomBaseModel",
    "BoredomSnapshot",
    "BoredomState",
]
