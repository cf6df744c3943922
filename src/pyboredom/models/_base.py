"""Base model for boredom state documents and API payloads.

Every model inherits from :class:`BoredomBaseModel` which provides
``alias_generator=to_camel`` so the camelCase keys used by the store
and the JSON API map automatically to snake_case fields.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BoredomBaseModel(BaseModel):
    """Frozen camelCase-aliased model."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, as stored and served."""
        return self.model_dump(by_alias=True)
