"""Base model for tabsync wire payloads.

Every payload model inherits from :class:`TabSyncBaseModel`, which
maps camelCase wire keys (``deviceId``, ``wsPort``) to snake_case
fields and ignores unknown keys so newer clients can send extra data.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]
"""A real ``str`` with at least one character; numbers are not coerced."""


class TabSyncBaseModel(BaseModel):
    """Base for tabsync wire models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump using the camelCase keys clients expect."""
        return self.model_dump(by_alias=True)
