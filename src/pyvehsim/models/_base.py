"""Base model for pyvehsim data models.

Every model inherits from :class:`VehsimBaseModel` which maps
snake_case attributes to the camelCase keys used on the wire
(HTTP bodies, websocket frames, persisted snapshots) via
``alias_generator=to_camel``. Both spellings are accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class VehsimBaseModel(BaseModel):
    """Base for pyvehsim models."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase, JSON-compatible representation."""
        return self.model_dump(mode="json", by_alias=True)
