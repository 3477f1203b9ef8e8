"""Bus response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

log = logging.getLogger(__name__)


class BusBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Bus %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class UnifyResponse(BusBaseModel):
    uuid: UUID | None = None

    @field_validator("uuid", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value
