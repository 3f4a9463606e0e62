"""Base model for Lotusim wire payloads.

Every inbound payload model inherits from :class:`LotusimBaseModel`, which
provides:

* frozen instances, so a parsed message can be handed between threads
  without copying.
* ``extra="ignore"`` so newer backends can add fields without breaking
  older bridges.
* :meth:`LotusimBaseModel.parse_payload`, which converts raw bytes/text into
  a model and reports failures as :class:`LotusimMessageError`.
"""

from __future__ import annotations

import enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError

from pylotusim.exceptions import LotusimMessageError


class LotusimEnum(enum.IntEnum):
    """Base for small integer tags sent by the backend.

    Every subclass **must** define ``UNKNOWN = -1``.
    Values the backend sends that have no mapped member resolve to
    ``UNKNOWN`` instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> LotusimEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: LotusimEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class LotusimBaseModel(BaseModel):
    """Base for Lotusim wire payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def parse_payload(cls, payload: bytes | str | dict[str, Any], *, source: str = "") -> Self:
        """Parse a JSON payload (bytes, text, or an already decoded dict).

        Raises
        ------
        LotusimMessageError
            If the payload is not valid JSON or does not match the model.
        """
        try:
            if isinstance(payload, dict):
                return cls.model_validate(payload)
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise LotusimMessageError(
                f"Malformed {cls.__name__} payload: {exc.error_count()} validation error(s)",
                source=source,
            ) from exc
