"""Envelope ID value object."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from envelope_images.domain.exceptions import InvalidEnvelopeIdException

# Decimal digits only; no sign, exponent or fraction
ENVELOPE_ID_PATTERN = re.compile(r"^[0-9]+$")

# Largest value the catalog can store (signed 64-bit BSON int)
MAX_ENVELOPE_ID = 2**63 - 1


class EnvelopeId(BaseModel):
    """Value object representing a validated envelope identifier.

    Envelope ids are non-negative integers that fit in a signed 64-bit int.
    Form fields and path segments arrive as strings, so `parse` accepts digit
    strings as well as ints.

    Examples:
        >>> EnvelopeId.parse("7").value
        7
        >>> EnvelopeId.parse(12.0).value
        12
    """

    model_config = ConfigDict(frozen=True)

    value: Annotated[
        int, Field(ge=0, le=MAX_ENVELOPE_ID, description="Non-negative envelope id")
    ]

    @classmethod
    def parse(cls, raw: object) -> EnvelopeId:
        """Parse an envelope id from a form value, path segment or number.

        Args:
            raw: Candidate value.

        Returns:
            An EnvelopeId instance.

        Raises:
            InvalidEnvelopeIdException: If the value is not a non-negative integer
                no larger than MAX_ENVELOPE_ID.
        """
        # bool is an int subclass; True is not an envelope
        if isinstance(raw, bool):
            raise InvalidEnvelopeIdException(raw)

        if isinstance(raw, int):
            value = raw
        elif isinstance(raw, float):
            if not raw.is_integer():
                raise InvalidEnvelopeIdException(raw)
            value = int(raw)
        elif isinstance(raw, str):
            candidate = raw.strip()
            if not ENVELOPE_ID_PATTERN.match(candidate):
                raise InvalidEnvelopeIdException(raw)
            value = int(candidate)
        else:
            raise InvalidEnvelopeIdException(raw)

        if value < 0 or value > MAX_ENVELOPE_ID:
            raise InvalidEnvelopeIdException(raw)
        return cls(value=value)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)
