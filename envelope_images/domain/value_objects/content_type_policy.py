"""Allow-list policy for uploaded content types."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from envelope_images.domain.exceptions import UnsupportedContentTypeException


def normalize_content_type(content_type: str | None) -> str:
    """Lower-case a MIME type and drop any parameters.

    'Image/PNG; charset=binary' -> 'image/png'
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class ContentTypePolicy(BaseModel):
    """Value object describing which MIME types may be stored.

    Patterns are either exact types ('image/png') or a major type with a
    wildcard subtype ('image/*').
    """

    model_config = ConfigDict(frozen=True)

    patterns: tuple[str, ...] = Field(
        default=("image/*",),
        description="Allowed MIME types or 'major/*' wildcards",
    )

    def allows(self, content_type: str | None) -> bool:
        """Check whether a content type matches any allowed pattern."""
        normalized = normalize_content_type(content_type)
        if "/" not in normalized:
            return False
        major = normalized.split("/", 1)[0]
        for pattern in self.patterns:
            pattern = pattern.strip().lower()
            if pattern == normalized:
                return True
            if pattern.endswith("/*") and pattern[:-2] == major:
                return True
        return False

    def require(self, content_type: str | None) -> str:
        """Return the normalized content type or raise if it is not allowed.

        Raises:
            UnsupportedContentTypeException: If no pattern matches.
        """
        if not self.allows(content_type):
            raise UnsupportedContentTypeException(content_type)
        return normalize_content_type(content_type)
