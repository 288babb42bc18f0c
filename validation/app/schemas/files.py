"""
File transport objects.

RawFile is what callers hand to the engine; PathContent is the decoded
text form that classification, indexing and resolution operate on.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PathContent(BaseModel):
    """A decoded text file and the path label it was submitted under."""

    path: str = Field(
        "",
        description="Path label of the file; may be empty for anonymous uploads",
    )

    content: str = Field(
        ...,
        description="Decoded text content",
    )

    model_config = ConfigDict(frozen=True)


class RawFile(BaseModel):
    """
    A submitted file as raw bytes.

    Created once by the caller-facing collector and never mutated
    afterwards.
    """

    path: str = Field(
        "",
        description="Path label of the file as submitted",
    )

    content: bytes = Field(
        ...,
        description="Raw file bytes",
    )

    def to_path_content(self) -> PathContent:
        """Decode as UTF-8, substituting U+FFFD for undecodable bytes."""
        return PathContent(
            path=self.path,
            content=self.content.decode("utf-8", errors="replace"),
        )

    model_config = ConfigDict(frozen=True)
