"""
Solidity compiler metadata schema.

Models the subset of the compiler-emitted metadata document that source
validation depends on. Every other field the compiler writes (``version``,
``output``, optimizer settings, ...) is preserved untouched as an extra
field so the document can be handed on unchanged.

Reference:
    https://docs.soliditylang.org/en/latest/metadata.html
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetadataSource(BaseModel):
    """A single entry of the metadata ``sources`` section."""

    keccak256: Optional[str] = Field(
        None,
        description="Declared keccak256 hash of the source content",
    )

    content: Optional[str] = Field(
        None,
        description="Inline source content, present when compiled with useLiteralContent",
    )

    urls: List[str] = Field(
        default_factory=list,
        description="Alternate locations (bzzr, ipfs, dweb) of the source",
    )

    license: Optional[str] = Field(
        None,
        description="SPDX license identifier",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )


class MetadataSettings(BaseModel):
    """The metadata ``settings`` section."""

    compilation_target: Optional[Dict[str, str]] = Field(
        None,
        alias="compilationTarget",
        description="Mapping of the compiled source path to the contract name",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
    )


class CompilerMetadata(BaseModel):
    """
    Parsed Solidity metadata document.

    INVARIANT
    ---------
    ``settings.compilationTarget`` holds exactly one entry. The document
    classifier rejects any document violating this before a
    CompilerMetadata reaches source resolution.
    """

    language: str = Field(
        ...,
        description="Source language; always 'Solidity' for accepted documents",
    )

    compiler: Any = Field(
        ...,
        description=(
            "Compiler information, usually {'version': '0.8.19+commit.7dd6d404'}; "
            "any non-empty value is accepted"
        ),
    )

    sources: Dict[str, MetadataSource] = Field(
        default_factory=dict,
        description="Declared sources keyed by their compilation path",
    )

    settings: MetadataSettings = Field(
        default_factory=MetadataSettings,
        description="Compilation settings",
    )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def compilation_target(self) -> Dict[str, str]:
        return self.settings.compilation_target or {}

    @property
    def compiled_path(self) -> str:
        return next(iter(self.compilation_target), "")

    @property
    def contract_name(self) -> str:
        return next(iter(self.compilation_target.values()), "")

    @property
    def compiler_version(self) -> Optional[str]:
        if isinstance(self.compiler, dict):
            return self.compiler.get("version")
        return None

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
    )


class MetadataParseResult(BaseModel):
    """
    Outcome of trying to read a text as a metadata document.

    - parsed:        ``metadata`` is set
    - not_metadata:  the text is some other file; ``reason`` says why
    - malformed:     the text is Solidity metadata whose
                     settings.compilationTarget is unusable; ``reason``
                     says why
    """

    status: Literal["parsed", "not_metadata", "malformed"]

    metadata: Optional[CompilerMetadata] = None

    reason: Optional[str] = None

    @classmethod
    def parsed(cls, metadata: CompilerMetadata) -> "MetadataParseResult":
        return cls(status="parsed", metadata=metadata)

    @classmethod
    def not_metadata(cls, reason: str) -> "MetadataParseResult":
        return cls(status="not_metadata", reason=reason)

    @classmethod
    def malformed(cls, reason: str) -> "MetadataParseResult":
        return cls(status="malformed", reason=reason)

    model_config = ConfigDict(frozen=True)
