"""
CheckedContract schema.

A CheckedContract is the result of matching the sources declared by one
metadata document against the submitted files. It is produced once per
metadata document and never mutated; widening the source set produces a
new instance.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from validation.app.schemas.metadata import CompilerMetadata


# ---------------------------------------------------------------------------
# Per-source outcomes
# ---------------------------------------------------------------------------

class MissingSource(BaseModel):
    """A declared source that no inline content or submitted file satisfied."""

    keccak256: Optional[str] = Field(
        None,
        description="Declared keccak256 hash of the missing source",
    )

    urls: List[str] = Field(
        default_factory=list,
        description="Alternate locations declared in metadata, for later retrieval",
    )

    model_config = ConfigDict(frozen=True)


class InvalidSource(BaseModel):
    """
    Inline metadata content whose recomputed hash disagrees with the
    declared hash. Indicates a self-inconsistent metadata document.
    """

    expected_hash: Optional[str] = Field(
        None,
        description="keccak256 declared in metadata",
    )

    calculated_hash: str = Field(
        ...,
        description="keccak256 computed over the inline content",
    )

    msg: str = Field(
        ...,
        description="Human-readable explanation",
    )

    model_config = ConfigDict(frozen=True)


class SourceResolution(BaseModel):
    """
    Output of resolving one metadata document against the hash index.

    The keys of found_sources, missing_sources and invalid_sources are
    disjoint and together equal the keys of ``metadata.sources``.
    """

    found_sources: Dict[str, str] = Field(default_factory=dict)

    missing_sources: Dict[str, MissingSource] = Field(default_factory=dict)

    invalid_sources: Dict[str, InvalidSource] = Field(default_factory=dict)

    path_rewrites: Dict[str, str] = Field(
        default_factory=dict,
        description=(
            "Declared source path -> path of the submitted file that "
            "satisfied it through the hash index"
        ),
    )

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

class CheckedContract(BaseModel):
    """
    Per-metadata-document verification result.
    """

    metadata: CompilerMetadata

    found_sources: Dict[str, str] = Field(
        default_factory=dict,
        description="Source path -> content whose hash matched the declaration",
    )

    missing_sources: Dict[str, MissingSource] = Field(default_factory=dict)

    invalid_sources: Dict[str, InvalidSource] = Field(default_factory=dict)

    @classmethod
    def from_resolution(
        cls, metadata: CompilerMetadata, resolution: SourceResolution
    ) -> "CheckedContract":
        return cls(
            metadata=metadata,
            found_sources=resolution.found_sources,
            missing_sources=resolution.missing_sources,
            invalid_sources=resolution.invalid_sources,
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.metadata.contract_name

    @property
    def compiled_path(self) -> str:
        return self.metadata.compiled_path

    @property
    def compiler_version(self) -> Optional[str]:
        return self.metadata.compiler_version

    # ------------------------------------------------------------------
    # Completeness
    # ------------------------------------------------------------------

    def is_valid(self) -> bool:
        """True when every declared source was found with a matching hash."""
        return not self.missing_sources and not self.invalid_sources

    def get_info(self) -> str:
        if self.is_valid():
            return f"Found all sources of: {self.name}"

        lines = [f"{self.name} ({self.compiled_path}):"]

        if self.missing_sources:
            lines.append("  Missing sources:")
            lines.extend(f"    {path}" for path in self.missing_sources)

        if self.invalid_sources:
            lines.append("  Invalid sources:")
            lines.extend(
                f"    {path} (expected {invalid.expected_hash}, "
                f"calculated {invalid.calculated_hash})"
                for path, invalid in self.invalid_sources.items()
            )

        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Source-set widening
    # ------------------------------------------------------------------

    def widen(self, sources: Dict[str, str]) -> "CheckedContract":
        """
        Return a new CheckedContract that also carries ``sources``.

        Hash-verified entries always take precedence over the supplied
        ones on key collision, so widening twice with the same sources
        equals widening once.
        """
        return CheckedContract(
            metadata=self.metadata,
            found_sources={**sources, **self.found_sources},
            missing_sources=self.missing_sources,
            invalid_sources=self.invalid_sources,
        )

    model_config = ConfigDict(frozen=True)
