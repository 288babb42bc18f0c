"""
Source resolution.

Resolves every source declared by one metadata document to verified
content, in this order:

1. Inline ``content`` carried by the metadata itself. Its hash must match
   the declaration; a mismatch marks the source invalid and no other
   candidate is tried, since an explicit content claim that fails
   verification is not replaced by a guess.
2. The variation hash index built from the submitted files.
3. Otherwise the source is missing.

No declared source is ever dropped: every path in ``metadata.sources``
ends up in exactly one of found, missing or invalid.
"""

from __future__ import annotations

from typing import Dict, Mapping

from validation.app.schemas.checked_contract import (
    InvalidSource,
    MissingSource,
    SourceResolution,
)
from validation.app.schemas.files import PathContent
from validation.app.schemas.metadata import CompilerMetadata
from validation.app.utils.hashing import keccak256

INLINE_HASH_MISMATCH_MSG = (
    "The keccak256 given in the metadata and the calculated keccak256 "
    "of the source content in metadata don't match"
)


def resolve_sources(
    metadata: CompilerMetadata,
    index: Mapping[str, PathContent],
) -> SourceResolution:
    found: Dict[str, str] = {}
    missing: Dict[str, MissingSource] = {}
    invalid: Dict[str, InvalidSource] = {}
    path_rewrites: Dict[str, str] = {}

    for source_path, declared in metadata.sources.items():
        expected_hash = declared.keccak256

        if declared.content:
            calculated_hash = keccak256(declared.content)
            if calculated_hash == expected_hash:
                found[source_path] = declared.content
            else:
                invalid[source_path] = InvalidSource(
                    expected_hash=expected_hash,
                    calculated_hash=calculated_hash,
                    msg=INLINE_HASH_MISMATCH_MSG,
                )
            continue

        hit = index.get(expected_hash) if expected_hash else None
        if hit is not None:
            found[source_path] = hit.content
            path_rewrites[source_path] = hit.path
        else:
            missing[source_path] = MissingSource(
                keccak256=expected_hash,
                urls=declared.urls,
            )

    return SourceResolution(
        found_sources=found,
        missing_sources=missing,
        invalid_sources=invalid,
        path_rewrites=path_rewrites,
    )
