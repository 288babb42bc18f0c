"""
Document classification.

Splits the flattened, decoded file set into three buckets:

- metadata documents (Solidity compiler metadata),
- source files (everything that is not a metadata document), and
- malformed metadata (Solidity metadata whose compilationTarget does not
  name exactly one contract; reported by path).

Hardhat build-info files bundle the compiler input and output of many
contracts. They are decomposed here: their input sources join the source
bucket and every embedded metadata string joins the metadata bucket.

Classification is total and never raises for content reasons. Whether
the resulting buckets are usable as a whole is decided by
require_metadata().
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from validation.app.errors import MalformedMetadataError, MetadataNotFoundError
from validation.app.schemas.files import PathContent
from validation.app.schemas.metadata import CompilerMetadata, MetadataParseResult

logger = logging.getLogger(__name__)


# Metadata embedded as an escaped JSON string inside another JSON document,
# e.g. a Truffle artifact's "metadata" field.
NESTED_METADATA_REGEX = re.compile(
    r'"{\\"compiler\\":{\\"version\\".*?},\\"version\\":1}"'
)

HARDHAT_BUILD_INFO_MARKER = '"hh-sol-build-info-1"'


class ClassifiedFiles(BaseModel):
    """Result of classifying one batch of submitted files."""

    metadata_files: List[CompilerMetadata] = Field(default_factory=list)

    source_files: List[PathContent] = Field(default_factory=list)

    malformed_metadata_paths: List[str] = Field(
        default_factory=list,
        description="Labels of documents rejected as malformed metadata",
    )

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Metadata parsing (parse, then validate)
# ---------------------------------------------------------------------------

def _is_metadata_candidate(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and obj.get("language") == "Solidity"
        and bool(obj.get("compiler"))
    )


def _validate_metadata(obj: dict) -> MetadataParseResult:
    try:
        metadata = CompilerMetadata.model_validate(obj)
    except ValidationError as exc:
        # Only an unusable compilationTarget makes a document malformed;
        # any other structural problem demotes it to an ordinary file.
        if any(error["loc"][:1] == ("settings",) for error in exc.errors()):
            return MetadataParseResult.malformed(
                "settings.compilationTarget is not a mapping of path to contract name"
            )
        return MetadataParseResult.not_metadata(
            f"Unusable metadata structure: {exc.error_count()} error(s)"
        )

    target = metadata.settings.compilation_target
    if target is None:
        return MetadataParseResult.malformed(
            "settings.compilationTarget is missing"
        )
    if len(target) != 1:
        return MetadataParseResult.malformed(
            f"settings.compilationTarget has {len(target)} entries, expected 1"
        )

    return MetadataParseResult.parsed(metadata)


def parse_metadata(text: str) -> MetadataParseResult:
    """
    Read ``text`` as a Solidity metadata document.

    Double-encoded documents (a JSON string whose value is the metadata
    JSON, as some toolchains write them) are unwrapped once.
    """
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        return MetadataParseResult.not_metadata(f"Not JSON: {exc.msg}")

    if _is_metadata_candidate(obj):
        return _validate_metadata(obj)

    if isinstance(obj, str):
        try:
            obj = json.loads(obj)
        except json.JSONDecodeError as exc:
            return MetadataParseResult.not_metadata(
                f"Not JSON after unwrapping: {exc.msg}"
            )
        if _is_metadata_candidate(obj):
            return _validate_metadata(obj)

    return MetadataParseResult.not_metadata(
        "Not a Solidity metadata document"
    )


# ---------------------------------------------------------------------------
# Hardhat build-info
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def is_build_report(file: PathContent) -> bool:
    return HARDHAT_BUILD_INFO_MARKER in file.content


def extract_build_report(
    file: PathContent,
) -> Tuple[List[CompilerMetadata], List[PathContent], List[str]]:
    """
    Decompose a Hardhat build-info document.

    Returns:
        (metadata documents, source files, malformed metadata labels)

    Raises:
        json.JSONDecodeError: if the document is not JSON.
    """
    build_info = json.loads(file.content)
    if not isinstance(build_info, dict):
        raise json.JSONDecodeError("Build info is not an object", file.content, 0)

    metadata_files: List[CompilerMetadata] = []
    source_files: List[PathContent] = []
    malformed: List[str] = []

    input_sources = _as_dict(_as_dict(build_info.get("input")).get("sources"))
    for path, source in input_sources.items():
        content = source.get("content") if isinstance(source, dict) else None
        if content and isinstance(content, str):
            source_files.append(PathContent(path=path, content=content))

    contracts = _as_dict(_as_dict(build_info.get("output")).get("contracts"))
    for path, by_name in contracts.items():
        for name, contract in _as_dict(by_name).items():
            raw_metadata = _as_dict(contract).get("metadata")
            if not raw_metadata or not isinstance(raw_metadata, str):
                continue

            result = parse_metadata(raw_metadata)
            if result.status == "parsed":
                metadata_files.append(result.metadata)
            elif result.status == "malformed":
                logger.warning(
                    "Malformed metadata for %s:%s in %r: %s",
                    path,
                    name,
                    file.path,
                    result.reason,
                )
                malformed.append(f"{file.path} ({path}:{name})")
            else:
                logger.warning(
                    "Ignoring unreadable metadata for %s:%s in %r: %s",
                    path,
                    name,
                    file.path,
                    result.reason,
                )

    return metadata_files, source_files, malformed


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def _parse_nested_metadata(file: PathContent) -> Optional[MetadataParseResult]:
    match = NESTED_METADATA_REGEX.search(file.content)
    if match is None:
        return None
    return parse_metadata(match.group(0))


def classify_files(files: List[PathContent]) -> ClassifiedFiles:
    """
    Sort every file into exactly one of metadata, source or malformed.

    Build-report documents contribute their embedded metadata and sources
    instead of appearing themselves.
    """
    metadata_files: List[CompilerMetadata] = []
    source_files: List[PathContent] = []
    malformed: List[str] = []

    for file in files:
        if is_build_report(file):
            try:
                report_metadata, report_sources, report_malformed = (
                    extract_build_report(file)
                )
            except json.JSONDecodeError as exc:
                logger.warning(
                    "File %r carries the build-info marker but is not JSON "
                    "(%s); treating it as a source file",
                    file.path,
                    exc.msg,
                )
                source_files.append(file)
                continue

            metadata_files.extend(report_metadata)
            source_files.extend(report_sources)
            malformed.extend(report_malformed)
            continue

        result = parse_metadata(file.content)
        if result.status == "not_metadata":
            result = _parse_nested_metadata(file) or result

        if result.status == "parsed":
            metadata_files.append(result.metadata)
        elif result.status == "malformed":
            logger.warning(
                "Malformed metadata in %r: %s", file.path, result.reason
            )
            malformed.append(file.path)
        else:
            source_files.append(file)

    logger.debug(
        "Classified %d file(s): %d metadata, %d source, %d malformed",
        len(files),
        len(metadata_files),
        len(source_files),
        len(malformed),
    )

    return ClassifiedFiles(
        metadata_files=metadata_files,
        source_files=source_files,
        malformed_metadata_paths=malformed,
    )


def require_metadata(
    classified: ClassifiedFiles,
    log: Optional[logging.Logger] = None,
) -> None:
    """
    Abort the batch when it cannot produce a verifiable result.

    Raises:
        MalformedMetadataError: if any metadata document was malformed.
        MetadataNotFoundError: if no metadata document was found.
    """
    log = log or logger
    malformed = classified.malformed_metadata_paths

    if malformed:
        responsible = (
            ", ".join(malformed)
            if all(malformed)
            else f"{len(malformed)} metadata files"
        )
        msg = f"Malformed settings.compilationTarget in: {responsible}"
        log.error(msg)
        raise MalformedMetadataError(msg, malformed)

    if not classified.metadata_files:
        msg = 'Metadata file not found. Did you include "metadata.json"?'
        log.error(msg)
        raise MetadataNotFoundError(msg)
