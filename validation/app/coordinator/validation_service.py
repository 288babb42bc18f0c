"""
Source validation service.

Entry point of the engine. Given the files a user submitted, it finds
every Solidity metadata document among them and checks which of the
declared sources the submission actually contains.

Execution order:
    1. Archive expansion (flatten zips and tarballs)
    2. Document classification (metadata / sources / build-info)
    3. Batch gate (no metadata, or malformed metadata, aborts the run)
    4. Variation hash index over all source files (built once)
    5. Source resolution, one CheckedContract per metadata document

Per-source problems never abort the run; they are recorded in the
corresponding CheckedContract.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Sequence

from validation.app.config import ValidationConfig
from validation.app.schemas.checked_contract import CheckedContract
from validation.app.schemas.files import PathContent, RawFile
from validation.app.checks.archive_expansion import (
    collect_paths,
    expand_archives,
)
from validation.app.checks.document_classification import (
    ClassifiedFiles,
    classify_files,
    require_metadata,
)
from validation.app.checks.source_resolution import resolve_sources
from validation.app.checks.variation_index import build_variation_index


class ValidationService:
    """
    Matches submitted files against the sources declared in compiler
    metadata.

    Stateless between calls; a single instance may be reused.
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            config: engine configuration; defaults are used when omitted.
            logger: receives diagnostics for incomplete contracts and
                aborted runs. Defaults to the "validation" logger.
        """
        self._config = config if config is not None else ValidationConfig()
        self._logger = logger if logger is not None else logging.getLogger("validation")

    @classmethod
    def from_config(cls, config: ValidationConfig) -> "ValidationService":
        """Construct a service whose logger honours ``config.LOG_LEVEL``."""
        logger = logging.getLogger("validation")
        logger.setLevel(config.log_level)
        return cls(config=config, logger=logger)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check_paths(
        self,
        paths: Sequence[str | os.PathLike],
        ignoring: Optional[List[str]] = None,
    ) -> List[CheckedContract]:
        """
        Check all metadata files found in ``paths``.

        Paths may be regular files, directories or archives.

        Args:
            paths: files and directories to search.
            ignoring: optional list that receives every unreadable path.
                Without it, an unreadable path aborts the run.

        Raises:
            UnreadablePathError, MetadataNotFoundError, MalformedMetadataError
        """
        files = collect_paths(
            paths,
            ignoring=ignoring,
            max_file_size=self._config.max_file_size_bytes,
        )
        return self.check_files(files)

    def check_files(
        self,
        files: Sequence[RawFile],
        unused: Optional[List[str]] = None,
    ) -> List[CheckedContract]:
        """
        Check the submitted files, expanding archives among them.

        Args:
            files: submitted files.
            unused: optional list that receives the paths of source files
                not used to satisfy any metadata document.

        Raises:
            MetadataNotFoundError, MalformedMetadataError
        """
        classified = self._classify(files)
        require_metadata(classified, log=self._logger)

        index = build_variation_index(classified.source_files)

        checked_contracts: List[CheckedContract] = []
        used_files: List[str] = []
        incomplete: List[str] = []

        for metadata in classified.metadata_files:
            resolution = resolve_sources(metadata, index)
            used_files.extend(resolution.path_rewrites.values())

            contract = CheckedContract.from_resolution(metadata, resolution)
            checked_contracts.append(contract)

            if not contract.is_valid():
                incomplete.append(contract.get_info())

        if incomplete:
            self._logger.error("\n".join(incomplete))

        if unused is not None:
            unused.extend(
                self._extract_unused(classified.source_files, used_files)
            )

        return checked_contracts

    def use_all_sources(
        self,
        contract: CheckedContract,
        files: Sequence[RawFile],
    ) -> CheckedContract:
        """
        Return ``contract`` widened with every submitted source file, not
        just those declared in its metadata.

        Sources already hash-matched against the metadata are kept in
        place of the submitted copies.
        """
        classified = self._classify(files)
        return contract.widen(self._to_source_map(classified.source_files))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _classify(self, files: Sequence[RawFile]) -> ClassifiedFiles:
        expanded = expand_archives(
            files,
            staging_dir=self._config.STAGING_DIR,
            max_depth=self._config.MAX_ARCHIVE_DEPTH,
        )
        return classify_files([file.to_path_content() for file in expanded])

    @staticmethod
    def _extract_unused(
        source_files: Sequence[PathContent], used_files: Sequence[str]
    ) -> List[str]:
        used = set(used_files)
        return [file.path for file in source_files if file.path not in used]

    @staticmethod
    def _to_source_map(source_files: Sequence[PathContent]) -> Dict[str, str]:
        return {
            file.path or f"path-{i}": file.content
            for i, file in enumerate(source_files)
        }
