"""
Archive expansion and path collection.

Flattens the submitted file set: every buffer that opens as an archive is
replaced by its members, transitively, so downstream classification only
ever sees plain files.

Detection is content sniffing. A buffer is an archive if zipfile or
tarfile can open and list it; file names and extensions are never
consulted. A buffer that cannot be listed is a regular file.

Extraction goes through a transient staging directory that is removed on
every exit path. Member paths are exposed relative to the archive root
(``contracts/Token.sol``), never with the staging directory prefix.

Error handling policy:
    Only the exceptions zipfile and tarfile raise for unreadable or
    corrupt data are caught. Anything else is a logic error and
    propagates.
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
import tempfile
import zipfile
import zlib
from collections import deque
from pathlib import Path, PurePosixPath
from typing import Deque, Iterable, List, Optional, Sequence, Tuple

from validation.app.errors import UnreadablePathError
from validation.app.schemas.files import RawFile
from validation.app.utils.traversal import iter_files

logger = logging.getLogger(__name__)

STAGING_PREFIX = "tmp-unzipped-"

DEFAULT_MAX_ARCHIVE_DEPTH = 8

_ZIP_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    NotImplementedError,  # unsupported compression method
    EOFError,
    OSError,
    ValueError,
)
_TAR_ERRORS = (tarfile.TarError, zlib.error, EOFError, OSError)


# ---------------------------------------------------------------------------
# Archive sniffing
# ---------------------------------------------------------------------------

def _is_zip(buffer: bytes) -> bool:
    try:
        with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
            archive.infolist()
        return True
    except _ZIP_ERRORS:
        return False


def _is_tar(buffer: bytes) -> bool:
    """
    A tar archive must list at least one member. A block of zero bytes
    is formally an empty tar archive, but is far more likely a plain file.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(buffer), mode="r:*") as archive:
            return bool(archive.getmembers())
    except _TAR_ERRORS:
        return False


def is_archive(buffer: bytes) -> bool:
    """Return True if ``buffer`` opens and lists as a zip or tar archive."""
    return _is_zip(buffer) or _is_tar(buffer)


# ---------------------------------------------------------------------------
# Extraction into a staging directory
# ---------------------------------------------------------------------------

def _safe_member_path(name: str) -> Optional[PurePosixPath]:
    """
    Normalize a tar member name, returning None for names that would
    escape the staging directory.
    """
    name = name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    if name in ("", ".") or "\x00" in name:
        return None
    pure = PurePosixPath(name)
    if pure.is_absolute() or any(part in ("", "..") for part in pure.parts):
        return None
    return pure


def _stage_member(staging: Path, name: str, data: bytes, label: str) -> None:
    rel = _safe_member_path(name)
    if rel is None:
        logger.warning("Skipping unsafe member %r of archive %r", name, label)
        return

    dest = staging.joinpath(*rel.parts)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
    except OSError as exc:
        # e.g. a member named like a directory another member lives in
        logger.warning(
            "Skipping conflicting member %r of archive %r: %s", name, label, exc
        )


def _extract_zip(buffer: bytes, staging: Path, label: str) -> None:
    with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                data = archive.read(info)
            except _ZIP_ERRORS as exc:
                logger.warning(
                    "Skipping unreadable member %r of archive %r: %s",
                    info.filename,
                    label,
                    exc,
                )
                continue

            _stage_member(staging, info.filename, data, label)


def _extract_tar(buffer: bytes, staging: Path, label: str) -> None:
    with tarfile.open(fileobj=io.BytesIO(buffer), mode="r:*") as archive:
        for member in archive.getmembers():
            if not member.isreg():
                if not member.isdir():
                    logger.warning(
                        "Skipping non-regular member %r of archive %r",
                        member.name,
                        label,
                    )
                continue

            try:
                source = archive.extractfile(member)
                if source is None:
                    continue
                with source:
                    data = source.read()
            except _TAR_ERRORS as exc:
                logger.warning(
                    "Skipping unreadable member %r of archive %r: %s",
                    member.name,
                    label,
                    exc,
                )
                continue

            _stage_member(staging, member.name, data, label)


def _read_staged_files(staging: Path) -> List[RawFile]:
    return [
        RawFile(
            path=file_path.relative_to(staging).as_posix(),
            content=file_path.read_bytes(),
        )
        for file_path in iter_files(staging)
    ]


def extract_archive(
    archive: RawFile,
    *,
    staging_dir: Optional[Path] = None,
) -> List[RawFile]:
    """
    Extract ``archive`` and return its members as RawFiles.

    The staging directory only exists for the duration of this call.
    """
    with tempfile.TemporaryDirectory(
        prefix=STAGING_PREFIX, dir=staging_dir
    ) as tmp:
        staging = Path(tmp)

        if _is_zip(archive.content):
            _extract_zip(archive.content, staging, archive.path)
        else:
            _extract_tar(archive.content, staging, archive.path)

        return _read_staged_files(staging)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def expand_archives(
    files: Iterable[RawFile],
    *,
    staging_dir: Optional[Path] = None,
    max_depth: int = DEFAULT_MAX_ARCHIVE_DEPTH,
) -> List[RawFile]:
    """
    Replace every archive in ``files`` with its members, transitively.

    Plain files keep their input order. Members of an archive are queued
    behind the remaining inputs and are themselves checked for being
    archives. An archive nested deeper than ``max_depth`` is kept as a
    plain file.
    """
    queue: Deque[Tuple[RawFile, int]] = deque((f, 0) for f in files)
    expanded: List[RawFile] = []

    while queue:
        file, depth = queue.popleft()

        if not is_archive(file.content):
            expanded.append(file)
            continue

        if depth >= max_depth:
            logger.warning(
                "Archive %r exceeds maximum nesting depth %d; "
                "treating it as a plain file",
                file.path,
                max_depth,
            )
            expanded.append(file)
            continue

        members = extract_archive(file, staging_dir=staging_dir)
        logger.debug(
            "Expanded archive %r into %d member(s)", file.path, len(members)
        )
        queue.extend((member, depth + 1) for member in members)

    return expanded


def collect_paths(
    paths: Sequence[str | os.PathLike],
    *,
    ignoring: Optional[List[str]] = None,
    max_file_size: Optional[int] = None,
) -> List[RawFile]:
    """
    Read every regular file below ``paths`` into RawFiles labelled with
    their absolute path.

    Paths that do not exist, cannot be read, or exceed ``max_file_size``
    bytes are appended to ``ignoring`` when it is supplied. Without an
    ignore list they abort collection with UnreadablePathError. A
    directory that cannot be listed is reported by its own path; the
    rest of its tree is still collected.
    """
    files: List[RawFile] = []

    def reject(path: str, reason: str) -> None:
        if ignoring is None:
            logger.error("Unreadable path %s: %s", path, reason)
            raise UnreadablePathError(path, reason)
        logger.warning("Ignoring path %s: %s", path, reason)
        ignoring.append(path)

    for raw_path in paths:
        path = os.fspath(raw_path)
        if not os.path.lexists(path):
            reject(path, "path does not exist")
            continue

        try:
            found = list(
                iter_files(
                    path,
                    onerror=lambda entry, exc: reject(
                        str(entry.resolve()), str(exc)
                    ),
                )
            )
        except OSError as exc:
            reject(path, str(exc))
            continue

        for file_path in found:
            full_path = str(file_path.resolve())
            try:
                if (
                    max_file_size is not None
                    and file_path.stat().st_size > max_file_size
                ):
                    reject(full_path, f"file exceeds {max_file_size} bytes")
                    continue
                content = file_path.read_bytes()
            except OSError as exc:
                reject(full_path, str(exc))
                continue

            files.append(RawFile(path=full_path, content=content))

    return files
