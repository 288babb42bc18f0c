"""
Recursive filesystem traversal.

Used both for collecting submitted paths and for reading back the
contents of an archive staging directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterator, Optional

OnError = Callable[[Path, OSError], None]


def iter_files(
    root: str | os.PathLike,
    onerror: Optional[OnError] = None,
) -> Iterator[Path]:
    """
    Yield every regular file below ``root`` (or ``root`` itself).

    Directory entries are visited in sorted order so that repeated runs
    over the same tree produce the same sequence. Symbolic links are not
    followed and not yielded.

    A directory that cannot be listed is reported to ``onerror`` and
    skipped, so its readable siblings are still yielded. Without a
    callback the OSError propagates.

    Raises:
        FileNotFoundError: if ``root`` does not exist.
    """
    path = Path(root)
    if not os.path.lexists(path):
        raise FileNotFoundError(f"Encountered a nonexistent path: {path}")

    if path.is_symlink():
        return

    if path.is_file():
        yield path
    elif path.is_dir():
        try:
            entries = sorted(path.iterdir())
        except OSError as exc:
            if onerror is None:
                raise
            onerror(path, exc)
            return

        for nested in entries:
            yield from iter_files(nested, onerror)
