"""
Tests for archive expansion and path collection.

Coverage matrix:

  Plain files            pass through unchanged, in order
  Zip / tar.gz           expanded with archive-relative member paths
  Nested archives        expanded transitively, bounded by max_depth
  Corrupt archives       kept as plain files (fail open)
  Unsafe tar members     skipped
  Staging directory      removed after extraction, also on failure
  collect_paths          recursive, ignoring collector, size limit,
                         unlistable subdirectories reported alone
"""

from pathlib import Path

import pytest
from unittest.mock import patch

from validation.app.checks import archive_expansion
from validation.app.checks.archive_expansion import (
    STAGING_PREFIX,
    collect_paths,
    expand_archives,
    is_archive,
)
from validation.app.errors import UnreadablePathError
from validation.app.schemas.files import RawFile
from validation.tests.fixtures.contract_factory import (
    LIBRARY_PATH,
    LIBRARY_SOURCE,
    TOKEN_PATH,
    TOKEN_SOURCE,
    source_file,
    tar_bytes,
    zip_bytes,
)


# ---------------------------------------------------------------------------
# Archive sniffing
# ---------------------------------------------------------------------------

def test_detects_archives_by_content_not_name():
    archive = zip_bytes([("a.sol", b"contract A {}")])

    assert is_archive(archive)
    assert is_archive(tar_bytes([("a.sol", b"contract A {}")]))
    assert not is_archive(TOKEN_SOURCE.encode())
    assert not is_archive((TOKEN_SOURCE * 20).encode())
    assert not is_archive(b"")


def test_zero_filled_buffer_is_not_an_archive():
    assert not is_archive(b"\0" * 1024)


def test_corrupt_zip_is_plain_file():
    corrupt = RawFile(path="broken.zip", content=b"PK\x03\x04 definitely not a zip")

    assert expand_archives([corrupt]) == [corrupt]


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------

def test_plain_files_pass_through_in_order():
    files = [
        source_file(TOKEN_PATH, TOKEN_SOURCE),
        source_file(LIBRARY_PATH, LIBRARY_SOURCE),
    ]

    assert expand_archives(files) == files


def test_zip_members_keep_archive_relative_paths():
    archive = RawFile(
        path="upload.zip",
        content=zip_bytes(
            [
                (TOKEN_PATH, TOKEN_SOURCE.encode()),
                (LIBRARY_PATH, LIBRARY_SOURCE.encode()),
            ]
        ),
    )

    expanded = expand_archives([archive])

    by_path = {f.path: f.content for f in expanded}
    assert by_path == {
        TOKEN_PATH: TOKEN_SOURCE.encode(),
        LIBRARY_PATH: LIBRARY_SOURCE.encode(),
    }
    assert not any(STAGING_PREFIX in f.path for f in expanded)


def test_tar_gz_members_are_expanded():
    archive = RawFile(
        path="upload.tgz",
        content=tar_bytes([(TOKEN_PATH, TOKEN_SOURCE.encode())]),
    )

    expanded = expand_archives([archive])

    assert [(f.path, f.content) for f in expanded] == [
        (TOKEN_PATH, TOKEN_SOURCE.encode())
    ]


def test_nested_archives_are_expanded_transitively():
    inner = zip_bytes([("Inner.sol", b"contract Inner {}")])
    outer = RawFile(
        path="outer.zip",
        content=zip_bytes([("inner.zip", inner), ("Outer.sol", b"contract Outer {}")]),
    )

    expanded = expand_archives([outer])

    assert {f.path for f in expanded} == {"Inner.sol", "Outer.sol"}


def test_expansion_preserves_file_count():
    plain = source_file("Plain.sol", "contract Plain {}")
    archive = RawFile(
        path="bundle.zip",
        content=zip_bytes([("A.sol", b"a"), ("B.sol", b"b"), ("C.sol", b"c")]),
    )

    expanded = expand_archives([plain, archive])

    # 2 inputs - 1 container + 3 members
    assert len(expanded) == 4
    assert expanded[0] == plain


def test_archive_beyond_max_depth_is_plain_file():
    inner = zip_bytes([("Inner.sol", b"contract Inner {}")])
    outer = RawFile(path="outer.zip", content=zip_bytes([("inner.zip", inner)]))

    expanded = expand_archives([outer], max_depth=1)

    assert [f.path for f in expanded] == ["inner.zip"]
    assert expanded[0].content == inner


def test_unsafe_tar_members_are_skipped():
    archive = RawFile(
        path="evil.tar",
        content=tar_bytes(
            [("../escape.sol", b"contract Evil {}"), ("Safe.sol", b"contract Safe {}")],
            mode="w",
        ),
    )

    expanded = expand_archives([archive])

    assert [f.path for f in expanded] == ["Safe.sol"]


def test_staging_directory_is_removed(tmp_path):
    archive = RawFile(path="a.zip", content=zip_bytes([("A.sol", b"a")]))

    expand_archives([archive], staging_dir=tmp_path)

    assert list(tmp_path.iterdir()) == []


def test_staging_directory_is_removed_on_failure(tmp_path):
    archive = RawFile(path="a.zip", content=zip_bytes([("A.sol", b"a")]))

    with patch.object(
        archive_expansion,
        "_read_staged_files",
        side_effect=RuntimeError("simulated failure"),
    ):
        with pytest.raises(RuntimeError, match="simulated failure"):
            expand_archives([archive], staging_dir=tmp_path)

    assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# collect_paths
# ---------------------------------------------------------------------------

def test_collect_paths_reads_directories_recursively(tmp_path):
    (tmp_path / "contracts" / "lib").mkdir(parents=True)
    (tmp_path / "contracts" / "Token.sol").write_text(TOKEN_SOURCE)
    (tmp_path / "contracts" / "lib" / "SafeMath.sol").write_text(LIBRARY_SOURCE)

    files = collect_paths([tmp_path])

    assert sorted(f.path for f in files) == sorted(
        [
            str((tmp_path / "contracts" / "Token.sol").resolve()),
            str((tmp_path / "contracts" / "lib" / "SafeMath.sol").resolve()),
        ]
    )


def test_missing_path_goes_to_ignoring(tmp_path):
    existing = tmp_path / "Token.sol"
    existing.write_text(TOKEN_SOURCE)
    missing = str(tmp_path / "nope.sol")
    ignoring = []

    files = collect_paths([existing, missing], ignoring=ignoring)

    assert [f.path for f in files] == [str(existing.resolve())]
    assert ignoring == [missing]


def test_missing_path_without_ignoring_raises(tmp_path):
    missing = str(tmp_path / "nope.sol")

    with pytest.raises(UnreadablePathError) as exc_info:
        collect_paths([missing])

    assert exc_info.value.path == missing
    assert missing in str(exc_info.value)


def test_oversized_file_goes_to_ignoring(tmp_path):
    big = tmp_path / "Big.sol"
    big.write_text(TOKEN_SOURCE)
    ignoring = []

    files = collect_paths([big], ignoring=ignoring, max_file_size=8)

    assert files == []
    assert ignoring == [str(big.resolve())]


def test_unlistable_subdirectory_is_ignored_alone(tmp_path, monkeypatch):
    (tmp_path / "locked").mkdir()
    (tmp_path / "locked" / "Hidden.sol").write_text("contract Hidden {}")
    (tmp_path / "Token.sol").write_text(TOKEN_SOURCE)
    locked = tmp_path / "locked"

    original_iterdir = Path.iterdir

    def iterdir(self):
        if self == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", iterdir)
    ignoring = []

    files = collect_paths([tmp_path], ignoring=ignoring)

    assert [f.path for f in files] == [str((tmp_path / "Token.sol").resolve())]
    assert ignoring == [str(locked.resolve())]


def test_unlistable_subdirectory_without_ignoring_raises(tmp_path, monkeypatch):
    (tmp_path / "locked").mkdir()
    locked = tmp_path / "locked"

    original_iterdir = Path.iterdir

    def iterdir(self):
        if self == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return original_iterdir(self)

    monkeypatch.setattr(Path, "iterdir", iterdir)

    with pytest.raises(UnreadablePathError) as exc_info:
        collect_paths([tmp_path])

    assert exc_info.value.path == str(locked.resolve())
