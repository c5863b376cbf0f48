"""Tests for cache_ops.CacheOps.

Covers:
- listFiles descriptors and subdirectories
- readFile encoding and missing files
- writeFile decoding, parent creation, overwrite
- getCacheInfo sizing and truncation
- Traversal attempts on every operation
"""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from cache_agent.cache_ops import CacheOps, FileEntry
from cache_agent.errors import AccessDenied, InvalidParams, NotFound


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


@pytest.fixture
def ops(cache_root: Path) -> CacheOps:
    return CacheOps(cache_root)


class TestListFiles:
    """Tests for list_files."""

    def test_scenario_listing(self, ops: CacheOps) -> None:
        """a.txt and b/ are listed with sizes and flags."""
        entries = [e.to_dict() for e in ops.list_files()]
        assert entries == [
            {"name": "a.txt", "isDirectory": False, "size": 4},
            {"name": "b", "isDirectory": True, "size": 0},
        ]

    def test_returns_one_entry_per_child(self, cache_root: Path, ops: CacheOps) -> None:
        """N children give N descriptors."""
        for i in range(12):
            (cache_root / f"main_file_cache.idx{i}").write_bytes(b"x" * i)
        entries = ops.list_files()
        assert len(entries) == 14
        sizes = {e.name: e.size for e in entries}
        assert sizes["main_file_cache.idx7"] == 7

    def test_does_not_recurse(self, cache_root: Path, ops: CacheOps) -> None:
        """Directory contents are not listed or counted."""
        (cache_root / "b" / "big.dat").write_bytes(b"0" * 1000)
        b_entry = next(e for e in ops.list_files() if e.name == "b")
        assert b_entry == FileEntry("b", True, 0)

    def test_subdir(self, cache_root: Path, ops: CacheOps) -> None:
        """subdir lists that directory instead of the root."""
        (cache_root / "b" / "inner.bin").write_bytes(b"\x00\x01")
        assert ops.list_files("b") == [FileEntry("inner.bin", False, 2)]

    def test_empty_directory(self, ops: CacheOps) -> None:
        assert ops.list_files("b") == []

    def test_missing_subdir_raises(self, ops: CacheOps) -> None:
        """Filesystem errors propagate to the dispatcher."""
        with pytest.raises(FileNotFoundError):
            ops.list_files("nope")

    def test_traversal_denied(self, ops: CacheOps) -> None:
        with pytest.raises(AccessDenied):
            ops.list_files("..")


class TestReadFile:
    """Tests for read_file."""

    def test_reads_base64(self, ops: CacheOps) -> None:
        result = ops.read_file("a.txt")
        assert result == {"data": b64(b"test"), "size": 4}

    def test_missing_file(self, ops: CacheOps) -> None:
        """Missing files raise NotFound naming the path."""
        with pytest.raises(NotFound) as exc_info:
            ops.read_file("missing.bin")
        assert "not found" in exc_info.value.message.lower()
        assert "missing.bin" in exc_info.value.message

    def test_directory_is_not_found(self, cache_root: Path, ops: CacheOps) -> None:
        """Reading a directory names the requested path, never the host path."""
        with pytest.raises(NotFound) as exc_info:
            ops.read_file("b")
        assert exc_info.value.message == "File not found: b"
        assert str(cache_root) not in exc_info.value.message

    def test_missing_param(self, ops: CacheOps) -> None:
        with pytest.raises(InvalidParams):
            ops.read_file(None)

    def test_traversal_denied(self, cache_root: Path, ops: CacheOps) -> None:
        (cache_root.parent / "secret.txt").write_text("nope")
        with pytest.raises(AccessDenied):
            ops.read_file("../secret.txt")

    def test_large_file_is_fully_buffered(self, cache_root: Path, ops: CacheOps) -> None:
        """No size cap: the whole file comes back in one payload."""
        payload = bytes(range(256)) * 4096  # 1 MiB
        (cache_root / "main_file_cache.dat2").write_bytes(payload)
        result = ops.read_file("main_file_cache.dat2")
        assert result["size"] == len(payload)
        assert base64.b64decode(result["data"]) == payload


class TestWriteFile:
    """Tests for write_file."""

    @pytest.mark.parametrize("payload", [
        b"",
        b"hello",
        b"\xff\xfe\x00\x80\xc3\x28",
        bytes(range(256)),
    ])
    def test_write_then_read(self, ops: CacheOps, payload: bytes) -> None:
        """Bytes written come back unchanged, including empty and non-UTF8 data."""
        assert ops.write_file("out.bin", b64(payload)) == {"written": len(payload)}
        result = ops.read_file("out.bin")
        assert base64.b64decode(result["data"]) == payload
        assert result["size"] == len(payload)

    def test_creates_parent_directories(self, cache_root: Path, ops: CacheOps) -> None:
        ops.write_file("x/y/z.dat", b64(b"abc"))
        assert (cache_root / "x" / "y" / "z.dat").read_bytes() == b"abc"

    def test_overwrites(self, cache_root: Path, ops: CacheOps) -> None:
        ops.write_file("a.txt", b64(b"replaced"))
        assert (cache_root / "a.txt").read_bytes() == b"replaced"

    def test_encoding_param_ignored(self, cache_root: Path, ops: CacheOps) -> None:
        """Payload is base64 whatever encoding claims."""
        ops.write_file("e.txt", b64(b"plain"), encoding="utf8")
        assert (cache_root / "e.txt").read_bytes() == b"plain"

    def test_missing_data(self, ops: CacheOps) -> None:
        with pytest.raises(InvalidParams):
            ops.write_file("a.txt", None)

    def test_traversal_denied_without_mutation(self, cache_root: Path, ops: CacheOps) -> None:
        """A rejected write creates neither the file nor its parents."""
        with pytest.raises(AccessDenied):
            ops.write_file("../evil/dir/file.bin", b64(b"x"))
        assert not (cache_root.parent / "evil").exists()


class TestGetCacheInfo:
    """Tests for get_cache_info."""

    def test_scenario_info(self, cache_root: Path, ops: CacheOps) -> None:
        assert ops.get_cache_info() == {
            "path": str(cache_root),
            "fileCount": 2,
            "totalSize": 4,
            "files": ["a.txt", "b"],
        }

    def test_total_size_excludes_directories(self, cache_root: Path, ops: CacheOps) -> None:
        """Subdirectory contents never count towards totalSize."""
        (cache_root / "b" / "nested.dat").write_bytes(b"0" * 500)
        (cache_root / "c.dat").write_bytes(b"12345")
        info = ops.get_cache_info()
        assert info["totalSize"] == 9
        assert info["fileCount"] == 3

    def test_files_truncated_at_fifty(self, cache_root: Path, ops: CacheOps) -> None:
        """files holds at most 50 names; fileCount is the real count."""
        for i in range(60):
            (cache_root / f"f{i:02d}").write_bytes(b"")
        info = ops.get_cache_info()
        assert info["fileCount"] == 62
        assert len(info["files"]) == 50


class TestPreview:
    def test_preview_limit(self, cache_root: Path, ops: CacheOps) -> None:
        for i in range(30):
            (cache_root / f"idx{i:02d}.idx").write_bytes(b"")
        assert len(ops.preview(20)) == 20
        assert ops.preview(20)[0] == "a.txt"
