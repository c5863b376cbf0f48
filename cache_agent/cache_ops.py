"""
Neptune Cache Agent file operations.

Four operations over the confined cache root: list, read, write, summarize.
Every path goes through the path guard before the filesystem is touched.
File contents travel as base64 text.

Note: reads and writes are whole-file and unbuffered. A very large file is
held in memory in full, and a write interrupted midway leaves a partial file.
"""

import base64
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from .config import INFO_FILES_LIMIT, REGISTER_PREVIEW_LIMIT
from .errors import InvalidParams, NotFound
from .pathguard import resolve_in_root

log = structlog.get_logger(__name__)


@dataclass
class FileEntry:
    """A direct child of a listed directory."""

    name: str
    is_directory: bool
    size: int  # 0 for directories

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "isDirectory": self.is_directory, "size": self.size}


def _require(value: Optional[str], name: str) -> str:
    if not isinstance(value, str):
        raise InvalidParams(f"Missing required parameter: {name}")
    return value


class CacheOps:
    """File operations confined to a single cache root."""

    def __init__(self, root: Path):
        self.root = root

    def _entry_names(self) -> List[str]:
        return sorted(os.listdir(self.root))

    def list_files(self, subdir: Optional[str] = None) -> List[FileEntry]:
        """List the direct children of subdir (default: the root). Not recursive."""
        target = resolve_in_root(self.root, subdir)
        entries = []
        with os.scandir(target) as it:
            for dirent in it:
                is_dir = dirent.is_dir()
                size = 0 if is_dir else dirent.stat().st_size
                entries.append(FileEntry(dirent.name, is_dir, size))
        entries.sort(key=lambda e: e.name)
        return entries

    def read_file(self, file_path: Optional[str]) -> Dict[str, Any]:
        """Read a whole file; returns its base64 text and raw byte length."""
        file_path = _require(file_path, "filePath")
        target = resolve_in_root(self.root, file_path)
        if not target.is_file():
            raise NotFound(f"File not found: {file_path}")

        raw = target.read_bytes()
        return {
            "data": base64.b64encode(raw).decode("ascii"),
            "size": len(raw),
        }

    def write_file(self, file_path: Optional[str], data: Optional[str],
                   encoding: Optional[str] = None) -> Dict[str, int]:
        """
        Decode base64 data and write it to file_path, creating parent
        directories. Existing files are overwritten.

        `encoding` is part of the request shape but unused; payloads are
        always base64.
        """
        file_path = _require(file_path, "filePath")
        data = _require(data, "data")
        target = resolve_in_root(self.root, file_path)

        raw = base64.b64decode(data)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(raw)
        return {"written": len(raw)}

    def get_cache_info(self) -> Dict[str, Any]:
        """
        Summarize the root: entry count, summed size of direct plain files
        (directories and their contents count 0), and the first 50 names.
        """
        names = self._entry_names()
        total_size = 0
        for name in names:
            path = self.root / name
            if path.is_file():
                total_size += path.stat().st_size

        if len(names) > INFO_FILES_LIMIT:
            log.debug("cache_info_truncated", total=len(names), shown=INFO_FILES_LIMIT)

        return {
            "path": str(self.root),
            "fileCount": len(names),
            "totalSize": total_size,
            "files": names[:INFO_FILES_LIMIT],
        }

    def preview(self, limit: int = REGISTER_PREVIEW_LIMIT) -> List[str]:
        """First `limit` root entry names, announced on registration."""
        return self._entry_names()[:limit]
