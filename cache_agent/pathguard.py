"""
Neptune Cache Agent path guard.

Every path a request names is joined onto the cache root and normalized
lexically. The result is accepted only if its components start with the
root's components, so a sibling such as /cache-old never passes for a root
of /cache. Nothing here touches the filesystem.
"""

import os
from pathlib import Path, PurePath
from typing import Optional

from .errors import AccessDenied


def is_within(root: Path, candidate: Path) -> bool:
    """True if candidate is root itself or lies below it, compared segment by segment."""
    root_parts = root.parts
    return candidate.parts[:len(root_parts)] == root_parts


def resolve_in_root(root: Path, user_path: Optional[str]) -> Path:
    """
    Resolve a caller-supplied path against the cache root.

    An absolute user_path is treated as relative to the root (its anchor is
    dropped). None or "" resolves to the root.

    Raises AccessDenied if the normalized path escapes the root.
    """
    relative = PurePath(user_path or "")
    if relative.anchor:
        relative = PurePath(*relative.parts[1:])

    candidate = Path(os.path.normpath(os.path.join(root, relative)))
    if not is_within(root, candidate):
        raise AccessDenied("Access denied: path traversal attempt")
    return candidate
