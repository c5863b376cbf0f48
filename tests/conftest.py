"""Root conftest.py for test configuration.

Ensures the local cache_agent package takes priority over any installed copy,
and provides the shared cache directory fixture.
"""

import sys
from pathlib import Path

import pytest

_root_dir = Path(__file__).parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """Cache directory holding a.txt ("test", 4 bytes) and an empty subdirectory b/."""
    root = tmp_path / "cache"
    root.mkdir()
    (root / "a.txt").write_bytes(b"test")
    (root / "b").mkdir()
    return root.resolve()
