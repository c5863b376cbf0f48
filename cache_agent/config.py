"""
Neptune Cache Agent configuration.

Settings come from the command line (the cache path) and the environment
(server endpoint, log level). Everything else is a fixed constant.
"""

import os
from pathlib import Path
from typing import Iterable

DEFAULT_SERVER_URL = "wss://neptune.lesik.site/agent"
SERVER_ENV_VAR = "NEPTUNE_SERVER"
LOG_LEVEL_ENV_VAR = "NEPTUNE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

RECONNECT_DELAY = 5.0   # seconds
# Websocket ping interval, seconds. Pongs are only consumed between requests,
# so a single file operation slower than half this interval can drop the link.
HEARTBEAT = 30.0

REGISTER_PREVIEW_LIMIT = 20
INFO_FILES_LIMIT = 50

# Substrings / suffixes that mark an OSRS-style cache directory
CACHE_MARKERS = ("main_file_cache", "cache")
CACHE_INDEX_SUFFIX = ".idx"


def server_url() -> str:
    """Hub endpoint, overridable via NEPTUNE_SERVER."""
    return os.environ.get(SERVER_ENV_VAR) or DEFAULT_SERVER_URL


def log_level() -> str:
    return (os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper()


def resolve_cache_path(raw: str) -> Path:
    """
    Resolve the cache directory given on the command line.

    Raises ValueError if it does not exist or is not a directory.
    """
    path = Path(raw).expanduser().resolve()
    if not path.exists():
        raise ValueError(f"Cache path does not exist: {path}")
    if not path.is_dir():
        raise ValueError(f"Cache path is not a directory: {path}")
    return path


def looks_like_cache(names: Iterable[str]) -> bool:
    """True if any top-level name looks like a cache data or index file."""
    return any(
        any(marker in name for marker in CACHE_MARKERS) or name.endswith(CACHE_INDEX_SUFFIX)
        for name in names
    )
