from __future__ import annotations

import os
from pathlib import Path

CACHE_DIR_NAME = "class-metadata"


def get_cache_dir() -> Path:
    """
    Return the default directory of the file cache store.

    ``$XDG_CACHE_HOME/class-metadata`` when the variable is set, otherwise
    ``~/.cache/class-metadata``. When no home directory can be determined
    (e.g. in stripped-down CI containers) the current directory is used.
    The directory is not created here.
    """
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache) / CACHE_DIR_NAME

    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        home = Path(os.getcwd())
    return home / ".cache" / CACHE_DIR_NAME
