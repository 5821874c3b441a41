from __future__ import annotations

from pathlib import Path
from typing import Iterable

# build output and installed packages of a Node project; dot-directories are always skipped
DEFAULT_IGNORES = frozenset({"node_modules", "dist", "build", "coverage", "out", "tmp"})


def should_ignore_dir(dir_path: Path, extra: Iterable[str] = ()) -> bool:
    name = dir_path.name
    return name.startswith(".") or name in DEFAULT_IGNORES or name in set(extra)
