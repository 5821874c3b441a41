from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable

from routedoc.repo.ignore import should_ignore_dir


def scan_source_files(
    root: Path,
    pattern: str = "*.controller.ts",
    max_files: int | None = None,
    ignore: Iterable[str] = (),
) -> list[Path]:
    """
    Absolute paths of files under root whose name matches pattern.
    Sorted so that scans (and tag order) are deterministic.
    """
    extra = tuple(ignore)
    out: list[Path] = []
    for dirpath, dirs, files in os.walk(root):
        base = Path(dirpath)
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(base / d, extra))

        for f in sorted(files):
            if fnmatch.fnmatch(f, pattern):
                out.append((base / f).resolve())
                if max_files is not None and len(out) >= max_files:
                    return sorted(out)
    return sorted(out)


def is_source_file(path: Path, pattern: str = "*.controller.ts") -> bool:
    return path.is_file() and fnmatch.fnmatch(path.name, pattern)
