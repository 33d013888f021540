from __future__ import annotations

from pathlib import Path


def collect_local_files(local_root: Path) -> list[tuple[Path, str]]:
    """Return every file below ``local_root`` with its POSIX relative path."""
    root = Path(local_root)
    files: list[tuple[Path, str]] = []
    for path in sorted(root.rglob("*")):
        if path.is_file():
            files.append((path, path.relative_to(root).as_posix()))
    return files
