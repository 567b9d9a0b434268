"""Discovery of candidate audio files under a root directory.

Paths come straight from os.walk and are never passed through a shell or a
glob, so names with spaces, quotes, brackets or non-ASCII characters are
returned exactly as they exist on disk.

Symlinks: with ``follow_symlinks=False`` (the default) symlinked files and
directories are ignored, matching ``find -type f`` semantics. With
``follow_symlinks=True`` both are followed and files are deduplicated by
their resolved path, so a file reachable through two links is listed once.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from .sanitize import normalize_extension

log = logger.bind(stage="discovery")


def _is_excluded(path: Path, excluded: list[Path]) -> bool:
    absolute = path.absolute()
    return any(absolute == ex or ex in absolute.parents for ex in excluded)


def discover_files(
    root: Path,
    extensions: Iterable[str],
    max_depth: int = 1,
    exclude: Iterable[Path] = (),
    follow_symlinks: bool = False,
) -> list[Path]:
    """Find files under ``root`` whose extension is in ``extensions``.

    ``max_depth`` follows ``find -maxdepth``: 1 lists files directly inside
    root, 2 also looks one directory down, and so on. Extensions match
    case-insensitively. Anything inside an ``exclude`` directory is skipped.
    Order is stable: files of a directory sorted by name, then its
    subdirectories sorted by name. Returns an empty list when nothing
    matches (including a missing root).
    """
    log.debug(
        f"discover_files(root={root}, max_depth={max_depth}, "
        f"follow_symlinks={follow_symlinks})"
    )
    root = Path(root)
    wanted = {ext.lower().lstrip(".") for ext in extensions}
    excluded = [Path(p).absolute() for p in exclude]

    found: list[Path] = []
    seen: set[str] = set()

    for dirpath, dirnames, filenames in os.walk(root, followlinks=follow_symlinks):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts) + 1

        if depth >= max_depth:
            dirnames.clear()
        else:
            dirnames[:] = sorted(
                d for d in dirnames
                if not _is_excluded(current / d, excluded)
                and (follow_symlinks or not (current / d).is_symlink())
            )

        if _is_excluded(current, excluded):
            continue

        for name in sorted(filenames):
            if normalize_extension(name) not in wanted:
                continue
            path = current / name
            if path.is_symlink() and not follow_symlinks:
                continue
            if not path.is_file():
                continue
            key = os.path.realpath(path) if follow_symlinks else str(path)
            if key in seen:
                continue
            seen.add(key)
            found.append(path)

    log.debug(f"Discovered {len(found)} files under {root}")
    return found


def count_by_extension(
    root: Path, extensions: Iterable[str], follow_symlinks: bool = False
) -> dict[str, int]:
    """Count files directly inside ``root`` per extension, omitting zeros.

    Keys keep the order of ``extensions``.
    """
    ordered = [ext.lower().lstrip(".") for ext in extensions]
    counts = dict.fromkeys(ordered, 0)
    for path in discover_files(root, ordered, max_depth=1, follow_symlinks=follow_symlinks):
        counts[normalize_extension(path)] += 1
    return {ext: n for ext, n in counts.items() if n}
