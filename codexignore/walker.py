"""Directory walking and content manifests filtered through ignore rules."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import blake3

from .matcher import CodexIgnore

logger = logging.getLogger(__name__)


def _log_walk_error(exc: OSError) -> None:
    logger.warning("walk_error", extra={"path": exc.filename, "error": exc.strerror})


def iter_files(
    root: str | Path,
    ignore: CodexIgnore | None,
    *,
    include_dirs: bool = False,
) -> Iterator[Path]:
    """Yield the paths under ``root`` that ``ignore`` keeps, in sorted order.

    Yielded paths are absolute. An ignored directory is pruned unless a later
    negated rule could re-include something beneath it, in which case it is
    descended and its contents are filtered one by one. Symlinked directories
    are never followed; with ``include_dirs`` kept directories (symlinks to
    directories included) are yielded before their contents.
    """

    root = Path(os.path.normpath(os.path.abspath(root)))
    kept = pruned = skipped = 0
    logger.info("walk_started", extra={"root": str(root), "filtered": ignore is not None})

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        current = Path(dirpath)
        dirnames.sort()
        descend = []
        for name in dirnames:
            path = current / name
            if ignore is not None and ignore.is_dir_ignored(path):
                if ignore.can_prune(path):
                    pruned += 1
                    continue
            elif include_dirs:
                yield path
            descend.append(name)
        dirnames[:] = descend

        for name in sorted(filenames):
            path = current / name
            if ignore is not None and ignore.is_file_ignored(path):
                skipped += 1
                continue
            kept += 1
            yield path

    logger.info(
        "walk_completed",
        extra={"root": str(root), "kept": kept, "pruned_dirs": pruned, "skipped_files": skipped},
    )


def _hash_file(path: Path) -> str | None:
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.warning("hash_error", extra={"path": str(path), "error": exc.strerror or str(exc)})
        return None
    return blake3.blake3(data).hexdigest()


def build_manifest(
    root: str | Path,
    ignore: CodexIgnore | None,
    *,
    workers: int = 4,
) -> dict[str, str]:
    """Map every kept file's root-relative POSIX path to its BLAKE3 digest.

    Files that cannot be read (dangling symlinks, permission errors) are
    logged and left out.
    """

    root = Path(os.path.normpath(os.path.abspath(root)))
    files = list(iter_files(root, ignore))
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        digests = list(pool.map(_hash_file, files))
    return {
        path.relative_to(root).as_posix(): digest
        for path, digest in zip(files, digests)
        if digest is not None
    }
