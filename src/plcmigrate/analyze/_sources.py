"""Source discovery for a project directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from plcmigrate.model.analysis import SourceFile

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".st", ".stx", ".scl", ".pou", ".exp")


def load_sources(root: str | Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> list[SourceFile]:
    """Read every matching file under *root*, skipping hidden directories.

    Paths are root-relative POSIX strings, sorted for stable output.
    Undecodable bytes are replaced rather than failing the file.
    """
    root = Path(root)
    wanted = {ext.lower() for ext in extensions}
    files = []
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts[:-1]):
            continue
        if not path.is_file() or path.suffix.lower() not in wanted:
            continue
        files.append(SourceFile(
            path=relative.as_posix(),
            content=path.read_text(encoding="utf-8", errors="replace"),
        ))
    logger.info("Loaded %d source files from %s", len(files), root)
    return files
