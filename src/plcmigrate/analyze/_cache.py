"""Caller-owned cache of parsed POUs, keyed by project identity."""

from __future__ import annotations

import hashlib

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.pou import POU


def project_key(files: list[SourceFile]) -> str:
    """Content-derived identity for a set of files, independent of order."""
    digest = hashlib.sha1()
    for file in sorted(files, key=lambda f: f.path):
        digest.update(file.path.encode("utf-8"))
        digest.update(b"\0")
        digest.update(file.content.encode("utf-8", "surrogatepass"))
        digest.update(b"\0")
    return digest.hexdigest()


class ParseCache:
    """Map from project identity to that project's parsed POU list.

    Nothing is cached implicitly: the analyzer reads and writes an
    instance only when one is passed to it, and only from its reducer.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[POU]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> list[POU] | None:
        pous = self._entries.get(key)
        return list(pous) if pous is not None else None

    def put(self, key: str, pous: list[POU]) -> None:
        self._entries[key] = list(pous)

    def invalidate(self, key: str) -> bool:
        """Drop *key*; return whether it was cached."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
