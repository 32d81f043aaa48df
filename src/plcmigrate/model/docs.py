"""Documentation comments attached to (or floating near) POUs."""

from __future__ import annotations

from enum import Enum

from .base import Record, SourceLocation


class DocParam(Record):
    name: str
    type: str | None = None
    description: str = ""


class HistoryEntry(Record):
    date: str
    author: str | None = None
    description: str = ""


class Completeness(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MINIMAL = "minimal"


class DocQuality(Record):
    """Heuristic documentation quality, 0-100."""

    score: int
    completeness: Completeness


class Docstring(Record):
    """A structured documentation comment.

    ``associated_block`` is best-effort: a comment that is not textually
    adjacent to a POU header stays unassociated.
    """

    id: str
    summary: str = ""
    description: str = ""
    params: list[DocParam] = []
    returns: str | None = None
    author: str | None = None
    date: str | None = None
    history: list[HistoryEntry] = []
    warnings: list[str] = []
    notes: list[str] = []
    raw: str = ""
    location: SourceLocation
    associated_block: str | None = None
    associated_block_type: str | None = None
    quality: DocQuality | None = None


class DocstringSummary(Record):
    total: int = 0
    by_block: dict[str, int] = {}
    with_params: int = 0
    with_history: int = 0
    with_warnings: int = 0
    average_quality: float = 0.0


class DocstringResult(Record):
    docstrings: list[Docstring] = []
    summary: DocstringSummary = DocstringSummary()
