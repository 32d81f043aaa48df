"""Tribal knowledge recovered from comments and unexplained constants."""

from __future__ import annotations

from enum import Enum

from .base import Record, SourceLocation
from .safety import Severity


class KnowledgeType(str, Enum):
    DANGER = "danger"
    WARNING = "warning"
    CAUTION = "caution"
    DO_NOT_CHANGE = "do-not-change"
    WORKAROUND = "workaround"
    HACK = "hack"
    NOTE = "note"
    TODO = "todo"
    FIXME = "fixme"
    EQUIPMENT = "equipment"
    MAGIC_NUMBER = "magic-number"
    MYSTERY = "mystery"
    HISTORY = "history"
    AUTHOR = "author"


class TribalKnowledgeItem(Record):
    id: str
    type: KnowledgeType
    content: str
    importance: Severity
    context: str | None = None
    location: SourceLocation


class KnowledgeSummary(Record):
    total: int = 0
    by_type: dict[str, int] = {}
    by_importance: dict[str, int] = {}
    critical_count: int = 0


class KnowledgeResult(Record):
    items: list[TribalKnowledgeItem] = []
    summary: KnowledgeSummary = KnowledgeSummary()
