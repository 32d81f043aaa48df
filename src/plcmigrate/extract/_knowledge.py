"""Tribal knowledge: warnings, workarounds and folklore buried in comments,
plus numeric constants nobody explained."""

from __future__ import annotations

import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.knowledge import (
    KnowledgeResult,
    KnowledgeSummary,
    KnowledgeType,
    TribalKnowledgeItem,
)
from plcmigrate.model.safety import Severity
from plcmigrate.parse import TokenKind, comment_body
from plcmigrate.patterns import is_state_variable

from ._text import SourceText
from ._variables import var_section_lines

K = KnowledgeType

# Ordered; a comment yields one item per matching row.
KNOWLEDGE_PATTERNS: list[tuple[KnowledgeType, Severity, re.Pattern[str]]] = [
    (K.DANGER, Severity.CRITICAL, re.compile(r"\bDANGER\b", re.IGNORECASE)),
    (K.WARNING, Severity.HIGH, re.compile(r"\bWARNING\b", re.IGNORECASE)),
    (K.CAUTION, Severity.HIGH, re.compile(r"\bCAUTION\b", re.IGNORECASE)),
    (K.DO_NOT_CHANGE, Severity.CRITICAL, re.compile(
        r"\b(?:DO\s+NOT|DON'?T|NEVER)\s+(?:CHANGE|MODIFY|REMOVE|DELETE|TOUCH)\b", re.IGNORECASE,
    )),
    (K.WORKAROUND, Severity.HIGH, re.compile(r"\bWORK[\s-]?AROUND\b", re.IGNORECASE)),
    (K.HACK, Severity.HIGH, re.compile(r"\b(?:HACK|KLUDGE|BODGE)\b", re.IGNORECASE)),
    (K.NOTE, Severity.HIGH, re.compile(r"\bIMPORTANT\b", re.IGNORECASE)),
    (K.NOTE, Severity.LOW, re.compile(r"\bNOTE\b", re.IGNORECASE)),
    (K.TODO, Severity.MEDIUM, re.compile(r"\bTODO\b", re.IGNORECASE)),
    (K.FIXME, Severity.HIGH, re.compile(r"\b(?:FIXME|BUG|XXX)\b", re.IGNORECASE)),
    (K.EQUIPMENT, Severity.MEDIUM, re.compile(
        r"\b(?:EQUIPMENT|MACHINE|VENDOR|SIEMENS|ALLEN[\s-]BRADLEY|ROCKWELL|BECKHOFF|"
        r"SCHNEIDER|OMRON|MITSUBISHI)\b",
        re.IGNORECASE,
    )),
    (K.MAGIC_NUMBER, Severity.MEDIUM, re.compile(
        r"\bMAGIC\s+NUMBER\b|\bWHY\s+-?\d+(?:\.\d+)?\s*\?", re.IGNORECASE,
    )),
    (K.MYSTERY, Severity.MEDIUM, re.compile(
        r"\bMYSTERY\b|\bUNKNOWN\b|\bNOT\s+SURE\s+WHY\b|\bDON'?T\s+KNOW\s+WHY\b|"
        r"\bNOBODY\s+KNOWS\b|\bDON'?T\s+ASK\b",
        re.IGNORECASE,
    )),
    (K.HISTORY, Severity.LOW, re.compile(r"\b(?:19|20)\d{2}[-/]\d{2}[-/]\d{2}\b")),
    (K.AUTHOR, Severity.LOW, re.compile(
        r"\b(?:AUTHOR|(?:MODIFIED|WRITTEN|CREATED|CHANGED)\s+BY)\b", re.IGNORECASE,
    )),
]

ORDINARY_CONSTANTS = frozenset({0.0, 1.0, 2.0, 10.0, 100.0, 1000.0})

_CONSTANT_RE = re.compile(r"\b([A-Za-z_]\w*(?:\.\w+)*)\s*:=\s*(-?\d+(?:\.\d+)?)\s*;")
_SELF_DOCUMENTING_RE = re.compile(
    r"max|min|limit|count|timeout|delay|offset|size|len|num|preset|setpoint|index|idx",
    re.IGNORECASE,
)
_CONSTANT_NAME_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")

_IMPORTANCE_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


def _context(text: SourceText, after_line: int, count: int) -> str | None:
    lines = []
    for code_line, raw in zip(text.code_lines[after_line:], text.lines[after_line:]):
        if len(lines) >= count:
            break
        if code_line.strip():
            lines.append(raw.strip())
    return "\n".join(lines) or None


def _self_documenting(name: str) -> bool:
    leaf = name.split(".")[-1]
    return bool(
        _SELF_DOCUMENTING_RE.search(leaf)
        or _CONSTANT_NAME_RE.match(leaf)
        or is_state_variable(leaf)
    )


def extract_tribal_knowledge(
    source: str,
    file_path: str,
    include_context: bool = True,
    context_lines: int = 3,
) -> KnowledgeResult:
    """Mine comments and code for knowledge that lives only in people's heads.

    Parameters
    ----------
    include_context
        Attach up to *context_lines* following code lines to comment items.
    """
    text = SourceText(source)
    items: list[TribalKnowledgeItem] = []

    for token in text.comments:
        content = " ".join(comment_body(token.text).split())
        if not content:
            continue
        context = _context(text, token.end_line, context_lines) if include_context else None
        for kind, importance, pattern in KNOWLEDGE_PATTERNS:
            if not pattern.search(content):
                continue
            items.append(TribalKnowledgeItem(
                id=make_id("tk", file_path, token.start_line, kind.value),
                type=kind,
                content=content,
                importance=importance,
                context=context,
                location=SourceLocation(
                    file=file_path, line=token.start_line, column=token.start_col,
                    end_line=token.end_line,
                ),
            ))

    declarations = var_section_lines(text)
    for index, code_line in enumerate(text.code_lines):
        line_no = index + 1
        if line_no in declarations or code_line != text.lines[index]:
            continue
        for match in _CONSTANT_RE.finditer(code_line):
            name, value = match.group(1), match.group(2)
            if float(value) in ORDINARY_CONSTANTS or _self_documenting(name):
                continue
            items.append(TribalKnowledgeItem(
                id=make_id("tk", file_path, line_no, "magic", name),
                type=K.MAGIC_NUMBER,
                content=f"Unexplained constant {value} assigned to {name}",
                importance=Severity.MEDIUM,
                context=code_line.strip() if include_context else None,
                location=SourceLocation(
                    file=file_path, line=line_no, column=match.start() + 1,
                ),
            ))

    items = _dedupe(items)
    items.sort(key=lambda i: (_IMPORTANCE_RANK[i.importance], i.location.line))
    return KnowledgeResult(items=items, summary=summarize_knowledge(items))


def _dedupe(items: list[TribalKnowledgeItem]) -> list[TribalKnowledgeItem]:
    seen: set[tuple[KnowledgeType, str]] = set()
    unique = []
    for item in items:
        key = (item.type, item.content[:50].lower())
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def summarize_knowledge(items: list[TribalKnowledgeItem]) -> KnowledgeSummary:
    by_type: dict[str, int] = {}
    by_importance: dict[str, int] = {}
    for item in items:
        by_type[item.type.value] = by_type.get(item.type.value, 0) + 1
        by_importance[item.importance.value] = by_importance.get(item.importance.value, 0) + 1
    return KnowledgeSummary(
        total=len(items),
        by_type=by_type,
        by_importance=by_importance,
        critical_count=by_importance.get(Severity.CRITICAL.value, 0),
    )


def extract_tribal_knowledge_from_files(files: list[SourceFile], **options) -> KnowledgeResult:
    items: list[TribalKnowledgeItem] = []
    for file in files:
        items.extend(extract_tribal_knowledge(file.content, file.path, **options).items)
    return KnowledgeResult(items=items, summary=summarize_knowledge(items))
