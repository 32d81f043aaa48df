"""Recognition and line-by-line classification of documentation comments.

Shared by the parser (header docstrings) and the standalone docstring
extractor, so both agree on what a summary, a parameter or a history
entry looks like.
"""

from __future__ import annotations

import re

from plcmigrate.model.docs import (
    Completeness,
    DocParam,
    DocQuality,
    HistoryEntry,
)

_MARKER_RE = re.compile(r"@(?:param|returns?|author|date|history|warning|caution|note)\b", re.IGNORECASE)
_BANNER_RE = re.compile(r"^\(\*(?:\*\*|===)")

_SEPARATOR_RE = re.compile(r"^[=\-*#_~+]{3,}$")
_SECTION_RE = re.compile(
    r"^(?:history|revision history|change ?log|parameters|params|inputs|outputs|"
    r"description|notes|warnings|returns)\s*:?\s*$",
    re.IGNORECASE,
)
_PARAM_RE = re.compile(r"^@param\s+(\w+)(?:\s*:\s*(\w+))?\s*[-:]?\s*(.*)$", re.IGNORECASE)
_RETURNS_RE = re.compile(r"^@returns?\s*:?\s*(.*)$", re.IGNORECASE)
_AUTHOR_TAG_RE = re.compile(r"^@author\s*:?\s*(.+)$", re.IGNORECASE)
_AUTHOR_RE = re.compile(r"^(?:auth(?:or)?|written by|by)\s*:\s*(.+)$", re.IGNORECASE)
_DATE_RE = re.compile(r"^(?:@date\s*:?|date\s*:)\s*(.+)$", re.IGNORECASE)
_HISTORY_TAG_RE = re.compile(r"^@history\s*:?\s*(.+)$", re.IGNORECASE)
_DATED_RE = re.compile(r"^(\d{4})[-/](\d{2})[-/](\d{2})\s*[-:]?\s*(.*)$")
_YEAR_RE = re.compile(r"^((?:19|20)\d{2})\s*[-:]\s+(.+)$")
_HISTORY_AUTHOR_RE = re.compile(r"^([A-Za-z][\w.]*)\s*[-:]\s+(.+)$")
_WARNING_RE = re.compile(r"^(?:@(?:warning|caution|danger)\b|(?:WARNING|DANGER|CAUTION)\b)\s*[:!\-]?\s*(.*)$", re.IGNORECASE)
_NOTE_RE = re.compile(r"^(?:@note\b|NOTE\b)\s*[:!\-]?\s*(.*)$", re.IGNORECASE)
_TODO_RE = re.compile(r"^(TODO|FIXME)\b\s*[:!\-]?\s*(.*)$", re.IGNORECASE)


def comment_body(text: str) -> str:
    """Strip ``(* *)`` or ``//`` delimiters from a comment token's text."""
    body = text
    if body.startswith("//"):
        return body[2:].strip()
    if body.startswith("(*"):
        body = body[2:]
        if body.endswith("*)"):
            body = body[:-2]
    return body.strip()


def is_docstring(text: str, start_line: int, end_line: int) -> bool:
    """Whether a block comment is documentation rather than a remark."""
    if not text.startswith("(*"):
        return False
    if end_line > start_line:
        return True
    return bool(_MARKER_RE.search(text) or _BANNER_RE.match(text))


def _clean_lines(body: str) -> list[str]:
    lines = []
    for raw in body.splitlines():
        line = raw.strip()
        line = line.lstrip("*").strip()
        line = line.rstrip("*").strip()
        if not line or _SEPARATOR_RE.match(line) or _SECTION_RE.match(line):
            continue
        lines.append(line)
    return lines


def _history_entry(date: str, rest: str) -> HistoryEntry:
    match = _HISTORY_AUTHOR_RE.match(rest)
    if match:
        return HistoryEntry(date=date, author=match.group(1), description=match.group(2).strip())
    return HistoryEntry(date=date, description=rest.strip())


def parse_doc_body(body: str) -> dict:
    """Classify each line of a comment body into docstring fields.

    Returns a dict of :class:`~plcmigrate.model.docs.Docstring` field values
    (everything except id, raw and location).
    """
    fields: dict = {
        "summary": "",
        "params": [],
        "returns": None,
        "author": None,
        "date": None,
        "history": [],
        "warnings": [],
        "notes": [],
    }
    description: list[str] = []

    for line in _clean_lines(body):
        _classify_line(line, fields, description)

    fields["description"] = " ".join(description)
    return fields


def _classify_line(line: str, fields: dict, description: list[str]) -> None:
    m = _PARAM_RE.match(line)
    if m:
        fields["params"].append(
            DocParam(name=m.group(1), type=m.group(2), description=m.group(3).strip())
        )
        return
    m = _RETURNS_RE.match(line)
    if m:
        fields["returns"] = m.group(1).strip() or None
        return
    m = _AUTHOR_TAG_RE.match(line) or _AUTHOR_RE.match(line)
    if m:
        fields["author"] = fields["author"] or m.group(1).strip()
        return
    m = _DATE_RE.match(line)
    if m:
        fields["date"] = fields["date"] or m.group(1).strip()
        return
    m = _HISTORY_TAG_RE.match(line)
    if m:
        inner = _DATED_RE.match(m.group(1))
        if inner:
            date = f"{inner.group(1)}-{inner.group(2)}-{inner.group(3)}"
            fields["history"].append(_history_entry(date, inner.group(4)))
        else:
            fields["history"].append(HistoryEntry(date="", description=m.group(1).strip()))
        return
    m = _DATED_RE.match(line)
    if m:
        date = f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
        fields["history"].append(_history_entry(date, m.group(4)))
        return
    m = _YEAR_RE.match(line)
    if m and 1990 <= int(m.group(1)) <= 2030:
        fields["history"].append(_history_entry(m.group(1), m.group(2)))
        return
    m = _WARNING_RE.match(line)
    if m:
        fields["warnings"].append(m.group(1).strip() or line)
        return
    m = _NOTE_RE.match(line)
    if m:
        fields["notes"].append(m.group(1).strip() or line)
        return
    m = _TODO_RE.match(line)
    if m:
        fields["notes"].append(f"{m.group(1).upper()}: {m.group(2).strip()}")
        return
    if not fields["summary"]:
        fields["summary"] = line
    else:
        description.append(line)


def has_content(fields: dict) -> bool:
    """False for comments that classified into nothing (pure banners)."""
    return any(
        fields[key]
        for key in ("summary", "description", "params", "returns", "author",
                    "date", "history", "warnings", "notes")
    )


def doc_quality(fields: dict) -> DocQuality:
    """Score a classified docstring 0-100 and bucket its completeness."""
    score = 0
    if len(fields["summary"]) > 10:
        score += 30
    if len(fields["description"]) > 20:
        score += 20
    if fields["params"]:
        score += 20
    if fields["history"]:
        score += 15
    if fields["warnings"]:
        score += 10
    if fields["author"]:
        score += 5

    if score >= 70:
        completeness = Completeness.COMPLETE
    elif score >= 40:
        completeness = Completeness.PARTIAL
    else:
        completeness = Completeness.MINIMAL
    return DocQuality(score=score, completeness=completeness)
