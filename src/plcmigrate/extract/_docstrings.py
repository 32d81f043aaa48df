"""Standalone docstring extraction.

Unlike the parser, which only attaches a header comment to the POU it
documents, this pass reports every substantial block comment and links
it to the first POU header that follows within a short distance.
"""

from __future__ import annotations

import logging
import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.docs import Docstring, DocstringResult, DocstringSummary
from plcmigrate.parse import (
    comment_body,
    doc_quality,
    has_content,
    is_docstring,
    parse_doc_body,
)

from ._text import SourceText

logger = logging.getLogger(__name__)

ASSOCIATION_WINDOW = 500

_FOLLOWING_POU_RE = re.compile(
    r"^[ \t]*(PROGRAM|FUNCTION_BLOCK|FUNCTION|CLASS|INTERFACE)[ \t]+"
    r"(?:(?:PUBLIC|PRIVATE|PROTECTED|INTERNAL|ABSTRACT|FINAL)[ \t]+)*(\w+)",
    re.IGNORECASE | re.MULTILINE,
)


def extract_docstrings(
    source: str,
    file_path: str,
    include_raw: bool = False,
    min_length: int = 20,
    include_orphaned: bool = True,
) -> DocstringResult:
    """Classify block comments into structured docstrings.

    Parameters
    ----------
    include_raw
        Keep the original comment text in ``raw``.
    min_length
        Single-line comments shorter than this are ignored unless they
        carry an ``@tag`` or banner.
    include_orphaned
        Keep docstrings that no POU header follows.
    """
    text = SourceText(source)
    docstrings: list[Docstring] = []

    for token in text.comments:
        if not token.text.startswith("(*"):
            continue
        if len(token.text) < min_length and not is_docstring(
            token.text, token.start_line, token.end_line,
        ):
            continue
        fields = parse_doc_body(comment_body(token.text))
        if not has_content(fields):
            continue

        end = text.offset(token.end_line, token.end_col) + 1
        header = _FOLLOWING_POU_RE.search(text.code, end, end + ASSOCIATION_WINDOW)
        if header is None and not include_orphaned:
            logger.debug("%s:%d: dropping orphaned docstring", file_path, token.start_line)
            continue

        docstrings.append(Docstring(
            id=make_id("doc", file_path, token.start_line),
            raw=token.text if include_raw else "",
            location=SourceLocation(
                file=file_path,
                line=token.start_line,
                column=token.start_col,
                end_line=token.end_line,
                end_column=token.end_col,
            ),
            associated_block=header.group(2) if header else None,
            associated_block_type=header.group(1).upper() if header else None,
            quality=doc_quality(fields),
            **fields,
        ))

    return DocstringResult(docstrings=docstrings, summary=summarize_docstrings(docstrings))


def summarize_docstrings(docstrings: list[Docstring]) -> DocstringSummary:
    by_block: dict[str, int] = {}
    for doc in docstrings:
        key = doc.associated_block or "standalone"
        by_block[key] = by_block.get(key, 0) + 1
    scores = [d.quality.score for d in docstrings if d.quality is not None]
    return DocstringSummary(
        total=len(docstrings),
        by_block=by_block,
        with_params=sum(1 for d in docstrings if d.params),
        with_history=sum(1 for d in docstrings if d.history),
        with_warnings=sum(1 for d in docstrings if d.warnings),
        average_quality=round(sum(scores) / len(scores), 1) if scores else 0.0,
    )


def extract_docstrings_from_files(files: list[SourceFile], **options) -> DocstringResult:
    docstrings: list[Docstring] = []
    for file in files:
        docstrings.extend(extract_docstrings(file.content, file.path, **options).docstrings)
    return DocstringResult(docstrings=docstrings, summary=summarize_docstrings(docstrings))
