"""Comment extraction over the lexer's COMMENT tokens."""

from __future__ import annotations

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation
from plcmigrate.model.extraction import (
    Comment,
    CommentResult,
    CommentStyle,
    CommentSummary,
)
from plcmigrate.parse import TokenKind, comment_body, is_docstring, tokenize


def extract_comments(source: str, file_path: str) -> CommentResult:
    comments = []
    for token in tokenize(source):
        if token.kind is not TokenKind.COMMENT:
            continue
        style = CommentStyle.LINE if token.text.startswith("//") else CommentStyle.BLOCK
        comments.append(Comment(
            content=comment_body(token.text),
            style=style,
            is_docstring=is_docstring(token.text, token.start_line, token.end_line),
            location=SourceLocation(
                file=file_path,
                line=token.start_line,
                column=token.start_col,
                end_line=token.end_line,
                end_column=token.end_col,
            ),
        ))
    return CommentResult(comments=comments, summary=summarize_comments(comments))


def summarize_comments(comments: list[Comment]) -> CommentSummary:
    return CommentSummary(
        total=len(comments),
        block_comments=sum(1 for c in comments if c.style is CommentStyle.BLOCK),
        line_comments=sum(1 for c in comments if c.style is CommentStyle.LINE),
        docstrings=sum(1 for c in comments if c.is_docstring),
    )


def extract_comments_from_files(files: list[SourceFile]) -> CommentResult:
    comments: list[Comment] = []
    for file in files:
        comments.extend(extract_comments(file.content, file.path).comments)
    return CommentResult(comments=comments, summary=summarize_comments(comments))
