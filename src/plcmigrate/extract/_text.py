"""Line index and comment-masked view of a source file.

Extractors match regexes against ``code`` (comments blanked out, offsets
and line numbers unchanged) and read documentation from ``lines``.
"""

from __future__ import annotations

import bisect
import re

from plcmigrate.parse import Token, TokenKind, tokenize

_POU_HEADER_RE = re.compile(
    r"^[ \t]*(PROGRAM|FUNCTION_BLOCK|FUNCTION|CLASS|INTERFACE)[ \t]+"
    r"(?:(?:PUBLIC|PRIVATE|PROTECTED|INTERNAL|ABSTRACT|FINAL)[ \t]+)*(\w+)",
    re.IGNORECASE | re.MULTILINE,
)


class SourceText:
    """One file's text, tokens, line starts and comment-free code."""

    __slots__ = ("source", "lines", "line_starts", "tokens", "code")

    def __init__(self, source: str) -> None:
        self.source = source
        self.lines = source.split("\n")
        self.line_starts = [0]
        for idx, ch in enumerate(source):
            if ch == "\n":
                self.line_starts.append(idx + 1)
        self.tokens: list[Token] = tokenize(source)

        chars = list(source)
        for token in self.comments:
            start = self.offset(token.start_line, token.start_col)
            end = self.offset(token.end_line, token.end_col) + 1
            for i in range(start, min(end, len(chars))):
                if chars[i] != "\n":
                    chars[i] = " "
        self.code = "".join(chars)

    @property
    def comments(self) -> list[Token]:
        return [t for t in self.tokens if t.kind is TokenKind.COMMENT]

    @property
    def code_lines(self) -> list[str]:
        return self.code.split("\n")

    def offset(self, line: int, column: int) -> int:
        return self.line_starts[line - 1] + column - 1

    def line_of(self, offset: int) -> int:
        """1-based line number containing character *offset*."""
        return bisect.bisect_right(self.line_starts, offset)

    def column_of(self, offset: int) -> int:
        return offset - self.line_starts[self.line_of(offset) - 1] + 1

    def pou_at(self, offset: int) -> str | None:
        """Name of the nearest POU header at or before *offset*."""
        name = None
        for match in _POU_HEADER_RE.finditer(self.code, 0, offset):
            name = match.group(2)
        return name

    def pou_names(self) -> list[str]:
        return [m.group(2) for m in _POU_HEADER_RE.finditer(self.code)]
