"""Parser output records."""

from __future__ import annotations

from enum import Enum

from .base import Record
from .docs import Docstring
from .pou import POU, Variable


class Confidence(str, Enum):
    """How sure the parser is that the input really is Structured Text."""

    DEFINITE = "definite"
    PROBABLE = "probable"
    POSSIBLE = "possible"
    NONE = "none"


class ParseIssue(Record):
    """A parse error or warning.  Warnings are always recoverable."""

    code: str
    message: str
    line: int
    column: int
    recoverable: bool = True


class ParsedComment(Record):
    content: str
    line: int
    end_line: int
    is_docstring: bool = False


class ParseMetadata(Record):
    vendor: str = "generic-st"
    confidence: Confidence = Confidence.NONE
    total_lines: int = 0
    parse_time_ms: float = 0.0


class ParseResult(Record):
    """Best-effort parse of one source file.

    ``success`` is False only when a non-recoverable error was recorded;
    the other fields are populated either way.
    """

    file: str
    success: bool = True
    pous: list[POU] = []
    global_variables: list[Variable] = []
    docstrings: list[Docstring] = []
    comments: list[ParsedComment] = []
    errors: list[ParseIssue] = []
    warnings: list[ParseIssue] = []
    metadata: ParseMetadata = ParseMetadata()
