"""plcmigrate parse: Structured Text lexer and declaration parser.

Public API::

    from plcmigrate.parse import tokenize, parse_source

    tokens = tokenize(source)
    result = parse_source(source, "src/Main.st")
    for pou in result.pous:
        print(pou.type, pou.name, len(pou.variables))
"""

from ._docblock import (
    comment_body,
    doc_quality,
    has_content,
    is_docstring,
    parse_doc_body,
)
from ._lexer import Token, TokenKind, keyword_kind, tokenize
from ._parser import STParser, detect_vendor, parse_confidence, parse_source

__all__ = [
    "STParser",
    "Token",
    "TokenKind",
    "comment_body",
    "detect_vendor",
    "doc_quality",
    "has_content",
    "is_docstring",
    "keyword_kind",
    "parse_confidence",
    "parse_doc_body",
    "parse_source",
    "tokenize",
]
