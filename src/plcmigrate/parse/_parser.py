"""Recursive-descent parser for Structured Text declarations.

Produces POU records with their variable sections, nested methods and
leading documentation comments.  Executable bodies are not parsed; only
their line span is kept, since behavioural extraction works on the raw
text.  The parser never raises on bad input: problems become
``ParseIssue`` entries and a best-effort result is returned.
"""

from __future__ import annotations

import logging
import time

from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.docs import Docstring
from plcmigrate.model.parsing import (
    Confidence,
    ParsedComment,
    ParseIssue,
    ParseMetadata,
    ParseResult,
)
from plcmigrate.model.pou import (
    POU,
    ArrayBounds,
    Method,
    POUType,
    Variable,
    VarSection,
)
from plcmigrate.patterns import is_safety_critical

from ._docblock import (
    comment_body,
    doc_quality,
    has_content,
    is_docstring,
    parse_doc_body,
)
from ._lexer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

K = TokenKind

_POU_END: dict[TokenKind, TokenKind] = {
    K.PROGRAM: K.END_PROGRAM,
    K.FUNCTION_BLOCK: K.END_FUNCTION_BLOCK,
    K.FUNCTION: K.END_FUNCTION,
    K.CLASS: K.END_CLASS,
    K.INTERFACE: K.END_INTERFACE,
}

_VAR_SECTIONS: dict[TokenKind, VarSection] = {
    K.VAR: VarSection.VAR,
    K.VAR_INPUT: VarSection.VAR_INPUT,
    K.VAR_OUTPUT: VarSection.VAR_OUTPUT,
    K.VAR_IN_OUT: VarSection.VAR_IN_OUT,
    K.VAR_GLOBAL: VarSection.VAR_GLOBAL,
    K.VAR_TEMP: VarSection.VAR_TEMP,
    K.VAR_EXTERNAL: VarSection.VAR_EXTERNAL,
    K.VAR_STAT: VarSection.VAR,
}

_SECTION_MODIFIERS = frozenset({K.CONSTANT, K.RETAIN, K.PERSISTENT})

_PARAMETER_SECTIONS = frozenset({
    VarSection.VAR_INPUT, VarSection.VAR_OUTPUT, VarSection.VAR_IN_OUT,
})

# Tokens that can never appear inside a declaration section.
_SECTION_STOP = frozenset(
    set(_POU_END) | set(_POU_END.values()) | set(_VAR_SECTIONS)
    | {K.METHOD, K.END_METHOD, K.PROPERTY, K.END_PROPERTY, K.TYPE}
)

_ACCESS_MODIFIERS = frozenset({
    "PUBLIC", "PRIVATE", "PROTECTED", "INTERNAL", "ABSTRACT", "FINAL",
})

_VENDOR_CHECKS: list[tuple[tuple[str, ...], str]] = [
    (("ORGANISATION_BLOCK", "OB1"), "siemens-step7"),
    (("#TEMP", "REGION"), "siemens-tia"),
    (("<RSLOGIX5000CONTENT>",), "rockwell-studio5000"),
    (("<TCPLCOBJECT>",), "beckhoff-twincat"),
    (("CODESYS",), "codesys"),
]


def detect_vendor(source: str) -> str:
    """Vendor tag for *source*, ``generic-st`` when nothing matches."""
    upper = source.upper()
    for markers, vendor in _VENDOR_CHECKS:
        if any(marker in upper for marker in markers):
            return vendor
    return "generic-st"


def parse_confidence(error_count: int, pou_count: int) -> Confidence:
    if pou_count and error_count == 0:
        return Confidence.DEFINITE
    if pou_count and error_count < 3:
        return Confidence.PROBABLE
    if pou_count:
        return Confidence.POSSIBLE
    return Confidence.NONE


class _ParseFailure(Exception):
    """Unrecoverable construct; the dispatch loop resynchronises on it."""

    def __init__(self, message: str, token: Token) -> None:
        super().__init__(message)
        self.token = token


class _Header:
    """Token indices that bound a POU header, for docstring association."""

    __slots__ = ("start_index", "end_index", "end_line")

    def __init__(self, start_index: int, end_index: int, end_line: int) -> None:
        self.start_index = start_index
        self.end_index = end_index
        self.end_line = end_line


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class STParser:
    """Parse one Structured Text file into a :class:`ParseResult`.

    Parameters
    ----------
    source
        Full file content.
    file_path
        Project-relative path, copied verbatim into every location.
    extract_docstrings
        Classify and associate documentation comments.
    preserve_comments
        Keep every comment in ``ParseResult.comments``.
    docstring_tolerance
        Blank or unrelated lines allowed between a docstring and its POU.
    """

    def __init__(
        self,
        source: str,
        file_path: str = "<memory>",
        *,
        extract_docstrings: bool = True,
        preserve_comments: bool = True,
        docstring_tolerance: int = 2,
    ) -> None:
        self.source = source
        self.file = file_path
        self.extract_docstrings = extract_docstrings
        self.preserve_comments = preserve_comments
        self.docstring_tolerance = docstring_tolerance

        self._lines = source.split("\n")
        self._tokens: list[Token] = []
        # (comment token, index of the next code token)
        self._comments: list[tuple[Token, int]] = []
        for token in tokenize(source):
            if token.kind is K.COMMENT:
                self._comments.append((token, len(self._tokens)))
            else:
                self._tokens.append(token)
        self._comments_by_line: dict[int, list[Token]] = {}
        for comment, _ in self._comments:
            self._comments_by_line.setdefault(comment.start_line, []).append(comment)

        self.pos = 0
        self.errors: list[ParseIssue] = []
        self.warnings: list[ParseIssue] = []

    # -- token helpers ------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self._tokens) - 1)
        return self._tokens[idx]

    def _previous(self) -> Token:
        return self._tokens[max(self.pos - 1, 0)]

    def _at_end(self) -> bool:
        return self._peek().kind is K.EOF

    def _advance(self) -> Token:
        token = self._peek()
        if token.kind is not K.EOF:
            self.pos += 1
        return token

    def _check(self, *kinds: TokenKind) -> bool:
        return self._peek().kind in kinds

    def _match(self, kind: TokenKind) -> bool:
        if self._check(kind):
            self._advance()
            return True
        return False

    def _consume(self, kind: TokenKind, message: str) -> Token | None:
        if self._check(kind):
            return self._advance()
        self._error("UNEXPECTED_TOKEN", message, self._peek())
        return None

    def _error(self, code: str, message: str, token: Token, *, recoverable: bool = True) -> None:
        self.errors.append(ParseIssue(
            code=code, message=message, line=token.start_line,
            column=token.start_col, recoverable=recoverable,
        ))

    def _warn(self, code: str, message: str, token: Token) -> None:
        self.warnings.append(ParseIssue(
            code=code, message=message, line=token.start_line, column=token.start_col,
        ))

    def _span_text(self, first: Token, last: Token) -> str:
        """Exact source text from the start of *first* to the end of *last*."""
        if first.start_line == last.end_line:
            line = self._lines[first.start_line - 1]
            return line[first.start_col - 1:last.end_col]
        parts = [self._lines[first.start_line - 1][first.start_col - 1:]]
        parts.extend(self._lines[first.start_line:last.end_line - 1])
        parts.append(self._lines[last.end_line - 1][:last.end_col])
        return "\n".join(parts)

    def _collect(self, *stops: TokenKind) -> list[Token]:
        """Tokens up to (not including) a stop kind at bracket depth 0."""
        out: list[Token] = []
        depth = 0
        while not self._at_end():
            token = self._peek()
            if depth == 0 and (token.kind in stops or token.kind in _SECTION_STOP
                               or token.kind is K.END_VAR):
                break
            if token.kind in (K.LPAREN, K.LBRACKET):
                depth += 1
            elif token.kind in (K.RPAREN, K.RBRACKET):
                depth = max(depth - 1, 0)
            out.append(self._advance())
        return out

    # -- entry point --------------------------------------------------------

    def parse(self) -> ParseResult:
        started = time.perf_counter()
        pous: list[POU] = []
        headers: list[_Header] = []
        global_vars: list[Variable] = []

        while not self._at_end():
            token = self._peek()
            try:
                if token.kind in _POU_END:
                    pou, header = self._parse_pou()
                    pous.append(pou)
                    headers.append(header)
                elif token.kind in _VAR_SECTIONS:
                    global_vars.extend(self._parse_var_section(None))
                elif token.kind is K.TYPE:
                    self._skip_type()
                else:
                    self._advance()
            except _ParseFailure as exc:
                self._error("SYNTAX_ERROR", str(exc), exc.token, recoverable=False)
                logger.warning("%s:%d: %s", self.file, exc.token.start_line, exc)
                self._synchronize()

        docstrings: list[Docstring] = []
        if self.extract_docstrings:
            docstrings, pous = self._attach_docstrings(pous, headers)

        comments: list[ParsedComment] = []
        if self.preserve_comments:
            comments = [
                ParsedComment(
                    content=comment_body(c.text),
                    line=c.start_line,
                    end_line=c.end_line,
                    is_docstring=is_docstring(c.text, c.start_line, c.end_line),
                )
                for c, _ in self._comments
            ]

        metadata = ParseMetadata(
            vendor=detect_vendor(self.source),
            confidence=parse_confidence(len(self.errors), len(pous)),
            total_lines=len(self._lines) if self.source else 0,
            parse_time_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        logger.debug(
            "Parsed %s: %d POUs, %d globals, %d errors, %d warnings",
            self.file, len(pous), len(global_vars), len(self.errors), len(self.warnings),
        )
        return ParseResult(
            file=self.file,
            success=all(e.recoverable for e in self.errors),
            pous=pous,
            global_variables=global_vars,
            docstrings=docstrings,
            comments=comments,
            errors=self.errors,
            warnings=self.warnings,
            metadata=metadata,
        )

    def _synchronize(self) -> None:
        """Discard tokens until the next POU or variable-section keyword."""
        self._advance()
        while not self._at_end() and not self._check(*_POU_END, *_VAR_SECTIONS):
            self._advance()

    def _skip_type(self) -> None:
        start = self._advance()
        while not self._at_end():
            if self._match(K.END_TYPE):
                return
            self._advance()
        raise _ParseFailure("TYPE declaration is missing END_TYPE", start)

    # -- POUs ---------------------------------------------------------------

    def _skip_modifiers(self) -> None:
        while (self._check(K.IDENTIFIER)
               and self._peek().text.upper() in _ACCESS_MODIFIERS
               and self._peek(1).kind is K.IDENTIFIER):
            self._advance()

    def _read_name(self, after: Token) -> str:
        if self._check(K.IDENTIFIER):
            return self._advance().text
        self._error("MISSING_NAME", f"Expected a name after {after.text}", self._peek())
        return "UNKNOWN"

    def _read_qualified_name(self) -> str:
        parts = []
        while self._check(K.IDENTIFIER):
            parts.append(self._advance().text)
            if not self._match(K.DOT):
                break
        return ".".join(parts)

    def _read_type_name(self) -> str:
        tokens = self._collect(K.ASSIGN, K.SEMICOLON)
        if not tokens:
            return "UNKNOWN"
        return self._span_text(tokens[0], tokens[-1])

    def _read_return_type(self, colon: Token) -> str | None:
        """Return type after a POU or METHOD header colon, same line only."""
        tokens: list[Token] = []
        while (not self._at_end()
               and self._peek().start_line == colon.end_line
               and not self._check(K.SEMICOLON, *_SECTION_STOP)):
            tokens.append(self._advance())
        self._match(K.SEMICOLON)
        if not tokens:
            return None
        return self._span_text(tokens[0], tokens[-1])

    def _parse_pou(self) -> tuple[POU, _Header]:
        start_index = self.pos
        start = self._advance()
        end_kind = _POU_END[start.kind]

        self._skip_modifiers()
        name = self._read_name(start)
        return_type = None
        if self._check(K.COLON):
            return_type = self._read_return_type(self._advance())

        extends = None
        implements: list[str] = []
        while True:
            if self._match(K.EXTENDS):
                extends = self._read_qualified_name() or None
            elif self._match(K.IMPLEMENTS):
                implements.append(self._read_qualified_name())
                while self._match(K.COMMA):
                    implements.append(self._read_qualified_name())
            else:
                break
        implements = [i for i in implements if i]
        header = _Header(start_index, self.pos, self._previous().end_line)

        variables: list[Variable] = []
        methods: list[Method] = []
        body_start: int | None = None
        while not self._at_end() and not self._check(end_kind):
            token = self._peek()
            if token.kind in _VAR_SECTIONS:
                variables.extend(self._parse_var_section(name))
            elif token.kind is K.METHOD:
                methods.append(self._parse_method(name, end_kind))
            elif token.kind is K.PROPERTY:
                self._skip_property(end_kind)
            elif token.kind in _POU_END:
                break
            else:
                if body_start is None:
                    body_start = token.start_line
                self._advance()

        if self._check(end_kind):
            end_token = self._advance()
            body_end = end_token.start_line
        else:
            end_token = self._previous()
            body_end = end_token.end_line
            self._error(
                "UNTERMINATED_POU",
                f"{start.text} '{name}' is missing {end_kind.value}",
                start, recoverable=False,
            )
        if body_start is None:
            body_start = body_end

        pou = POU(
            id=make_id("pou", self.file, start.start_line, name),
            type=POUType(start.kind.value),
            name=name,
            location=SourceLocation(
                file=self.file,
                line=start.start_line,
                column=start.start_col,
                end_line=max(end_token.end_line, start.start_line),
                end_column=end_token.end_col,
            ),
            variables=variables,
            extends=extends,
            implements=implements,
            methods=methods,
            return_type=return_type,
            body_start_line=body_start,
            body_end_line=body_end,
        )
        return pou, header

    def _parse_method(self, pou_name: str, pou_end: TokenKind) -> Method:
        start = self._advance()
        self._skip_modifiers()
        name = self._read_name(start)
        return_type = None
        if self._check(K.COLON):
            return_type = self._read_return_type(self._advance())

        parameters: list[Variable] = []
        while not self._at_end() and not self._check(K.END_METHOD, pou_end):
            if self._peek().kind in _VAR_SECTIONS:
                declared = self._parse_var_section(f"{pou_name}.{name}")
                parameters.extend(v for v in declared if v.section in _PARAMETER_SECTIONS)
            else:
                self._advance()
        end_line = self._previous().end_line
        if self._check(K.END_METHOD):
            end_line = self._advance().end_line
        else:
            self._error(
                "UNTERMINATED_METHOD", f"METHOD '{name}' is missing END_METHOD",
                start, recoverable=False,
            )
        return Method(
            name=name,
            return_type=return_type,
            parameters=parameters,
            location=SourceLocation(
                file=self.file, line=start.start_line, column=start.start_col,
                end_line=max(end_line, start.start_line),
            ),
        )

    def _skip_property(self, pou_end: TokenKind) -> None:
        start = self._advance()
        while not self._at_end() and not self._check(pou_end):
            if self._match(K.END_PROPERTY):
                return
            self._advance()
        self._error("UNTERMINATED_PROPERTY", "PROPERTY is missing END_PROPERTY", start)

    # -- declarations -------------------------------------------------------

    def _parse_var_section(self, pou_name: str | None) -> list[Variable]:
        start = self._advance()
        section = _VAR_SECTIONS[start.kind]
        while self._peek().kind in _SECTION_MODIFIERS:
            modifier = self._advance()
            if modifier.kind is K.CONSTANT and section is VarSection.VAR:
                section = VarSection.VAR_CONSTANT

        variables: list[Variable] = []
        while not self._at_end() and not self._check(K.END_VAR):
            if self._peek().kind in _SECTION_STOP:
                break
            variables.extend(self._parse_variable(section, pou_name))

        if not self._match(K.END_VAR):
            self._error(
                "UNTERMINATED_VAR_SECTION",
                f"{start.text} section starting at line {start.start_line} is missing END_VAR",
                start, recoverable=False,
            )
        return variables

    def _skip_declaration(self) -> None:
        while not self._at_end() and not self._check(K.END_VAR, *_SECTION_STOP):
            if self._advance().kind is K.SEMICOLON:
                return

    def _parse_variable(self, section: VarSection, pou_name: str | None) -> list[Variable]:
        first = self._peek()
        if first.kind is not K.IDENTIFIER:
            self._error(
                "UNEXPECTED_TOKEN",
                f"Unexpected '{first.text}' in variable declaration",
                first,
            )
            self._advance()
            return []

        names = [self._advance()]
        while self._match(K.COMMA):
            if self._check(K.IDENTIFIER):
                names.append(self._advance())

        address = None
        if self._match(K.AT):
            parts = self._collect(K.COLON, K.SEMICOLON)
            address = "".join(t.text for t in parts) or None

        if not self._match(K.COLON):
            self._warn(
                "MISSING_COLON",
                f"Expected ':' after variable '{names[0].text}'",
                self._peek(),
            )
            self._skip_declaration()
            return []

        data_type, bounds = self._parse_type()
        initial_value = None
        if self._match(K.ASSIGN):
            init_tokens = self._collect(K.SEMICOLON)
            if init_tokens:
                initial_value = self._span_text(init_tokens[0], init_tokens[-1])

        end_token = self._previous()
        if self._check(K.SEMICOLON):
            end_token = self._advance()
        else:
            self._warn(
                "MISSING_SEMICOLON",
                f"Declaration of '{names[0].text}' is missing ';'",
                self._peek(),
            )
        comment = self._trailing_comment(end_token)

        return [
            Variable(
                id=make_id("var", self.file, tok.start_line, pou_name, tok.text),
                name=tok.text,
                data_type=data_type,
                section=section,
                initial_value=initial_value,
                comment=comment,
                is_array=bounds is not None,
                array_bounds=bounds or [],
                is_safety_critical=is_safety_critical(tok.text),
                io_address=address,
                pou_name=pou_name,
                location=SourceLocation(
                    file=self.file, line=tok.start_line, column=tok.start_col,
                    end_line=max(end_token.end_line, tok.start_line),
                ),
            )
            for tok in names
        ]

    def _parse_type(self) -> tuple[str, list[ArrayBounds] | None]:
        if not self._match(K.ARRAY):
            return self._read_type_name(), None

        bounds: list[ArrayBounds] = []
        if self._match(K.LBRACKET):
            dims = self._collect(K.RBRACKET)
            self._consume(K.RBRACKET, "Expected ']' after ARRAY bounds")
            bounds = _split_bounds(dims)
        self._consume(K.OF, "Expected OF after ARRAY bounds")
        element = self._read_type_name()
        dims_text = ", ".join(f"{b.lower}..{b.upper}" for b in bounds)
        return f"ARRAY[{dims_text}] OF {element}", bounds

    def _trailing_comment(self, end_token: Token) -> str | None:
        for comment in self._comments_by_line.get(end_token.end_line, []):
            if comment.start_col > end_token.end_col:
                return comment_body(comment.text) or None
        return None

    # -- documentation ------------------------------------------------------

    def _attach_docstrings(
        self, pous: list[POU], headers: list[_Header],
    ) -> tuple[list[Docstring], list[POU]]:
        by_start = {h.start_index: i for i, h in enumerate(headers)}
        by_header_end = {h.end_index: i for i, h in enumerate(headers)}
        documented: dict[int, Docstring] = {}
        docstrings: list[Docstring] = []

        for comment, next_index in self._comments:
            if not is_docstring(comment.text, comment.start_line, comment.end_line):
                continue
            fields = parse_doc_body(comment_body(comment.text))
            if not has_content(fields):
                continue

            target = None
            next_token = self._tokens[next_index]
            leading_gap = next_token.start_line - comment.end_line - 1
            if next_index in by_start and 0 <= leading_gap <= self.docstring_tolerance:
                target = by_start[next_index]
            elif next_index in by_header_end:
                idx = by_header_end[next_index]
                inner_gap = comment.start_line - headers[idx].end_line - 1
                if idx not in documented and 0 <= inner_gap <= self.docstring_tolerance:
                    target = idx
            if target is not None and target in documented:
                target = None

            pou = pous[target] if target is not None else None
            doc = Docstring(
                id=make_id("doc", self.file, comment.start_line),
                raw=comment.text,
                location=SourceLocation(
                    file=self.file, line=comment.start_line,
                    column=comment.start_col, end_line=comment.end_line,
                ),
                associated_block=pou.name if pou else None,
                associated_block_type=pou.type.value if pou else None,
                quality=doc_quality(fields),
                **fields,
            )
            docstrings.append(doc)
            if target is not None:
                documented[target] = doc

        attached = [
            pou.model_copy(update={"documentation": documented[i]}) if i in documented else pou
            for i, pou in enumerate(pous)
        ]
        return docstrings, attached


def _split_bounds(tokens: list[Token]) -> list[ArrayBounds]:
    dims: list[list[Token]] = [[]]
    for token in tokens:
        if token.kind is K.COMMA:
            dims.append([])
        else:
            dims[-1].append(token)

    bounds = []
    for dim in dims:
        if not dim:
            continue
        split = next((i for i, t in enumerate(dim) if t.kind is K.DOTDOT), None)
        if split is None:
            text = "".join(t.text for t in dim)
            bounds.append(ArrayBounds(lower=text, upper=text))
        else:
            bounds.append(ArrayBounds(
                lower="".join(t.text for t in dim[:split]),
                upper="".join(t.text for t in dim[split + 1:]),
            ))
    return bounds


def parse_source(
    source: str,
    file_path: str = "<memory>",
    *,
    extract_docstrings: bool = True,
    preserve_comments: bool = True,
    docstring_tolerance: int = 2,
) -> ParseResult:
    """Parse Structured Text *source*; see :class:`STParser`."""
    return STParser(
        source,
        file_path,
        extract_docstrings=extract_docstrings,
        preserve_comments=preserve_comments,
        docstring_tolerance=docstring_tolerance,
    ).parse()
