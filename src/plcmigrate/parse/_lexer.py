"""Tokenizer for IEC 61131-3 Structured Text.

``tokenize`` is total: any input string yields a token list ending in
exactly one ``EOF`` token.  Malformed input produces ``UNKNOWN`` tokens
instead of exceptions, and unterminated comments or strings simply run
to the end of the input.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class TokenKind(str, Enum):
    # POU keywords
    PROGRAM = "PROGRAM"
    END_PROGRAM = "END_PROGRAM"
    FUNCTION_BLOCK = "FUNCTION_BLOCK"
    END_FUNCTION_BLOCK = "END_FUNCTION_BLOCK"
    FUNCTION = "FUNCTION"
    END_FUNCTION = "END_FUNCTION"
    CLASS = "CLASS"
    END_CLASS = "END_CLASS"
    INTERFACE = "INTERFACE"
    END_INTERFACE = "END_INTERFACE"
    METHOD = "METHOD"
    END_METHOD = "END_METHOD"
    PROPERTY = "PROPERTY"
    END_PROPERTY = "END_PROPERTY"

    # Variable sections
    VAR = "VAR"
    VAR_INPUT = "VAR_INPUT"
    VAR_OUTPUT = "VAR_OUTPUT"
    VAR_IN_OUT = "VAR_IN_OUT"
    VAR_GLOBAL = "VAR_GLOBAL"
    VAR_TEMP = "VAR_TEMP"
    VAR_EXTERNAL = "VAR_EXTERNAL"
    VAR_STAT = "VAR_STAT"
    END_VAR = "END_VAR"
    CONSTANT = "CONSTANT"
    RETAIN = "RETAIN"
    PERSISTENT = "PERSISTENT"

    # Control flow
    IF = "IF"
    THEN = "THEN"
    ELSIF = "ELSIF"
    ELSE = "ELSE"
    END_IF = "END_IF"
    CASE = "CASE"
    OF = "OF"
    END_CASE = "END_CASE"
    FOR = "FOR"
    TO = "TO"
    BY = "BY"
    DO = "DO"
    END_FOR = "END_FOR"
    WHILE = "WHILE"
    END_WHILE = "END_WHILE"
    REPEAT = "REPEAT"
    UNTIL = "UNTIL"
    END_REPEAT = "END_REPEAT"
    EXIT = "EXIT"
    RETURN = "RETURN"

    # Types
    TYPE = "TYPE"
    END_TYPE = "END_TYPE"
    STRUCT = "STRUCT"
    END_STRUCT = "END_STRUCT"
    ARRAY = "ARRAY"
    AT = "AT"
    EXTENDS = "EXTENDS"
    IMPLEMENTS = "IMPLEMENTS"

    # Word operators and boolean literals
    MOD = "MOD"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    NOT = "NOT"
    TRUE = "TRUE"
    FALSE = "FALSE"

    # Literals
    IDENTIFIER = "IDENTIFIER"
    INTEGER = "INTEGER"
    REAL = "REAL"
    STRING = "STRING"
    WSTRING = "WSTRING"
    TIME = "TIME"
    DATE = "DATE"
    DATETIME = "DATETIME"

    # Punctuation and operators
    ASSIGN = "ASSIGN"
    OUTPUT_ASSIGN = "OUTPUT_ASSIGN"
    COLON = "COLON"
    SEMICOLON = "SEMICOLON"
    COMMA = "COMMA"
    DOT = "DOT"
    DOTDOT = "DOTDOT"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    HASH = "HASH"
    PLUS = "PLUS"
    MINUS = "MINUS"
    STAR = "STAR"
    POWER = "POWER"
    SLASH = "SLASH"
    EQ = "EQ"
    NE = "NE"
    LT = "LT"
    LE = "LE"
    GT = "GT"
    GE = "GE"

    COMMENT = "COMMENT"
    UNKNOWN = "UNKNOWN"
    EOF = "EOF"


class Token(NamedTuple):
    """A lexical token.  Lines and columns are 1-based; end is inclusive."""

    kind: TokenKind
    text: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int


_NON_KEYWORDS = frozenset({
    TokenKind.IDENTIFIER, TokenKind.INTEGER, TokenKind.REAL, TokenKind.STRING,
    TokenKind.WSTRING, TokenKind.TIME, TokenKind.DATE, TokenKind.DATETIME,
    TokenKind.ASSIGN, TokenKind.OUTPUT_ASSIGN, TokenKind.COLON,
    TokenKind.SEMICOLON, TokenKind.COMMA, TokenKind.DOT, TokenKind.DOTDOT,
    TokenKind.LPAREN, TokenKind.RPAREN, TokenKind.LBRACKET, TokenKind.RBRACKET,
    TokenKind.HASH, TokenKind.PLUS, TokenKind.MINUS, TokenKind.STAR,
    TokenKind.POWER, TokenKind.SLASH, TokenKind.EQ, TokenKind.NE, TokenKind.LT,
    TokenKind.LE, TokenKind.GT, TokenKind.GE, TokenKind.COMMENT,
    TokenKind.UNKNOWN, TokenKind.EOF,
})

# Every remaining kind is a keyword, looked up case-insensitively.
_KEYWORDS: dict[str, TokenKind] = {
    kind.value: kind for kind in TokenKind if kind not in _NON_KEYWORDS
}

_TIME_PREFIXES: dict[str, TokenKind] = {
    "T": TokenKind.TIME,
    "TIME": TokenKind.TIME,
    "D": TokenKind.DATE,
    "DATE": TokenKind.DATE,
    "DT": TokenKind.DATETIME,
    "DATE_AND_TIME": TokenKind.DATETIME,
}

# Extra characters allowed in the body of each literal kind, besides alnum.
_LITERAL_BODY: dict[TokenKind, str] = {
    TokenKind.TIME: "_.",
    TokenKind.DATE: "-",
    TokenKind.DATETIME: "-:.",
}

_TWO_CHAR_OPS: dict[str, TokenKind] = {
    ":=": TokenKind.ASSIGN,
    "=>": TokenKind.OUTPUT_ASSIGN,
    "..": TokenKind.DOTDOT,
    "**": TokenKind.POWER,
    "<>": TokenKind.NE,
    "<=": TokenKind.LE,
    ">=": TokenKind.GE,
}

_DIGITS = "0123456789"

_ONE_CHAR_OPS: dict[str, TokenKind] = {
    ":": TokenKind.COLON,
    ";": TokenKind.SEMICOLON,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    "#": TokenKind.HASH,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "=": TokenKind.EQ,
    "<": TokenKind.LT,
    ">": TokenKind.GT,
}


def keyword_kind(word: str) -> TokenKind | None:
    """The keyword TokenKind for *word*, or None for an identifier."""
    return _KEYWORDS.get(word.upper())


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

class _Lexer:
    def __init__(self, source: str) -> None:
        self.src = source
        self.pos = 0
        self.line = 1
        self.col = 1
        # Position of the most recently consumed character.
        self.last_line = 1
        self.last_col = 0
        self.tokens: list[Token] = []

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.src[idx] if idx < len(self.src) else ""

    def _advance(self) -> str:
        ch = self.src[self.pos]
        self.pos += 1
        self.last_line, self.last_col = self.line, self.col
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(self, kind: TokenKind, text: str, line: int, col: int) -> None:
        self.tokens.append(
            Token(kind, text, line, col, self.last_line, self.last_col)
        )

    def run(self) -> list[Token]:
        while self.pos < len(self.src):
            ch = self._peek()
            if ch in " \t\r\n\f\v":
                self._advance()
            elif ch == "(" and self._peek(1) == "*":
                self._block_comment()
            elif ch == "/" and self._peek(1) == "/":
                self._line_comment()
            elif ch in "'\"":
                self._string(ch)
            elif ch in _DIGITS:
                self._number()
            elif ch.isalpha() or ch == "_":
                self._word()
            else:
                self._operator()
        self.tokens.append(
            Token(TokenKind.EOF, "", self.line, self.col, self.line, self.col)
        )
        return self.tokens

    def _block_comment(self) -> None:
        line, col, start = self.line, self.col, self.pos
        self._advance()
        self._advance()
        depth = 1
        while self.pos < len(self.src) and depth > 0:
            if self._peek() == "(" and self._peek(1) == "*":
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == "*" and self._peek(1) == ")":
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()
        self._emit(TokenKind.COMMENT, self.src[start:self.pos], line, col)

    def _line_comment(self) -> None:
        line, col, start = self.line, self.col, self.pos
        while self.pos < len(self.src) and self._peek() != "\n":
            self._advance()
        self._emit(TokenKind.COMMENT, self.src[start:self.pos].rstrip("\r"), line, col)

    def _string(self, quote: str) -> None:
        line, col = self.line, self.col
        self._advance()
        start = self.pos
        end = None
        while self.pos < len(self.src):
            ch = self._peek()
            if ch == "$" and self.pos + 1 < len(self.src):
                # $-escape: the next character never terminates the string
                self._advance()
                self._advance()
            elif ch == quote:
                end = self.pos
                self._advance()
                break
            else:
                self._advance()
        text = self.src[start:end if end is not None else self.pos]
        kind = TokenKind.STRING if quote == "'" else TokenKind.WSTRING
        self._emit(kind, text, line, col)

    def _digits(self, allowed: str = _DIGITS) -> str:
        out = []
        while self.pos < len(self.src) and (self._peek() in allowed or self._peek() == "_"):
            ch = self._advance()
            if ch != "_":
                out.append(ch)
        return "".join(out)

    def _number(self) -> None:
        line, col = self.line, self.col
        text = self._digits()
        kind = TokenKind.INTEGER

        # Based literal: 16#FF, 2#1010_0101, 8#17
        if self._peek() == "#" and text in ("2", "8", "16"):
            self._advance()
            text = f"{text}#{self._digits('0123456789abcdefABCDEF')}"
            self._emit(kind, text, line, col)
            return

        if self._peek() == "." and self._peek(1) in _DIGITS and self._peek(1):
            self._advance()
            text += "." + self._digits()
            kind = TokenKind.REAL
        if self._peek() in ("e", "E"):
            sign, after = self._peek(1), self._peek(2)
            if (sign and sign in _DIGITS) or (
                sign and sign in "+-" and after and after in _DIGITS
            ):
                text += self._advance()
                if self._peek() in "+-":
                    text += self._advance()
                text += self._digits()
                kind = TokenKind.REAL
        self._emit(kind, text, line, col)

    def _word(self) -> None:
        line, col, start = self.line, self.col, self.pos
        while self.pos < len(self.src) and (self._peek().isalnum() or self._peek() == "_"):
            self._advance()
        word = self.src[start:self.pos]

        literal_kind = _TIME_PREFIXES.get(word.upper())
        if literal_kind is not None and self._peek() == "#":
            self._advance()
            extra = _LITERAL_BODY[literal_kind]
            while self.pos < len(self.src) and (
                self._peek().isalnum() or self._peek() in extra
            ):
                self._advance()
            self._emit(literal_kind, self.src[start:self.pos], line, col)
            return

        kind = keyword_kind(word) or TokenKind.IDENTIFIER
        self._emit(kind, word, line, col)

    def _operator(self) -> None:
        line, col = self.line, self.col
        pair = self.src[self.pos:self.pos + 2]
        if pair in _TWO_CHAR_OPS:
            self._advance()
            self._advance()
            self._emit(_TWO_CHAR_OPS[pair], pair, line, col)
            return
        ch = self._advance()
        self._emit(_ONE_CHAR_OPS.get(ch, TokenKind.UNKNOWN), ch, line, col)


def tokenize(source: str) -> list[Token]:
    """Convert Structured Text source into a token list ending in ``EOF``."""
    return _Lexer(source).run()
