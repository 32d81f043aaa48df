"""Line-oriented POU block recognition with open/close matching."""

from __future__ import annotations

import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation
from plcmigrate.model.extraction import Block, BlockResult
from plcmigrate.model.pou import POUType

from ._text import SourceText

_OPEN_RE = re.compile(
    r"^\s*(PROGRAM|FUNCTION_BLOCK|FUNCTION|CLASS|INTERFACE)\s+"
    r"(?:(?:PUBLIC|PRIVATE|PROTECTED|INTERNAL|ABSTRACT|FINAL)\s+)*"
    r"(\w+)(?:\s*:\s*(\w+))?",
    re.IGNORECASE,
)
_CLOSE_RE = re.compile(
    r"^\s*END_(PROGRAM|FUNCTION_BLOCK|FUNCTION|CLASS|INTERFACE)\b", re.IGNORECASE,
)


class _OpenBlock:
    __slots__ = ("type", "name", "line", "column", "return_type")

    def __init__(self, type: POUType, name: str, line: int, column: int,
                 return_type: str | None) -> None:
        self.type = type
        self.name = name
        self.line = line
        self.column = column
        self.return_type = return_type


def extract_blocks(source: str, file_path: str) -> BlockResult:
    """Match POU openers with their ``END_*`` lines.

    A terminator closes the most recent open block of the same type, so
    a stray ``END_FUNCTION`` cannot close an enclosing ``PROGRAM``.
    """
    text = SourceText(source)
    blocks: list[Block] = []
    errors: list[str] = []
    open_blocks: list[_OpenBlock] = []

    for index, line in enumerate(text.code_lines):
        line_no = index + 1
        opener = _OPEN_RE.match(line)
        if opener:
            pou_type = POUType(opener.group(1).upper())
            return_type = opener.group(3) if pou_type is POUType.FUNCTION else None
            open_blocks.append(_OpenBlock(
                pou_type, opener.group(2), line_no, opener.start(1) + 1, return_type,
            ))
            continue

        closer = _CLOSE_RE.match(line)
        if not closer:
            continue
        pou_type = POUType(closer.group(1).upper())
        for pos in range(len(open_blocks) - 1, -1, -1):
            if open_blocks[pos].type is pou_type:
                block = open_blocks.pop(pos)
                blocks.append(Block(
                    name=block.name,
                    type=block.type,
                    return_type=block.return_type,
                    location=SourceLocation(
                        file=file_path,
                        line=block.line,
                        column=block.column,
                        end_line=line_no,
                        end_column=len(line.rstrip()),
                    ),
                ))
                break
        else:
            errors.append(f"Unmatched END_{pou_type.value} at line {line_no}")

    for block in open_blocks:
        errors.append(f"Unclosed {block.type.value} '{block.name}' starting at line {block.line}")

    blocks.sort(key=lambda b: b.location.line)
    return BlockResult(blocks=blocks, errors=errors)


def extract_blocks_from_files(files: list[SourceFile]) -> BlockResult:
    blocks: list[Block] = []
    errors: list[str] = []
    for file in files:
        result = extract_blocks(file.content, file.path)
        blocks.extend(result.blocks)
        errors.extend(f"{file.path}: {e}" for e in result.errors)
    return BlockResult(blocks=blocks, errors=errors)
