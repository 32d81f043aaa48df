"""Line-based variable and I/O address extraction.

Works on raw text without the parser, one declaration per line, which
makes it tolerant of vendor dialects the parser rejects.
"""

from __future__ import annotations

import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.extraction import (
    AddressArea,
    IOMapping,
    VariableResult,
    VariableSummary,
)
from plcmigrate.model.pou import ArrayBounds, Variable, VarSection
from plcmigrate.patterns import is_safety_critical

from ._text import SourceText

_SECTION_RE = re.compile(
    r"\s*(VAR_INPUT|VAR_OUTPUT|VAR_IN_OUT|VAR_GLOBAL|VAR_TEMP|VAR_EXTERNAL|VAR_STAT|VAR)\b"
    r"((?:\s+(?:CONSTANT|RETAIN|PERSISTENT|NON_RETAIN)\b)*)",
    re.IGNORECASE,
)
_END_VAR_RE = re.compile(r"\bEND_VAR\b", re.IGNORECASE)
_DECL_RE = re.compile(
    r"\s*(?P<names>[A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*"
    r"(?:AT\s+(?P<address>%\S+?)\s*)?"
    r":(?!=)\s*(?P<type>[^;]+?)\s*"
    r"(?::=\s*(?P<init>[^;]+?)\s*)?;",
    re.IGNORECASE,
)
_ARRAY_RE = re.compile(r"^ARRAY\s*\[(?P<dims>[^\]]*)\]\s*OF\s+(?P<elem>.+)$", re.IGNORECASE)
_COMMENT_RE = re.compile(r"\(\*\s*(.*?)\s*\*\)|//\s*(.*?)\s*$")
_ADDRESS_RE = re.compile(r"%([IQM])([XBWD]?)(\d+(?:\.\d+)*)", re.IGNORECASE)
_ADDRESS_OWNER_RE = re.compile(r"(\w+)\s+AT\s*$|(\w+)\s*:=\s*$", re.IGNORECASE)

_SIZE_BITS = {"X": 1, "B": 8, "W": 16, "D": 32, "": 1}
_AREAS = {"I": AddressArea.INPUT, "Q": AddressArea.OUTPUT, "M": AddressArea.MEMORY}


def parse_array_type(type_text: str) -> tuple[str, list[ArrayBounds] | None]:
    """Normalise an ARRAY type and split its bounds.

    >>> parse_array_type("ARRAY [1..10] OF INT")[0]
    'ARRAY[1..10] OF INT'
    """
    match = _ARRAY_RE.match(type_text)
    if not match:
        return " ".join(type_text.split()), None
    bounds = []
    for dim in match.group("dims").split(","):
        lower, sep, upper = dim.partition("..")
        lower = lower.strip()
        upper = upper.strip() if sep else lower
        if lower:
            bounds.append(ArrayBounds(lower=lower, upper=upper))
    dims_text = ", ".join(f"{b.lower}..{b.upper}" for b in bounds)
    return f"ARRAY[{dims_text}] OF {' '.join(match.group('elem').split())}", bounds


def _section_for(keyword: str, rest: str) -> VarSection:
    keyword = keyword.upper()
    if keyword == "VAR_STAT":
        keyword = "VAR"
    if keyword == "VAR" and re.search(r"\bCONSTANT\b", rest, re.IGNORECASE):
        return VarSection.VAR_CONSTANT
    return VarSection(keyword)


def extract_variables(source: str, file_path: str) -> VariableResult:
    """Declarations inside ``VAR*`` ... ``END_VAR`` plus every direct address."""
    text = SourceText(source)
    variables = declared_variables(text, file_path)
    return VariableResult(
        variables=variables,
        io_mappings=extract_io_mappings(text, file_path),
        summary=summarize_variables(variables),
    )


def _section_spans(code_lines: list[str]):
    """Yield ``(index, section, start, end)`` for every stretch of a code
    line that lies inside a ``VAR*`` ... ``END_VAR`` block.

    A section may open and close on the same line, so a line can yield
    more than one span; the opening and closing lines always yield one.
    """
    section: VarSection | None = None
    for index, code_line in enumerate(code_lines):
        pos = 0
        while True:
            if section is None:
                opener = _SECTION_RE.match(code_line, pos)
                if not opener:
                    break
                section = _section_for(opener.group(1), opener.group(2))
                pos = opener.end()
            closer = _END_VAR_RE.search(code_line, pos)
            yield index, section, pos, closer.start() if closer else len(code_line)
            if closer is None:
                break
            section = None
            pos = closer.end()


def declared_variables(text: SourceText, file_path: str) -> list[Variable]:
    variables: list[Variable] = []
    code_lines = text.code_lines

    for index, section, pos, end in _section_spans(code_lines):
        code_line = code_lines[index]
        line_no = index + 1
        while pos < end:
            decl = _DECL_RE.match(code_line, pos, end)
            if not decl:
                semicolon = code_line.find(";", pos, end)
                if semicolon < 0:
                    break
                pos = semicolon + 1
                continue
            pos = decl.end()
            data_type, bounds = parse_array_type(decl.group("type"))
            comment_match = _COMMENT_RE.search(text.lines[index][decl.end():])
            comment = None
            if comment_match:
                comment = (comment_match.group(1) or comment_match.group(2) or "").strip() or None
            init = decl.group("init")
            pou_name = text.pou_at(text.line_starts[index])

            for name in (n.strip() for n in decl.group("names").split(",")):
                variables.append(Variable(
                    id=make_id("var", file_path, line_no, pou_name, name),
                    name=name,
                    data_type=data_type,
                    section=section,
                    initial_value=init.strip() if init else None,
                    comment=comment,
                    is_array=bounds is not None,
                    array_bounds=bounds or [],
                    is_safety_critical=is_safety_critical(name),
                    io_address=decl.group("address"),
                    pou_name=pou_name,
                    location=SourceLocation(
                        file=file_path,
                        line=line_no,
                        column=code_line.find(name, decl.start("names")) + 1,
                    ),
                ))
    return variables


def var_section_lines(text: SourceText) -> set[int]:
    """1-based line numbers inside ``VAR*`` ... ``END_VAR`` blocks, inclusive."""
    return {index + 1 for index, _, _, _ in _section_spans(text.code_lines)}


def extract_io_mappings(text: SourceText, file_path: str) -> list[IOMapping]:
    mappings = []
    for index, code_line in enumerate(text.code_lines):
        for match in _ADDRESS_RE.finditer(code_line):
            area, size = match.group(1).upper(), match.group(2).upper()
            owner = _ADDRESS_OWNER_RE.search(code_line[:match.start()])
            mappings.append(IOMapping(
                address=match.group(0),
                area=_AREAS[area],
                size_prefix=size,
                bit_size=_SIZE_BITS[size],
                is_input=area == "I",
                variable_name=(owner.group(1) or owner.group(2)) if owner else None,
                location=SourceLocation(
                    file=file_path, line=index + 1, column=match.start() + 1,
                ),
            ))
    return mappings


def summarize_variables(variables: list[Variable]) -> VariableSummary:
    by_section: dict[str, int] = {}
    for var in variables:
        by_section[var.section.value] = by_section.get(var.section.value, 0) + 1
    return VariableSummary(
        total=len(variables),
        by_section=by_section,
        with_comments=sum(1 for v in variables if v.comment),
        with_io_address=sum(1 for v in variables if v.io_address),
        safety_critical=sum(1 for v in variables if v.is_safety_critical),
    )


def extract_variables_from_files(files: list[SourceFile]) -> VariableResult:
    variables: list[Variable] = []
    mappings: list[IOMapping] = []
    for file in files:
        result = extract_variables(file.content, file.path)
        variables.extend(result.variables)
        mappings.extend(result.io_mappings)
    return VariableResult(
        variables=variables,
        io_mappings=mappings,
        summary=summarize_variables(variables),
    )
