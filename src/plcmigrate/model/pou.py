"""Program Organization Units and their variable declarations."""

from __future__ import annotations

from enum import Enum

from pydantic import model_validator

from .base import Record, SourceLocation
from .docs import Docstring


class POUType(str, Enum):
    PROGRAM = "PROGRAM"
    FUNCTION_BLOCK = "FUNCTION_BLOCK"
    FUNCTION = "FUNCTION"
    CLASS = "CLASS"
    INTERFACE = "INTERFACE"


class VarSection(str, Enum):
    VAR = "VAR"
    VAR_INPUT = "VAR_INPUT"
    VAR_OUTPUT = "VAR_OUTPUT"
    VAR_IN_OUT = "VAR_IN_OUT"
    VAR_GLOBAL = "VAR_GLOBAL"
    VAR_TEMP = "VAR_TEMP"
    VAR_CONSTANT = "VAR_CONSTANT"
    VAR_EXTERNAL = "VAR_EXTERNAL"


class ArrayBounds(Record):
    """One ``lower..upper`` dimension of an ARRAY declaration.

    Bounds stay textual because they may name constants.
    """

    lower: str
    upper: str


class Variable(Record):
    """A declared variable, owned by one POU or by the global scope."""

    id: str
    name: str
    data_type: str
    section: VarSection
    initial_value: str | None = None
    comment: str | None = None
    is_array: bool = False
    array_bounds: list[ArrayBounds] = []
    is_safety_critical: bool = False
    io_address: str | None = None
    pou_name: str | None = None
    location: SourceLocation


class Method(Record):
    """A METHOD nested inside a FUNCTION_BLOCK or CLASS."""

    name: str
    return_type: str | None = None
    parameters: list[Variable] = []
    location: SourceLocation


class POU(Record):
    """A PROGRAM, FUNCTION_BLOCK, FUNCTION, CLASS or INTERFACE."""

    id: str
    type: POUType
    name: str
    location: SourceLocation
    documentation: Docstring | None = None
    variables: list[Variable] = []
    extends: str | None = None
    implements: list[str] = []
    methods: list[Method] = []
    return_type: str | None = None
    body_start_line: int
    body_end_line: int

    @model_validator(mode="after")
    def _check_pou(self):
        if not self.name:
            raise ValueError("POU name must be non-empty")
        if self.body_start_line > self.body_end_line:
            raise ValueError(
                f"POU '{self.name}': body_start_line {self.body_start_line} "
                f"> body_end_line {self.body_end_line}"
            )
        return self

    def variables_in(self, *sections: VarSection) -> list[Variable]:
        """Variables declared in any of *sections*."""
        return [v for v in self.variables if v.section in sections]
