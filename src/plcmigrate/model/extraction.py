"""Records produced by the text-driven block, comment, variable and
timer/counter extractors."""

from __future__ import annotations

from enum import Enum

from .base import Record, SourceLocation
from .pou import POUType, Variable


class Block(Record):
    name: str
    type: POUType
    location: SourceLocation
    return_type: str | None = None


class BlockResult(Record):
    blocks: list[Block] = []
    errors: list[str] = []


class CommentStyle(str, Enum):
    BLOCK = "block"
    LINE = "line"


class Comment(Record):
    content: str
    style: CommentStyle
    location: SourceLocation
    is_docstring: bool = False


class CommentSummary(Record):
    total: int = 0
    block_comments: int = 0
    line_comments: int = 0
    docstrings: int = 0


class CommentResult(Record):
    comments: list[Comment] = []
    summary: CommentSummary = CommentSummary()


class AddressArea(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    MEMORY = "memory"


class IOMapping(Record):
    """A direct ``%I`` / ``%Q`` / ``%M`` address found in the source."""

    address: str
    area: AddressArea
    size_prefix: str = ""
    bit_size: int
    is_input: bool
    variable_name: str | None = None
    location: SourceLocation


class VariableSummary(Record):
    total: int = 0
    by_section: dict[str, int] = {}
    with_comments: int = 0
    with_io_address: int = 0
    safety_critical: int = 0


class VariableResult(Record):
    variables: list[Variable] = []
    io_mappings: list[IOMapping] = []
    summary: VariableSummary = VariableSummary()


class TimerInstance(Record):
    name: str
    timer_type: str
    preset: str | None = None
    location: SourceLocation


class CounterInstance(Record):
    name: str
    counter_type: str
    preset: str | None = None
    location: SourceLocation


class TimerCounterSummary(Record):
    total_timers: int = 0
    total_counters: int = 0
    by_type: dict[str, int] = {}


class TimerCounterResult(Record):
    timers: list[TimerInstance] = []
    counters: list[CounterInstance] = []
    summary: TimerCounterSummary = TimerCounterSummary()
