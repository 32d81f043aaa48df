"""File- and project-level analysis containers."""

from __future__ import annotations

from pathlib import PurePosixPath

from .base import Record
from .docs import DocstringResult
from .extraction import BlockResult, TimerCounterResult, VariableResult
from .knowledge import KnowledgeResult
from .migration import MigrationReport
from .parsing import ParseResult
from .pou import POU
from .safety import SafetyResult
from .state_machine import StateMachineResult


class SourceFile(Record):
    """One input file: a project-relative path and its decoded content."""

    path: str
    content: str

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

    @property
    def stem(self) -> str:
        return PurePosixPath(self.path).stem


class StageResult(Record):
    """Outcome of one extraction stage for one file."""

    stage: str
    ok: bool = True
    error: str | None = None


class FileAnalysis(Record):
    file: str
    parse: ParseResult
    docstrings: DocstringResult = DocstringResult()
    state_machines: StateMachineResult = StateMachineResult()
    safety: SafetyResult = SafetyResult()
    tribal_knowledge: KnowledgeResult = KnowledgeResult()
    variables: VariableResult = VariableResult()
    blocks: BlockResult = BlockResult()
    timers: TimerCounterResult = TimerCounterResult()
    stages: list[StageResult] = []

    @property
    def issues(self) -> list[StageResult]:
        return [s for s in self.stages if not s.ok]


class ProjectStatus(Record):
    total_files: int = 0
    files_by_extension: dict[str, int] = {}
    total_lines: int = 0
    pou_count: int = 0
    state_machine_count: int = 0
    interlock_count: int = 0
    bypass_count: int = 0
    tribal_knowledge_count: int = 0
    docstring_count: int = 0
    health_score: int = 0


class ProjectAnalysis(Record):
    """Project-wide aggregate; every summary is recomputed from records."""

    files: list[FileAnalysis] = []
    pous: list[POU] = []
    docstrings: DocstringResult = DocstringResult()
    state_machines: StateMachineResult = StateMachineResult()
    safety: SafetyResult = SafetyResult()
    tribal_knowledge: KnowledgeResult = KnowledgeResult()
    variables: VariableResult = VariableResult()
    blocks: BlockResult = BlockResult()
    timers: TimerCounterResult = TimerCounterResult()
    call_graph: dict[str, list[str]] = {}
    migration: MigrationReport | None = None
    status: ProjectStatus = ProjectStatus()
