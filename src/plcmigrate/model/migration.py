"""Migration-readiness scores, plan and risk records."""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import Field

from .base import Record
from .pou import POUType
from .safety import Severity


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


ScoreValue = Annotated[int, Field(ge=0, le=100)]


class DimensionScores(Record):
    documentation: ScoreValue
    safety: ScoreValue
    complexity: ScoreValue
    dependencies: ScoreValue
    testability: ScoreValue


class Blocker(Record):
    """Something that must be resolved before a unit can be migrated."""

    type: str
    severity: Severity
    message: str
    remediation: str = ""


class POUMigrationScore(Record):
    pou_id: str
    pou_name: str
    pou_type: POUType
    overall_score: ScoreValue
    dimension_scores: DimensionScores
    grade: Grade
    blockers: list[Blocker] = []
    warnings: list[str] = []
    suggestions: list[str] = []


class MigrationOrderItem(Record):
    order: int
    pou_id: str
    pou_name: str
    reason: str
    dependencies: list[str] = []
    estimated_effort: str


class Risk(Record):
    category: str
    severity: Severity
    description: str
    affected_pous: list[str] = []
    mitigation: str


class EffortEstimate(Record):
    total_hours: int = 0
    by_pou: dict[str, int] = {}
    confidence: float = 0.0


class MigrationReport(Record):
    overall_score: ScoreValue
    overall_grade: Grade
    pou_scores: list[POUMigrationScore] = []
    migration_order: list[MigrationOrderItem] = []
    risks: list[Risk] = []
    estimated_effort: EffortEstimate = EffortEstimate()
