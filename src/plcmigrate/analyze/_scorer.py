"""Migration-readiness scoring.

Each POU gets five dimension scores in ``[0, 100]``, a weighted overall
score and grade, and a list of blockers.  Blockers dominate the
migration order: a unit with fewer blockers always comes first.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from plcmigrate.config import ScoringWeights
from plcmigrate.model.base import SourceLocation
from plcmigrate.model.docs import Docstring, DocstringResult
from plcmigrate.model.migration import (
    Blocker,
    DimensionScores,
    EffortEstimate,
    Grade,
    MigrationOrderItem,
    MigrationReport,
    POUMigrationScore,
    Risk,
)
from plcmigrate.model.pou import POU, POUType, VarSection
from plcmigrate.model.safety import SafetyResult, Severity
from plcmigrate.model.state_machine import StateMachine, StateMachineResult

logger = logging.getLogger(__name__)

BASE_HOURS: dict[POUType, int] = {
    POUType.PROGRAM: 8,
    POUType.FUNCTION_BLOCK: 4,
    POUType.FUNCTION: 2,
}
DEFAULT_BASE_HOURS = 4

WARNING_DEDUCTION: dict[Severity, int] = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
}

NO_CALL_GRAPH_SCORE = 80

EFFORT_BUCKETS: list[tuple[int, str]] = [
    (2, "1-2 hours"),
    (4, "2-4 hours"),
    (8, "4-8 hours"),
    (16, "1-2 days"),
]


def grade_for(score: float) -> Grade:
    """Step function from score to letter grade."""
    if score >= 90:
        return Grade.A
    if score >= 80:
        return Grade.B
    if score >= 70:
        return Grade.C
    if score >= 60:
        return Grade.D
    return Grade.F


def _clamp(value: float) -> int:
    return max(0, min(100, round(value)))


def _tier(value: int, tiers: list[tuple[int, int]]) -> int:
    """Deduction for the first ``(threshold, penalty)`` tier *value* exceeds."""
    for threshold, penalty in tiers:
        if value > threshold:
            return penalty
    return 0


def effort_hours(pou_type: POUType, overall_score: int, blocker_count: int) -> int:
    base = BASE_HOURS.get(pou_type, DEFAULT_BASE_HOURS)
    return round(base * (2 - overall_score / 100) * (1 + 0.5 * blocker_count))


def effort_label(hours: int) -> str:
    for limit, label in EFFORT_BUCKETS:
        if hours <= limit:
            return label
    return "2+ days"


# ---------------------------------------------------------------------------
# Attribution
# ---------------------------------------------------------------------------

class _Attribution:
    """Decides which POU an extracted entity belongs to.

    An entity belongs to a POU when it shares the POU's file and its line
    lies within the POU's span.  In a file holding a single POU, every
    entity of the file belongs to that POU.
    """

    def __init__(self, pous: list[POU]) -> None:
        self.per_file: dict[str, int] = {}
        for pou in pous:
            self.per_file[pou.location.file] = self.per_file.get(pou.location.file, 0) + 1

    def owns(self, pou: POU, location: SourceLocation) -> bool:
        if location.file != pou.location.file:
            return False
        if self.per_file.get(pou.location.file, 0) == 1:
            return True
        end = pou.location.end_line or pou.body_end_line
        return pou.location.line <= location.line <= end


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------

class MigrationScorer:
    """Scores POUs for migration readiness.

    Parameters
    ----------
    weights
        Dimension weights; defaults to documentation 0.25, safety 0.30 and
        0.15 for each of complexity, dependencies and testability.
    """

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or ScoringWeights()

    def score(
        self,
        pous: list[POU],
        docstrings: DocstringResult,
        state_machines: StateMachineResult,
        safety: SafetyResult,
        call_graph: Mapping[str, list[str]] | None = None,
    ) -> MigrationReport:
        attribution = _Attribution(pous)
        scores = [
            self._score_pou(pou, attribution, docstrings, state_machines, safety, call_graph)
            for pou in pous
        ]
        overall = _clamp(sum(s.overall_score for s in scores) / len(scores)) if scores else 0
        logger.info("Scored %d POUs, overall %d", len(scores), overall)
        return MigrationReport(
            overall_score=overall,
            overall_grade=grade_for(overall),
            pou_scores=scores,
            migration_order=self._migration_order(scores, call_graph),
            risks=self._risks(scores, safety),
            estimated_effort=self._effort(scores),
        )

    def _score_pou(self, pou, attribution, docstrings, state_machines, safety, call_graph):
        machines = [
            sm for sm in state_machines.state_machines if attribution.owns(pou, sm.location)
        ]
        dims = DimensionScores(
            documentation=self.documentation_score(pou, self._docstring_for(pou, attribution, docstrings)),
            safety=self.safety_score(pou, attribution, safety),
            complexity=self.complexity_score(pou, machines),
            dependencies=self.dependency_score(pou, call_graph),
            testability=self.testability_score(pou, machines),
        )
        w = self.weights
        overall = _clamp(
            dims.documentation * w.documentation
            + dims.safety * w.safety
            + dims.complexity * w.complexity
            + dims.dependencies * w.dependencies
            + dims.testability * w.testability
        )
        bypasses = [b for b in safety.bypasses if attribution.owns(pou, b.location)]
        return POUMigrationScore(
            pou_id=pou.id,
            pou_name=pou.name,
            pou_type=pou.type,
            overall_score=overall,
            dimension_scores=dims,
            grade=grade_for(overall),
            blockers=self._blockers(dims, bypasses, machines),
            warnings=self._warnings(dims),
            suggestions=self._suggestions(pou, dims, machines),
        )

    @staticmethod
    def _docstring_for(pou: POU, attribution: _Attribution, docstrings: DocstringResult):
        if pou.documentation is not None:
            return pou.documentation
        for doc in docstrings.docstrings:
            if doc.location.file == pou.location.file and doc.associated_block == pou.name:
                return doc
        for doc in docstrings.docstrings:
            if attribution.owns(pou, doc.location):
                return doc
        return None

    # -- dimensions ---------------------------------------------------------

    @staticmethod
    def documentation_score(pou: POU, doc: Docstring | None) -> int:
        score = 0.0
        if doc is not None:
            score += 20
            if doc.summary:
                score += 15
            if doc.history:
                score += 15

        inputs = pou.variables_in(VarSection.VAR_INPUT)
        if inputs:
            score += 20 * sum(1 for v in inputs if v.comment) / len(inputs)
        else:
            score += 20

        if pou.variables:
            score += 15 * sum(1 for v in pou.variables if v.comment) / len(pou.variables)
        else:
            score += 15

        critical = [v for v in pou.variables if v.is_safety_critical]
        if not critical or any(v.comment for v in critical):
            score += 15
        return _clamp(score)

    @staticmethod
    def safety_score(pou: POU, attribution: _Attribution, safety: SafetyResult) -> int:
        score = 100
        if any(attribution.owns(pou, b.location) for b in safety.bypasses):
            score -= 40
        undocumented = [
            i for i in safety.interlocks
            if attribution.owns(pou, i.location) and not i.comment
        ]
        score -= 5 * len(undocumented)
        for warning in safety.critical_warnings:
            if attribution.owns(pou, warning.location):
                score -= WARNING_DEDUCTION[warning.severity]
        score -= 3 * sum(1 for v in pou.variables if v.is_safety_critical and not v.comment)
        return _clamp(score)

    @staticmethod
    def complexity_score(pou: POU, machines: list[StateMachine]) -> int:
        score = 100
        score -= _tier(pou.body_end_line - pou.body_start_line, [(500, 30), (200, 15), (100, 5)])
        for sm in machines:
            score -= _tier(len(sm.states), [(20, 20), (10, 10), (5, 5)])
            if sm.verification.has_deadlocks:
                score -= 15
            if sm.verification.has_gaps:
                score -= 10
            if sm.verification.unreachable_states:
                score -= 5
        score -= _tier(len(pou.variables), [(50, 15), (30, 10), (20, 5)])
        return _clamp(score)

    @staticmethod
    def dependency_score(pou: POU, call_graph: Mapping[str, list[str]] | None) -> int:
        if call_graph is None:
            return NO_CALL_GRAPH_SCORE
        count = len(call_graph.get(pou.id, []))
        return _clamp(100 - _tier(count, [(10, 30), (5, 15), (3, 5)]))

    @staticmethod
    def testability_score(pou: POU, machines: list[StateMachine]) -> int:
        score = 100
        inputs = pou.variables_in(VarSection.VAR_INPUT)
        outputs = pou.variables_in(VarSection.VAR_OUTPUT)
        if not inputs and not outputs:
            score -= 20
        if inputs and sum(1 for v in inputs if v.comment) / len(inputs) < 0.5:
            score -= 15
        if outputs and sum(1 for v in outputs if v.comment) / len(outputs) < 0.5:
            score -= 15
        for sm in machines:
            if sum(1 for s in sm.states if s.name) < len(sm.states) * 0.5:
                score -= 10
        return _clamp(score)

    # -- findings -----------------------------------------------------------

    @staticmethod
    def _blockers(dims: DimensionScores, bypasses, machines: list[StateMachine]) -> list[Blocker]:
        blockers = [
            Blocker(
                type="safety-bypass",
                severity=Severity.CRITICAL,
                message=f"Safety bypass detected: {b.name}",
                remediation="Review with a safety engineer before migration; "
                            "document the bypass purpose and conditions.",
            )
            for b in bypasses
        ]
        for sm in machines:
            unnamed = sum(1 for s in sm.states if not s.name)
            if unnamed > len(sm.states) * 0.5:
                blockers.append(Blocker(
                    type="undocumented-state-machine",
                    severity=Severity.HIGH,
                    message=f"Undocumented state machine: {sm.name} "
                            f"({unnamed}/{len(sm.states)} states unnamed)",
                    remediation="Document the state machine's states before migration.",
                ))
        if dims.documentation < 30:
            blockers.append(Blocker(
                type="missing-documentation",
                severity=Severity.HIGH,
                message="Critical lack of documentation",
                remediation="Document inputs, outputs and purpose before migration.",
            ))
        return blockers

    @staticmethod
    def _warnings(dims: DimensionScores) -> list[str]:
        warnings = []
        if dims.documentation < 50:
            warnings.append("Documentation is below recommended level")
        if dims.complexity < 50:
            warnings.append("High complexity may make migration error-prone")
        if dims.dependencies < 50:
            warnings.append("Many dependencies; plan the migration order carefully")
        if dims.testability < 50:
            warnings.append("Low testability; verification may be difficult")
        return warnings

    @staticmethod
    def _suggestions(pou: POU, dims: DimensionScores, machines: list[StateMachine]) -> list[str]:
        suggestions = []
        if dims.documentation < 70:
            uncommented = sum(1 for v in pou.variables if not v.comment)
            if uncommented:
                suggestions.append(f"Document {uncommented} variables without comments")
            if pou.documentation is None:
                suggestions.append("Add header documentation describing purpose and behavior")
        for sm in machines:
            unnamed = sum(1 for s in sm.states if not s.name)
            if unnamed:
                suggestions.append(f"Name {unnamed} unnamed states in {sm.name}")
            if sm.verification.has_deadlocks:
                suggestions.append(f"Review deadlock states in {sm.name}")
        if dims.complexity < 50:
            suggestions.append("Consider splitting into smaller function blocks")
        return suggestions

    # -- project level ------------------------------------------------------

    @staticmethod
    def _migration_order(
        scores: list[POUMigrationScore], call_graph: Mapping[str, list[str]] | None,
    ) -> list[MigrationOrderItem]:
        ranked = sorted(
            enumerate(scores),
            key=lambda pair: (len(pair[1].blockers), -pair[1].overall_score, pair[0]),
        )
        items = []
        for order, (_, score) in enumerate(ranked, start=1):
            dependencies = list(call_graph.get(score.pou_id, [])) if call_graph else []
            if score.blockers:
                reason = f"Has {len(score.blockers)} blocker(s); resolve before migration"
            elif not dependencies:
                reason = "No dependencies, well documented"
            elif score.overall_score >= 80:
                reason = "High readiness score, good documentation"
            else:
                reason = "Moderate readiness, review documentation"
            hours = effort_hours(score.pou_type, score.overall_score, len(score.blockers))
            items.append(MigrationOrderItem(
                order=order,
                pou_id=score.pou_id,
                pou_name=score.pou_name,
                reason=reason,
                dependencies=dependencies,
                estimated_effort=effort_label(hours),
            ))
        return items

    @staticmethod
    def _risks(scores: list[POUMigrationScore], safety: SafetyResult) -> list[Risk]:
        risks = []
        bypassed = [s for s in scores if any(b.type == "safety-bypass" for b in s.blockers)]
        if safety.bypasses:
            risks.append(Risk(
                category="safety",
                severity=Severity.CRITICAL,
                description=f"{len(safety.bypasses)} safety bypass(es) detected",
                affected_pous=[s.pou_name for s in bypassed]
                or sorted({b.location.file for b in safety.bypasses}),
                mitigation="Review all bypasses with a safety engineer before migration",
            ))
        low_doc = [s for s in scores if s.dimension_scores.documentation < 40]
        if low_doc:
            risks.append(Risk(
                category="documentation",
                severity=Severity.HIGH,
                description=f"{len(low_doc)} POU(s) have insufficient documentation",
                affected_pous=[s.pou_name for s in low_doc],
                mitigation="Document POUs before migration to ensure a correct translation",
            ))
        complex_ = [s for s in scores if s.dimension_scores.complexity < 40]
        if complex_:
            risks.append(Risk(
                category="complexity",
                severity=Severity.MEDIUM,
                description=f"{len(complex_)} POU(s) have high complexity",
                affected_pous=[s.pou_name for s in complex_],
                mitigation="Refactor or add extra tests for complex POUs",
            ))
        blocked = [s for s in scores if s.blockers]
        if blocked:
            risks.append(Risk(
                category="blockers",
                severity=Severity.HIGH,
                description=f"{len(blocked)} POU(s) have migration blockers",
                affected_pous=[s.pou_name for s in blocked],
                mitigation="Resolve all blockers before attempting migration",
            ))
        return risks

    @staticmethod
    def _effort(scores: list[POUMigrationScore]) -> EffortEstimate:
        if not scores:
            return EffortEstimate()
        by_pou: dict[str, int] = {}
        for score in scores:
            hours = effort_hours(score.pou_type, score.overall_score, len(score.blockers))
            by_pou[score.pou_name] = by_pou.get(score.pou_name, 0) + hours
        mean = sum(s.overall_score for s in scores) / len(scores)
        return EffortEstimate(
            total_hours=sum(by_pou.values()),
            by_pou=by_pou,
            confidence=round(min(0.9, mean / 100), 3),
        )
