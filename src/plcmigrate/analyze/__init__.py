"""plcmigrate analyze: scoring and project-level orchestration.

Public API::

    from plcmigrate.analyze import ProjectAnalyzer, ParseCache, load_sources

    cache = ParseCache()
    analyzer = ProjectAnalyzer(cache=cache)
    project = analyzer.analyze(load_sources("plc_project/"))
    print(project.migration.overall_grade, project.status.health_score)
"""

from ._ai_context import (
    TYPE_MAPPINGS,
    build_ai_context,
    translation_hints,
    verification_requirements,
)
from ._analyzer import ProjectAnalyzer
from ._cache import ParseCache, project_key
from ._callgraph import build_call_graph, callers
from ._scorer import MigrationScorer, effort_hours, effort_label, grade_for
from ._sources import DEFAULT_EXTENSIONS, load_sources

__all__ = [
    "DEFAULT_EXTENSIONS",
    "MigrationScorer",
    "ParseCache",
    "ProjectAnalyzer",
    "TYPE_MAPPINGS",
    "build_ai_context",
    "build_call_graph",
    "callers",
    "effort_hours",
    "effort_label",
    "grade_for",
    "load_sources",
    "project_key",
    "translation_hints",
    "verification_requirements",
]
