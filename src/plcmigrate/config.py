"""Analysis configuration.

``AnalysisConfig()`` gives the defaults; :func:`load_config` reads the
same structure from YAML::

    state_machines:
      min_states: 3
    safety:
      extra_bypass_patterns: ["^Jmp_"]
    scoring:
      weights: {documentation: 0.2, safety: 0.35, complexity: 0.15,
                dependencies: 0.15, testability: 0.15}
"""

from __future__ import annotations

import re
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator


class ConfigError(Exception):
    """A configuration file is unreadable or invalid."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ParserSettings(_Section):
    extract_docstrings: bool = True
    preserve_comments: bool = True
    docstring_line_tolerance: int = 2


class StateMachineSettings(_Section):
    min_states: int = 2
    generate_diagrams: bool = True
    include_transitions: bool = True
    fallback_window_chars: int = 3000
    max_actions: int = 5


class SafetySettings(_Section):
    """Patterns appended to the built-in tables; the built-ins always apply."""

    extra_bypass_patterns: list[str] = []
    extra_role_patterns: list[str] = []

    @field_validator("extra_bypass_patterns", "extra_role_patterns")
    @classmethod
    def _check_regex(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
        return patterns


class ScoringWeights(_Section):
    documentation: float = 0.25
    safety: float = 0.30
    complexity: float = 0.15
    dependencies: float = 0.15
    testability: float = 0.15

    @model_validator(mode="after")
    def _check_total(self):
        total = (
            self.documentation + self.safety + self.complexity
            + self.dependencies + self.testability
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"scoring weights must sum to 1.0, got {total:g}")
        return self


class ScoringSettings(_Section):
    weights: ScoringWeights = ScoringWeights()


class KnowledgeSettings(_Section):
    include_context: bool = True
    context_lines: int = 3


class AnalyzerSettings(_Section):
    max_workers: int | None = None
    extensions: list[str] = [".st", ".stx", ".scl", ".pou", ".exp"]


class AnalysisConfig(_Section):
    parser: ParserSettings = ParserSettings()
    state_machines: StateMachineSettings = StateMachineSettings()
    safety: SafetySettings = SafetySettings()
    scoring: ScoringSettings = ScoringSettings()
    knowledge: KnowledgeSettings = KnowledgeSettings()
    analyzer: AnalyzerSettings = AnalyzerSettings()


def load_config(path: str | Path) -> AnalysisConfig:
    """Read and validate a YAML configuration file.

    An empty file yields the defaults.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid YAML, or does not match
        :class:`AnalysisConfig`.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path} is not valid YAML: {exc}") from exc

    if data is None:
        return AnalysisConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    try:
        return AnalysisConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
