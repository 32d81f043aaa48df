"""Translation context handed to an assistant that ports a project.

One :class:`AIContext` bundles what a translator needs about a project:
type mappings for the target language, per-POU interfaces and hints,
the safety functions that must survive, and what has to be verified
after the port.
"""

from __future__ import annotations

from enum import Enum

from .base import Record
from .knowledge import TribalKnowledgeItem
from .pou import POUType
from .safety import SafetyInterlock


class TargetLanguage(str, Enum):
    PYTHON = "python"
    RUST = "rust"


class ProjectContext(Record):
    name: str
    vendor: str = "generic-st"
    total_pous: int = 0
    total_lines: int = 0
    languages: list[str] = ["ST"]


class Conventions(Record):
    """Naming habits observed in the project's declarations."""

    variable_prefixes: dict[str, str] = {}
    naming_patterns: dict[str, str] = {}


class TypeContext(Record):
    plc_to_target: dict[str, str] = {}
    custom_types: list[str] = []


class SafetyContext(Record):
    interlocks: list[SafetyInterlock] = []
    critical_paths: list[str] = []
    must_preserve: list[str] = []


class VariableDescription(Record):
    name: str
    type: str
    description: str
    constraints: list[str] = []


class POUInterface(Record):
    inputs: list[VariableDescription] = []
    outputs: list[VariableDescription] = []
    in_outs: list[VariableDescription] = []


class POUBehavior(Record):
    summary: str
    state_machines: list[str] = []
    algorithms: list[str] = []


class POUSafety(Record):
    is_safety_critical: bool = False
    interlocks: list[str] = []
    bypasses: list[str] = []
    constraints: list[str] = []


class TranslationHint(Record):
    category: str
    plc_construct: str
    target_equivalent: str
    notes: str


class POUContext(Record):
    pou_id: str
    pou_name: str
    pou_type: POUType
    purpose: str
    interface: POUInterface = POUInterface()
    behavior: POUBehavior
    safety: POUSafety = POUSafety()
    translation_hints: list[TranslationHint] = []
    suggested_tests: list[str] = []


class PatternMapping(Record):
    plc_pattern: str
    target_pattern: str


class TranslationGuide(Record):
    target_language: TargetLanguage
    type_mapping: dict[str, str] = {}
    pattern_mapping: list[PatternMapping] = []
    warnings: list[str] = []


class VerificationRequirement(Record):
    category: str
    requirement: str
    test_approach: str
    subjects: list[str] = []


class AIContext(Record):
    version: str = "1.0.0"
    target_language: TargetLanguage
    project: ProjectContext
    conventions: Conventions = Conventions()
    types: TypeContext = TypeContext()
    safety: SafetyContext = SafetyContext()
    pous: list[POUContext] = []
    tribal_knowledge: list[TribalKnowledgeItem] = []
    translation_guide: TranslationGuide
    verification_requirements: list[VerificationRequirement] = []
