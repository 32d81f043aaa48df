"""Translation context for porting a project to a general-purpose language.

:func:`build_ai_context` folds the parser and extractor results into one
:class:`~plcmigrate.model.ai_context.AIContext`: target type mappings,
per-POU interfaces with translation hints and suggested tests, the safety
functions that must survive the port, and the verification work that has
to follow it.
"""

from __future__ import annotations

import logging
import re

from plcmigrate.extract import COUNTER_TYPES, TIMER_TYPES
from plcmigrate.model.ai_context import (
    AIContext,
    Conventions,
    PatternMapping,
    POUBehavior,
    POUContext,
    POUInterface,
    POUSafety,
    ProjectContext,
    SafetyContext,
    TargetLanguage,
    TranslationGuide,
    TranslationHint,
    TypeContext,
    VariableDescription,
    VerificationRequirement,
)
from plcmigrate.model.docs import DocstringResult
from plcmigrate.model.knowledge import KnowledgeResult
from plcmigrate.model.pou import POU, Variable, VarSection
from plcmigrate.model.safety import SafetyResult, Severity
from plcmigrate.model.state_machine import StateMachine, StateMachineResult

from ._scorer import MigrationScorer, _Attribution

logger = logging.getLogger(__name__)

PLC_TO_PYTHON: dict[str, str] = {
    "BOOL": "bool",
    "BYTE": "int",
    "WORD": "int",
    "DWORD": "int",
    "LWORD": "int",
    "SINT": "int",
    "INT": "int",
    "DINT": "int",
    "LINT": "int",
    "USINT": "int",
    "UINT": "int",
    "UDINT": "int",
    "ULINT": "int",
    "REAL": "float",
    "LREAL": "float",
    "STRING": "str",
    "WSTRING": "str",
    "TIME": "timedelta",
    "DATE": "date",
    "DATE_AND_TIME": "datetime",
    "TOD": "time",
    "ARRAY": "list",
}

PLC_TO_RUST: dict[str, str] = {
    "BOOL": "bool",
    "BYTE": "u8",
    "WORD": "u16",
    "DWORD": "u32",
    "LWORD": "u64",
    "SINT": "i8",
    "INT": "i16",
    "DINT": "i32",
    "LINT": "i64",
    "USINT": "u8",
    "UINT": "u16",
    "UDINT": "u32",
    "ULINT": "u64",
    "REAL": "f32",
    "LREAL": "f64",
    "STRING": "String",
    "WSTRING": "String",
    "TIME": "Duration",
    "DATE": "NaiveDate",
    "DATE_AND_TIME": "NaiveDateTime",
    "TOD": "NaiveTime",
    "ARRAY": "Vec",
}

TYPE_MAPPINGS: dict[TargetLanguage, dict[str, str]] = {
    TargetLanguage.PYTHON: PLC_TO_PYTHON,
    TargetLanguage.RUST: PLC_TO_RUST,
}

_TIMER_EQUIVALENT = {
    TargetLanguage.PYTHON: "asyncio.sleep() or threading.Timer",
    TargetLanguage.RUST: "tokio::time::sleep() or std::thread::sleep()",
}

_STATE_MACHINE_PATTERN = {
    TargetLanguage.PYTHON: "Enum-based state machine or state pattern",
    TargetLanguage.RUST: "Enum with match expression",
}

TRANSLATION_WARNINGS = [
    "PLC code executes cyclically; keep the scan-cycle semantics",
    "Timer behaviour is scan-based and may need adjustment",
    "I/O access must be abstracted behind a hardware interface",
    "Safety interlocks must be preserved exactly",
]

# Meanings for ``x_Name`` prefixes and Hungarian ``xName`` prefixes.
_UNDERSCORE_PREFIXES = {
    "b": "Boolean",
    "i": "Integer",
    "r": "Real/Float",
    "s": "String",
    "n": "Number",
    "w": "Word",
    "d": "Double word",
    "t": "Time/Timer",
    "dt": "Date/Time",
    "arr": "Array",
    "st": "Structure",
    "fb": "Function Block instance",
    "il": "Interlock",
    "pb": "Pushbutton",
    "ls": "Limit switch",
    "ps": "Pressure switch",
    "ts": "Temperature switch",
    "mv": "Motor valve",
    "sv": "Solenoid valve",
}

_HUNGARIAN_PREFIXES = {
    "b": "Boolean",
    "n": "Integer",
    "r": "Real",
    "s": "String",
    "w": "Word",
    "dw": "Double word",
    "by": "Byte",
    "a": "Array",
    "p": "Pointer",
    "fb": "Function Block",
}

_UNDERSCORE_PREFIX_RE = re.compile(r"^([A-Za-z]+)_")
_HUNGARIAN_PREFIX_RE = re.compile(r"^([a-z]{1,3})[A-Z]")
_BASE_TYPE_RE = re.compile(r"^\s*([A-Za-z_]\w*)")


def _base_type(data_type: str) -> str:
    match = _BASE_TYPE_RE.match(data_type)
    return match.group(1) if match else data_type.strip()


def _has_type(pou: POU, types: tuple[str, ...]) -> bool:
    return any(_base_type(v.data_type).upper() in types for v in pou.variables)


def build_ai_context(
    pous: list[POU],
    docstrings: DocstringResult,
    state_machines: StateMachineResult,
    safety: SafetyResult,
    knowledge: KnowledgeResult,
    target: TargetLanguage = TargetLanguage.PYTHON,
    project_name: str = "Unknown Project",
    vendor: str = "generic-st",
) -> AIContext:
    """Assemble the translation context for *pous* in the *target* language.

    Machines, interlocks and bypasses are attributed to POUs the same way
    the migration scorer attributes them.
    """
    target = TargetLanguage(target)
    attribution = _Attribution(pous)
    context = AIContext(
        target_language=target,
        project=ProjectContext(
            name=project_name,
            vendor=vendor,
            total_pous=len(pous),
            total_lines=sum(p.body_end_line - p.body_start_line for p in pous),
        ),
        conventions=_conventions(pous),
        types=_type_context(pous, target),
        safety=_safety_context(safety),
        pous=[
            _pou_context(pou, attribution, docstrings, state_machines, safety, target)
            for pou in pous
        ],
        tribal_knowledge=knowledge.items,
        translation_guide=_translation_guide(target),
        verification_requirements=verification_requirements(pous, safety, state_machines),
    )
    logger.info(
        "Built %s translation context for %d POUs with %d verification requirements",
        target.value, len(pous), len(context.verification_requirements),
    )
    return context


# ---------------------------------------------------------------------------
# Project level
# ---------------------------------------------------------------------------

def _conventions(pous: list[POU]) -> Conventions:
    prefixes: dict[str, str] = {}
    for pou in pous:
        for var in pou.variables:
            match = _UNDERSCORE_PREFIX_RE.match(var.name)
            if match and match.group(1).lower() in _UNDERSCORE_PREFIXES:
                prefix = match.group(1).lower()
                prefixes[prefix] = _UNDERSCORE_PREFIXES[prefix]
            match = _HUNGARIAN_PREFIX_RE.match(var.name)
            if match and match.group(1) in _HUNGARIAN_PREFIXES:
                prefixes[match.group(1)] = _HUNGARIAN_PREFIXES[match.group(1)]
    return Conventions(
        variable_prefixes=prefixes,
        naming_patterns={
            "function_block": "FB_<Name>",
            "program": "PRG_<Name> or <Name>_Main",
            "function": "FC_<Name> or <Name>",
        },
    )


def _type_context(pous: list[POU], target: TargetLanguage) -> TypeContext:
    mapping = TYPE_MAPPINGS[target]
    custom: list[str] = []
    for pou in pous:
        for var in pou.variables:
            base = _base_type(var.data_type)
            if base.upper() not in mapping and base not in custom:
                custom.append(base)
    return TypeContext(plc_to_target=mapping, custom_types=custom)


def _safety_context(safety: SafetyResult) -> SafetyContext:
    return SafetyContext(
        interlocks=safety.interlocks,
        critical_paths=[
            f"{i.name} at {i.location.file}:{i.location.line}"
            for i in safety.interlocks
            if i.severity is Severity.CRITICAL
        ],
        must_preserve=[f"Interlock: {i.name}" for i in safety.interlocks]
        + [f"BYPASS (review): {b.name}" for b in safety.bypasses],
    )


def _translation_guide(target: TargetLanguage) -> TranslationGuide:
    return TranslationGuide(
        target_language=target,
        type_mapping=TYPE_MAPPINGS[target],
        pattern_mapping=[
            PatternMapping(
                plc_pattern="CASE state OF ... END_CASE",
                target_pattern=_STATE_MACHINE_PATTERN[target],
            ),
            PatternMapping(plc_pattern="TON timer", target_pattern=_TIMER_EQUIVALENT[target]),
            PatternMapping(
                plc_pattern="IF condition THEN ... END_IF",
                target_pattern="Standard if statement",
            ),
        ],
        warnings=list(TRANSLATION_WARNINGS),
    )


def verification_requirements(
    pous: list[POU], safety: SafetyResult, state_machines: StateMachineResult,
) -> list[VerificationRequirement]:
    """What has to be shown equivalent after the port, most critical first."""
    requirements = []
    if safety.interlocks:
        requirements.append(VerificationRequirement(
            category="safety",
            requirement="All safety interlocks must produce identical behaviour",
            test_approach="Test each interlock with boundary conditions",
            subjects=[i.name for i in safety.interlocks],
        ))
    if safety.bypasses:
        requirements.append(VerificationRequirement(
            category="bypass",
            requirement="Each bypass must be removed or confined to an audited maintenance mode",
            test_approach="Show the bypass cannot defeat its interlocks in production mode",
            subjects=[b.name for b in safety.bypasses],
        ))
    if state_machines.state_machines:
        requirements.append(VerificationRequirement(
            category="state-machine",
            requirement="State transitions must match the PLC behaviour",
            test_approach="Test all state transitions with their guard conditions",
            subjects=[sm.name for sm in state_machines.state_machines],
        ))
    io_pous = [p.name for p in pous if any(v.io_address for v in p.variables)]
    if io_pous:
        requirements.append(VerificationRequirement(
            category="io",
            requirement="I/O behaviour must be verified against hardware",
            test_approach="Hardware-in-the-loop testing or simulation",
            subjects=io_pous,
        ))
    timed_pous = [p.name for p in pous if _has_type(p, TIMER_TYPES)]
    if timed_pous:
        requirements.append(VerificationRequirement(
            category="timing",
            requirement="Timer behaviour must match within an acceptable tolerance",
            test_approach="Timing tests with measurement",
            subjects=timed_pous,
        ))
    return requirements


# ---------------------------------------------------------------------------
# Per POU
# ---------------------------------------------------------------------------

def _pou_context(pou, attribution, docstrings, state_machines, safety, target) -> POUContext:
    doc = MigrationScorer._docstring_for(pou, attribution, docstrings)
    machines = [sm for sm in state_machines.state_machines if attribution.owns(pou, sm.location)]
    interlocks = [i for i in safety.interlocks if attribution.owns(pou, i.location)]
    bypasses = [b for b in safety.bypasses if attribution.owns(pou, b.location)]

    purpose = "No documentation available"
    if doc is not None and (doc.summary or doc.description):
        purpose = doc.summary or doc.description

    inputs = pou.variables_in(VarSection.VAR_INPUT)
    outputs = pou.variables_in(VarSection.VAR_OUTPUT)
    summary = []
    if doc is not None and doc.summary:
        summary.append(doc.summary)
    if machines:
        summary.append(f"Contains {len(machines)} state machine(s)")
    summary.append(f"{len(inputs)} inputs, {len(outputs)} outputs")

    constraints = [f"{i.type.value}: {i.name} must be preserved" for i in interlocks]
    constraints += [f"Bypass {b.name} must be reviewed before migration" for b in bypasses]
    constraints += [
        f"Safety variable {v.name} behaviour must be preserved"
        for v in pou.variables if v.is_safety_critical
    ]

    return POUContext(
        pou_id=pou.id,
        pou_name=pou.name,
        pou_type=pou.type,
        purpose=purpose,
        interface=POUInterface(
            inputs=[_describe(v) for v in inputs],
            outputs=[_describe(v) for v in outputs],
            in_outs=[_describe(v) for v in pou.variables_in(VarSection.VAR_IN_OUT)],
        ),
        behavior=POUBehavior(
            summary=". ".join(summary),
            state_machines=[
                f"{sm.name}: {len(sm.states)} states, {len(sm.transitions)} transitions"
                for sm in machines
            ],
            algorithms=_algorithms(pou),
        ),
        safety=POUSafety(
            is_safety_critical=bool(interlocks or bypasses)
            or any(v.is_safety_critical for v in pou.variables),
            interlocks=[i.name for i in interlocks],
            bypasses=[b.name for b in bypasses],
            constraints=constraints,
        ),
        translation_hints=translation_hints(pou, machines, target),
        suggested_tests=_suggested_tests(pou, machines),
    )


def _describe(var: Variable) -> VariableDescription:
    constraints = []
    if var.is_safety_critical:
        constraints.append("SAFETY CRITICAL: preserve behaviour exactly")
    if var.initial_value:
        constraints.append(f"Default: {var.initial_value}")
    for bounds in var.array_bounds:
        constraints.append(f"Array bounds: {bounds.lower}..{bounds.upper}")
    return VariableDescription(
        name=var.name,
        type=var.data_type,
        description=var.comment or "No description",
        constraints=constraints,
    )


def _algorithms(pou: POU) -> list[str]:
    algorithms = []
    if _has_type(pou, TIMER_TYPES):
        algorithms.append("Timer-based logic")
    if _has_type(pou, COUNTER_TYPES):
        algorithms.append("Counter-based logic")
    if any("pid" in v.name.lower() or "pid" in v.data_type.lower() for v in pou.variables):
        algorithms.append("PID control loop")
    return algorithms


def translation_hints(
    pou: POU, machines: list[StateMachine], target: TargetLanguage,
) -> list[TranslationHint]:
    """Hints for the constructs *pou* uses that have no direct equivalent."""
    target = TargetLanguage(target)
    hints = []
    if _has_type(pou, TIMER_TYPES):
        hints.append(TranslationHint(
            category="timing",
            plc_construct="TON/TOF/TP timers",
            target_equivalent=_TIMER_EQUIVALENT[target],
            notes="PLC timers are evaluated once per scan; keep that behaviour in the target.",
        ))
    if any(v.io_address for v in pou.variables):
        hints.append(TranslationHint(
            category="io",
            plc_construct="Direct I/O (%IX, %QX, ...)",
            target_equivalent="Hardware abstraction layer",
            notes="Route every direct address through a hardware interface layer.",
        ))
    for sm in machines:
        hints.append(TranslationHint(
            category="state-machine",
            plc_construct=f"CASE {sm.state_variable} OF ({len(sm.states)} states)",
            target_equivalent=_STATE_MACHINE_PATTERN[target],
            notes=f"Keep every transition of {sm.name}, including its guard conditions.",
        ))
    return hints


def _suggested_tests(pou: POU, machines: list[StateMachine]) -> list[str]:
    tests = [f"Test {v.name} with boundary values" for v in pou.variables_in(VarSection.VAR_INPUT)]
    for sm in machines:
        tests.append(f"Test all {len(sm.states)} states in {sm.name}")
        tests.append(f"Test all {len(sm.transitions)} transitions in {sm.name}")
        if sm.verification.has_deadlocks:
            tests.append(f"Verify deadlock handling in {sm.name}")
    tests += [f"Test safety behaviour of {v.name}" for v in pou.variables if v.is_safety_critical]
    return tests
