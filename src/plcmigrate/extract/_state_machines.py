"""CASE-based state-machine extraction.

A ``CASE <var> OF`` whose selector looks like a state variable becomes a
machine.  Labels at the outer nesting level become states; assignments
``<var> := <target>;`` inside a state's body become transitions, guarded
by the nearest preceding ``IF``/``ELSIF`` condition in that body.
"""

from __future__ import annotations

import logging
import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.state_machine import (
    State,
    StateMachine,
    StateMachineResult,
    StateMachineSummary,
    StateValue,
    Transition,
)
from plcmigrate.parse import comment_body, keyword_kind
from plcmigrate.patterns import is_state_variable
from plcmigrate.verify import build_state_machine

from ._text import SourceText

logger = logging.getLogger(__name__)

_CASE_RE = re.compile(r"\bCASE\s+(\w+)\s+OF\b", re.IGNORECASE)
_CASE_BOUNDARY_RE = re.compile(r"\bCASE\b|\bEND_CASE\b", re.IGNORECASE)

# A label starts a line or follows a ';' on the same line.  ':=' is never a label.
_LABEL_RE = re.compile(
    r"(?:^|(?<=;))[ \t]*"
    r"(?:(\d+)(?:[ \t]*(?:,|\.\.)[ \t]*\d+)*|([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?))"
    r"[ \t]*:(?!=)",
    re.MULTILINE,
)
_GUARD_RE = re.compile(r"\b(?:ELSIF|IF)\s+(.+?)\s+THEN\b", re.IGNORECASE)
_INLINE_COMMENT_RE = re.compile(r"\(\*\s*(.*?)\s*\*\)|//\s*(.*)$")
_DOC_NAME_RE = re.compile(r"^(?:state\s*\d*\s*[-:]?\s*)?(.+)$", re.IGNORECASE)
_INITIAL_NAME_RE = re.compile(r"^(?:IDLE|INIT|START|READY)", re.IGNORECASE)
_FINAL_NAME_RE = re.compile(r"^(?:DONE|COMPLETE|FINISHED|END|STOP)", re.IGNORECASE)

COMMON_STATE_NAMES: dict[int, str] = {
    0: "Idle",
    10: "Initialize",
    20: "Ready",
    90: "Stopping",
    100: "Complete",
    999: "Fault",
}

FALLBACK_WINDOW = 3000
MAX_ACTIONS = 5


def infer_state_name(value: StateValue, documentation: str | None) -> tuple[str | None, bool]:
    """Display name for a state and whether it was stated explicitly.

    Symbolic labels name themselves; numeric ones take their name from the
    documentation comment, then from the common-value convention table.
    """
    if isinstance(value, str):
        return value.split(".")[-1].replace("_", " "), True
    if documentation:
        match = _DOC_NAME_RE.match(documentation)
        name = match.group(1).strip() if match else documentation
        return name or documentation, True
    return COMMON_STATE_NAMES.get(value), False


def _value_key(value: StateValue) -> str:
    return str(value).upper()


def _matching_end(code: str, start: int) -> int | None:
    """Offset of the END_CASE closing a CASE whose body starts at *start*."""
    depth = 1
    for match in _CASE_BOUNDARY_RE.finditer(code, start):
        if match.group(0).upper() == "CASE":
            depth += 1
        else:
            depth -= 1
            if depth == 0:
                return match.start()
    return None


def _nested_ranges(body: str) -> list[tuple[int, int]]:
    ranges = []
    depth = 0
    start = 0
    for match in _CASE_BOUNDARY_RE.finditer(body):
        if match.group(0).upper() == "CASE":
            if depth == 0:
                start = match.start()
            depth += 1
        elif depth > 0:
            depth -= 1
            if depth == 0:
                ranges.append((start, match.end()))
    if depth > 0:
        ranges.append((start, len(body)))
    return ranges


class _Label:
    __slots__ = ("value", "start", "end")

    def __init__(self, value: StateValue, start: int, end: int) -> None:
        self.value = value
        self.start = start
        self.end = end


def _find_labels(body: str) -> list[_Label]:
    nested = _nested_ranges(body)
    labels: list[_Label] = []
    seen: set[str] = set()
    for match in _LABEL_RE.finditer(body):
        pos = match.start(1) if match.group(1) is not None else match.start(2)
        if any(lo <= pos < hi for lo, hi in nested):
            continue
        if match.group(1) is not None:
            value: StateValue = int(match.group(1))
        else:
            word = match.group(2)
            if keyword_kind(word) is not None:
                continue
            value = word
        key = _value_key(value)
        if key in seen:
            continue
        seen.add(key)
        labels.append(_Label(value, pos, match.end()))
    return labels


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class _MachineBuilder:
    """Builds the states and transitions of one CASE block."""

    def __init__(
        self,
        text: SourceText,
        file_path: str,
        variable: str,
        body_start: int,
        body: str,
        max_actions: int,
    ) -> None:
        self.text = text
        self.file = file_path
        self.variable = variable
        self.body_start = body_start
        self.body = body
        self.max_actions = max_actions
        self.labels = _find_labels(body)

    def _segment_end(self, index: int) -> int:
        if index + 1 < len(self.labels):
            return self.labels[index + 1].start
        return len(self.body)

    def _location(self, body_offset: int) -> SourceLocation:
        absolute = self.body_start + body_offset
        return SourceLocation(
            file=self.file,
            line=self.text.line_of(absolute),
            column=self.text.column_of(absolute),
        )

    def _documentation(self, label: _Label, seg_end: int) -> str | None:
        source = self.text.source
        abs_start = self.body_start + label.start
        abs_end = self.body_start + seg_end
        line_end = source.find("\n", abs_start)
        if line_end == -1:
            line_end = len(source)
        inline = _INLINE_COMMENT_RE.search(source[abs_start:min(abs_end, line_end)])
        if inline:
            doc = inline.group(1) if inline.group(1) is not None else inline.group(2)
            return doc.strip() or None

        next_start = line_end + 1
        if next_start >= abs_end:
            return None
        next_end = source.find("\n", next_start)
        next_line = source[next_start:next_end if next_end != -1 else len(source)].strip()
        if next_line.startswith(("(*", "//")):
            return comment_body(next_line) or None
        return None

    def _actions(self, segment: str) -> list[str]:
        actions = []
        for raw in segment.split("\n"):
            line = raw.strip()
            if ":=" in line or "(" in line:
                actions.append(line.rstrip(";").strip())
            if len(actions) >= self.max_actions:
                break
        return [a for a in actions if a]

    def states(self) -> list[State]:
        states = []
        for index, label in enumerate(self.labels):
            seg_end = self._segment_end(index)
            documentation = self._documentation(label, seg_end)
            name, explicit = infer_state_name(label.value, documentation)
            is_initial = isinstance(label.value, int) and label.value == 0
            if explicit and name and _INITIAL_NAME_RE.match(name):
                is_initial = True
            location = self._location(label.start)
            states.append(State(
                id=make_id("state", self.file, location.line, self.variable, label.value),
                value=label.value,
                name=name,
                documentation=documentation,
                is_initial=is_initial,
                is_final=bool(explicit and name and _FINAL_NAME_RE.match(name)),
                actions=self._actions(self.body[label.end:seg_end]),
                location=location,
            ))
        return states

    def transitions(self, states: list[State]) -> list[Transition]:
        by_value = {_value_key(s.value): s for s in states}
        assign_re = re.compile(
            rf"\b{re.escape(self.variable)}\s*:=\s*(\d+|[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)?)\s*;",
            re.IGNORECASE,
        )
        transitions = []
        for index, (label, state) in enumerate(zip(self.labels, states)):
            seg_end = self._segment_end(index)
            for match in assign_re.finditer(self.body, label.end, seg_end):
                raw = match.group(1)
                target = by_value.get(_value_key(int(raw) if raw.isdigit() else raw))
                if target is None:
                    logger.debug(
                        "%s: %s := %s targets no CASE label", self.file, self.variable, raw,
                    )
                    continue
                if target.id == state.id:
                    continue
                guards = list(_GUARD_RE.finditer(self.body, label.end, match.start()))
                guard = " ".join(guards[-1].group(1).split()) if guards else None
                location = self._location(match.start())
                transitions.append(Transition(
                    id=make_id(
                        "transition", self.file, location.line, state.value,
                        target.value, len(transitions),
                    ),
                    from_state_id=state.id,
                    to_state_id=target.id,
                    guard=guard,
                    location=location,
                ))
        return transitions


def extract_state_machines(
    source: str,
    file_path: str,
    pou_name_hint: str = "UNKNOWN",
    *,
    min_states: int = 2,
    generate_diagrams: bool = True,
    include_transitions: bool = True,
    fallback_window: int = FALLBACK_WINDOW,
    max_actions: int = MAX_ACTIONS,
) -> StateMachineResult:
    """Find CASE-based state machines in *source*.

    Parameters
    ----------
    pou_name_hint
        POU name used when no POU header precedes a CASE block.
    min_states
        Machines with fewer states are discarded.
    fallback_window
        Characters scanned after an unterminated ``CASE ... OF``.
    """
    text = SourceText(source)
    code = text.code
    machines: list[StateMachine] = []

    for case in _CASE_RE.finditer(code):
        variable = case.group(1)
        if not is_state_variable(variable):
            logger.debug("%s: CASE %s is not a state variable", file_path, variable)
            continue

        body_start = case.end()
        end = _matching_end(code, body_start)
        if end is None:
            end = min(len(code), body_start + fallback_window)
        builder = _MachineBuilder(
            text, file_path, variable, body_start, code[body_start:end], max_actions,
        )
        states = builder.states()
        if len(states) < min_states:
            logger.debug(
                "%s: CASE %s has %d states, below minimum %d",
                file_path, variable, len(states), min_states,
            )
            continue
        transitions = builder.transitions(states) if include_transitions else []

        line = text.line_of(case.start())
        pou_name = text.pou_at(case.start()) or pou_name_hint
        machines.append(build_state_machine(
            id=make_id("sm", file_path, line, variable),
            name=f"{pou_name}_{variable}",
            pou_name=pou_name,
            state_variable=variable,
            states=states,
            transitions=transitions,
            location=SourceLocation(
                file=file_path,
                line=line,
                column=text.column_of(case.start()),
                end_line=text.line_of(max(end - 1, case.start())),
            ),
            generate_diagrams=generate_diagrams,
        ))

    return StateMachineResult(
        state_machines=machines,
        summary=summarize_state_machines(machines),
    )


def summarize_state_machines(machines: list[StateMachine]) -> StateMachineSummary:
    by_variable: dict[str, int] = {}
    for machine in machines:
        by_variable[machine.state_variable] = by_variable.get(machine.state_variable, 0) + 1
    return StateMachineSummary(
        total=len(machines),
        total_states=sum(len(m.states) for m in machines),
        by_variable=by_variable,
        with_deadlocks=sum(1 for m in machines if m.verification.has_deadlocks),
        with_gaps=sum(1 for m in machines if m.verification.has_gaps),
    )


def extract_state_machines_from_files(
    files: list[SourceFile], **options,
) -> StateMachineResult:
    """Run :func:`extract_state_machines` per file and merge the results."""
    machines: list[StateMachine] = []
    for file in files:
        result = extract_state_machines(file.content, file.path, file.stem, **options)
        machines.extend(result.state_machines)
    return StateMachineResult(
        state_machines=machines,
        summary=summarize_state_machines(machines),
    )
