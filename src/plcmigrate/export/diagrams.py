"""Diagram renderers for extracted state machines.

Both renderers are pure functions of the state and transition lists and
return deterministic strings suitable for embedding in reports.
"""

from __future__ import annotations

from io import StringIO

from plcmigrate.model.state_machine import State, Transition

NOTE_WIDTH = 50
GUARD_WIDTH = 30


class _DiagramWriter:
    """Line-oriented text buffer with indentation."""

    def __init__(self, indent: str = "") -> None:
        self._buf = StringIO()
        self.indent = indent
        self._first = True

    def line(self, text: str = "") -> None:
        if not self._first:
            self._buf.write("\n")
        self._first = False
        self._buf.write(f"{self.indent}{text}" if text else "")

    def getvalue(self) -> str:
        return self._buf.getvalue()


# ---------------------------------------------------------------------------
# Mermaid
# ---------------------------------------------------------------------------

def render_mermaid(
    pou_name: str,
    state_variable: str,
    states: list[State],
    transitions: list[Transition],
) -> str:
    """Mermaid ``stateDiagram-v2`` source for a state machine."""
    w = _DiagramWriter()
    w.line("stateDiagram-v2")
    w.indent = "    "
    w.line(f"%% State Machine: {pou_name}.{state_variable}")

    node = {state.id: f"s{i}" for i, state in enumerate(states)}
    for state in states:
        label = state.name or f"State_{state.value}"
        w.line(f"{node[state.id]}: {label}")
        if state.documentation:
            w.line(f"note right of {node[state.id]}: {state.documentation[:NOTE_WIDTH]}")

    initial = next((state for state in states if state.is_initial), None)
    if initial is not None:
        w.line(f"[*] --> {node[initial.id]}")

    for transition in transitions:
        src = node.get(transition.from_state_id)
        dst = node.get(transition.to_state_id)
        if src is None or dst is None:
            continue
        edge = f"{src} --> {dst}"
        if transition.guard:
            edge += f" : {transition.guard[:GUARD_WIDTH]}"
        w.line(edge)

    for state in states:
        if state.is_final:
            w.line(f"{node[state.id]} --> [*]")
    return w.getvalue()


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------

def render_ascii(
    state_variable: str,
    states: list[State],
    transitions: list[Transition],
) -> str:
    """Plain-text state list followed by the transition list."""
    w = _DiagramWriter()
    w.line(f"State Machine: {state_variable}")
    w.line("=" * 40)
    w.line()
    w.line("States:")
    for state in states:
        markers = []
        if state.is_initial:
            markers.append("INITIAL")
        if state.is_final:
            markers.append("FINAL")
        suffix = f" [{', '.join(markers)}]" if markers else ""
        w.line(f"  {state.value}: {state.name or '(unnamed)'}{suffix}")
        if state.documentation:
            w.line(f'      "{state.documentation[:NOTE_WIDTH]}"')

    w.line()
    w.line("Transitions:")
    value_of = {state.id: state.value for state in states}
    for transition in transitions:
        if transition.from_state_id not in value_of or transition.to_state_id not in value_of:
            continue
        line = f"  {value_of[transition.from_state_id]} --> {value_of[transition.to_state_id]}"
        if transition.guard:
            line += f" [{transition.guard[:GUARD_WIDTH]}]"
        w.line(line)
    return w.getvalue()
