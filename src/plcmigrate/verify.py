"""State-machine verification.

Reachability, deadlock and numbering-gap checks are independent and may
all fire on the same machine.  Verification is always derived from the
states and transitions; :func:`build_state_machine` and
:func:`rebuild_state_machine` are the only ways machines get one.
"""

from __future__ import annotations

from plcmigrate.export.diagrams import render_ascii, render_mermaid
from plcmigrate.model.base import SourceLocation
from plcmigrate.model.state_machine import (
    State,
    StateMachine,
    Transition,
    Verification,
    Visualizations,
)

# Average spacing above which numbering counts as deliberately sparse
# (0, 10, 20 ...) rather than gapped.
GAP_SPACING_LIMIT = 2


def find_gaps(values: list[int]) -> list[int]:
    """Missing integers in ``[min, max]`` when numbering is dense.

    >>> find_gaps([0, 1, 2, 5])
    [3, 4]
    >>> find_gaps([0, 100, 500])
    []
    """
    ordered = sorted(set(values))
    if len(ordered) < 2:
        return []
    spacing = (ordered[-1] - ordered[0]) / (len(ordered) - 1)
    if spacing > GAP_SPACING_LIMIT:
        return []
    present = set(ordered)
    return [v for v in range(ordered[0], ordered[-1] + 1) if v not in present]


def verify(states: list[State], transitions: list[Transition]) -> Verification:
    """Derive reachability, deadlock and gap diagnostics."""
    targets = {t.to_state_id for t in transitions}
    sources = {t.from_state_id for t in transitions}

    unreachable = [
        s.label for s in states
        if not s.is_initial and s.id not in targets
    ]
    deadlocks = [
        s.label for s in states
        if not s.is_final and s.id not in sources
    ]
    gaps = find_gaps([s.value for s in states if isinstance(s.value, int)])

    return Verification(
        has_deadlocks=bool(deadlocks),
        deadlock_states=deadlocks,
        unreachable_states=unreachable,
        missing_transitions=[],
        has_gaps=bool(gaps),
        gap_values=gaps,
    )


def build_state_machine(
    *,
    id: str,
    name: str,
    pou_name: str,
    state_variable: str,
    states: list[State],
    transitions: list[Transition],
    location: SourceLocation,
    generate_diagrams: bool = True,
) -> StateMachine:
    """Assemble a machine with its verification and (optionally) diagrams."""
    visualizations = None
    if generate_diagrams:
        visualizations = Visualizations(
            mermaid=render_mermaid(pou_name, state_variable, states, transitions),
            ascii=render_ascii(state_variable, states, transitions),
        )
    return StateMachine(
        id=id,
        name=name,
        pou_name=pou_name,
        state_variable=state_variable,
        states=states,
        transitions=transitions,
        location=location,
        verification=verify(states, transitions),
        visualizations=visualizations,
    )


def rebuild_state_machine(
    machine: StateMachine,
    *,
    states: list[State] | None = None,
    transitions: list[Transition] | None = None,
) -> StateMachine:
    """Copy of *machine* with new states/transitions and fresh verification."""
    return build_state_machine(
        id=machine.id,
        name=machine.name,
        pou_name=machine.pou_name,
        state_variable=machine.state_variable,
        states=machine.states if states is None else states,
        transitions=machine.transitions if transitions is None else transitions,
        location=machine.location,
        generate_diagrams=machine.visualizations is not None,
    )
