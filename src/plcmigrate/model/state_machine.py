"""CASE-driven state machines and their verification results."""

from __future__ import annotations

from typing import Union

from pydantic import model_validator

from .base import Record, SourceLocation

StateValue = Union[int, str]


class State(Record):
    id: str
    value: StateValue
    name: str | None = None
    documentation: str | None = None
    is_initial: bool = False
    is_final: bool = False
    actions: list[str] = []
    location: SourceLocation

    @property
    def label(self) -> str:
        return self.name or str(self.value)


class Transition(Record):
    id: str
    from_state_id: str
    to_state_id: str
    guard: str | None = None
    actions: list[str] = []
    location: SourceLocation


class Verification(Record):
    """Derived diagnostics; always computed from a machine's graph."""

    has_deadlocks: bool = False
    deadlock_states: list[str] = []
    unreachable_states: list[str] = []
    missing_transitions: list[str] = []
    has_gaps: bool = False
    gap_values: list[int] = []


class Visualizations(Record):
    mermaid: str
    ascii: str


class StateMachine(Record):
    id: str
    name: str
    pou_name: str
    state_variable: str
    states: list[State] = []
    transitions: list[Transition] = []
    location: SourceLocation
    verification: Verification = Verification()
    visualizations: Visualizations | None = None

    @model_validator(mode="after")
    def _check_unique_values(self):
        seen: set = set()
        for state in self.states:
            key = _value_key(state.value)
            if key in seen:
                raise ValueError(
                    f"State machine '{self.name}': duplicate state value "
                    f"{state.value!r}"
                )
            seen.add(key)
        return self

    def state_by_id(self, state_id: str) -> State | None:
        for state in self.states:
            if state.id == state_id:
                return state
        return None


def _value_key(value: StateValue) -> tuple[str, str]:
    if isinstance(value, int):
        return ("int", str(value))
    return ("str", value.upper())


class StateMachineSummary(Record):
    total: int = 0
    total_states: int = 0
    by_variable: dict[str, int] = {}
    with_deadlocks: int = 0
    with_gaps: int = 0


class StateMachineResult(Record):
    state_machines: list[StateMachine] = []
    summary: StateMachineSummary = StateMachineSummary()
