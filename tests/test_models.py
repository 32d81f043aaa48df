"""Tests for record validators, identifiers and the wire format."""

import pytest
from pydantic import ValidationError

from conftest import fixture_text, source_file
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.migration import DimensionScores
from plcmigrate.model.pou import POU, POUType
from plcmigrate.model.safety import CriticalWarning, Severity
from plcmigrate.model.state_machine import State, StateMachine

LOC = SourceLocation(file="a.st", line=1)


def state(value, name=None):
    return State(id=f"s{value}", value=value, name=name, location=LOC)


# ===========================================================================
# Validators
# ===========================================================================


class TestSourceLocation:
    def test_line_is_one_based(self):
        with pytest.raises(ValidationError, match="line must be >= 1"):
            SourceLocation(file="a.st", line=0)

    def test_end_line_not_before_line(self):
        with pytest.raises(ValidationError, match="end_line 2 precedes line 5"):
            SourceLocation(file="a.st", line=5, end_line=2)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            LOC.line = 3


class TestPOU:
    def test_body_span_ordered(self):
        with pytest.raises(ValidationError, match="body_start_line 5 > body_end_line 3"):
            POU(id="p", type=POUType.PROGRAM, name="Main", location=LOC,
                body_start_line=5, body_end_line=3)

    def test_name_required(self):
        with pytest.raises(ValidationError, match="POU name must be non-empty"):
            POU(id="p", type=POUType.PROGRAM, name="", location=LOC,
                body_start_line=1, body_end_line=1)


class TestStateMachine:
    def _machine(self, *states):
        return StateMachine(id="m", name="Main_nState", pou_name="Main",
                            state_variable="nState", states=list(states), location=LOC)

    def test_duplicate_values_rejected(self):
        with pytest.raises(ValidationError, match="duplicate state value"):
            self._machine(state(1), state(1))

    def test_symbolic_values_compare_case_insensitively(self):
        with pytest.raises(ValidationError, match="duplicate state value"):
            self._machine(state("E_State.IDLE"), state("e_state.idle"))

    def test_int_and_text_values_are_distinct(self):
        machine = self._machine(state(1), state("1"))
        assert len(machine.states) == 2

    def test_state_lookup_and_label(self):
        machine = self._machine(state(0, "Idle"), state(7))
        assert machine.state_by_id("s7").label == "7"
        assert machine.state_by_id("s0").label == "Idle"
        assert machine.state_by_id("missing") is None


class TestOtherValidators:
    def test_warning_needs_remediation(self):
        with pytest.raises(ValidationError, match="needs a remediation"):
            CriticalWarning(type="bypass-detected", message="m",
                            severity=Severity.CRITICAL, location=LOC, remediation="  ")

    @pytest.mark.parametrize("value", [-1, 101])
    def test_dimension_scores_bounded(self, value):
        with pytest.raises(ValidationError):
            DimensionScores(documentation=value, safety=0, complexity=0,
                            dependencies=0, testability=0)


# ===========================================================================
# Identity and wire format
# ===========================================================================


class TestIdentity:
    def test_make_id_is_deterministic(self):
        first = make_id("pou", "a.st", 1, "Main")
        assert first == make_id("pou", "a.st", 1, "Main")
        assert first.startswith("pou_")
        assert len(first) == len("pou_") + 12

    def test_make_id_depends_on_every_part(self):
        assert make_id("pou", "a.st", 1, "Main") != make_id("pou", "a.st", 2, "Main")
        assert make_id("pou", "a.st", 1) != make_id("doc", "a.st", 1)

    def test_source_file_helpers(self):
        file = source_file("lines/Filler.SCL", "")
        assert file.extension == ".scl"
        assert file.stem == "Filler"


class TestWireFormat:
    def test_camel_case_aliases(self):
        location = SourceLocation(file="a.st", line=1, end_line=2)
        assert location.to_json() == {
            "file": "a.st", "line": 1, "column": 1, "endLine": 2, "endColumn": None,
        }

    def test_populate_by_alias(self):
        assert SourceLocation(file="a.st", line=1, endLine=4).end_line == 4

    def test_nested_enums_serialise_as_values(self):
        data = state(0, "Idle").to_json()
        assert data["isInitial"] is False
        assert data["location"]["file"] == "a.st"

    def test_warning_subject_on_the_wire(self):
        warning = CriticalWarning(type="bypass-detected", message="m", severity=Severity.CRITICAL,
                                  location=LOC, remediation="r", subject="bBypass")
        assert warning.to_json()["subject"] == "bBypass"

    def test_identical_input_gives_identical_records(self):
        from plcmigrate.extract import extract_safety

        text = fixture_text("MixerControl.st")
        assert extract_safety(text, "m.st") == extract_safety(text, "m.st")
