"""Tests for line-based variable and I/O address extraction."""

import pytest

from conftest import source_file, st
from plcmigrate.extract import (
    extract_variables,
    extract_variables_from_files,
    parse_array_type,
)
from plcmigrate.model.extraction import AddressArea
from plcmigrate.model.pou import VarSection

PUMP = st("""
    FUNCTION_BLOCK FB_Pump
    VAR_INPUT
        bStart : BOOL; (* Start request *)
        nSpeed : INT := 50; // rpm
    END_VAR
    VAR_OUTPUT
        bRunning AT %QX0.1 : BOOL;
    END_VAR
    VAR
        aLevels : ARRAY [1..10] OF REAL;
        aGrid : ARRAY[0..3, 0..7] OF INT;
        nA, nB : DINT;
        bIL_Door AT %IX0.0 : BOOL;
    END_VAR
    VAR CONSTANT
        MAX_SPEED : INT := 1500;
    END_VAR
    nA := nB;
    END_FUNCTION_BLOCK
""")


def variables(source=PUMP):
    return {v.name: v for v in extract_variables(source, "pump.st").variables}


class TestDeclarations:
    def test_names_in_order(self):
        result = extract_variables(PUMP, "pump.st")
        assert [v.name for v in result.variables] == [
            "bStart", "nSpeed", "bRunning", "aLevels", "aGrid", "nA", "nB", "bIL_Door", "MAX_SPEED",
        ]

    def test_sections(self):
        found = variables()
        assert found["bStart"].section is VarSection.VAR_INPUT
        assert found["bRunning"].section is VarSection.VAR_OUTPUT
        assert found["aLevels"].section is VarSection.VAR
        assert found["MAX_SPEED"].section is VarSection.VAR_CONSTANT

    def test_type_init_and_comment(self):
        speed = variables()["nSpeed"]
        assert speed.data_type == "INT"
        assert speed.initial_value == "50"
        assert speed.comment == "rpm"
        assert variables()["bStart"].comment == "Start request"
        assert variables()["aLevels"].comment is None

    def test_direct_address(self):
        assert variables()["bRunning"].io_address == "%QX0.1"
        assert variables()["bRunning"].data_type == "BOOL"

    def test_arrays(self):
        levels = variables()["aLevels"]
        assert levels.is_array
        assert levels.data_type == "ARRAY[1..10] OF REAL"
        grid = variables()["aGrid"]
        assert [(b.lower, b.upper) for b in grid.array_bounds] == [("0", "3"), ("0", "7")]

    def test_multiple_names_share_declaration(self):
        found = variables()
        assert found["nA"].data_type == found["nB"].data_type == "DINT"
        assert found["nA"].location.line == found["nB"].location.line == 12
        assert found["nB"].location.column == 9

    def test_location_and_owner(self):
        start = variables()["bStart"]
        assert (start.location.line, start.location.column) == (3, 5)
        assert start.pou_name == "FB_Pump"

    def test_safety_critical_flag(self):
        found = variables()
        assert found["bIL_Door"].is_safety_critical
        assert not found["nSpeed"].is_safety_critical

    def test_body_assignments_are_not_declarations(self):
        assert "x" not in variables("x : INT;\nVAR\n    y : INT;\nEND_VAR\n")

    def test_summary(self):
        summary = extract_variables(PUMP, "pump.st").summary
        assert summary.total == 9
        assert summary.by_section == {"VAR_INPUT": 2, "VAR_OUTPUT": 1, "VAR": 5, "VAR_CONSTANT": 1}
        assert summary.with_comments == 2
        assert summary.with_io_address == 2
        assert summary.safety_critical == 1

    def test_from_files(self):
        result = extract_variables_from_files([
            source_file("a.st", PUMP),
            source_file("b.st", "VAR_GLOBAL\n    gCount : INT;\nEND_VAR\n"),
        ])
        assert result.summary.total == 10
        assert result.variables[-1].section is VarSection.VAR_GLOBAL
        assert result.variables[-1].pou_name is None


ONE_LINE = st("""
    PROGRAM Main
    VAR bIL_OK : BOOL; END_VAR
    VAR_INPUT nA : INT; nB : INT := 3; END_VAR
    bIL_OK := TRUE;
    nCount := nCount + 1;
    END_PROGRAM
""")


class TestSectionBoundaries:
    def test_one_line_sections(self):
        found = variables(ONE_LINE)
        assert list(found) == ["bIL_OK", "nA", "nB"]
        assert found["bIL_OK"].section is VarSection.VAR
        assert found["bIL_OK"].location.line == 2
        assert (found["nB"].section, found["nB"].initial_value) == (VarSection.VAR_INPUT, "3")

    def test_section_closed_on_its_own_line(self):
        assert "nCount" not in variables(ONE_LINE)

    @pytest.mark.parametrize("source, names", [
        ("VAR\n    x : INT;\n    y := 2;\n", ["x"]),
        ("VAR x : INT; y := 2; END_VAR\n", ["x"]),
        ("VAR\n    a : BOOL; b : INT := 1;\nEND_VAR\nc : INT;\n", ["a", "b"]),
        ("VAR CONSTANT K : INT := 5; END_VAR VAR_OUTPUT q : BOOL; END_VAR\n", ["K", "q"]),
    ])
    def test_assignments_are_not_declarations(self, source, names):
        assert list(variables(source)) == names

    def test_constant_and_output_on_one_line(self):
        found = variables("VAR CONSTANT K : INT := 5; END_VAR VAR_OUTPUT q : BOOL; END_VAR\n")
        assert found["K"].section is VarSection.VAR_CONSTANT
        assert found["q"].section is VarSection.VAR_OUTPUT


class TestArrayTypes:
    @pytest.mark.parametrize("text, normalised, bounds", [
        ("INT", "INT", None),
        ("ARRAY [ 1 .. 5 ] OF  BOOL", "ARRAY[1..5] OF BOOL", [("1", "5")]),
        ("ARRAY[1..N] OF ST_Item", "ARRAY[1..N] OF ST_Item", [("1", "N")]),
        ("ARRAY[0..1, 0..2] OF REAL", "ARRAY[0..1, 0..2] OF REAL", [("0", "1"), ("0", "2")]),
    ])
    def test_parse_array_type(self, text, normalised, bounds):
        data_type, found = parse_array_type(text)
        assert data_type == normalised
        if bounds is None:
            assert found is None
        else:
            assert [(b.lower, b.upper) for b in found] == bounds


class TestIOMappings:
    def test_declared_addresses(self):
        mappings = extract_variables(PUMP, "pump.st").io_mappings
        assert [(m.address, m.variable_name) for m in mappings] == [
            ("%QX0.1", "bRunning"), ("%IX0.0", "bIL_Door"),
        ]
        assert mappings[0].area is AddressArea.OUTPUT
        assert mappings[1].is_input

    @pytest.mark.parametrize("line, area, bits", [
        ("nRaw := %IW64;", AddressArea.INPUT, 16),
        ("x := %QB2;", AddressArea.OUTPUT, 8),
        ("rTotal := %MD4;", AddressArea.MEMORY, 32),
        ("b := %IX0.0;", AddressArea.INPUT, 1),
        ("b := %I1.2;", AddressArea.INPUT, 1),
    ])
    def test_address_sizes(self, line, area, bits):
        (mapping,) = extract_variables(line + "\n", "io.st").io_mappings
        assert mapping.area is area
        assert mapping.bit_size == bits
        assert mapping.variable_name == line.split()[0]

    def test_addresses_in_comments_ignored(self):
        assert extract_variables("// %IX1.0 spare\n", "io.st").io_mappings == []
