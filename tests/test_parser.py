"""Tests for the declaration-level Structured Text parser."""

import pytest

from conftest import fixture_text, program, st
from plcmigrate.model.parsing import Confidence
from plcmigrate.model.pou import POUType, VarSection
from plcmigrate.parse import STParser, detect_vendor, parse_confidence, parse_source


# ---------------------------------------------------------------------------
# POU headers
# ---------------------------------------------------------------------------

class TestPOUs:
    def test_program(self):
        result = parse_source(program("x := 1;", "x : INT;"), "src/Main.st")
        assert result.success
        assert result.errors == []
        pou = result.pous[0]
        assert pou.type is POUType.PROGRAM
        assert pou.name == "Main"
        assert pou.location.file == "src/Main.st"
        assert pou.location.line == 1
        assert pou.location.end_line == 6

    def test_body_lines(self):
        result = parse_source(program("x := 1;\ny := 2;", "x, y : INT;"))
        pou = result.pous[0]
        assert pou.body_start_line == 5
        assert pou.body_end_line == 7

    def test_empty_body(self):
        pou = parse_source("PROGRAM Empty\nEND_PROGRAM\n").pous[0]
        assert pou.body_start_line == pou.body_end_line == 2

    def test_function_return_type(self):
        source = st("""
            FUNCTION Add : INT
            VAR_INPUT a, b : INT; END_VAR
            Add := a + b;
            END_FUNCTION
        """)
        pou = parse_source(source).pous[0]
        assert pou.type is POUType.FUNCTION
        assert pou.return_type == "INT"
        assert [v.name for v in pou.variables] == ["a", "b"]
        assert all(v.section is VarSection.VAR_INPUT for v in pou.variables)

    def test_extends_and_implements(self):
        source = st("""
            FUNCTION_BLOCK FB_Child EXTENDS FB_Base IMPLEMENTS I_Run, I_Stop
            END_FUNCTION_BLOCK
        """)
        pou = parse_source(source).pous[0]
        assert pou.extends == "FB_Base"
        assert pou.implements == ["I_Run", "I_Stop"]

    def test_access_modifier_skipped(self):
        pou = parse_source("FUNCTION_BLOCK PUBLIC FB_Pump\nEND_FUNCTION_BLOCK\n").pous[0]
        assert pou.name == "FB_Pump"

    def test_multiple_pous(self):
        source = st("""
            FUNCTION_BLOCK FB_A
            END_FUNCTION_BLOCK
            FUNCTION_BLOCK FB_B
            END_FUNCTION_BLOCK
            PROGRAM Main
            END_PROGRAM
        """)
        result = parse_source(source)
        assert [p.name for p in result.pous] == ["FB_A", "FB_B", "Main"]
        assert [p.location.line for p in result.pous] == [1, 3, 5]

    def test_ids_are_deterministic(self):
        a = parse_source(program("x := 1;"), "a.st")
        b = parse_source(program("x := 1;"), "a.st")
        c = parse_source(program("x := 1;"), "b.st")
        assert a.pous[0].id == b.pous[0].id
        assert a.pous[0].id != c.pous[0].id

    def test_type_declarations_are_skipped(self):
        source = st("""
            TYPE E_Mode : (AUTO, MANUAL); END_TYPE
            PROGRAM Main
            END_PROGRAM
        """)
        result = parse_source(source)
        assert [p.name for p in result.pous] == ["Main"]
        assert result.success

    def test_interface_with_method(self):
        source = st("""
            INTERFACE I_Run
            METHOD Run : BOOL
            END_METHOD
            END_INTERFACE
        """)
        pou = parse_source(source).pous[0]
        assert pou.type is POUType.INTERFACE
        assert [m.name for m in pou.methods] == ["Run"]
        assert pou.methods[0].return_type == "BOOL"


class TestMethods:
    SOURCE = st("""
        FUNCTION_BLOCK FB_Motor
        VAR
            nSpeed : INT;
        END_VAR
        METHOD PUBLIC Start : BOOL
        VAR_INPUT
            nRamp : INT;
        END_VAR
        VAR
            nTemp : INT;
        END_VAR
        Start := TRUE;
        END_METHOD
        PROPERTY Speed : INT
        END_PROPERTY
        END_FUNCTION_BLOCK
    """)

    def test_method_parsed(self):
        pou = parse_source(self.SOURCE).pous[0]
        method = pou.methods[0]
        assert method.name == "Start"
        assert method.return_type == "BOOL"
        assert method.location.line == 5
        assert method.location.end_line == 13

    def test_only_parameters_kept(self):
        method = parse_source(self.SOURCE).pous[0].methods[0]
        assert [p.name for p in method.parameters] == ["nRamp"]
        assert method.parameters[0].pou_name == "FB_Motor.Start"

    def test_method_variables_not_on_pou(self):
        pou = parse_source(self.SOURCE).pous[0]
        assert [v.name for v in pou.variables] == ["nSpeed"]

    def test_property_does_not_break_parse(self):
        result = parse_source(self.SOURCE)
        assert result.success
        assert result.errors == []


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

class TestVariables:
    def test_initial_value_and_comment(self):
        source = program(var="""
            nCount : INT := 5; (* parts counted *)
            sName : STRING := 'abc';
        """)
        count, name = parse_source(source).pous[0].variables
        assert count.initial_value == "5"
        assert count.comment == "parts counted"
        assert count.pou_name == "Main"
        assert name.initial_value == "'abc'"
        assert name.comment is None

    def test_line_comment_after_declaration(self):
        source = program(var="bRun : BOOL; // run flag")
        assert parse_source(source).pous[0].variables[0].comment == "run flag"

    def test_array_type(self):
        source = program(var="aValues : ARRAY[1..10] OF INT;")
        var = parse_source(source).pous[0].variables[0]
        assert var.data_type == "ARRAY[1..10] OF INT"
        assert var.is_array
        assert [(b.lower, b.upper) for b in var.array_bounds] == [("1", "10")]

    def test_multi_dimensional_array(self):
        source = program(var="aGrid : ARRAY[0..2, 1..N] OF REAL;")
        var = parse_source(source).pous[0].variables[0]
        assert var.data_type == "ARRAY[0..2, 1..N] OF REAL"
        assert [(b.lower, b.upper) for b in var.array_bounds] == [("0", "2"), ("1", "N")]

    def test_io_address(self):
        source = program(var="bStart AT %IX0.0 : BOOL;")
        var = parse_source(source).pous[0].variables[0]
        assert var.io_address == "%IX0.0"
        assert var.data_type == "BOOL"

    def test_constant_section(self):
        source = st("""
            PROGRAM Main
            VAR CONSTANT
                MAX_SPEED : INT := 1500;
            END_VAR
            END_PROGRAM
        """)
        var = parse_source(source).pous[0].variables[0]
        assert var.section is VarSection.VAR_CONSTANT

    def test_retain_modifier_keeps_section(self):
        source = st("""
            PROGRAM Main
            VAR RETAIN
                nTotal : DINT;
            END_VAR
            END_PROGRAM
        """)
        assert parse_source(source).pous[0].variables[0].section is VarSection.VAR

    @pytest.mark.parametrize("keyword, section", [
        ("VAR_INPUT", VarSection.VAR_INPUT),
        ("VAR_OUTPUT", VarSection.VAR_OUTPUT),
        ("VAR_IN_OUT", VarSection.VAR_IN_OUT),
        ("VAR_TEMP", VarSection.VAR_TEMP),
        ("VAR_EXTERNAL", VarSection.VAR_EXTERNAL),
        ("VAR_STAT", VarSection.VAR),
    ])
    def test_sections(self, keyword, section):
        source = f"FUNCTION_BLOCK FB\n{keyword}\n    x : INT;\nEND_VAR\nEND_FUNCTION_BLOCK\n"
        assert parse_source(source).pous[0].variables[0].section is section

    def test_global_variables(self):
        source = st("""
            VAR_GLOBAL
                gCounter : DINT;
            END_VAR
        """)
        result = parse_source(source)
        assert result.pous == []
        assert result.global_variables[0].name == "gCounter"
        assert result.global_variables[0].section is VarSection.VAR_GLOBAL
        assert result.global_variables[0].pou_name is None

    def test_safety_critical_flag(self):
        source = program(var="""
            bIL_Door : BOOL;
            nCount : INT;
        """)
        door, count = parse_source(source).pous[0].variables
        assert door.is_safety_critical
        assert not count.is_safety_critical

    def test_variable_location(self):
        source = program(var="nCount : INT;")
        var = parse_source(source, "m.st").pous[0].variables[0]
        assert var.location.file == "m.st"
        assert var.location.line == 3
        assert var.location.column == 5


# ---------------------------------------------------------------------------
# Docstrings and comments
# ---------------------------------------------------------------------------

class TestDocstrings:
    def test_leading_docstring_attached(self):
        source = st("""
            (*
                Pump sequence controller.
                @param nSpeed Requested speed
            *)
            FUNCTION_BLOCK FB_Pump
            END_FUNCTION_BLOCK
        """)
        result = parse_source(source)
        pou = result.pous[0]
        assert pou.documentation is not None
        assert pou.documentation.summary == "Pump sequence controller."
        assert pou.documentation.params[0].name == "nSpeed"
        assert result.docstrings[0].associated_block == "FB_Pump"
        assert result.docstrings[0].associated_block_type == "FUNCTION_BLOCK"

    def test_docstring_after_header_attached(self):
        source = st("""
            FUNCTION_BLOCK FB_Pump
            (*
                Pump sequence controller.
            *)
            VAR
                x : INT;
            END_VAR
            END_FUNCTION_BLOCK
        """)
        pou = parse_source(source).pous[0]
        assert pou.documentation.summary == "Pump sequence controller."

    def test_distant_docstring_not_attached(self):
        source = st("""
            (*
                Some unrelated remark about the plant.
            *)




            PROGRAM Main
            END_PROGRAM
        """)
        result = parse_source(source)
        assert result.pous[0].documentation is None
        assert result.docstrings[0].associated_block is None

    def test_tolerance_is_configurable(self):
        source = "(*\n  Main program.\n*)\n\n\n\nPROGRAM Main\nEND_PROGRAM\n"
        assert parse_source(source).pous[0].documentation is None
        relaxed = parse_source(source, docstring_tolerance=3)
        assert relaxed.pous[0].documentation is not None

    def test_extraction_can_be_disabled(self):
        result = parse_source(fixture_text("MixerControl.st"), extract_docstrings=False)
        assert result.docstrings == []
        assert result.pous[0].documentation is None

    def test_comments_preserved(self):
        result = parse_source(program(var="bRun : BOOL; (* run flag *)"))
        assert [c.content for c in result.comments] == ["run flag"]
        assert not result.comments[0].is_docstring

    def test_comments_can_be_dropped(self):
        result = parse_source(program(var="bRun : BOOL; (* run flag *)"), preserve_comments=False)
        assert result.comments == []


# ---------------------------------------------------------------------------
# Errors, metadata and recovery
# ---------------------------------------------------------------------------

class TestRecovery:
    def test_unterminated_pou(self):
        result = parse_source("PROGRAM Main\nVAR x : INT; END_VAR\nx := 1;\n")
        assert not result.success
        assert result.errors[0].code == "UNTERMINATED_POU"
        assert not result.errors[0].recoverable
        assert [p.name for p in result.pous] == ["Main"]

    def test_unterminated_var_section(self):
        result = parse_source("PROGRAM Broken\nVAR\n  bIL_OK : BOOL\n  (* Missing END_VAR *)\n")
        assert not result.success
        assert any(e.code == "UNTERMINATED_VAR_SECTION" for e in result.errors)

    def test_missing_name_falls_back(self):
        result = parse_source("PROGRAM\nVAR\n  x : INT;\nEND_VAR\nEND_PROGRAM\n")
        assert result.errors[0].code == "MISSING_NAME"
        assert result.pous[0].name == "UNKNOWN"
        assert [v.name for v in result.pous[0].variables] == ["x"]

    def test_missing_colon_is_a_warning(self):
        source = program(var="""
            x INT;
            y : BOOL;
        """)
        result = parse_source(source)
        assert result.success
        assert result.warnings[0].code == "MISSING_COLON"
        assert [v.name for v in result.pous[0].variables] == ["y"]

    def test_garbage_input(self):
        result = parse_source("@@@ ### random words 42")
        assert result.success
        assert result.pous == []
        assert result.metadata.confidence is Confidence.NONE

    def test_empty_input(self):
        result = parse_source("")
        assert result.pous == []
        assert result.metadata.total_lines == 0

    def test_parse_continues_after_broken_type(self):
        result = parse_source("TYPE Broken :\nSTRUCT\n  a : INT;\n")
        assert not result.success
        assert result.errors[0].code == "SYNTAX_ERROR"

    def test_metadata(self):
        result = parse_source(fixture_text("MixerControl.st"))
        assert result.metadata.confidence is Confidence.DEFINITE
        assert result.metadata.vendor == "generic-st"
        assert result.metadata.total_lines == 49
        assert result.metadata.parse_time_ms >= 0


class TestVendorAndConfidence:
    @pytest.mark.parametrize("source, vendor", [
        ("ORGANIZATION_BLOCK OB1", "siemens-step7"),
        ("ORGANISATION_BLOCK Main", "siemens-step7"),
        ("fbOB1Done();", "siemens-step7"),
        ("REGION Init", "siemens-tia"),
        ("<RSLogix5000Content>", "rockwell-studio5000"),
        ("<RSLogix5000Content SchemaRevision=\"1.0\">", "generic-st"),
        ("<TcPlcObject>", "beckhoff-twincat"),
        ("<TcPlcObject Version=\"1.1\">", "generic-st"),
        ("(* CODESYS project *)", "codesys"),
        ("PROGRAM Main END_PROGRAM", "generic-st"),
    ])
    def test_detect_vendor(self, source, vendor):
        assert detect_vendor(source) == vendor

    def test_parse_confidence(self):
        assert parse_confidence(0, 1) is Confidence.DEFINITE
        assert parse_confidence(2, 1) is Confidence.PROBABLE
        assert parse_confidence(5, 1) is Confidence.POSSIBLE
        assert parse_confidence(0, 0) is Confidence.NONE

    def test_parser_object_matches_function(self):
        source = fixture_text("MixerControl.st")
        direct = STParser(source, "m.st", docstring_tolerance=2).parse()
        assert direct.pous == parse_source(source, "m.st").pous
