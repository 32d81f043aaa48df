"""Tests for standalone docstring extraction."""

from conftest import MIXING_LINE, fixture_text, st
from plcmigrate.analyze import load_sources
from plcmigrate.extract import extract_docstrings, extract_docstrings_from_files
from plcmigrate.model.docs import Completeness


def docstrings(source, **options):
    return extract_docstrings(source, "test.st", **options).docstrings


PUMP = st("""
    (*
        Pump control block.
        @param bRun run request
    *)
    FUNCTION_BLOCK FB_Pump
    END_FUNCTION_BLOCK
""")


class TestAssociation:
    def test_header_comment_documents_following_block(self):
        (doc,) = docstrings(PUMP)
        assert doc.associated_block == "FB_Pump"
        assert doc.associated_block_type == "FUNCTION_BLOCK"
        assert doc.summary == "Pump control block."
        assert [(p.name, p.description) for p in doc.params] == [("bRun", "run request")]
        assert (doc.location.line, doc.location.end_line) == (1, 4)

    def test_quality(self):
        (doc,) = docstrings(PUMP)
        assert doc.quality.score == 50
        assert doc.quality.completeness is Completeness.PARTIAL

    def test_orphaned_docstring(self):
        source = "(*\n    Utility notes for the line.\n*)\nx := 1;\n"
        result = extract_docstrings(source, "test.st")
        assert result.docstrings[0].associated_block is None
        assert result.summary.by_block == {"standalone": 1}
        assert docstrings(source, include_orphaned=False) == []

    def test_distant_header_not_associated(self):
        source = "(*\n    Long ago documented.\n*)\n" + "x := 1;\n" * 100 + "PROGRAM Main\nEND_PROGRAM\n"
        (doc,) = docstrings(source)
        assert doc.associated_block is None


class TestFiltering:
    def test_short_remark_skipped(self):
        assert docstrings("(* short *)\nPROGRAM Main\nEND_PROGRAM\n") == []

    def test_short_comment_with_tag_kept(self):
        (doc,) = docstrings("(* @author JS *)\nPROGRAM Main\nEND_PROGRAM\n")
        assert doc.author == "JS"
        assert doc.associated_block == "Main"

    def test_min_length(self):
        source = "(* This is a long single line remark *)\n"
        assert len(docstrings(source)) == 1
        assert docstrings(source, min_length=100) == []

    def test_line_comments_ignored(self):
        assert docstrings("// Pump control block documentation\nPROGRAM Main\nEND_PROGRAM\n") == []

    def test_pure_banner_skipped(self):
        assert docstrings("(******************)\nPROGRAM Main\nEND_PROGRAM\n") == []

    def test_include_raw(self):
        assert docstrings(PUMP)[0].raw == ""
        assert docstrings(PUMP, include_raw=True)[0].raw.startswith("(*\n    Pump control block.")


class TestFixture:
    def test_mixer_header(self):
        doc = docstrings(fixture_text("MixerControl.st"))[0]
        assert doc.associated_block == "MixerControl"
        assert doc.summary == "Mixer sequence control."
        assert doc.description == "Runs the fill, mix and drain sequence for tank T-101."
        assert doc.author == "J. Smith"
        assert [(h.date, h.author, h.description) for h in doc.history] == [
            ("2021-03-15", "JS", "Initial version"),
            ("2022-07-01", "MK", "Added drain timeout"),
        ]
        assert doc.quality.score == 90

    def test_summary(self):
        summary = extract_docstrings(fixture_text("MixerControl.st"), "m.st").summary
        assert summary.total == 3
        assert summary.by_block == {"MixerControl": 1, "standalone": 2}
        assert summary.with_params == 1
        assert summary.with_history == 1
        assert summary.average_quality == 50.0

    def test_project_files(self):
        result = extract_docstrings_from_files(load_sources(MIXING_LINE))
        assert result.summary.total == 5
        assert result.docstrings[0].location.file == "MixerControl.st"
