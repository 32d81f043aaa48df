"""Shared test helpers for the plcmigrate test suite."""

import textwrap
from pathlib import Path

from plcmigrate.analyze import MigrationScorer, build_call_graph
from plcmigrate.extract import extract_docstrings, extract_safety, extract_state_machines
from plcmigrate.model.analysis import SourceFile
from plcmigrate.parse import parse_source

FIXTURES = Path(__file__).parent / "fixtures"
MIXING_LINE = FIXTURES / "mixing_line"


def st(source: str) -> str:
    """Dedent an inline ST snippet so line 1 is its first non-blank line."""
    return textwrap.dedent(source).strip("\n") + "\n"


def program(body: str = "", var: str = "", name: str = "Main") -> str:
    """Wrap declarations and body lines in a PROGRAM."""
    parts = [f"PROGRAM {name}"]
    if var:
        parts.append("VAR")
        parts.extend(f"    {line}" for line in textwrap.dedent(var).strip("\n").splitlines())
        parts.append("END_VAR")
    if body:
        parts.extend(textwrap.dedent(body).strip("\n").splitlines())
    parts.append("END_PROGRAM")
    return "\n".join(parts) + "\n"


def source_file(path: str, content: str) -> SourceFile:
    return SourceFile(path=path, content=content)


def fixture_text(name: str) -> str:
    return (MIXING_LINE / name).read_text(encoding="utf-8")


def score_source(source: str, file_path: str = "test.st", scorer: MigrationScorer | None = None):
    """Parse and extract *source*, then score its POUs with a call graph."""
    parse = parse_source(source, file_path)
    docs = extract_docstrings(source, file_path)
    machines = extract_state_machines(source, file_path)
    safety = extract_safety(source, file_path)
    scorer = scorer or MigrationScorer()
    graph = build_call_graph(parse.pous, {file_path: source})
    return scorer.score(parse.pous, docs, machines, safety, graph)
