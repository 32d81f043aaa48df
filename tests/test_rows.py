"""Tests for report rows handed to the external store."""

import pytest

from conftest import fixture_text
from plcmigrate.export import (
    docstring_rows,
    interlock_rows,
    knowledge_rows,
    pou_rows,
    state_machine_rows,
)
from plcmigrate.extract import (
    extract_docstrings,
    extract_safety,
    extract_state_machines,
    extract_tribal_knowledge,
)
from plcmigrate.parse import parse_source

PATH = "MixerControl.st"


@pytest.fixture(scope="module")
def mixer():
    return fixture_text(PATH)


class TestRows:
    def test_pou_rows(self, mixer):
        (row,) = pou_rows(parse_source(mixer, PATH).pous)
        assert row["name"] == "MixerControl"
        assert row["type"] == "FUNCTION_BLOCK"
        assert row["file"] == PATH
        assert (row["line"], row["endLine"]) == (12, 48)
        assert (row["bodyStartLine"], row["bodyEndLine"]) == (28, 48)
        assert row["variableCount"] == 8
        assert row["hasDocumentation"]

    def test_state_machine_rows(self, mixer):
        (row,) = state_machine_rows(extract_state_machines(mixer, PATH).state_machines)
        assert row["name"] == "MixerControl_nState"
        assert row["variable"] == "nState"
        assert (row["stateCount"], row["transitionCount"]) == (4, 3)
        assert row["hasDeadlocks"] is False
        assert row["unreachableStates"] == []
        assert row["states"][0]["isInitial"] is True
        assert row["transitions"][0]["guard"] == "bStart AND (bIL_GuardClosed OR bMaintBypass)"
        assert row["mermaid"] is not None

    def test_interlock_rows(self, mixer):
        (row,) = interlock_rows(extract_safety(mixer, PATH).interlocks)
        assert row["name"] == "bIL_GuardClosed"
        assert row["type"] == "interlock"
        assert row["severity"] == "critical"
        assert row["isBypassed"] is True
        assert row["line"] == 15

    def test_knowledge_rows(self, mixer):
        rows = knowledge_rows(extract_tribal_knowledge(mixer, PATH).items)
        assert rows[0]["type"] == "do-not-change"
        assert rows[0]["importance"] == "critical"
        assert rows[0]["line"] == 47

    def test_docstring_rows(self, mixer):
        row = docstring_rows(extract_docstrings(mixer, PATH).docstrings)[0]
        assert row["associatedBlock"] == "MixerControl"
        assert row["associatedBlockType"] == "FUNCTION_BLOCK"
        assert row["params"] == [
            {"name": "bStart", "type": None, "description": "Start request from HMI"},
        ]
        assert row["history"][0] == {
            "date": "2021-03-15", "author": "JS", "description": "Initial version",
        }
        assert (row["line"], row["endLine"]) == (1, 11)

    def test_empty_inputs(self):
        assert pou_rows([]) == []
        assert state_machine_rows([]) == []
