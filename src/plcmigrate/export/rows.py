"""Flat, JSON-ready rows for an external relational store.

Each row carries ``file`` and ``line`` plus the stable name field that the
store's uniqueness constraints key on, so nothing has to be re-derived.
"""

from __future__ import annotations

from plcmigrate.model.docs import Docstring
from plcmigrate.model.knowledge import TribalKnowledgeItem
from plcmigrate.model.pou import POU
from plcmigrate.model.safety import SafetyInterlock
from plcmigrate.model.state_machine import StateMachine


def docstring_rows(docstrings: list[Docstring]) -> list[dict]:
    return [
        {
            "id": d.id,
            "file": d.location.file,
            "line": d.location.line,
            "endLine": d.location.end_line,
            "associatedBlock": d.associated_block,
            "associatedBlockType": d.associated_block_type,
            "summary": d.summary,
            "description": d.description,
            "author": d.author,
            "date": d.date,
            "params": [p.to_json() for p in d.params],
            "history": [h.to_json() for h in d.history],
            "warnings": list(d.warnings),
            "notes": list(d.notes),
            "raw": d.raw,
        }
        for d in docstrings
    ]


def state_machine_rows(machines: list[StateMachine]) -> list[dict]:
    rows = []
    for sm in machines:
        v = sm.verification
        rows.append({
            "id": sm.id,
            "file": sm.location.file,
            "line": sm.location.line,
            "name": sm.name,
            "pouName": sm.pou_name,
            "variable": sm.state_variable,
            "stateCount": len(sm.states),
            "transitionCount": len(sm.transitions),
            "hasDeadlocks": v.has_deadlocks,
            "hasGaps": v.has_gaps,
            "unreachableStates": list(v.unreachable_states),
            "gapValues": list(v.gap_values),
            "states": [s.to_json() for s in sm.states],
            "transitions": [t.to_json() for t in sm.transitions],
            "mermaid": sm.visualizations.mermaid if sm.visualizations else None,
            "ascii": sm.visualizations.ascii if sm.visualizations else None,
        })
    return rows


def interlock_rows(interlocks: list[SafetyInterlock]) -> list[dict]:
    return [
        {
            "id": il.id,
            "file": il.location.file,
            "line": il.location.line,
            "name": il.name,
            "type": il.type.value,
            "severity": il.severity.value,
            "confidence": il.confidence,
            "isBypassed": il.is_bypassed,
            "bypassCondition": il.bypass_condition,
        }
        for il in interlocks
    ]


def knowledge_rows(items: list[TribalKnowledgeItem]) -> list[dict]:
    return [
        {
            "id": item.id,
            "file": item.location.file,
            "line": item.location.line,
            "type": item.type.value,
            "importance": item.importance.value,
            "content": item.content,
            "context": item.context,
        }
        for item in items
    ]


def pou_rows(pous: list[POU]) -> list[dict]:
    return [
        {
            "id": pou.id,
            "file": pou.location.file,
            "line": pou.location.line,
            "endLine": pou.location.end_line,
            "name": pou.name,
            "type": pou.type.value,
            "extends": pou.extends,
            "implements": list(pou.implements),
            "variableCount": len(pou.variables),
            "methodCount": len(pou.methods),
            "hasDocumentation": pou.documentation is not None,
            "bodyStartLine": pou.body_start_line,
            "bodyEndLine": pou.body_end_line,
        }
        for pou in pous
    ]
