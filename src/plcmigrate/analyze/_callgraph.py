"""POU dependency graph from declarations and body calls."""

from __future__ import annotations

import re
from collections.abc import Mapping

from plcmigrate.extract import SourceText
from plcmigrate.model.pou import POU

_TYPE_WORD_RE = re.compile(r"[A-Za-z_]\w*")
_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\(")


def _referenced_types(pou: POU) -> list[str]:
    names = []
    for var in pou.variables:
        names.extend(_TYPE_WORD_RE.findall(var.data_type))
    for method in pou.methods:
        for param in method.parameters:
            names.extend(_TYPE_WORD_RE.findall(param.data_type))
    if pou.extends:
        names.append(pou.extends)
    names.extend(pou.implements)
    return names


def _called_names(pou: POU, code_lines: list[str]) -> list[str]:
    body = code_lines[pou.body_start_line - 1:pou.body_end_line]
    return [m.group(1) for line in body for m in _CALL_RE.finditer(line)]


def build_call_graph(
    pous: list[POU], sources: Mapping[str, str] | None = None,
) -> dict[str, list[str]]:
    """Map each POU id to the ids of the user POUs it depends on.

    A dependency is a variable (or method parameter) whose type names
    another POU, or an ``EXTENDS``/``IMPLEMENTS`` clause.  When *sources*
    maps file paths to their text, a ``Name(`` call in a POU body that
    names another POU is an edge too; comments are ignored.  Names are
    matched case-insensitively; the first POU declared under a name wins.
    """
    by_name: dict[str, str] = {}
    for pou in pous:
        by_name.setdefault(pou.name.upper(), pou.id)

    code: dict[str, list[str]] = {}
    graph: dict[str, list[str]] = {}
    for pou in pous:
        names = _referenced_types(pou)
        source = (sources or {}).get(pou.location.file)
        if source is not None:
            if pou.location.file not in code:
                code[pou.location.file] = SourceText(source).code_lines
            names.extend(_called_names(pou, code[pou.location.file]))

        deps: list[str] = []
        for name in names:
            target = by_name.get(name.upper())
            if target is not None and target != pou.id and target not in deps:
                deps.append(target)
        graph[pou.id] = deps
    return graph


def callers(graph: dict[str, list[str]]) -> dict[str, list[str]]:
    """Invert *graph*: for each POU id, the ids that depend on it."""
    inverse: dict[str, list[str]] = {node: [] for node in graph}
    for source, targets in graph.items():
        for target in targets:
            inverse.setdefault(target, []).append(source)
    return inverse
