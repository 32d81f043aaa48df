"""IEC timer and counter instances with their presets."""

from __future__ import annotations

import re

from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation
from plcmigrate.model.extraction import (
    CounterInstance,
    TimerCounterResult,
    TimerCounterSummary,
    TimerInstance,
)

from ._text import SourceText

TIMER_TYPES = ("TON", "TOF", "TP", "TONR")
COUNTER_TYPES = ("CTU", "CTD", "CTUD")

_INSTANCE_RE = re.compile(r"\b(\w+)\s*:\s*(TONR|TON|TOF|TP|CTUD|CTU|CTD)\b\s*(?=[;:(]|$)",
                          re.IGNORECASE | re.MULTILINE)


def _preset(code: str, name: str, keyword: str) -> str | None:
    """Preset from the first ``name(... PT := value ...)`` call."""
    call = re.search(rf"\b{re.escape(name)}\s*\(([^;]*)\)\s*;", code, re.IGNORECASE)
    if call:
        arg = re.search(rf"\b{keyword}\s*:=\s*([^,)]+)", call.group(1), re.IGNORECASE)
        if arg:
            return arg.group(1).strip()
    assign = re.search(
        rf"\b{re.escape(name)}\.{keyword}\s*:=\s*([^;]+);", code, re.IGNORECASE,
    )
    if assign:
        return assign.group(1).strip()
    return None


def extract_timers_counters(source: str, file_path: str) -> TimerCounterResult:
    text = SourceText(source)
    code = text.code
    timers: list[TimerInstance] = []
    counters: list[CounterInstance] = []

    for match in _INSTANCE_RE.finditer(code):
        name, kind = match.group(1), match.group(2).upper()
        location = SourceLocation(
            file=file_path,
            line=text.line_of(match.start(1)),
            column=text.column_of(match.start(1)),
        )
        if kind in TIMER_TYPES:
            timers.append(TimerInstance(
                name=name, timer_type=kind, preset=_preset(code, name, "PT"),
                location=location,
            ))
        else:
            counters.append(CounterInstance(
                name=name, counter_type=kind, preset=_preset(code, name, "PV"),
                location=location,
            ))

    return TimerCounterResult(
        timers=timers,
        counters=counters,
        summary=summarize_timers_counters(timers, counters),
    )


def summarize_timers_counters(
    timers: list[TimerInstance], counters: list[CounterInstance],
) -> TimerCounterSummary:
    by_type: dict[str, int] = {}
    for kind in [t.timer_type for t in timers] + [c.counter_type for c in counters]:
        by_type[kind] = by_type.get(kind, 0) + 1
    return TimerCounterSummary(
        total_timers=len(timers),
        total_counters=len(counters),
        by_type=by_type,
    )


def extract_timers_counters_from_files(files: list[SourceFile]) -> TimerCounterResult:
    timers: list[TimerInstance] = []
    counters: list[CounterInstance] = []
    for file in files:
        result = extract_timers_counters(file.content, file.path)
        timers.extend(result.timers)
        counters.extend(result.counters)
    return TimerCounterResult(
        timers=timers,
        counters=counters,
        summary=summarize_timers_counters(timers, counters),
    )
