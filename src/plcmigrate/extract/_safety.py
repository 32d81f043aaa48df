"""Safety interlock and bypass detection.

Every identifier in code is checked against the bypass family; BOOL-like
(or undeclared) identifiers are additionally classified by safety role.
Comment and string text is scanned for bypass wording so a bypass that
only appears in prose still raises a critical warning.  When in doubt
the extractor reports.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from plcmigrate.classify import BYPASS_REMEDIATION, SafetyClassifier
from plcmigrate.model.analysis import SourceFile
from plcmigrate.model.base import SourceLocation, make_id
from plcmigrate.model.pou import Variable
from plcmigrate.model.safety import (
    CriticalWarning,
    SafetyBypass,
    SafetyInterlock,
    SafetyResult,
    SafetySummary,
    SafetyType,
    Severity,
)
from plcmigrate.parse import Token, TokenKind, comment_body

from ._text import SourceText
from ._variables import declared_variables

logger = logging.getLogger(__name__)

BOOL_TYPES = frozenset({"BOOL", "SAFEBOOL"})

_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_OR_RE = re.compile(r"\bOR\b", re.IGNORECASE)
_IF_BLOCK_RE = re.compile(
    r"\b(?:ELSIF|IF)\s+(.+?)\s+THEN\b(.*?)(?=\bELSIF\b|\bELSE\b|\bEND_IF\b|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_TEXT_KINDS = (TokenKind.COMMENT, TokenKind.STRING, TokenKind.WSTRING)


class _ContextRule:
    __slots__ = ("type", "pattern", "message", "remediation")

    def __init__(self, type: str, pattern: str, message: str, remediation: str) -> None:
        self.type = type
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.message = message
        self.remediation = remediation


CONTEXT_RULES: list[_ContextRule] = [
    _ContextRule(
        "bypass-condition",
        r"\bIF\s+\(?\s*(?:NOT\s+)?(\w*(?:bypass|byp|debug|dbg|test|maint)\w*)\s*\)?\s+(?:OR|THEN)\b",
        "Logic is conditioned on bypass/debug flag '{0}'",
        "Confirm '{0}' cannot be set in production and document who may set it.",
    ),
    _ContextRule(
        "interlock-bypassed",
        r"\bNOT\s+(\w*(?:interlock|IL_)\w*)\s+OR\s+(\w*bypass\w*)",
        "Interlock '{0}' can be overridden by '{1}'",
        "Remove the OR path around '{0}' or restrict '{1}' to an audited maintenance mode.",
    ),
    _ContextRule(
        "forced-safety-signal",
        r"\b(\w*(?:IL_|interlock|estop|e_stop|safety)\w*)\s*:=\s*TRUE\s*;",
        "Safety signal '{0}' is forced TRUE",
        "Derive '{0}' from its inputs; a constant TRUE defeats the safety function.",
    ),
]


# ---------------------------------------------------------------------------
# Scan
# ---------------------------------------------------------------------------

class _SafetyScan:
    """State for one file's scan."""

    def __init__(self, text: SourceText, file_path: str, classifier: SafetyClassifier) -> None:
        self.text = text
        self.file = file_path
        self.classifier = classifier
        self.declared: dict[str, Variable] = {}
        for var in declared_variables(text, file_path):
            self.declared.setdefault(var.name.upper(), var)
        self.ignored = {name.upper() for name in text.pou_names()}
        for var in self.declared.values():
            self.ignored.update(w.upper() for w in _IDENT_RE.findall(var.data_type))
        self.ignored -= set(self.declared)

        self.first_seen: dict[str, Token] = {}
        self.interlock_names: dict[str, str] = {}
        self.bypass_names: dict[str, tuple[str, list[str]]] = {}
        self.bypass_lines: dict[int, set[str]] = {}

    def _location(self, key: str) -> SourceLocation:
        var = self.declared.get(key)
        if var is not None:
            return var.location
        token = self.first_seen[key]
        return SourceLocation(file=self.file, line=token.start_line, column=token.start_col)

    def _mark_bypass_line(self, token: Token, name: str) -> None:
        self.bypass_lines.setdefault(token.start_line, set()).add(name)

    def collect(self) -> None:
        for token in self.text.tokens:
            if token.kind is not TokenKind.IDENTIFIER:
                continue
            key = token.text.upper()
            if key in self.ignored:
                continue
            self.first_seen.setdefault(key, token)
            if key in self.bypass_names:
                self._mark_bypass_line(token, self.bypass_names[key][0])
                continue
            if key in self.interlock_names:
                continue

            var = self.declared.get(key)
            name = var.name if var is not None else token.text
            labels = self.classifier.bypass_labels(name)
            if labels:
                self.bypass_names[key] = (name, labels)
                self._mark_bypass_line(token, name)
                continue
            if var is not None and var.data_type.upper() not in BOOL_TYPES:
                continue
            if self.classifier.role(name) is not None:
                self.interlock_names[key] = name

    def relations(self) -> tuple[dict[str, str], dict[str, list[str]], dict[str, list[str]]]:
        """Bypass conditions, interlocks each bypass affects, and interlocks
        sharing an IF condition."""
        conditions: dict[str, str] = {}
        affected: dict[str, list[str]] = {key: [] for key in self.bypass_names}
        related: dict[str, list[str]] = {key: [] for key in self.interlock_names}

        def link(bypass: str, interlock: str, condition: str) -> None:
            conditions.setdefault(interlock, condition)
            if self.interlock_names[interlock] not in affected[bypass]:
                affected[bypass].append(self.interlock_names[interlock])

        for line in self.text.code_lines:
            if not _OR_RE.search(line):
                continue
            words = {w.upper() for w in _IDENT_RE.findall(line)}
            bypasses = [w for w in words if w in self.bypass_names]
            for interlock in sorted(w for w in words if w in self.interlock_names):
                for bypass in bypasses:
                    link(bypass, interlock, " ".join(line.split()).rstrip(";"))

        for match in _IF_BLOCK_RE.finditer(self.text.code):
            guard = " ".join(match.group(1).split())
            guard_words = [w.upper() for w in _IDENT_RE.findall(guard)]
            guard_interlocks = [w for w in guard_words if w in self.interlock_names]
            for interlock in guard_interlocks:
                for other in guard_interlocks:
                    name = self.interlock_names[other]
                    if other != interlock and name not in related[interlock]:
                        related[interlock].append(name)
            guard_bypasses = [w for w in guard_words if w in self.bypass_names]
            if not guard_bypasses:
                continue
            body_words = {w.upper() for w in _IDENT_RE.findall(match.group(2))}
            for interlock in sorted(w for w in body_words | set(guard_interlocks)
                                    if w in self.interlock_names):
                for bypass in guard_bypasses:
                    link(bypass, interlock, f"IF {guard}")

        return conditions, affected, related

    def interlocks(self, conditions, related) -> list[SafetyInterlock]:
        records = []
        for key, name in self.interlock_names.items():
            var = self.declared.get(key)
            verdict = self.classifier.classify(name, declared=var is not None)
            location = self._location(key)
            condition = conditions.get(key)
            records.append(SafetyInterlock(
                id=make_id("interlock", self.file, location.line, name),
                name=name,
                type=verdict.role,
                location=location,
                is_bypassed=condition is not None,
                bypass_condition=condition,
                confidence=verdict.confidence,
                severity=Severity.CRITICAL if condition is not None else verdict.severity,
                comment=var.comment if var is not None else None,
                declared=var is not None,
                data_type=var.data_type if var is not None else None,
                related_interlocks=related.get(key, []),
            ))
        records.sort(key=lambda r: (r.location.line, r.location.column))
        return records

    def bypasses(self, affected) -> tuple[list[SafetyBypass], list[CriticalWarning]]:
        records = []
        warnings = []
        for key, (name, labels) in self.bypass_names.items():
            location = self._location(key)
            hits = affected.get(key, [])
            records.append(SafetyBypass(
                id=make_id("bypass", self.file, location.line, name),
                name=name,
                location=location,
                affected_interlocks=hits,
                condition=", ".join(hits) or None,
                pattern=labels[0],
                declared=key in self.declared,
            ))
            warnings.append(CriticalWarning(
                type="bypass-detected",
                message=f"Potential safety bypass '{name}' ({', '.join(labels)})",
                severity=Severity.CRITICAL,
                location=location,
                remediation=BYPASS_REMEDIATION.format(name=name),
                subject=name,
            ))
        records.sort(key=lambda r: (r.location.line, r.location.column))
        return records, warnings

    def text_warnings(self) -> list[CriticalWarning]:
        warnings = []
        for token in self.text.tokens:
            if token.kind not in _TEXT_KINDS:
                continue
            body = comment_body(token.text) if token.kind is TokenKind.COMMENT else token.text
            hit = self.classifier.comment_bypass_hit(
                body, exclude=self.bypass_lines.get(token.start_line, ()),
            )
            if hit is None:
                continue
            label, wording = hit
            where = "Comment" if token.kind is TokenKind.COMMENT else "String literal"
            snippet = " ".join(body.split())[:80]
            warnings.append(CriticalWarning(
                type="bypass-in-comment",
                message=f"{where} mentions a safety bypass ({label}): {snippet}",
                severity=Severity.CRITICAL,
                location=SourceLocation(
                    file=self.file, line=token.start_line, column=token.start_col,
                    end_line=token.end_line,
                ),
                remediation=(
                    "Check whether the code near this comment can bypass a safety "
                    "function; review it with a safety engineer before migration."
                ),
                subject=wording,
            ))
        return warnings

    def context_warnings(self) -> list[CriticalWarning]:
        warnings = []
        for rule in CONTEXT_RULES:
            for match in rule.pattern.finditer(self.text.code):
                groups = match.groups()
                warnings.append(CriticalWarning(
                    type=rule.type,
                    message=rule.message.format(*groups),
                    severity=Severity.CRITICAL,
                    location=SourceLocation(
                        file=self.file,
                        line=self.text.line_of(match.start()),
                        column=self.text.column_of(match.start()),
                    ),
                    remediation=rule.remediation.format(*groups),
                    subject=groups[0],
                ))
        return warnings


def _dedupe(warnings: list[CriticalWarning]) -> list[CriticalWarning]:
    seen: set[tuple[str, int, str | None]] = set()
    unique = []
    for warning in warnings:
        key = (warning.type, warning.location.line, warning.subject)
        if key not in seen:
            seen.add(key)
            unique.append(warning)
    return unique


def extract_safety(
    source: str,
    file_path: str,
    extra_bypass_patterns: Iterable[str] = (),
    extra_role_patterns: Iterable[str] = (),
) -> SafetyResult:
    """Find interlocks, bypasses and the critical warnings they raise.

    Parameters
    ----------
    extra_bypass_patterns, extra_role_patterns
        Regexes appended to the built-in tables (see
        :class:`~plcmigrate.classify.SafetyClassifier`).
    """
    scan = _SafetyScan(
        SourceText(source), file_path,
        SafetyClassifier(extra_bypass_patterns, extra_role_patterns),
    )
    scan.collect()
    conditions, affected, related = scan.relations()
    interlocks = scan.interlocks(conditions, related)
    bypasses, warnings = scan.bypasses(affected)
    warnings = _dedupe(warnings + scan.context_warnings() + scan.text_warnings())

    if bypasses:
        logger.debug(
            "%s: %d bypass(es): %s", file_path, len(bypasses), ", ".join(b.name for b in bypasses),
        )
    return SafetyResult(
        interlocks=interlocks,
        bypasses=bypasses,
        critical_warnings=warnings,
        summary=summarize_safety(interlocks, bypasses, warnings),
    )


def summarize_safety(
    interlocks: list[SafetyInterlock],
    bypasses: list[SafetyBypass],
    warnings: list[CriticalWarning],
) -> SafetySummary:
    by_type: dict[str, int] = {}
    for interlock in interlocks:
        by_type[interlock.type.value] = by_type.get(interlock.type.value, 0) + 1
    if bypasses:
        by_type[SafetyType.BYPASS.value] = len(bypasses)
    return SafetySummary(
        total_interlocks=len(interlocks),
        by_type=by_type,
        bypass_count=len(bypasses),
        critical_warning_count=sum(1 for w in warnings if w.severity is Severity.CRITICAL),
    )


def extract_safety_from_files(files: list[SourceFile], **options) -> SafetyResult:
    interlocks: list[SafetyInterlock] = []
    bypasses: list[SafetyBypass] = []
    warnings: list[CriticalWarning] = []
    for file in files:
        result = extract_safety(file.content, file.path, **options)
        interlocks.extend(result.interlocks)
        bypasses.extend(result.bypasses)
        warnings.extend(result.critical_warnings)
    return SafetyResult(
        interlocks=interlocks,
        bypasses=bypasses,
        critical_warnings=warnings,
        summary=summarize_safety(interlocks, bypasses, warnings),
    )
