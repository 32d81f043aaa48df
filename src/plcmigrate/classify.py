"""Safety classification of variable names and their comments.

:class:`SafetyClassifier` wraps the pattern tables in
:mod:`plcmigrate.patterns` with any project-specific additions and turns
a name (plus optional declaration comment) into a
:class:`~plcmigrate.model.safety.SafetyClassification`.

The bypass check is deliberately permissive: a name that merely looks
like a bypass is reported, and extra patterns can only add matches.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from plcmigrate.model.safety import SafetyClassification, SafetyType, Severity
from plcmigrate.patterns import (
    bypass_matches,
    classify_role,
    comment_bypass_match,
    comment_bypass_matches,
)

ROLE_CONFIDENCE: dict[SafetyType, float] = {
    SafetyType.ESTOP: 0.95,
    SafetyType.INTERLOCK: 0.9,
    SafetyType.SAFETY_RELAY: 0.9,
    SafetyType.PERMISSIVE: 0.85,
    SafetyType.SAFETY_DEVICE: 0.7,
}

ROLE_SEVERITY: dict[SafetyType, Severity] = {
    SafetyType.ESTOP: Severity.CRITICAL,
    SafetyType.INTERLOCK: Severity.HIGH,
    SafetyType.SAFETY_RELAY: Severity.HIGH,
    SafetyType.PERMISSIVE: Severity.MEDIUM,
    SafetyType.SAFETY_DEVICE: Severity.MEDIUM,
}

UNDECLARED_PENALTY = 0.1

BYPASS_REMEDIATION = (
    "Review '{name}' with a safety engineer before migration: confirm it cannot "
    "defeat a safety function in production, then remove it or guard it behind "
    "an audited maintenance mode in the target system."
)

_ROLE_REMEDIATION = {
    SafetyType.ESTOP: "Trace the e-stop chain for '{name}' and reproduce it in hardware-rated logic.",
    SafetyType.INTERLOCK: "Document the condition '{name}' protects and add a regression test for it.",
    SafetyType.SAFETY_RELAY: "Confirm the wiring and reset behaviour of safety relay '{name}'.",
    SafetyType.PERMISSIVE: "Document what '{name}' permits and which states require it.",
    SafetyType.SAFETY_DEVICE: "Verify which physical device '{name}' reflects before migration.",
}


def _compile(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


class SafetyClassifier:
    """Role and bypass classification with optional extra patterns.

    Parameters
    ----------
    extra_bypass_patterns
        Regexes appended to the built-in bypass family, reported with the
        label ``custom``.
    extra_role_patterns
        Regexes tried after the built-in role table; a match classifies
        the name as a generic safety device.
    """

    def __init__(
        self,
        extra_bypass_patterns: Iterable[str] = (),
        extra_role_patterns: Iterable[str] = (),
    ) -> None:
        self.extra_bypass = _compile(extra_bypass_patterns)
        self.extra_roles = _compile(extra_role_patterns)

    def bypass_labels(self, name: str) -> list[str]:
        labels = bypass_matches(name)
        if any(p.search(name) for p in self.extra_bypass):
            labels.append("custom")
        return labels

    def role(self, name: str) -> SafetyType | None:
        role = classify_role(name)
        if role is None and any(p.search(name) for p in self.extra_roles):
            return SafetyType.SAFETY_DEVICE
        return role

    def comment_bypass_hit(
        self, text: str, exclude: Iterable[str] = (),
    ) -> tuple[str, str] | None:
        """First ``(label, wording)`` bypass hit in free text.

        Phrase matches are tried before bypass-like words.  Wording that
        only restates one of the *exclude* identifiers (the identifier
        itself, or a hit in a bypass family that identifier belongs to)
        is passed over.
        """
        exclude = list(exclude)
        names = {name.upper() for name in exclude}
        families = {label for name in exclude for label in self.bypass_labels(name)}
        hits = comment_bypass_matches(text)
        for word in re.findall(r"[A-Za-z_]\w*", text):
            labels = self.bypass_labels(word)
            if labels:
                hits.append((labels[0], word))
        for label, wording in hits:
            if wording.upper() in names or label in families:
                continue
            return label, wording
        return None

    def comment_bypass(self, text: str) -> str | None:
        """Bypass label for free text: a phrase match or a bypass-like word."""
        hit = self.comment_bypass_hit(text)
        return hit[0] if hit else None

    def classify(
        self, name: str, comment: str | None = None, *, declared: bool = True,
    ) -> SafetyClassification:
        labels = self.bypass_labels(name)
        if not labels and comment:
            phrase = comment_bypass_match(comment)
            if phrase is not None:
                labels = [f"comment:{phrase}"]
        role = self.role(name)

        if labels:
            return SafetyClassification(
                name=name,
                role=role,
                bypass_patterns=labels,
                severity=Severity.CRITICAL,
                confidence=round(0.9 if declared else 0.8, 2),
                remediation=BYPASS_REMEDIATION.format(name=name),
            )
        if role is None:
            return SafetyClassification(name=name)

        confidence = ROLE_CONFIDENCE[role]
        if not declared:
            confidence -= UNDECLARED_PENALTY
        return SafetyClassification(
            name=name,
            role=role,
            severity=ROLE_SEVERITY[role],
            confidence=round(confidence, 2),
            remediation=_ROLE_REMEDIATION[role].format(name=name),
        )


_DEFAULT = SafetyClassifier()


def classify_variable(
    name: str, comment: str | None = None, *, declared: bool = True,
) -> SafetyClassification:
    """Classify *name* with the built-in tables only."""
    return _DEFAULT.classify(name, comment, declared=declared)
