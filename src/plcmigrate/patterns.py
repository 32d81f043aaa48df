"""Name-pattern tables shared by the parser and the extractors.

The tables are plain ordered lists of compiled regexes so they can be
inspected and tested on their own, independent of the code that scans
source text with them.  Each table documents its match semantics:

* ``STATE_VARIABLE_PATTERNS`` -- any-match against the raw identifier.
* ``SAFETY_ROLE_PATTERNS`` -- first-match-wins against the identifier's
  word form (see :func:`word_form`).
* ``BYPASS_PATTERNS`` -- any-match against the raw identifier.  This table
  must never lose members: every name in the bypass family has to match.
* ``COMMENT_BYPASS_PATTERNS`` -- any-match against free comment/string text.
"""

from __future__ import annotations

import re

from plcmigrate.model.safety import SafetyType

# ---------------------------------------------------------------------------
# State variables
# ---------------------------------------------------------------------------

STATE_VARIABLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^n?state$", re.IGNORECASE),
    re.compile(r"^i?step$", re.IGNORECASE),
    re.compile(r"^n?mode$", re.IGNORECASE),
    re.compile(r"^n?phase$", re.IGNORECASE),
    re.compile(r"^seq", re.IGNORECASE),
    re.compile(r"state$", re.IGNORECASE),
    re.compile(r"step$", re.IGNORECASE),
    re.compile(r"^nSeq", re.IGNORECASE),
    re.compile(r"^iState", re.IGNORECASE),
    re.compile(r"^[a-z]{1,3}(?:State|Step|Mode|Phase|Seq)", 0),
]


def is_state_variable(name: str) -> bool:
    return any(p.search(name) for p in STATE_VARIABLE_PATTERNS)


# ---------------------------------------------------------------------------
# Word form
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_words(name: str) -> list[str]:
    """Split a camelCase / snake_case identifier into lowercase words.

    >>> split_words("bE_Stop_Zone1")
    ['b', 'e', 'stop', 'zone', '1']
    """
    return [w.lower() for w in _WORD_RE.findall(name)]


def word_form(name: str) -> str:
    """Words joined and fenced by underscores: ``bIL_OK`` -> ``_b_il_ok_``."""
    return "_" + "_".join(split_words(name)) + "_"


# ---------------------------------------------------------------------------
# Safety roles (first match wins, tested against word_form)
# ---------------------------------------------------------------------------

SAFETY_ROLE_PATTERNS: list[tuple[SafetyType, re.Pattern[str]]] = [
    (SafetyType.ESTOP, re.compile(r"_e_?stop|_b?estop|emergency_?stop|_b?es_|_estp_")),
    (SafetyType.SAFETY_RELAY, re.compile(r"_b?sr_|safety_?relay")),
    (SafetyType.INTERLOCK, re.compile(r"_b?il_|interlock|intlk|_ilk_")),
    (SafetyType.PERMISSIVE, re.compile(r"permissive|permit|_b?perm_|_prm_")),
    (SafetyType.SAFETY_DEVICE, re.compile(r"safe|_guard|light_?curtain|_lc_")),
]


def classify_role(name: str) -> SafetyType | None:
    """Safety role of *name*, or None for an ordinary identifier."""
    words = word_form(name)
    for role, pattern in SAFETY_ROLE_PATTERNS:
        if pattern.search(words):
            return role
    return None


# ---------------------------------------------------------------------------
# Bypass family (any match, raw identifier)
# ---------------------------------------------------------------------------

# Stems that turn "disable"/"force" into a bypass.  Short stems must stand
# alone as a camelCase or underscore-delimited token.
_LONG_STEMS = (
    r"safe|interlock|intlk|estop|e_stop|emergency|guard|perm|protect|"
    r"trip|alarm|check|curtain|relay|fence"
)
_SHORT_STEMS = (
    r"(?:^|_|(?<=[a-z\d]))(?:IL|ES|SR|LC)(?=_|\d|$|[A-Z])"
    r"|(?i:(?:^|_)(?:il|es|sr|lc)(?:_|\d|$))"
)
_SAFETY_STEM = rf"(?i:{_LONG_STEMS})|{_SHORT_STEMS}"

BYPASS_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("debug", re.compile(r"dbg|debug", re.IGNORECASE)),
    ("bypass", re.compile(r"(?i:by_?pass)|(?:^|_|(?<=[a-z]))(?i:byp)(?=_|\d|$|[A-Z])")),
    ("skip", re.compile(r"skip|skp", re.IGNORECASE)),
    ("override", re.compile(r"override|ovrd|ovride", re.IGNORECASE)),
    ("disable", re.compile(
        rf"^(?=.*(?i:disabl|inhibit|defeat))(?=.*(?:{_SAFETY_STEM}))"
    )),
    ("force", re.compile(rf"^(?=.*(?i:forc))(?=.*(?:{_SAFETY_STEM}))")),
    ("maintenance", re.compile(r"maint|mntnc", re.IGNORECASE)),
    ("commissioning", re.compile(r"commission|cmsn", re.IGNORECASE)),
    ("service-mode", re.compile(r"service_?(?:mode|bypass|override)|svc_?mode", re.IGNORECASE)),
    ("test-mode", re.compile(
        r"(?i:test_?mode)|(?:^|_)(?i:test)(?:_|\d|$)|(?<=[a-z])Test(?=[A-Z_\d]|$)"
    )),
    ("simulation", re.compile(r"sim_?mode|simulat", re.IGNORECASE)),
    ("jumper", re.compile(r"jumper|jmpr", re.IGNORECASE)),
]


def bypass_matches(name: str) -> list[str]:
    """Labels of every bypass pattern that matches *name*."""
    return [label for label, pattern in BYPASS_PATTERNS if pattern.search(name)]


def is_bypass(name: str) -> bool:
    return any(pattern.search(name) for _, pattern in BYPASS_PATTERNS)


COMMENT_BYPASS_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("bypass", re.compile(r"\bby-?pass", re.IGNORECASE)),
    ("override", re.compile(r"\boverrid", re.IGNORECASE)),
    ("skip", re.compile(r"\bskip", re.IGNORECASE)),
    ("debug", re.compile(r"\b(?:debug|dbg)", re.IGNORECASE)),
    ("jumper", re.compile(r"\bjumper", re.IGNORECASE)),
    ("disable", re.compile(
        r"\b(?:disabl|inhibit|defeat|forc)\w*\s+(?:the\s+|all\s+)?"
        r"(?:safety|interlock|e-?stop|guard|permissive|light\s*curtain)",
        re.IGNORECASE,
    )),
    ("mode", re.compile(
        r"\b(?:maint\w*|service|commissioning|test|sim\w*)\s+mode\b", re.IGNORECASE
    )),
]


def comment_bypass_matches(text: str) -> list[tuple[str, str]]:
    """Every ``(label, matched text)`` comment-bypass hit in *text*, in table order."""
    hits = []
    for label, pattern in COMMENT_BYPASS_PATTERNS:
        match = pattern.search(text)
        if match:
            hits.append((label, match.group(0)))
    return hits


def comment_bypass_match(text: str) -> str | None:
    """First comment-bypass label found in *text*."""
    hits = comment_bypass_matches(text)
    return hits[0][0] if hits else None


# ---------------------------------------------------------------------------
# Safety-critical declarations
# ---------------------------------------------------------------------------

SAFETY_CRITICAL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^bIL_", re.IGNORECASE),
    re.compile(r"^IL_", re.IGNORECASE),
    re.compile(r"Interlock", re.IGNORECASE),
    re.compile(r"Permissive", re.IGNORECASE),
    re.compile(r"EStop", re.IGNORECASE),
    re.compile(r"E_Stop", re.IGNORECASE),
    re.compile(r"EmergencyStop", re.IGNORECASE),
    re.compile(r"Safety", re.IGNORECASE),
    re.compile(r"Bypass", re.IGNORECASE),
]


def is_safety_critical(name: str) -> bool:
    """True for names that carry safety meaning, bypasses included."""
    if any(p.search(name) for p in SAFETY_CRITICAL_PATTERNS):
        return True
    return classify_role(name) is not None or is_bypass(name)
