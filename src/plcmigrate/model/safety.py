"""Safety interlocks, bypasses and the warnings they raise."""

from __future__ import annotations

from enum import Enum

from pydantic import model_validator

from .base import Record, SourceLocation


class SafetyType(str, Enum):
    INTERLOCK = "interlock"
    PERMISSIVE = "permissive"
    ESTOP = "estop"
    SAFETY_RELAY = "safety-relay"
    SAFETY_DEVICE = "safety-device"
    BYPASS = "bypass"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SafetyInterlock(Record):
    id: str
    name: str
    type: SafetyType
    location: SourceLocation
    is_bypassed: bool = False
    bypass_condition: str | None = None
    confidence: float
    severity: Severity
    comment: str | None = None
    declared: bool = False
    data_type: str | None = None
    related_interlocks: list[str] = []


class SafetyBypass(Record):
    id: str
    name: str
    location: SourceLocation
    affected_interlocks: list[str] = []
    condition: str | None = None
    severity: Severity = Severity.CRITICAL
    pattern: str = ""
    declared: bool = False


class CriticalWarning(Record):
    """A finding that must be reviewed before migration.

    ``subject`` names what the warning is about: the bypass or signal
    identifier, or the bypass wording found in a comment.
    """

    type: str
    message: str
    severity: Severity
    location: SourceLocation
    remediation: str
    subject: str | None = None

    @model_validator(mode="after")
    def _check_remediation(self):
        if not self.remediation.strip():
            raise ValueError(f"CriticalWarning '{self.type}' needs a remediation")
        return self


class SafetyClassification(Record):
    """Verdict on one name: its safety role, any bypass idioms it matches,
    and what a reviewer should do about it."""

    name: str
    role: SafetyType | None = None
    bypass_patterns: list[str] = []
    severity: Severity | None = None
    confidence: float = 0.0
    remediation: str | None = None

    @property
    def is_bypass(self) -> bool:
        return bool(self.bypass_patterns)

    @property
    def is_safety_relevant(self) -> bool:
        return self.role is not None or self.is_bypass


class SafetySummary(Record):
    total_interlocks: int = 0
    by_type: dict[str, int] = {}
    bypass_count: int = 0
    critical_warning_count: int = 0


class SafetyResult(Record):
    interlocks: list[SafetyInterlock] = []
    bypasses: list[SafetyBypass] = []
    critical_warnings: list[CriticalWarning] = []
    summary: SafetySummary = SafetySummary()
