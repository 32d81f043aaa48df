"""Tests for name-based safety classification and the pattern tables."""

import pytest

from plcmigrate.classify import SafetyClassifier, classify_variable
from plcmigrate.model.safety import SafetyType, Severity
from plcmigrate.patterns import (
    bypass_matches,
    classify_role,
    comment_bypass_match,
    is_safety_critical,
    split_words,
    word_form,
)


class TestWordForm:
    @pytest.mark.parametrize("name, words", [
        ("bE_Stop_Zone1", ["b", "e", "stop", "zone", "1"]),
        ("bIL_OK", ["b", "il", "ok"]),
        ("EmergencyStop", ["emergency", "stop"]),
        ("bESStop", ["b", "es", "stop"]),
        ("nState", ["n", "state"]),
    ])
    def test_split_words(self, name, words):
        assert split_words(name) == words

    def test_word_form_is_fenced(self):
        assert word_form("bIL_OK") == "_b_il_ok_"


class TestRoles:
    @pytest.mark.parametrize("name, role", [
        ("bInterlock", SafetyType.INTERLOCK),
        ("Interlock_OK", SafetyType.INTERLOCK),
        ("IL_Status", SafetyType.INTERLOCK),
        ("bSafetyInterlock", SafetyType.INTERLOCK),
        ("BIL_OK", SafetyType.INTERLOCK),
        ("bES_OK", SafetyType.ESTOP),
        ("bEStop", SafetyType.ESTOP),
        ("EmergencyStop", SafetyType.ESTOP),
        ("bE_Stop_Zone1", SafetyType.ESTOP),
        ("bPermissive", SafetyType.PERMISSIVE),
        ("bPerm_Run", SafetyType.PERMISSIVE),
        ("bRunPermit", SafetyType.PERMISSIVE),
        ("bSR_OK", SafetyType.SAFETY_RELAY),
        ("bGuardClosed", SafetyType.SAFETY_DEVICE),
        ("bMotorRunning", None),
        ("nCounter", None),
    ])
    def test_classify_role(self, name, role):
        assert classify_role(name) is role


class TestBypassTables:
    def test_every_matching_label_reported(self):
        assert bypass_matches("bMaintBypass") == ["bypass", "maintenance"]

    @pytest.mark.parametrize("name", ["bDisableMotor", "bForceOpen", "bESP"])
    def test_disable_and_force_need_a_safety_stem(self, name):
        assert bypass_matches(name) == []

    @pytest.mark.parametrize("text, label", [
        ("temporary by-pass for startup", "bypass"),
        ("Overrides the door switch", "override"),
        ("skip the check", "skip"),
        ("inhibit the light curtain while loading", "disable"),
        ("only in service mode", "mode"),
        ("normal operation", None),
    ])
    def test_comment_bypass_match(self, text, label):
        assert comment_bypass_match(text) == label

    @pytest.mark.parametrize("name, expected", [
        ("bIL_Door", True),
        ("rSafetyMargin", True),
        ("bMaintBypass", True),
        ("bPermit", True),
        ("rSpeed", False),
    ])
    def test_is_safety_critical(self, name, expected):
        assert is_safety_critical(name) is expected


class TestClassifier:
    def test_estop(self):
        verdict = classify_variable("bEStop")
        assert verdict.role is SafetyType.ESTOP
        assert verdict.severity is Severity.CRITICAL
        assert verdict.confidence == 0.95
        assert not verdict.is_bypass
        assert verdict.is_safety_relevant
        assert "bEStop" in verdict.remediation

    def test_undeclared_penalty(self):
        assert classify_variable("bEStop", declared=False).confidence == 0.85

    def test_bypass_outranks_role(self):
        verdict = classify_variable("bMaintBypass")
        assert verdict.bypass_patterns == ["bypass", "maintenance"]
        assert verdict.severity is Severity.CRITICAL
        assert verdict.confidence == 0.9
        assert verdict.is_bypass

    def test_undeclared_bypass(self):
        assert classify_variable("bBypass", declared=False).confidence == 0.8

    def test_comment_marks_bypass(self):
        verdict = classify_variable("bKeySwitch", "bypass key for commissioning")
        assert verdict.bypass_patterns == ["comment:bypass"]
        assert verdict.severity is Severity.CRITICAL

    def test_ordinary_name(self):
        verdict = classify_variable("rSpeed")
        assert verdict.role is None
        assert verdict.severity is None
        assert verdict.confidence == 0.0
        assert not verdict.is_safety_relevant

    def test_extra_patterns(self):
        classifier = SafetyClassifier([r"^bJmp"], [r"DoorSw$"])
        assert classifier.bypass_labels("bJmpA") == ["custom"]
        assert classifier.role("bDoorSw") is SafetyType.SAFETY_DEVICE
        assert classifier.role("bEStop") is SafetyType.ESTOP

    def test_extra_bypass_adds_to_builtin_labels(self):
        classifier = SafetyClassifier([r"Bypass"])
        assert classifier.bypass_labels("bBypass") == ["bypass", "custom"]

    def test_comment_bypass_falls_back_to_words(self):
        classifier = SafetyClassifier()
        assert classifier.comment_bypass("set bDbgMode here") == "debug"
        assert classifier.comment_bypass("see bTestMode") == "test-mode"
        assert classifier.comment_bypass("motor speed") is None

    @pytest.mark.parametrize("text, exclude, hit", [
        ("jumper out the light curtain", ["bDbg_Mode"], ("jumper", "jumper")),
        ("Force interlock OK", [], ("disable", "Force interlock")),
        ("maintenance bypass key", ["bMaintBypass"], None),
        ("see bDbgFlag", ["bDbgFlag"], None),
        ("see bDbgFlag and bSkipIL", ["bDbgFlag"], ("skip", "bSkipIL")),
    ])
    def test_comment_bypass_hit_skips_own_identifier(self, text, exclude, hit):
        assert SafetyClassifier().comment_bypass_hit(text, exclude=exclude) == hit
