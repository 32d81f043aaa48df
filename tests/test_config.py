"""Tests for YAML configuration loading and validation."""

import pytest
from pydantic import ValidationError

from plcmigrate.config import AnalysisConfig, ConfigError, ScoringWeights, load_config


def write(tmp_path, text, name="plcmigrate.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestDefaults:
    def test_defaults(self):
        config = AnalysisConfig()
        assert config.parser.docstring_line_tolerance == 2
        assert config.state_machines.min_states == 2
        assert config.state_machines.fallback_window_chars == 3000
        assert config.safety.extra_bypass_patterns == []
        assert config.scoring.weights.safety == 0.30
        assert config.knowledge.context_lines == 3
        assert config.analyzer.extensions == [".st", ".stx", ".scl", ".pou", ".exp"]

    def test_frozen(self):
        with pytest.raises(ValidationError):
            AnalysisConfig().state_machines.min_states = 5


class TestLoad:
    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = write(tmp_path, """
state_machines:
  min_states: 3
safety:
  extra_bypass_patterns: ["^Jmp_"]
scoring:
  weights: {documentation: 0.2, safety: 0.35, complexity: 0.15,
            dependencies: 0.15, testability: 0.15}
""")
        config = load_config(path)
        assert config.state_machines.min_states == 3
        assert config.state_machines.max_actions == 5
        assert config.safety.extra_bypass_patterns == ["^Jmp_"]
        assert config.scoring.weights.safety == 0.35

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(write(tmp_path, "")) == AnalysisConfig()

    def test_accepts_str_path(self, tmp_path):
        path = write(tmp_path, "knowledge:\n  include_context: false\n")
        assert load_config(str(path)).knowledge.include_context is False


class TestErrors:
    @pytest.mark.parametrize("text, fragment", [
        ("state_machines: [unclosed", "not valid YAML"),
        ("- just\n- a list\n", "top level must be a mapping"),
        ("parser:\n  unknown_option: 1\n", "unknown_option"),
        ("scoring:\n  weights: {documentation: 0.9}\n", "must sum to 1.0"),
        ("safety:\n  extra_role_patterns: ['(unclosed']\n", "invalid pattern"),
        ("state_machines:\n  min_states: many\n", "min_states"),
    ])
    def test_invalid_files(self, tmp_path, text, fragment):
        with pytest.raises(ConfigError) as exc_info:
            load_config(write(tmp_path, text))
        assert fragment in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_config(tmp_path / "absent.yaml")

    def test_weights_validated_directly(self):
        with pytest.raises(ValidationError):
            ScoringWeights(documentation=0.5)
