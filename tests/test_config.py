"""Tests for configuration management."""

import tempfile
from pathlib import Path

import pytest
import yaml

from avatar.core.config import (
    AppearanceConfig,
    AvatarConfig,
    BehaviorConfig,
    PhrasesConfig,
    _expand_path,
    _merge_dicts,
    get_default_config,
    load_config,
)


class TestBehaviorConfig:
    """Tests for BehaviorConfig dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = BehaviorConfig()
        assert config.max_answer_length == 255
        assert config.restart_interval == 30.0
        assert config.pipeline == "thunderstone"
        assert config.dialog_name == "xray"
        assert config.provider_templates == {
            "woodside": "Here is what I found in the {0} corpus.",
        }

    def test_custom_values(self):
        """Test custom configuration values."""
        config = BehaviorConfig(max_answer_length=80, dialog_name="")
        assert config.max_answer_length == 80
        assert config.dialog_name == ""

    def test_templates_not_shared(self):
        """Test each instance gets its own template mapping."""
        first = BehaviorConfig()
        first.provider_templates["other"] = "x"
        assert "other" not in BehaviorConfig().provider_templates

    def test_template_with_pipeline_placeholder(self):
        """Test a template may reference the pipeline name more than once."""
        config = BehaviorConfig(provider_templates={"corpus": "{0}: from {0}."})
        assert config.provider_templates["corpus"].format("corpus") == "corpus: from corpus."

    @pytest.mark.parametrize("template", ["Found in {name}.", "Found in {1}.", "Found in {0"])
    def test_invalid_template_rejected(self, template):
        """Test a template that cannot be formatted with the pipeline name fails early."""
        with pytest.raises(ValueError, match="woodside"):
            BehaviorConfig(provider_templates={"woodside": template})


class TestPhrasesConfig:
    """Tests for PhrasesConfig dataclass."""

    def test_every_category_has_phrases(self):
        """Test no default category is empty."""
        config = PhrasesConfig()
        assert config.greeting
        assert config.farewell
        assert config.failure
        assert config.error
        assert "Hello" in config.greeting


class TestAppearanceConfig:
    """Tests for AppearanceConfig dataclass."""

    def test_covers_all_states(self):
        """Test the default table names every state and mood."""
        config = AppearanceConfig()
        assert set(config.states) == {
            "CONNECTING",
            "SLEEPING_LISTENING",
            "LISTENING",
            "THINKING",
            "ANSWERING",
            "DID_NOT_UNDERSTAND",
            "ERROR",
        }
        assert set(config.moods) == {"SLEEPING", "IDLE", "INTERESTED", "URGENT", "UPSET", "SHY"}


class TestAvatarConfig:
    """Tests for AvatarConfig dataclass."""

    def test_nested_configs(self):
        """Test nested configuration objects."""
        config = AvatarConfig()
        assert isinstance(config.behavior, BehaviorConfig)
        assert config.dialog.timeout == 30.0
        assert config.qa.base_url == "http://localhost:8080"
        assert config.logging.level == "INFO"


class TestExpandPath:
    """Tests for path expansion."""

    def test_expand_home(self):
        """Test home directory expansion."""
        path = _expand_path("~/test")
        assert "~" not in path
        assert "test" in path

    def test_expand_env_var(self, monkeypatch):
        """Test environment variable expansion."""
        monkeypatch.setenv("TEST_VAR", "test_value")
        path = _expand_path("$TEST_VAR/file")
        assert path == "test_value/file"

    def test_plain_path(self):
        """Test plain path without expansion."""
        assert _expand_path("/usr/local/bin") == "/usr/local/bin"


class TestMergeDicts:
    """Tests for dictionary merging."""

    def test_simple_merge(self):
        """Test simple key override."""
        result = _merge_dicts({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        """Test nested dictionary merge."""
        result = _merge_dicts({"a": {"x": 1, "y": 2}}, {"a": {"y": 3, "z": 4}})
        assert result == {"a": {"x": 1, "y": 3, "z": 4}}

    def test_base_not_modified(self):
        """Test merging leaves the base mapping untouched."""
        base = {"a": {"x": 1}}
        _merge_dicts(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


class TestLoadConfig:
    """Tests for configuration loading."""

    @pytest.fixture
    def config_file(self):
        """Write a temporary config file and yield its path."""
        paths = []

        def write(data):
            with tempfile.NamedTemporaryFile(
                mode="w", suffix=".yaml", delete=False
            ) as f:
                yaml.dump(data, f)
            paths.append(Path(f.name))
            return f.name

        yield write

        for path in paths:
            path.unlink()

    def test_load_default_config(self):
        """Test loading default configuration."""
        config = load_config()
        assert isinstance(config, AvatarConfig)
        assert config.behavior.max_answer_length > 0
        assert "LISTENING" in config.appearance.states

    def test_get_default_config(self):
        """Test getting default config without file loading."""
        config = get_default_config()
        assert isinstance(config, AvatarConfig)
        assert config.behavior.pipeline == "thunderstone"

    def test_load_from_file(self, config_file):
        """Test loading configuration from a file."""
        path = config_file(
            {
                "avatar": {
                    "behavior": {"max_answer_length": 40, "dialog_name": "demo"},
                    "qa": {"base_url": "http://qa.example:9000"},
                }
            }
        )

        config = load_config(path)

        assert config.behavior.max_answer_length == 40
        assert config.behavior.dialog_name == "demo"
        assert config.qa.base_url == "http://qa.example:9000"
        # Other values should be defaults
        assert config.qa.timeout == 30.0

    def test_partial_appearance_override(self, config_file):
        """Test overriding one state's color keeps the rest of the table."""
        path = config_file(
            {"avatar": {"appearance": {"states": {"ERROR": {"color": "#880000"}}}}}
        )

        config = load_config(path)

        assert config.appearance.states["ERROR"]["color"] == "#880000"
        assert config.appearance.states["ERROR"]["speed"] == 0.0
        assert "LISTENING" in config.appearance.states

    def test_file_without_avatar_key(self, config_file):
        """Test a file without the top-level key changes nothing."""
        path = config_file({"something_else": {"behavior": {"pipeline": "x"}}})

        config = load_config(path)

        assert config.behavior.pipeline != "x"

    def test_load_missing_file(self):
        """Test loading with non-existent explicit path."""
        config = load_config("/nonexistent/path/config.yaml")
        # Should return default config
        assert isinstance(config, AvatarConfig)

    def test_invalid_yaml_skipped(self):
        """Test a broken config file is skipped."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("avatar: [unclosed\n")

        try:
            config = load_config(f.name)
        finally:
            Path(f.name).unlink()

        assert isinstance(config, AvatarConfig)

    def test_invalid_template_in_file(self, config_file):
        """Test a stray placeholder in a configured template fails loading."""
        path = config_file(
            {"avatar": {"behavior": {"provider_templates": {"woodside": "See {name}."}}}}
        )

        with pytest.raises(ValueError, match="woodside"):
            load_config(path)
