"""Tests for config loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from settings.config import load_config_model
from settings.config_models import CaptureConfig, LLMConfig, RapportConfig


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STEPFUN_API_KEY", raising=False)
        config = RapportConfig()
        assert config.llm.provider == "auto"
        assert config.capture.uncategorized_tag == "uncategorized"
        assert config.capture.new_contact_tag == "new-contact"
        assert config.capture.normalize_temperature == 0.3
        assert config.transcription.model == "step-asr"
        assert config.transcription.api_key == ""
        assert config.paths.db_path == Path("~/rapport/rapport.db").expanduser()
        assert config.logging.level == "INFO"


class TestValidation:
    def test_invalid_provider(self):
        with pytest.raises(ValidationError):
            LLMConfig(provider="llama")

    def test_stepfun_provider(self):
        assert LLMConfig(provider="stepfun").provider == "stepfun"

    def test_non_positive_limits(self):
        with pytest.raises(ValidationError):
            CaptureConfig(max_tags=0)

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            RapportConfig.from_dict({"logging": {"level": "LOUD"}})

    def test_env_expansion(self, monkeypatch):
        monkeypatch.setenv("MY_LLM_KEY", "sk-from-env")
        config = RapportConfig.from_dict({"llm": {"api_key": "${MY_LLM_KEY}"}})
        assert config.llm.api_key == "sk-from-env"


class TestLoadConfigModel:
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "llm:\n  provider: openai\n"
            "capture:\n  self_aliases: [Sam]\n  max_text_chars: 1000\n"
            f"paths:\n  db_path: {tmp_path / 'r.db'}\n"
        )
        config = load_config_model(path)
        assert config.llm.provider == "openai"
        assert config.capture.self_aliases == ["Sam"]
        assert config.capture.max_text_chars == 1000
        assert config.paths.db_path == tmp_path / "r.db"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config_model(tmp_path / "absent.yaml")
        assert config.capture.max_tags == 5

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("llm: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_model(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("llm:\n  provider: llama\n")
        with pytest.raises(ValueError, match="validation failed"):
            load_config_model(path)

    def test_env_var_points_at_config(self, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.yaml"
        path.write_text("capture:\n  max_tags: 3\n")
        monkeypatch.setenv("RAPPORT_CONFIG", str(path))
        assert load_config_model().capture.max_tags == 3

    def test_env_var_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RAPPORT_CONFIG", str(tmp_path / "nope.yaml"))
        with pytest.raises(ValueError, match="missing file"):
            load_config_model()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config_model(path)
