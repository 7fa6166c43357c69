"""
Tests for configuration loading
"""

import json
from pathlib import Path

import pytest

from model_optimizer.config import Settings, default_config_path, load_settings
from model_optimizer.exceptions import ConfigError


def test_defaults_when_missing(mock_home_dir):
    settings = load_settings()
    assert settings == Settings()
    assert settings.catalog_path is None
    assert default_config_path() == mock_home_dir / ".model-optimizer" / "config.json"


def test_load_from_home(mock_home_dir):
    config_file = mock_home_dir / ".model-optimizer" / "config.json"
    config_file.parent.mkdir()
    config_file.write_text(json.dumps({
        "assistant_command": "aider-dev",
        "assistant_args": ["--no-auto-commits"],
        "catalog_file": "~/models.csv",
    }))

    settings = load_settings()
    assert settings.assistant_command == "aider-dev"
    assert settings.assistant_args == ["--no-auto-commits"]
    assert settings.catalog_path == Path.home() / "models.csv"


def test_env_overrides_catalog(mock_home_dir, temp_dir, monkeypatch):
    config_file = temp_dir / "config.json"
    config_file.write_text(json.dumps({"catalog_file": "a.csv"}))
    monkeypatch.setenv("MODEL_OPTIMIZER_CATALOG", "b.csv")

    assert load_settings(config_file).catalog_file == "b.csv"


def test_unknown_keys_are_ignored(mock_home_dir, temp_dir):
    config_file = temp_dir / "config.json"
    config_file.write_text(json.dumps({"use_case": "code", "ollama_binary": "/opt/ollama"}))

    settings = load_settings(config_file)
    assert settings.ollama_binary == "/opt/ollama"


@pytest.mark.parametrize("content", [
    "{not json",
    "[1, 2]",
    json.dumps({"assistant_args": "--yes"}),
    json.dumps({"ollama_binary": 3}),
])
def test_invalid_config(mock_home_dir, temp_dir, content):
    config_file = temp_dir / "config.json"
    config_file.write_text(content)

    with pytest.raises(ConfigError):
        load_settings(config_file)


def test_unreadable_config(mock_home_dir):
    # a directory at the config path cannot be opened as a file
    default_config_path().mkdir(parents=True)

    with pytest.raises(ConfigError) as exc_info:
        load_settings()
    assert "Cannot read" in str(exc_info.value)
