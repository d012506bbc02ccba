from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import yaml

import config


@pytest.fixture
def cfg_path(monkeypatch, tmp_path):
    path = tmp_path / "taskcanon.yaml"
    monkeypatch.setattr(config, "USER_CONFIG_PATH", path)
    monkeypatch.delenv(config.CONFIG_ENV, raising=False)
    return path


def test_defaults_when_missing(cfg_path):
    settings = config.load_settings()
    assert settings.flags == config.FormatterFlags(True, True, True)
    assert settings.debounce_ms == 300


def test_set_option_persists(cfg_path):
    config.set_option("on-line-commit", "off")
    config.set_option("debounce_ms", "120")
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    assert data == {"on_line_commit": False, "debounce_ms": 120}
    flags = config.load_flags()
    assert flags.master is True
    assert flags.on_line_commit is False
    assert config.load_settings().debounce_ms == 120


def test_set_option_rejects_bad_input(cfg_path):
    with pytest.raises(ValueError):
        config.set_option("colour", "blue")
    with pytest.raises(ValueError):
        config.set_option("enabled", "maybe")
    with pytest.raises(ValueError):
        config.set_option("debounce_ms", "-5")
    assert not cfg_path.exists()


def test_unreadable_yaml_falls_back_to_defaults(cfg_path):
    cfg_path.write_text("enabled: [unclosed", encoding="utf-8")
    assert config.load_flags() == config.FormatterFlags()


def test_non_mapping_yaml_is_ignored(cfg_path):
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
    assert config.load_settings().debounce_ms == 300


def test_invalid_values_fall_back_per_key(cfg_path):
    cfg_path.write_text("enabled: perhaps\non_leaf_change: no\ndebounce_ms: soon\n", encoding="utf-8")
    settings = config.load_settings()
    assert settings.flags.master is True
    assert settings.flags.on_leaf_change is False
    assert settings.debounce_ms == 300


def test_env_override(monkeypatch, tmp_path):
    other = tmp_path / "other.yaml"
    other.write_text("enabled: false\n", encoding="utf-8")
    monkeypatch.setenv(config.CONFIG_ENV, str(other))
    assert config.config_path() == other
    assert config.load_flags().master is False
    assert config.settings_snapshot()["path"] == str(other)
