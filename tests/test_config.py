"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from hybrid_reco.configs import get_config_value, load_config, validate_config

REPO_CONFIG = Path(__file__).parent.parent / "configs" / "config.yaml"


def test_repository_config_is_valid():
    config = load_config(str(REPO_CONFIG))
    assert validate_config(config) == []
    assert get_config_value(config, "scoring.alpha") == 0.6


def test_load_config(config_file):
    config = load_config(str(config_file))
    assert config["scoring"]["neighbors"] == 2
    assert validate_config(config) == []


def test_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("scoring: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_config(str(path))


def test_missing_sections():
    issues = validate_config({"global": {}})
    assert "Missing required section: data" in issues
    assert "Missing required section: batch" in issues


def test_out_of_range_values(config_file):
    config = load_config(str(config_file))
    config["scoring"]["alpha"] = 1.5
    config["scoring"]["neighbors"] = 0
    config["fallback"]["mode"] = "random"
    config["batch"]["task_timeout_seconds"] = -1
    config["output"]["format"] = "parquet"
    issues = validate_config(config)
    assert len(issues) == 5
    assert any("alpha" in issue for issue in issues)
    assert any("scoring.neighbors" in issue for issue in issues)


def test_get_config_value():
    config = {"data": {"interactions": {"path": "x.csv"}}}
    assert get_config_value(config, "data.interactions.path") == "x.csv"
    assert get_config_value(config, "data.features.path") is None
    assert get_config_value(config, "data.delimiter", ",") == ","
