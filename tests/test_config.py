"""
Tests for loading and validating the engine configuration file.
"""

from __future__ import annotations

import json

import pytest

from realcheck.config import DEFAULT_CONFIG_PATH, EngineConfig, KeywordSet


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _raw_default():
    return json.loads(DEFAULT_CONFIG_PATH.read_text(encoding="utf-8"))


def test_default_path_is_packaged():
    assert DEFAULT_CONFIG_PATH.name == "config.json"
    assert DEFAULT_CONFIG_PATH.parent.name == "data"


def test_packaged_config_loads(config):
    assert config.version == "1.2"
    assert "digital art" in config.keywords.ai
    assert "sky" in config.keywords.real
    assert config.keywords.version == "1.2"
    assert config.fallback_top_k == 5
    assert [r.name for r in config.rules] == [
        "dominant_subject",
        "diffuse_scores",
        "artificial_markers",
        "natural_markers",
        "default_bias",
    ]
    assert config.confidence_floor == 0.7
    assert config.model_top_k == 10
    assert config.device == "auto"


def test_keyword_sets_are_disjoint_and_lowercase(config):
    assert not config.keywords.ai & config.keywords.real
    for word in config.keywords.ai | config.keywords.real:
        assert word == word.lower().strip()


def test_overlapping_keywords_rejected():
    with pytest.raises(ValueError, match="both ai and real"):
        KeywordSet(ai=frozenset({"render", "photo"}), real=frozenset({"photo"}))


def test_keywords_normalized_on_load(tmp_path):
    data = _raw_default()
    data["keywords"] = {"ai": ["  CGI "], "real": ["Camera"]}
    config = EngineConfig.load(_write(tmp_path, data))
    assert config.keywords.ai == frozenset({"cgi"})
    assert config.keywords.real == frozenset({"camera"})


def test_custom_rules_and_floor(tmp_path):
    data = _raw_default()
    data["fallback"]["rules"] = [{"name": "always_real", "kind": "default", "ai": 0.0, "real": 1.0}]
    data["display"] = {"confidence_floor": None}
    config = EngineConfig.load(_write(tmp_path, data))
    assert [r.name for r in config.rules] == ["always_real"]
    assert config.confidence_floor is None


def test_missing_section_rejected(tmp_path):
    data = _raw_default()
    del data["keywords"]
    with pytest.raises(ValueError, match="keywords"):
        EngineConfig.load(_write(tmp_path, data))


def test_bad_keyword_list_rejected(tmp_path):
    data = _raw_default()
    data["keywords"]["ai"] = "digital art"
    with pytest.raises(ValueError, match="keywords.ai"):
        EngineConfig.load(_write(tmp_path, data))


def test_bad_top_k_rejected(tmp_path):
    data = _raw_default()
    data["fallback"]["top_k"] = 0
    with pytest.raises(ValueError, match="fallback.top_k"):
        EngineConfig.load(_write(tmp_path, data))


def test_bad_floor_rejected(tmp_path):
    data = _raw_default()
    data["display"]["confidence_floor"] = 1.5
    with pytest.raises(ValueError, match="confidence_floor"):
        EngineConfig.load(_write(tmp_path, data))


def test_invalid_json_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        EngineConfig.load(path)
