"""
Tests for the realcheck command. The Hugging Face backend is replaced with a
fake loader so no model is downloaded.
"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from realcheck.cli import main

from conftest import FakeBackend, FakeLoader


@pytest.fixture
def fake_model(monkeypatch):
    def install(labels=None, error=None, failures=0):
        loader = FakeLoader(FakeBackend(labels=labels, error=error), failures=failures)
        monkeypatch.setattr("realcheck.adapter.TransformersBackend", loader)
        return loader

    return install


def test_text_output(fake_model, png_file):
    fake_model(labels=[("digital art", 0.9), ("sky", 0.1)])
    result = CliRunner().invoke(main, [str(png_file)])
    assert result.exit_code == 0, result.output
    assert "[AI]  confidence=90.0%" in result.output
    assert "stage=keyword" in result.output
    assert "digital art (ai)" in result.output


def test_json_output(fake_model, png_file):
    fake_model(labels=[("photograph", 0.95)])
    result = CliRunner().invoke(main, [str(png_file), "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["prediction"] == "real"
    assert payload["confidence"] == pytest.approx(1.0)
    assert payload["details"]["realScore"] == pytest.approx(1.0)
    assert payload["stage"] == "keyword"


def test_display_flag_applies_floor(fake_model, png_file):
    fake_model(labels=[("teapot", 0.45), ("bagel", 0.25), ("umbrella", 0.1)])
    result = CliRunner().invoke(main, [str(png_file), "--json", "--display"])
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["confidence"] == 0.7
    assert payload["rule"] == "default_bias"


def test_model_overrides_reach_loader(monkeypatch, png_file):
    backend = FakeBackend()
    seen = []

    def loader(model_id, device):
        seen.append((model_id, device))
        return backend

    monkeypatch.setattr("realcheck.adapter.TransformersBackend", loader)
    result = CliRunner().invoke(main, [str(png_file), "--model-id", "org/other", "--device", "cpu", "--top-k", "3"])
    assert result.exit_code == 0, result.output
    assert seen == [("org/other", "cpu")]
    assert backend.calls[-1][1] == 3


def test_load_failure_exit_code(fake_model, png_file):
    fake_model(failures=1)
    result = CliRunner().invoke(main, [str(png_file)])
    assert result.exit_code == 2
    assert "failed to load" in result.output


def test_inference_failure_exit_code(fake_model, png_file):
    fake_model(error=RuntimeError("boom"))
    result = CliRunner().invoke(main, [str(png_file)])
    assert result.exit_code == 1
    assert "[ERROR]" in result.output


def test_bad_config_exit_code(fake_model, png_file, tmp_path):
    fake_model()
    bad = tmp_path / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    result = CliRunner().invoke(main, [str(png_file), "--config", str(bad)])
    assert result.exit_code == 3
    assert "invalid config" in result.output


def test_config_from_environment(fake_model, png_file, tmp_path):
    fake_model()
    bad = tmp_path / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    result = CliRunner().invoke(main, [str(png_file)], env={"REALCHECK_CONFIG": str(bad)})
    assert result.exit_code == 3


def test_missing_image_rejected():
    result = CliRunner().invoke(main, ["/nonexistent/photo.jpg"])
    assert result.exit_code != 0
