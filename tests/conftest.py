"""
Pytest fixtures for realcheck tests. The labeling model is replaced by a
fake backend injected through LabelClassifier's loader.
"""

from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from realcheck.config import EngineConfig
from realcheck.scorer import EvidenceScorer


class FakeBackend:
    """Returns canned (label, score) pairs and records what it was asked."""

    def __init__(self, labels=None, error=None):
        self.labels = labels if labels is not None else [("photograph", 0.8), ("digital art", 0.1)]
        self.error = error
        self.calls = []

    def predict(self, image, top_k):
        self.calls.append((image.size, top_k))
        if self.error is not None:
            raise self.error
        return list(self.labels)[:top_k]


class FakeLoader:
    """Loader callable that counts loads and can fail a number of times."""

    def __init__(self, backend=None, failures=0):
        self.backend = backend or FakeBackend()
        self.failures = failures
        self.calls = 0

    def __call__(self, model_id, device):
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError(f"cannot fetch {model_id}")
        return self.backend


@pytest.fixture
def config():
    return EngineConfig.load()


@pytest.fixture
def scorer(config):
    return EvidenceScorer.from_config(config)


@pytest.fixture
def png_bytes():
    buf = BytesIO()
    Image.new("RGB", (8, 6), color=(120, 30, 200)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    return path
