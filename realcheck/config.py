"""Engine configuration loaded from a versioned JSON file.

The packaged default lives at ``realcheck/data/config.json``. A custom file
with the same layout can be passed to :meth:`EngineConfig.load`.
"""

import json

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .rules import build_rules


DEFAULT_CONFIG_PATH = Path(__file__).parent / "data" / "config.json"


@dataclass(frozen=True)
class KeywordSet:
    """Two disjoint sets of lower-cased keyword substrings."""

    ai: frozenset
    real: frozenset
    version: str = "unversioned"

    def __post_init__(self):
        overlap = self.ai & self.real
        if overlap:
            raise ValueError(f"Keywords listed as both ai and real: {sorted(overlap)}")

    @classmethod
    def from_dict(cls, data, version="unversioned"):
        return cls(
            ai=_word_set(data, "ai", "keywords"),
            real=_word_set(data, "real", "keywords"),
            version=version,
        )


@dataclass(frozen=True)
class EngineConfig:
    """Everything tunable about the decision engine and its model.

    Attributes:
        version: Version string of the configuration artifact.
        keywords: KeywordSet for the keyword stage.
        fallback_top_k: Number of leading predictions inspected by the fallback stage.
        artificial_markers: Marker terms that tip the fallback toward "ai".
        natural_markers: Marker terms that tip the fallback toward "real".
        rules: Ordered fallback rule table.
        confidence_floor: Minimum displayed confidence, or None to disable.
        model_id: Hugging Face image-classification model to load.
        model_top_k: Number of labels requested from the model.
        device: "auto", "cpu" or "cuda".
    """

    version: str
    keywords: KeywordSet
    fallback_top_k: int
    artificial_markers: frozenset
    natural_markers: frozenset
    rules: tuple
    confidence_floor: Optional[float]
    model_id: str
    model_top_k: int
    device: str = "auto"

    @classmethod
    def load(cls, path=None):
        """Load and validate a config file. Defaults to the packaged config."""
        path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data):
        version = str(data.get("version", "unversioned"))
        model = data.get("model", {})
        fallback = _section(data, "fallback")
        markers = _section(fallback, "markers")
        display = data.get("display", {})

        floor = display.get("confidence_floor")
        if floor is not None:
            floor = float(floor)
            if not 0 <= floor <= 1:
                raise ValueError(f"display.confidence_floor must be in [0, 1], got {floor}")

        return cls(
            version=version,
            keywords=KeywordSet.from_dict(_section(data, "keywords"), version=version),
            fallback_top_k=_positive_int(fallback.get("top_k", 5), "fallback.top_k"),
            artificial_markers=_word_set(markers, "artificial", "fallback.markers"),
            natural_markers=_word_set(markers, "natural", "fallback.markers"),
            rules=build_rules(fallback.get("rules", [])),
            confidence_floor=floor,
            model_id=model.get("model_id", "google/vit-base-patch16-224"),
            model_top_k=_positive_int(model.get("top_k", 10), "model.top_k"),
            device=model.get("device", "auto"),
        )


def _section(data, key):
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' is missing or not an object")
    return value


def _word_set(data, key, where):
    words = data.get(key)
    if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
        raise ValueError(f"{where}.{key} must be a list of strings")
    cleaned = frozenset(w.strip().lower() for w in words)
    if "" in cleaned:
        raise ValueError(f"{where}.{key} contains an empty keyword")
    return cleaned


def _positive_int(value, where):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{where} must be a positive integer, got {value!r}")
    return value
