"""Evidence scorer: turns image labels into a real-vs-AI verdict.

Usage:
    from realcheck import EvidenceScorer, LabelPrediction

    scorer = EvidenceScorer.from_config()
    verdict = scorer.score([LabelPrediction("digital art", 0.9)])
    print(verdict)  # Verdict(prediction='ai', confidence=1.0000, stage=keyword)

Stages, each only reached when the previous found nothing:
    1. keyword   -- labels containing curated ai/real keywords add their score
    2. fallback  -- top-K score shape and marker terms select a fixed score pair
    3. empty     -- no predictions at all, both sides get 0.5
"""

import logging
import math

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from numbers import Real
from typing import Optional

from .config import EngineConfig
from .matcher import KeywordMatcher
from .rules import FallbackEvidence, select_rule


logger = logging.getLogger(__name__)

REAL = "real"
AI = "ai"


class ValidationError(ValueError):
    """Raised for malformed prediction input."""


@dataclass(frozen=True)
class LabelPrediction:
    """One (label, score) pair emitted by the labeling model."""

    label: str
    score: float


@dataclass(frozen=True)
class EvidenceScores:
    """Normalized evidence for each side. Sums to 1."""

    ai_score: float
    real_score: float


@dataclass(frozen=True)
class Verdict:
    """Result of scoring one image's labels.

    Attributes:
        prediction: "real" or "ai". Ties resolve to "real".
        confidence: max(ai_score, real_score).
        details: The normalized EvidenceScores.
        display_confidence: confidence raised to the display floor, if any.
        stage: Which stage decided: "keyword", "fallback" or "empty".
        rule: Name of the fallback rule applied, if the fallback stage decided.
        matched: (keyword, side) pairs found by the keyword stage.
    """

    prediction: str
    confidence: float
    details: EvidenceScores
    display_confidence: float
    stage: str
    rule: Optional[str] = None
    matched: tuple = field(default_factory=tuple)

    @property
    def is_ai(self) -> bool:
        return self.prediction == AI

    def to_dict(self, display=False) -> dict:
        """Render the presentation contract.

        Args:
            display: Report the display-calibrated confidence instead of the
                computed one.
        """
        return {
            "prediction": self.prediction,
            "confidence": self.display_confidence if display else self.confidence,
            "details": {
                "realScore": self.details.real_score,
                "aiScore": self.details.ai_score,
            },
        }

    def __repr__(self):
        extra = f", rule={self.rule}" if self.rule else ""
        return f"Verdict(prediction={self.prediction!r}, confidence={self.confidence:.4f}, stage={self.stage}{extra})"


def _coerce(item, index):
    if isinstance(item, LabelPrediction):
        label, value = item.label, item.score
    elif isinstance(item, Mapping):
        if "label" not in item or "score" not in item:
            raise ValidationError(f"Prediction {index} must have 'label' and 'score'")
        label, value = item["label"], item["score"]
    else:
        raise ValidationError(f"Prediction {index} has unsupported type {type(item).__name__}")

    if not isinstance(label, str):
        raise ValidationError(f"Prediction {index} label must be a string, got {type(label).__name__}")
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"Prediction {index} score must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f"Prediction {index} score is not finite: {value}")
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"Prediction {index} score {value} is outside [0, 1]")
    return LabelPrediction(label=label, score=value)


def validate_predictions(predictions) -> list:
    """Check and coerce input into a list of LabelPrediction.

    Accepts LabelPrediction instances or mappings with ``label``/``score``.

    Raises:
        ValidationError: on non-string labels or non-numeric, non-finite or
            out-of-range scores.
    """
    if predictions is None:
        raise ValidationError("Predictions must be a sequence, got None")
    return [_coerce(item, i) for i, item in enumerate(predictions)]


class EvidenceScorer:
    """Keyword-first, rule-table-fallback decision engine.

    Pure: the verdict depends only on the input predictions and the
    configuration given at construction.
    """

    def __init__(self, keywords, rules, markers, top_k=5, confidence_floor=None):
        self.keywords = keywords
        self.rules = tuple(rules)
        self.top_k = top_k
        self.confidence_floor = confidence_floor
        self._keyword_matcher = KeywordMatcher({AI: keywords.ai, REAL: keywords.real})
        self._marker_matcher = markers

    @classmethod
    def from_config(cls, config=None):
        """Build a scorer from an EngineConfig (defaults to the packaged config)."""
        if config is None:
            config = EngineConfig.load()
        markers = KeywordMatcher(
            {"artificial": config.artificial_markers, "natural": config.natural_markers}
        )
        return cls(
            keywords=config.keywords,
            rules=config.rules,
            markers=markers,
            top_k=config.fallback_top_k,
            confidence_floor=config.confidence_floor,
        )

    def keyword_evidence(self, predictions):
        """Accumulate raw scores for labels containing ai/real keywords.

        Returns:
            (ai_score, real_score, matched) where matched lists every
            (keyword, side) pair found. Empty ``matched`` means no evidence.
        """
        ai_score = 0.0
        real_score = 0.0
        matched = []
        for p in predictions:
            hits = self._keyword_matcher.find(p.label)
            sides = {side for _, side in hits}
            if AI in sides:
                ai_score += p.score
            if REAL in sides:
                real_score += p.score
            matched.extend(hit for hit in hits if hit not in matched)
        return ai_score, real_score, tuple(matched)

    def fallback_evidence(self, predictions) -> FallbackEvidence:
        return FallbackEvidence.collect(predictions, self.top_k, self._marker_matcher)

    def score(self, predictions) -> Verdict:
        """Score a (possibly empty) sequence of label predictions.

        Raises:
            ValidationError: if the input is malformed.
        """
        predictions = validate_predictions(predictions)

        rule_name = None
        ai_score, real_score, matched = self.keyword_evidence(predictions)
        if matched:
            stage = "keyword"
        elif predictions:
            stage = "fallback"
            evidence = self.fallback_evidence(predictions)
            rule = select_rule(self.rules, evidence)
            rule_name = rule.name
            ai_score, real_score = rule.ai_score, rule.real_score
            logger.debug(f"No keyword evidence; rule '{rule.name}' applied to {evidence}")
        else:
            stage = "empty"

        total = ai_score + real_score
        if total > 0:
            ai_score, real_score = ai_score / total, real_score / total
        else:
            ai_score = real_score = 0.5

        prediction = AI if ai_score > real_score else REAL
        confidence = max(ai_score, real_score)
        display_confidence = confidence
        if self.confidence_floor is not None:
            display_confidence = max(confidence, self.confidence_floor)

        return Verdict(
            prediction=prediction,
            confidence=confidence,
            details=EvidenceScores(ai_score=ai_score, real_score=real_score),
            display_confidence=display_confidence,
            stage=stage,
            rule=rule_name,
            matched=matched,
        )


@lru_cache(maxsize=1)
def default_scorer() -> EvidenceScorer:
    """Process-wide scorer built once from the packaged configuration."""
    return EvidenceScorer.from_config()


def score(predictions) -> Verdict:
    """Score predictions with the default scorer."""
    return default_scorer().score(predictions)
