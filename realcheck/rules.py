"""Fallback policy table used when no label matches a keyword.

The table is an ordered list of named rules. Each rule is a predicate over
:class:`FallbackEvidence` plus a fixed, unnormalized ``(ai, real)`` score
pair. The first rule whose predicate holds decides; the table must end with
a ``default`` rule so that it always decides.

Rule kinds:
    dominant            count >= 2, top_score >= min_top_score and spread >= min_spread
    diffuse             count >= 2 and spread < max_spread
    artificial_markers  artificial marker terms present, natural ones absent
    natural_markers     natural marker terms present, artificial ones absent
    default             always
"""

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class FallbackEvidence:
    """Signals extracted from the top-K predictions.

    Attributes:
        top_score: Highest score among the predictions.
        spread: ``top_score`` minus the mean of the top-K scores.
        artificial: Whether an artificial marker term occurs in the top-K labels.
        natural: Whether a natural marker term occurs in the top-K labels.
        count: Number of top-K predictions with a non-zero score. Spread is
            only meaningful when at least two scores can differ.
    """

    top_score: float
    spread: float
    artificial: bool = False
    natural: bool = False
    count: int = 0

    @classmethod
    def collect(cls, predictions, top_k, markers):
        """Build evidence from a non-empty prediction sequence.

        Args:
            predictions: Sequence of LabelPrediction. Ranked here by score, so
                callers need not pre-sort.
            top_k: Number of leading predictions to inspect.
            markers: KeywordMatcher with ``artificial``/``natural`` groups.
        """
        ranked = sorted(predictions, key=lambda p: p.score, reverse=True)[:top_k]
        scores = [p.score for p in ranked]
        top_score = scores[0]
        spread = top_score - sum(scores) / len(scores)
        found = markers.tags(" ".join(p.label for p in ranked))
        return cls(
            top_score=top_score,
            spread=spread,
            artificial="artificial" in found,
            natural="natural" in found,
            count=sum(1 for s in scores if s > 0),
        )


@dataclass(frozen=True)
class Rule:
    """One row of the fallback table."""

    name: str
    kind: str
    predicate: Callable[[FallbackEvidence], bool]
    ai_score: float
    real_score: float

    def applies(self, evidence: FallbackEvidence) -> bool:
        return bool(self.predicate(evidence))


def _dominant(entry):
    min_top = _number(entry, "min_top_score")
    min_spread = _number(entry, "min_spread")
    return lambda e: e.count >= 2 and e.top_score >= min_top and e.spread >= min_spread


def _diffuse(entry):
    max_spread = _number(entry, "max_spread")
    return lambda e: e.count >= 2 and e.spread < max_spread


def _artificial_markers(entry):
    return lambda e: e.artificial and not e.natural


def _natural_markers(entry):
    return lambda e: e.natural and not e.artificial


def _default(entry):
    return lambda e: True


RULE_KINDS = {
    "dominant": _dominant,
    "diffuse": _diffuse,
    "artificial_markers": _artificial_markers,
    "natural_markers": _natural_markers,
    "default": _default,
}


def _number(entry, key):
    value = entry.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Rule '{entry.get('name')}' needs a numeric '{key}', got {value!r}")
    return float(value)


def build_rule(entry) -> Rule:
    """Build a :class:`Rule` from a config entry.

    Example entry:
        {"name": "diffuse_scores", "kind": "diffuse", "max_spread": 0.1,
         "ai": 0.75, "real": 0.25}
    """
    kind = entry.get("kind")
    if kind not in RULE_KINDS:
        raise ValueError(f"Unknown rule kind {kind!r}, expected one of {sorted(RULE_KINDS)}")
    name = entry.get("name") or kind
    ai_score = _number(entry, "ai")
    real_score = _number(entry, "real")
    if ai_score < 0 or real_score < 0:
        raise ValueError(f"Rule '{name}' scores must be non-negative")
    return Rule(
        name=name,
        kind=kind,
        predicate=RULE_KINDS[kind](entry),
        ai_score=ai_score,
        real_score=real_score,
    )


def build_rules(entries) -> tuple:
    """Build an ordered rule table. The last rule must be of kind ``default``."""
    rules = tuple(build_rule(entry) for entry in entries)
    if not rules or rules[-1].kind != "default":
        raise ValueError("Fallback rules must end with a 'default' rule")
    names = [r.name for r in rules]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate fallback rule names: {names}")
    return rules


def select_rule(rules, evidence: FallbackEvidence) -> Rule:
    """Return the first rule that applies to ``evidence``."""
    for rule in rules:
        if rule.applies(evidence):
            return rule
    raise ValueError("No fallback rule applied; the table has no 'default' rule")
