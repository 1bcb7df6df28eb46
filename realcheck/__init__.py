"""realcheck: real photograph vs. AI-generated image verdicts from image labels.

Quick start:
    import asyncio
    from realcheck import AnalysisSession

    session = AnalysisSession.from_config()
    verdict = asyncio.run(session.analyze("photo.jpg"))
    print(verdict.prediction, verdict.confidence)

Scoring labels directly:
    from realcheck import score

    score([{"label": "digital art", "score": 0.9}, {"label": "sky", "score": 0.1}])
"""

__version__ = "1.0.0"

from .adapter import ClassifierError, InferenceError, LabelClassifier, LoadState, ModelLoadError
from .config import EngineConfig, KeywordSet
from .scorer import EvidenceScorer, EvidenceScores, LabelPrediction, ValidationError, Verdict, score
from .session import AnalysisInProgressError, AnalysisSession, Notice

__all__ = [
    "AnalysisInProgressError",
    "AnalysisSession",
    "ClassifierError",
    "EngineConfig",
    "EvidenceScorer",
    "EvidenceScores",
    "InferenceError",
    "KeywordSet",
    "LabelClassifier",
    "LabelPrediction",
    "LoadState",
    "ModelLoadError",
    "Notice",
    "ValidationError",
    "Verdict",
    "score",
    "__version__",
]
