"""One user's analysis session: classify, then score, one image at a time."""

import logging

from dataclasses import dataclass
from typing import Optional

from .adapter import InferenceError, LabelClassifier, LoadState, ModelLoadError
from .config import EngineConfig
from .scorer import EvidenceScorer, Verdict


logger = logging.getLogger(__name__)


class AnalysisInProgressError(RuntimeError):
    """Raised when analyze() is called while another analysis is running."""


@dataclass(frozen=True)
class Notice:
    """User-facing status message.

    Attributes:
        message: Text to show.
        persistent: True for load failures (analysis disabled), False for
            transient per-request failures.
    """

    message: str
    persistent: bool = False


class AnalysisSession:
    """Runs the adapter and the scorer for one session.

    Only one analysis may be in flight; a second call is rejected rather
    than queued.
    """

    def __init__(self, classifier: LabelClassifier, scorer: EvidenceScorer):
        self.classifier = classifier
        self.scorer = scorer
        self.notice: Optional[Notice] = None
        self.last_verdict: Optional[Verdict] = None
        self._busy = False

    @classmethod
    def from_config(cls, config=None, loader=None):
        if config is None:
            config = EngineConfig.load()
        return cls(
            classifier=LabelClassifier.from_config(config, loader=loader),
            scorer=EvidenceScorer.from_config(config),
        )

    @property
    def available(self) -> bool:
        """False once the model failed to load, until reload() succeeds."""
        return self.classifier.state is not LoadState.FAILED

    @property
    def busy(self) -> bool:
        return self._busy

    async def analyze(self, image) -> Verdict:
        """Classify ``image`` and score its labels.

        Raises:
            AnalysisInProgressError: if another analysis is running.
            ModelLoadError: if the model is unavailable.
            InferenceError: if this image could not be classified.
        """
        if self._busy:
            raise AnalysisInProgressError("An analysis is already running")
        self._busy = True
        try:
            predictions = await self.classifier.classify(image)
        except ModelLoadError as e:
            self.notice = Notice(f"Image analysis is unavailable: {e}", persistent=True)
            raise
        except InferenceError as e:
            self.notice = Notice(f"Analysis failed, please try again: {e}")
            raise
        finally:
            self._busy = False

        verdict = self.scorer.score(predictions)
        self.notice = None
        self.last_verdict = verdict
        logger.info(f"Verdict: {verdict}")
        return verdict

    async def reload(self):
        """Retry loading the model after a failure."""
        try:
            await self.classifier.reload()
        except ModelLoadError as e:
            self.notice = Notice(f"Image analysis is unavailable: {e}", persistent=True)
            raise
        self.notice = None
