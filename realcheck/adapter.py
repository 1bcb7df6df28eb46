"""Label classifier adapter around a generic image-labeling model.

The adapter owns the model's lifecycle as an explicit state machine:

    UNLOADED -> LOADING -> READY
                LOADING -> FAILED   (sticky until reload())

Usage:
    import asyncio
    from realcheck import LabelClassifier

    classifier = LabelClassifier("google/vit-base-patch16-224")
    labels = asyncio.run(classifier.classify("photo.jpg"))
"""

import asyncio
import base64
import binascii
import enum
import logging

from io import BytesIO
from pathlib import Path

import torch

from PIL import Image

from .scorer import LabelPrediction


logger = logging.getLogger(__name__)


class ClassifierError(Exception):
    """Base class for adapter failures."""


class ModelLoadError(ClassifierError):
    """The backing model could not be loaded. Fatal until reload()."""


class InferenceError(ClassifierError):
    """A single classify() call failed. The adapter stays usable."""


class LoadState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class TransformersBackend:
    """Hugging Face image-classification model with softmax top-k output."""

    def __init__(self, model_id, device="auto"):
        from transformers import AutoImageProcessor, AutoModelForImageClassification

        if device == "auto":
            device = "cuda" if torch.cuda.is_available() else "cpu"

        self.model_id = model_id
        self.device = device
        self.processor = AutoImageProcessor.from_pretrained(model_id)
        self.model = AutoModelForImageClassification.from_pretrained(model_id)
        self.model.to(device)
        self.model.eval()
        self.id2label = self.model.config.id2label

    def predict(self, image, top_k):
        """Return up to ``top_k`` (label, score) pairs, highest score first."""
        if image.mode != "RGB":
            image = image.convert("RGB")

        inputs = self.processor(images=image, return_tensors="pt")
        inputs = {k: v.to(self.device) for k, v in inputs.items()}
        with torch.no_grad():
            logits = self.model(**inputs).logits
        probs = torch.softmax(logits, dim=-1)[0]

        k = min(top_k, probs.numel())
        scores, indices = torch.topk(probs, k)
        return [
            (self.id2label[int(i)], float(s))
            for s, i in zip(scores.cpu().tolist(), indices.cpu().tolist())
        ]


def load_image(image) -> Image.Image:
    """Decode an opaque image input.

    Args:
        image: Raw bytes, a ``data:`` URL, a file path (str/Path) or a PIL Image.

    Returns:
        A fully loaded PIL Image.
    """
    if isinstance(image, Image.Image):
        return image
    if isinstance(image, (bytes, bytearray, memoryview)):
        source = BytesIO(bytes(image))
    elif isinstance(image, str) and image.startswith("data:"):
        header, _, payload = image.partition(",")
        if ";base64" not in header:
            raise ValueError("Only base64-encoded data URLs are supported")
        try:
            source = BytesIO(base64.b64decode(payload, validate=True))
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload in data URL: {e}") from e
    elif isinstance(image, (str, Path)):
        source = image
    else:
        raise TypeError(f"Unsupported image type: {type(image)}")

    img = Image.open(source)
    img.load()
    return img


def _retrieve_exception(task):
    # A failed load whose waiters were all cancelled still counts as retrieved.
    if not task.cancelled():
        task.exception()


class LabelClassifier:
    """Loads a labeling model once and classifies images with it.

    Model access is serialized with an asyncio.Lock; loading and inference
    run in a worker thread so the event loop stays responsive.

    Args:
        model_id: Model identifier passed to the loader.
        device: "auto", "cpu" or "cuda".
        top_k: Number of labels returned per image.
        loader: Callable ``(model_id, device) -> backend`` where backend has
            ``predict(image, top_k) -> [(label, score), ...]``. Defaults to
            TransformersBackend.
    """

    def __init__(self, model_id="google/vit-base-patch16-224", device="auto", top_k=10, loader=None):
        self.model_id = model_id
        self.device = device
        self.top_k = top_k
        self._loader = loader or TransformersBackend
        self._backend = None
        self._state = LoadState.UNLOADED
        self._load_error = None
        self._load_task = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config, loader=None):
        return cls(
            model_id=config.model_id,
            device=config.device,
            top_k=config.model_top_k,
            loader=loader,
        )

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def load_error(self):
        return self._load_error

    async def load(self):
        """Load the model if needed. Concurrent callers share one load.

        Raises:
            ModelLoadError: if loading fails now or failed earlier.
        """
        if self._state is LoadState.READY:
            return
        if self._state is LoadState.FAILED:
            raise ModelLoadError(f"Model '{self.model_id}' failed to load: {self._load_error}")
        if self._load_task is None:
            self._state = LoadState.LOADING
            self._load_task = asyncio.ensure_future(self._load())
            self._load_task.add_done_callback(_retrieve_exception)
        await asyncio.shield(self._load_task)

    async def _load(self):
        logger.info(f"Loading labeling model '{self.model_id}' (device={self.device})")
        try:
            self._backend = await asyncio.to_thread(self._loader, self.model_id, self.device)
        except Exception as e:
            self._state = LoadState.FAILED
            self._load_error = repr(e)
            logger.error(f"Model '{self.model_id}' failed to load: {repr(e)}")
            raise ModelLoadError(f"Model '{self.model_id}' failed to load: {repr(e)}") from e
        finally:
            self._load_task = None
        self._state = LoadState.READY
        logger.info(f"Labeling model '{self.model_id}' ready")

    async def reload(self):
        """Explicitly retry after a failed load."""
        if self._state is LoadState.FAILED:
            self._state = LoadState.UNLOADED
            self._load_error = None
        await self.load()

    async def classify(self, image) -> list:
        """Label one image.

        Args:
            image: Raw bytes, data URL, file path or PIL Image.

        Returns:
            List of LabelPrediction sorted by descending score.

        Raises:
            ModelLoadError: if the model is unavailable.
            InferenceError: if this image could not be classified.
        """
        await self.load()
        async with self._lock:
            try:
                raw = await asyncio.to_thread(self._predict, image)
            except Exception as e:
                logger.error(f"Inference failed: {repr(e)}")
                raise InferenceError(f"Could not classify image: {e}") from e

        predictions = [LabelPrediction(label=str(label), score=float(score)) for label, score in raw]
        predictions.sort(key=lambda p: p.score, reverse=True)
        logger.debug(f"Model returned {len(predictions)} label(s): {predictions[:3]}")
        return predictions

    def _predict(self, image):
        return self._backend.predict(load_image(image), self.top_k)
