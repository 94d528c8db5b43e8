"""Card detector service: model lifecycle and single-image detection."""

import asyncio
import traceback
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from ..core.constants import (
    IOU_THRESHOLD,
    MAX_DETECTIONS,
    MODEL_HEIGHT,
    MODEL_WIDTH,
    SCORE_THRESHOLD,
)
from ..core.types import BoundingBox, DetectionResult
from ..utils.config import settings
from ..utils.error_handler import (
    InferenceError,
    ModelLoadError,
    ModelNotReadyError,
    PokecamError,
)
from ..utils.log import LoggerMixin
from .backend import ModelBackend, download_model, is_remote, load_backend
from .postprocess import (
    gather_detections,
    non_max_suppression_async,
    split_predictions,
    to_bounding_boxes,
)
from .preprocess import preprocess_frame
from .tensors import TensorScope

ModelLoader = Callable[[Union[str, Path]], ModelBackend]


class CardDetectorService(LoggerMixin):
    """Owns one detector model and turns frames into card bounding boxes.

    Construct one instance at startup and hand it to whatever needs
    detection. The model is loaded at most once per instance; concurrent
    ``load_model`` calls share a single in-flight load.
    """

    def __init__(
        self,
        loader: ModelLoader = load_backend,
        num_classes: Optional[int] = None,
        cache_dir: Optional[Union[str, Path]] = None,
    ):
        self._loader = loader
        self._cache_dir = Path(cache_dir or settings.MODEL_CACHE_DIR)
        self.model: Optional[ModelBackend] = None
        self._model_loading: Optional[asyncio.Future] = None
        self.num_classes = num_classes or settings.NUM_CLASSES

    async def load_model(self, model_path: Optional[Union[str, Path]] = None) -> None:
        """Load the detector once; callers arriving mid-load wait on the same load.

        Raises:
            ModelLoadError: If fetching or parsing the model fails. The
                in-flight load is forgotten so a later call can retry.
        """
        if self.model is not None:
            return

        if self._model_loading is None:
            path = model_path or settings.MODEL_PATH
            self._model_loading = asyncio.ensure_future(self._load(path))

        await asyncio.shield(self._model_loading)

    async def _load(self, model_path: Union[str, Path]) -> None:
        try:
            with self.timed_operation("model_load", model_path=str(model_path)):
                local_path = model_path
                if is_remote(model_path):
                    local_path = await download_model(str(model_path), self._cache_dir)

                loop = asyncio.get_running_loop()
                model = await loop.run_in_executor(None, self._loader, local_path)
        except Exception as e:
            self._model_loading = None
            if isinstance(e, ModelLoadError):
                raise
            raise ModelLoadError(
                "Error loading model",
                details={"model_path": str(model_path), "error": str(e)},
            ) from e

        self.model = model

    def log_context(self):
        return {"num_classes": self.num_classes, "model_loaded": self.model is not None}

    def is_model_loaded(self) -> bool:
        return self.model is not None

    def set_num_class(self, num_classes: int) -> None:
        if num_classes < 1:
            raise ValueError("num_classes must be at least 1")
        self.num_classes = num_classes

    async def detect_single_image(self, frame: np.ndarray) -> List[BoundingBox]:
        """Detect cards in one RGB(A) frame.

        Returns:
            Boxes in original frame pixels, best score first, after
            score filtering and non-max suppression.

        Raises:
            ModelNotReadyError: If no model has been loaded.
            InvalidFrameError: If the frame is empty or malformed.
            InferenceError: If the forward pass or decoding fails.
        """
        if self.model is None:
            raise ModelNotReadyError("Model not loaded")

        with TensorScope() as scope:
            try:
                prepared = preprocess_frame(frame, MODEL_WIDTH, MODEL_HEIGHT)
                scope.track(prepared.input)

                raw = scope.track(np.asarray(self.model.predict(prepared.input)))
                boxes, scores, classes = split_predictions(raw, self.num_classes)
                scope.track(boxes)
                scope.track(scores)
                scope.track(classes)

                keep = scope.track(await non_max_suppression_async(
                    boxes, scores, MAX_DETECTIONS, IOU_THRESHOLD, SCORE_THRESHOLD
                ))
                detections = scope.track(gather_detections(boxes, scores, classes, keep))
                results = to_bounding_boxes(
                    detections,
                    prepared.original_width,
                    prepared.original_height,
                    prepared.padded_width,
                    prepared.padded_height,
                    MODEL_WIDTH,
                    MODEL_HEIGHT,
                )
            except Exception as e:
                # frames below this one still hold buffers as arguments
                traceback.clear_frames(e.__traceback__)
                if isinstance(e, PokecamError):
                    raise
                raise InferenceError(
                    "Detection failed",
                    details={"frame_shape": tuple(frame.shape), "error": str(e)},
                ) from e
            finally:
                # a raised error's traceback keeps this frame's locals alive
                prepared = raw = boxes = scores = classes = keep = detections = None

        self.logger.debug("Detection finished", boxes=len(results),
                          frame_size=f"{frame.shape[1]}x{frame.shape[0]}")
        return results

    async def detect_images(self, frames: Sequence[np.ndarray]) -> List[DetectionResult]:
        """Detect cards in several frames, loading the model first if needed.

        A frame that fails yields an empty detection list at its index.
        """
        if self.model is None:
            await self.load_model()

        results: List[DetectionResult] = []
        for i, frame in enumerate(frames):
            try:
                detections = await self.detect_single_image(frame)
            except PokecamError as e:
                self.logger.error("Error detecting objects in image",
                                  image_index=i, error=str(e))
                detections = []
            results.append(DetectionResult(image_index=i, detections=detections))
        return results
