"""Detector runtime: ONNX Runtime sessions and model artifact retrieval."""

from pathlib import Path
from typing import Protocol, Union
from urllib.parse import urlparse

import aiohttp
import numpy as np
import onnxruntime as ort

from ..utils.error_handler import ModelLoadError
from ..utils.log import get_logger

logger = get_logger(__name__)

MODEL_FILENAME = "model.onnx"


class ModelBackend(Protocol):
    def predict(self, tensor: np.ndarray) -> np.ndarray:
        ...


class OnnxModelBackend:
    """Runs a YOLO-style detector exported to ONNX."""

    def __init__(self, session: ort.InferenceSession):
        self.session = session
        model_input = session.get_inputs()[0]
        self.input_name = model_input.name
        shape = model_input.shape
        # exported graphs are NCHW unless the last axis is the channel axis
        self.channels_first = not (len(shape) == 4 and shape[-1] == 3)

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        """Forward pass on a ``[1, H, W, 3]`` tensor, returns the first output."""
        feed = np.ascontiguousarray(tensor.transpose(0, 3, 1, 2)) if self.channels_first else tensor
        outputs = self.session.run(None, {self.input_name: feed})
        return outputs[0]


def resolve_model_file(path: Union[str, Path]) -> Path:
    """Accept either the ``.onnx`` file itself or the bundle directory holding it."""
    model_path = Path(path)
    if model_path.is_dir():
        model_path = model_path / MODEL_FILENAME
    if not model_path.is_file():
        raise ModelLoadError(
            f"Model file not found: {model_path}",
            details={"model_path": str(path)},
        )
    return model_path


def load_backend(path: Union[str, Path]) -> OnnxModelBackend:
    """Open an ONNX Runtime session for a local model file (blocking)."""
    model_file = resolve_model_file(path)
    try:
        session = ort.InferenceSession(str(model_file), providers=["CPUExecutionProvider"])
    except Exception as e:
        raise ModelLoadError(
            f"Failed to parse model: {model_file}",
            details={"model_path": str(model_file), "error": str(e)},
        ) from e

    logger.info("Model session created", model_path=str(model_file),
                providers=session.get_providers())
    return OnnxModelBackend(session)


def is_remote(path: Union[str, Path]) -> bool:
    return urlparse(str(path)).scheme in ("http", "https")


async def download_model(url: str, cache_dir: Union[str, Path]) -> Path:
    """Fetch a remote model artifact into ``cache_dir`` and return its local path."""
    cache_path = Path(cache_dir)
    cache_path.mkdir(parents=True, exist_ok=True)
    filename = Path(urlparse(url).path).name or MODEL_FILENAME
    target = cache_path / filename
    partial = target.with_name(target.name + ".part")

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise ModelLoadError(
                        f"Model download failed with HTTP {response.status}",
                        details={"url": url, "status": response.status},
                    )
                with open(partial, "wb") as f:
                    async for chunk in response.content.iter_chunked(1 << 16):
                        f.write(chunk)
        partial.replace(target)
    except aiohttp.ClientError as e:
        raise ModelLoadError(
            "Model download failed",
            details={"url": url, "error": str(e)},
        ) from e
    finally:
        partial.unlink(missing_ok=True)

    logger.info("Model downloaded", url=url, path=str(target))
    return target
