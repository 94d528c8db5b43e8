"""Pytest configuration and shared fixtures for card camera tests."""

from typing import List, Sequence, Tuple

import numpy as np
import pytest

from pokecam.detect.runner import CardDetectorService


def make_predictions(
    anchors: Sequence[Tuple[float, float, float, float, float]],
    class_scores: Sequence[Sequence[float]] = None,
    batched: bool = True,
) -> np.ndarray:
    """Build a raw detector output from ``(cx, cy, w, h, score)`` anchors.

    One class row is added per entry of ``class_scores`` (defaults to a
    single class row of ones).
    """
    columns = np.asarray(anchors, dtype=np.float32).reshape(-1, 5).T
    if class_scores is None:
        class_scores = [[1.0] * columns.shape[1]]
    rows = np.concatenate([columns, np.asarray(class_scores, dtype=np.float32)], axis=0)
    return rows[np.newaxis, ...] if batched else rows


def corners_to_anchor(x1, y1, x2, y2, score):
    """``(cx, cy, w, h, score)`` for a model-space corner box."""
    return ((x1 + x2) / 2, (y1 + y2) / 2, x2 - x1, y2 - y1, score)


class FakeBackend:
    """Stands in for an ONNX session; returns a canned prediction."""

    def __init__(self, output: np.ndarray = None, error: Exception = None):
        self.output = output if output is not None else make_predictions([])
        self.error = error
        self.inputs: List[np.ndarray] = []

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        self.inputs.append(tensor)
        if self.error is not None:
            raise self.error
        return self.output


class FakeCamera:
    """Camera double serving a fixed BGR frame."""

    def __init__(self, frame: np.ndarray = None):
        self.frame = frame if frame is not None else np.zeros((480, 640, 3), dtype=np.uint8)
        self.reads = 0
        self.released = False

    def read_frame(self):
        self.reads += 1
        return None if self.frame is None else self.frame.copy()

    def release(self):
        self.released = True


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def loaded_detector(fake_backend):
    """Detector whose model is already loaded with ``fake_backend``."""
    detector = CardDetectorService(loader=lambda path: fake_backend)
    detector.model = fake_backend
    return detector


@pytest.fixture
def fake_camera():
    frame = np.full((1080, 1920, 3), 40, dtype=np.uint8)
    return FakeCamera(frame)


@pytest.fixture
def sample_frame():
    """1920x1080 BGR frame with a bright card-sized rectangle."""
    frame = np.zeros((1080, 1920, 3), dtype=np.uint8)
    frame[100:700, 300:800] = 255
    return frame


# Configure pytest options
def pytest_configure(config):
    """Configure pytest with custom options."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in item.name.lower():
            item.add_marker(pytest.mark.integration)

        if any(slow_indicator in item.name.lower() for slow_indicator in ['performance', 'random']):
            item.add_marker(pytest.mark.slow)

        if not item.get_closest_marker('integration') and not item.get_closest_marker('slow'):
            item.add_marker(pytest.mark.unit)
