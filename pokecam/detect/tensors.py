"""Scoped ownership of intermediate detector buffers."""

from typing import List, TypeVar

import numpy as np

T = TypeVar("T", bound=np.ndarray)


class TensorScope:
    """Tracks buffers created during one detection call and releases them on exit.

    Usage::

        with TensorScope() as scope:
            tensor = scope.track(make_tensor())
            ...

    Every tracked buffer is released when the ``with`` block exits, whether
    it returns normally or raises.
    """

    def __init__(self):
        self._tensors: List[np.ndarray] = []
        self.released = 0

    @property
    def live(self) -> int:
        """Number of tracked buffers not yet released."""
        return len(self._tensors)

    def track(self, tensor: T) -> T:
        self._tensors.append(tensor)
        return tensor

    def release_all(self) -> None:
        while self._tensors:
            self._tensors.pop()
            self.released += 1

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release_all()
        return False
