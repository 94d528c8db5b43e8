"""Tests for scoped buffer release."""

import numpy as np
import pytest

from pokecam.detect.tensors import TensorScope


class TestTensorScope:

    def test_releases_on_normal_exit(self):
        with TensorScope() as scope:
            a = scope.track(np.zeros(3))
            scope.track(np.ones(2))
            assert scope.live == 2
            assert a.shape == (3,)

        assert scope.live == 0
        assert scope.released == 2

    def test_releases_on_exception(self):
        scope = TensorScope()
        with pytest.raises(RuntimeError):
            with scope:
                scope.track(np.zeros(3))
                raise RuntimeError("boom")

        assert scope.live == 0
        assert scope.released == 1

    def test_track_returns_same_object(self):
        buf = np.arange(4)
        with TensorScope() as scope:
            assert scope.track(buf) is buf
