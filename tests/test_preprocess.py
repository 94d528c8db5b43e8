"""Tests for frame preprocessing."""

import numpy as np
import pytest

from pokecam.detect.preprocess import pad_to_square, preprocess_frame, resize_bilinear
from pokecam.utils.error_handler import InvalidFrameError


class TestPadToSquare:
    """Padding goes on the bottom and right edges only."""

    @pytest.mark.parametrize("width,height", [(1920, 1080), (1080, 1920), (640, 480), (300, 301)])
    def test_pads_to_max_side(self, width, height):
        image = np.full((height, width, 3), 7, dtype=np.uint8)
        padded, max_size = pad_to_square(image)

        assert max_size == max(width, height)
        assert padded.shape == (max_size, max_size, 3)
        # original pixels stay anchored at the top-left corner
        assert np.all(padded[:height, :width] == 7)
        # everything else is zero padding
        assert np.all(padded[height:, :] == 0)
        assert np.all(padded[:, width:] == 0)

    def test_wide_frame_pads_bottom_rows(self):
        image = np.ones((1080, 1920, 3), dtype=np.uint8)
        padded, _ = pad_to_square(image)
        assert np.count_nonzero(padded.any(axis=(1, 2)) == 0) == 1920 - 1080
        assert padded[0].any() and not padded[-1].any()

    def test_tall_frame_pads_right_columns(self):
        image = np.ones((400, 100, 3), dtype=np.uint8)
        padded, _ = pad_to_square(image)
        assert np.count_nonzero(padded.any(axis=(0, 2)) == 0) == 300
        assert padded[:, 0].any() and not padded[:, -1].any()

    def test_square_frame_unchanged(self):
        image = np.random.randint(0, 255, (50, 50, 3), dtype=np.uint8)
        padded, max_size = pad_to_square(image)
        assert max_size == 50
        np.testing.assert_array_equal(padded, image)


class TestResizeBilinear:
    """Corner-aligned bilinear sampling: output i reads source i * in / out."""

    def test_downscale_picks_even_pixels(self):
        image = np.arange(16, dtype=np.uint8).reshape(4, 4, 1)

        resized = resize_bilinear(image, 2, 2)

        # source pixels (0,0), (0,2), (2,0), (2,2)
        np.testing.assert_array_equal(resized[..., 0], [[0, 2], [8, 10]])
        assert resized.dtype == np.float32

    def test_upscale_blends_and_clamps_last_row(self):
        image = np.array([[0, 100], [200, 40]], dtype=np.uint8).reshape(2, 2, 1)

        resized = resize_bilinear(image, 4, 4)[..., 0]

        # source positions 0, 0.5, 1, 1.5 with the upper index clamped to 1
        np.testing.assert_allclose(resized[0], [0, 50, 100, 100])
        np.testing.assert_allclose(resized[1], [100, 85, 70, 70])
        np.testing.assert_allclose(resized[2], [200, 120, 40, 40])
        np.testing.assert_allclose(resized[3], resized[2])

    def test_non_integer_scale(self):
        image = np.array([[0, 30, 60]], dtype=np.uint8).reshape(1, 3, 1)

        resized = resize_bilinear(image, 2, 1)[0, :, 0]

        # positions 0 and 1.5
        np.testing.assert_allclose(resized, [0, 45])

    def test_no_half_pixel_offset_on_large_downscale(self):
        rng = np.random.default_rng(3)
        frame = rng.integers(0, 256, size=(1280, 1280, 3), dtype=np.uint8)

        tensor = preprocess_frame(frame, 64, 64).input[0]

        # scale is exactly 20, so every output pixel is one source pixel
        np.testing.assert_allclose(tensor, frame[::20, ::20] / 255.0, atol=1e-6)


class TestPreprocessFrame:
    """Test the full frame-to-tensor conversion."""

    def test_output_shape_and_dtype(self):
        frame = np.random.randint(0, 255, (1080, 1920, 3), dtype=np.uint8)
        prepared = preprocess_frame(frame, 640, 640)

        assert prepared.input.shape == (1, 640, 640, 3)
        assert prepared.input.dtype == np.float32
        assert prepared.input.min() >= 0.0
        assert prepared.input.max() <= 1.0

    def test_records_original_and_padded_dimensions(self):
        frame = np.zeros((1080, 1920, 3), dtype=np.uint8)
        prepared = preprocess_frame(frame)

        assert prepared.original_width == 1920
        assert prepared.original_height == 1080
        assert prepared.padded_width == 1920
        assert prepared.padded_height == 1920

    def test_normalises_to_unit_range(self):
        frame = np.full((64, 64, 3), 255, dtype=np.uint8)
        prepared = preprocess_frame(frame, 640, 640)
        np.testing.assert_allclose(prepared.input, 1.0, atol=1e-6)

    def test_padding_region_is_zero_after_resize(self):
        # 200x100 content becomes the top half of a 200x200 square
        frame = np.full((100, 200, 3), 255, dtype=np.uint8)
        tensor = preprocess_frame(frame, 640, 640).input[0]

        np.testing.assert_allclose(tensor[:300], 1.0, atol=1e-6)
        np.testing.assert_allclose(tensor[340:], 0.0, atol=1e-6)

    def test_rgba_alpha_is_dropped(self):
        frame = np.zeros((32, 32, 4), dtype=np.uint8)
        frame[..., 0] = 255
        frame[..., 3] = 255
        tensor = preprocess_frame(frame, 64, 64).input[0]

        assert tensor.shape == (64, 64, 3)
        np.testing.assert_allclose(tensor[..., 0], 1.0, atol=1e-6)
        np.testing.assert_allclose(tensor[..., 1:], 0.0, atol=1e-6)

    def test_channel_order_is_preserved(self):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        frame[..., 2] = 51
        tensor = preprocess_frame(frame, 20, 20).input[0]
        np.testing.assert_allclose(tensor[..., 2], 0.2, atol=1e-6)
        np.testing.assert_allclose(tensor[..., :2], 0.0, atol=1e-6)

    @pytest.mark.parametrize("shape", [(0, 10, 3), (10, 0, 3), (0, 0, 4)])
    def test_zero_sized_frame_rejected(self, shape):
        with pytest.raises(InvalidFrameError):
            preprocess_frame(np.zeros(shape, dtype=np.uint8))

    def test_grayscale_frame_rejected(self):
        with pytest.raises(InvalidFrameError):
            preprocess_frame(np.zeros((10, 10), dtype=np.uint8))
