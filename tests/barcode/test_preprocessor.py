"""Unit tests for barcode image preprocessing transforms."""

import numpy as np
import pytest

from src.barcode.config_loader import PreprocessingConfig
from src.barcode.preprocessor import ImagePreprocessor
from src.barcode.types import PreprocessKind
from src.common.deadline import Deadline
from src.common.exceptions import DeadlineExceeded, InvalidImage
from src.common.types import ImageBuffer


@pytest.fixture
def preprocessor():
    """Provide preprocessor with default parameters."""
    return ImagePreprocessor()


def _pixel_image(r, g, b):
    return np.array([[[r, g, b]]], dtype=np.uint8)


class TestTransformPurity:
    """Test transforms never modify their input."""

    @pytest.mark.parametrize("kind", list(PreprocessKind))
    def test_input_not_mutated(self, preprocessor, rgb_image, kind):
        """Test every transform leaves the input array untouched."""
        original = rgb_image.copy()
        result = preprocessor.transform(rgb_image, kind)

        assert isinstance(result, ImageBuffer)
        assert result.data is not rgb_image
        np.testing.assert_array_equal(rgb_image, original)

    @pytest.mark.parametrize("kind", list(PreprocessKind))
    def test_deterministic(self, preprocessor, rgb_image, kind):
        """Test the same input gives the same output."""
        first = preprocessor.transform(rgb_image, kind)
        second = preprocessor.transform(rgb_image, kind)
        np.testing.assert_array_equal(first.data, second.data)

    def test_zero_sized_input(self, preprocessor):
        """Test zero-sized input raises InvalidImage."""
        with pytest.raises(InvalidImage):
            preprocessor.transform(np.zeros((0, 5, 3), dtype=np.uint8), PreprocessKind.IDENTITY)


class TestUpscale:
    """Test nearest-neighbor upscaling."""

    def test_doubles_size_without_smoothing(self, preprocessor, rgb_image):
        """Test 2x upscale repeats pixels (hard edges kept)."""
        result = preprocessor.transform(rgb_image, PreprocessKind.UPSCALE, 2)

        assert result.shape == (48, 64, 3)
        np.testing.assert_array_equal(result.data[::2, ::2], rgb_image)
        np.testing.assert_array_equal(result.data[1::2, 1::2], rgb_image)

    def test_triple_grayscale(self, preprocessor):
        """Test 3x upscale of a grayscale image."""
        image = np.array([[0, 255]], dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.UPSCALE, 3)

        assert result.shape == (3, 6)
        assert set(result.data[:, :3].flatten()) == {0}
        assert set(result.data[:, 3:].flatten()) == {255}

    def test_keeps_singleton_channel(self, preprocessor):
        """Test (H, W, 1) input keeps its channel axis."""
        image = np.zeros((4, 4, 1), dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.UPSCALE, 2)
        assert result.shape == (8, 8, 1)

    @pytest.mark.parametrize("factor", [0, -1, 10])
    def test_invalid_factor(self, preprocessor, rgb_image, factor):
        """Test out-of-range factors raise ValueError."""
        with pytest.raises(ValueError):
            preprocessor.transform(rgb_image, PreprocessKind.UPSCALE, factor)


class TestGrayscale:
    """Test channel averaging."""

    def test_channel_average(self, preprocessor):
        """Test every color channel becomes the mean of R, G and B."""
        result = preprocessor.transform(_pixel_image(10, 20, 30), PreprocessKind.GRAYSCALE)
        np.testing.assert_array_equal(result.data[0, 0], [20, 20, 20])

    def test_alpha_preserved(self, preprocessor):
        """Test alpha channel is carried through."""
        image = np.array([[[0, 30, 60, 128]]], dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.GRAYSCALE)
        np.testing.assert_array_equal(result.data[0, 0], [30, 30, 30, 128])


class TestContrast:
    """Test linear contrast stretch."""

    def test_default_level(self, preprocessor):
        """Test stretch around 128 with the default level (80)."""
        image = np.array([[[128, 200, 100]]], dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.CONTRAST)

        # factor = 259 * 335 / (255 * 179) ~= 1.9009
        np.testing.assert_array_equal(result.data[0, 0], [128, 255, 75])

    def test_zero_level_is_identity(self, preprocessor, rgb_image):
        """Test level 0 leaves pixels unchanged."""
        result = preprocessor.transform(rgb_image, PreprocessKind.CONTRAST, 0)
        np.testing.assert_array_equal(result.data, rgb_image)

    def test_configured_level(self, rgb_image):
        """Test configured level is used when no parameter is given."""
        preprocessor = ImagePreprocessor(PreprocessingConfig(contrast_level=0))
        result = preprocessor.transform(rgb_image, PreprocessKind.CONTRAST)
        np.testing.assert_array_equal(result.data, rgb_image)


class TestSharpen:
    """Test 3x3 sharpen kernel."""

    def test_center_pixel(self, preprocessor):
        """Test interior pixel is 5*center minus the 4 neighbors."""
        image = np.full((3, 3), 60, dtype=np.uint8)
        image[1, 1] = 80
        result = preprocessor.transform(image, PreprocessKind.SHARPEN)
        assert result.data[1, 1] == 160

    def test_border_copied(self, preprocessor, rgb_image):
        """Test the 1-pixel border is copied from the input."""
        result = preprocessor.transform(rgb_image, PreprocessKind.SHARPEN).data

        np.testing.assert_array_equal(result[0, :], rgb_image[0, :])
        np.testing.assert_array_equal(result[-1, :], rgb_image[-1, :])
        np.testing.assert_array_equal(result[:, 0], rgb_image[:, 0])
        np.testing.assert_array_equal(result[:, -1], rgb_image[:, -1])

    def test_uniform_image_unchanged(self, preprocessor):
        """Test a flat image is unchanged (kernel sums to 1)."""
        image = np.full((6, 6, 3), 90, dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.SHARPEN)
        np.testing.assert_array_equal(result.data, image)

    def test_tiny_image_copied(self, preprocessor):
        """Test images smaller than the kernel are copied unchanged."""
        image = np.array([[1, 2]], dtype=np.uint8)
        result = preprocessor.transform(image, PreprocessKind.SHARPEN)
        np.testing.assert_array_equal(result.data, image)


class TestThreshold:
    """Test luminance binarization."""

    @pytest.mark.parametrize(
        "pixel, expected",
        [((129, 129, 129), 255), ((128, 128, 128), 0), ((255, 0, 200), 255), ((0, 0, 0), 0)],
    )
    def test_default_level(self, preprocessor, pixel, expected):
        """Test pixels above 128 average become white, others black."""
        result = preprocessor.transform(_pixel_image(*pixel), PreprocessKind.THRESHOLD)
        np.testing.assert_array_equal(result.data[0, 0], [expected] * 3)

    def test_custom_level(self, preprocessor):
        """Test explicit threshold parameter."""
        result = preprocessor.transform(_pixel_image(60, 60, 60), PreprocessKind.THRESHOLD, 50)
        np.testing.assert_array_equal(result.data[0, 0], [255, 255, 255])


class TestDeadline:
    """Test cooperative deadline handling."""

    def test_expired_deadline_raises(self, preprocessor, rgb_image, virtual_clock):
        """Test an already expired deadline aborts the transform."""
        deadline = Deadline(100, virtual_clock)
        virtual_clock.advance(100)

        with pytest.raises(DeadlineExceeded):
            preprocessor.transform(rgb_image, PreprocessKind.SHARPEN, deadline=deadline)

    def test_live_deadline_passes(self, preprocessor, rgb_image, virtual_clock):
        """Test a live deadline does not interfere."""
        deadline = Deadline(100, virtual_clock)
        result = preprocessor.transform(rgb_image, PreprocessKind.IDENTITY, deadline=deadline)
        np.testing.assert_array_equal(result.data, rgb_image)
