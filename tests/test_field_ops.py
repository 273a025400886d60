import numpy as np
from PIL import Image

from ascii_layers.field_ops import (
    box_blur,
    gaussian_blur,
    greyscale,
    normalize_max,
    resample,
    resample_color,
    sobel_magnitude,
    to_rgb_array,
    unsharp_mask,
)


def test_transparent_pixels_flatten_to_white():
    img = Image.new('RGBA', (3, 3), (0, 0, 0, 0))
    rgb = to_rgb_array(img)
    assert rgb.shape == (3, 3, 3)
    assert (rgb == 255).all()


def test_rgba_array_is_flattened_like_images():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    arr[0, 0] = (0, 0, 0, 255)
    rgb = to_rgb_array(arr)
    assert tuple(rgb[0, 0]) == (0, 0, 0)
    assert tuple(rgb[1, 1]) == (255, 255, 255)


def test_greyscale_uses_luma_weights():
    img = Image.new('RGB', (1, 1), (255, 0, 0))
    assert np.isclose(greyscale(img)[0, 0], 0.299 * 255)


def test_box_blur_preserves_constant_field():
    field = np.full((7, 9), 80.0)
    assert np.allclose(box_blur(field, 3), 80.0)


def test_box_blur_below_one_returns_copy():
    field = np.arange(12, dtype=np.float64).reshape(3, 4)
    blurred = box_blur(field, 0.5)
    assert np.array_equal(blurred, field)
    assert blurred is not field


def test_box_blur_shrinks_window_at_edges():
    field = np.array([[0.0, 0.0, 90.0]])
    # Last column averages columns 1 and 2 only
    assert np.isclose(box_blur(field, 1)[0, 2], 45.0)


def test_gaussian_blur_smooths_a_step(gradient):
    step = np.zeros((16, 16))
    step[:, 8:] = 255.0
    blurred = gaussian_blur(step, 4)
    assert 0 < blurred[8, 8] < 255
    assert np.isclose(blurred.mean(), step.mean(), atol=1.0)


def test_unsharp_mask_increases_local_contrast():
    step = np.full((16, 16), 100.0)
    step[:, 8:] = 150.0
    sharpened = unsharp_mask(step, 100)
    assert sharpened[8, 7] < 100.0
    assert sharpened[8, 8] > 150.0
    assert np.array_equal(unsharp_mask(step, 0), step)


def test_sobel_borders_are_zero():
    step = np.zeros((8, 8))
    step[:, 4:] = 255.0
    edges = sobel_magnitude(step)
    assert (edges[0] == 0).all() and (edges[-1] == 0).all()
    assert (edges[:, 0] == 0).all() and (edges[:, -1] == 0).all()
    assert edges[4, 3] > 0 and edges[4, 4] > 0


def test_sobel_sensitivity_scales_magnitude():
    step = np.zeros((8, 8))
    step[:, 4:] = 100.0
    assert np.allclose(sobel_magnitude(step, 200), 2 * sobel_magnitude(step, 100))


def test_sobel_small_field_is_all_zero():
    assert (sobel_magnitude(np.full((2, 5), 9.0)) == 0).all()


def test_normalize_max_leaves_zero_field():
    zeros = np.zeros((3, 3))
    assert (normalize_max(zeros) == 0).all()
    assert normalize_max(np.array([[1.0, 2.0]])).max() == 255.0


def test_resample_shapes():
    field = np.full((40, 60), 200.0)
    small = resample(field, 6, 4)
    assert small.shape == (4, 6)
    assert np.allclose(small, 200.0)

    rgb = np.zeros((40, 60, 3), dtype=np.uint8)
    rgb[..., 1] = 255
    colors = resample_color(rgb, 6, 4)
    assert colors.shape == (4, 6, 3)
    assert (colors[..., 1] == 255).all()
