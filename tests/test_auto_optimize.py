import numpy as np
from PIL import Image

from ascii_layers.auto_optimize import AutoOptimizer, auto_optimize_settings, luminance_histogram
from ascii_layers.config import GlobalSettings


def test_histogram_counts_every_pixel():
    img = Image.new('L', (10, 5), 77)
    hist = luminance_histogram(img)
    assert hist.shape == (256,)
    assert hist.sum() == 50
    assert hist[77] == 50


def test_histogram_sampling_limits_size():
    img = Image.new('L', (1024, 512), 10)
    hist = luminance_histogram(img, sample_size=256)
    assert hist.sum() <= 256 * 128


def test_flat_mid_grey_needs_no_correction():
    img = Image.new('RGB', (32, 32), (128, 128, 128))
    settings = auto_optimize_settings(img, GlobalSettings())
    assert settings.brightness == 0
    assert settings.gamma == 1.0
    assert settings.contrast == 100


def test_levels_follow_percentiles():
    hist = np.zeros(256, dtype=np.int64)
    hist[40] = 500
    hist[200] = 500
    assert AutoOptimizer.levels(hist) == (40, 200)


def test_dark_low_range_image_is_brightened_and_stretched():
    rng = np.random.default_rng(3)
    pixels = rng.integers(20, 90, size=(64, 64)).astype(np.uint8)
    settings = auto_optimize_settings(Image.fromarray(pixels), GlobalSettings())
    assert settings.brightness > 0
    assert settings.contrast > 100
    assert settings.black_point <= 22
    assert settings.white_point >= 87


def test_optimizer_keeps_unrelated_settings():
    base = GlobalSettings(blur=2, posterize=4, background_color='#ffffff')
    hist = luminance_histogram(np.full((8, 8), 60, dtype=np.uint8))
    settings = AutoOptimizer.optimize(hist, base)
    assert settings.blur == 2
    assert settings.posterize == 4
    assert settings.background_color == '#ffffff'
    assert base.brightness == 0


def test_results_are_clamped():
    hist = np.zeros(256, dtype=np.int64)
    hist[0] = 1000
    hist[3] = 10
    settings = AutoOptimizer.optimize(hist, GlobalSettings())
    assert -150 <= settings.brightness <= 150
    assert 80 <= settings.contrast <= 200
    assert 0.3 <= settings.gamma <= 2.5
